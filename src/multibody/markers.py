from __future__ import annotations

from collections.abc import Iterator
from typing import TYPE_CHECKING, Annotated, Any, NamedTuple, TypeVar, Union, get_args, get_origin

from multibody.shapes import is_plain_class

T = TypeVar("T")
_ANNOTATED_MARKER_MIN_ARGS = 2


class MultiBody(NamedTuple):
    """Bind a handler parameter from one key of the shared JSON request body.

    Attach ``MultiBody`` metadata to ``typing.Annotated``. Every marked
    parameter of a handler reads the same body, so several values can be
    taken from one document.

    ``key`` names the JSON key; when empty, the parameter name is used.
    ``required`` and ``parse_all_fields`` fall back to
    ``MultiBodySettings`` defaults when left as ``None``.

    With ``parse_all_fields`` enabled, an object or mapping parameter whose
    key is missing is decoded from the whole body instead, so a flat body such
    as ``{"name": "Alice", "age": 30}`` can fill a ``User`` parameter directly.

    Examples:
        .. code-block:: python

            @app.post("/users")
            async def create(
                name: Annotated[str, MultiBody("name")],
                age: Annotated[int, MultiBody("age")],
                tags: Annotated[list[str] | None, MultiBody(required=False)] = None,
            ) -> dict[str, object]: ...

    """

    key: str = ""
    required: bool | None = None
    parse_all_fields: bool | None = None


class Valid(NamedTuple):
    """Request a post-decode validation pass for a ``MultiBody`` parameter.

    ``hints`` are passed as-is to the configured validator (for the default
    pydantic validator they end up in the validation ``context``).
    """

    hints: tuple[Any, ...] = ()


class BindingErrors:
    """Collect validation errors for the ``MultiBody`` parameter declared just before it.

    Declaring a ``BindingErrors`` parameter immediately after a validated
    parameter stops the binder from raising ``ValidationFailedError``; the
    handler inspects the errors itself.
    """

    def __init__(self, parameter_name: str, errors: list[dict[str, Any]] | None = None) -> None:
        self.parameter_name = parameter_name
        self.errors: list[dict[str, Any]] = list(errors or ())

    def has_errors(self) -> bool:
        return bool(self.errors)

    def add(self, errors: list[dict[str, Any]]) -> None:
        self.errors.extend(errors)

    def __iter__(self) -> Iterator[dict[str, Any]]:
        return iter(self.errors)

    def __len__(self) -> int:
        return len(self.errors)

    def __repr__(self) -> str:
        return f"BindingErrors({self.parameter_name!r}, errors={self.errors!r})"


if TYPE_CHECKING:
    FromBody = Union[T, T]  # noqa: UP007,PYI016
    """Bind a parameter from the body key named after the parameter.

    At runtime ``FromBody[T]`` becomes ``Annotated[T, MultiBody()]``.
    """

else:

    class FromBody:
        """Bind a parameter from the body key named after the parameter.

        At runtime ``FromBody[T]`` resolves to ``Annotated[T, MultiBody()]``.

        Examples:
            .. code-block:: python

                @app.post("/orders")
                async def create(order: FromBody[Order], note: FromBody[str | None] = None): ...

        """

        def __class_getitem__(cls, item: T) -> Annotated[T, MultiBody]:
            if get_origin(item) is Annotated:
                args = get_args(item)
                inner = args[0]
                metadata = args[1:]
                return _build_annotated((inner, *metadata, MultiBody()))
            return _build_annotated((item, MultiBody()))


def extract_multibody_marker(annotation: Any) -> MultiBody | None:
    """Return the ``MultiBody`` marker of an Annotated type, or None."""
    return _extract_marker(annotation, MultiBody)


def extract_valid_marker(annotation: Any) -> Valid | None:
    """Return the ``Valid`` marker of an Annotated type, or None."""
    return _extract_marker(annotation, Valid)


def is_binding_errors_annotation(annotation: Any) -> bool:
    """Return True when annotation is ``BindingErrors`` (optionally Annotated)."""
    if get_origin(annotation) is Annotated:
        annotation = get_args(annotation)[0]
    return is_plain_class(annotation) and issubclass(annotation, BindingErrors)


def _extract_marker(annotation: Any, marker_type: type[T]) -> T | None:
    if get_origin(annotation) is not Annotated:
        return None
    annotation_args = get_args(annotation)
    if len(annotation_args) < _ANNOTATED_MARKER_MIN_ARGS:
        return None
    metadata = annotation_args[1:]
    return next(
        (item for item in metadata if isinstance(item, marker_type)),
        None,
    )


def _build_annotated(params: tuple[object, ...]) -> Any:
    """Return Annotated[...] with a pre-built params tuple (Py 3.10+ compatible)."""
    try:
        return Annotated.__class_getitem__(params)  # type: ignore[attr-defined]
    except AttributeError:
        return Annotated.__getitem__(params)  # type: ignore[attr-defined]


__all__ = [
    "BindingErrors",
    "FromBody",
    "MultiBody",
    "Valid",
    "extract_multibody_marker",
    "extract_valid_marker",
    "is_binding_errors_annotation",
]
