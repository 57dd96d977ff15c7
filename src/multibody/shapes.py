from __future__ import annotations

import collections
import collections.abc
import dataclasses
import inspect
import types
from dataclasses import dataclass
from enum import Enum
from typing import Annotated, Any, TypeAlias, Union, get_args, get_origin, is_typeddict

from pydantic import BaseModel


class PrimitiveKind(str, Enum):
    """Scalar kinds decoded with JSON-library coercions instead of the structural decoder."""

    INTEGER = "integer"
    SHORT = "short"
    LONG = "long"
    FLOAT = "float"
    DOUBLE = "double"
    BYTE = "byte"
    BOOLEAN = "boolean"
    CHARACTER = "character"


@dataclass(frozen=True, slots=True)
class PrimitiveShape:
    """A scalar decoded by coercion; non-nullable kinds fail when missing."""

    kind: PrimitiveKind
    nullable: bool = False


@dataclass(frozen=True, slots=True)
class TextShape:
    """A string taken verbatim from the JSON value."""

    nullable: bool = False


@dataclass(frozen=True, slots=True)
class CollectionShape:
    """A list-like value; never decoded from the whole body."""

    annotation: Any
    nullable: bool = False


@dataclass(frozen=True, slots=True)
class MapShape:
    """A mapping; the whole-body fallback returns it without an emptiness check."""

    annotation: Any
    nullable: bool = False


@dataclass(frozen=True, slots=True)
class ObjectShape:
    """A structured object with declared fields (pydantic model, dataclass, TypedDict)."""

    annotation: Any
    field_names: tuple[str, ...] = ()
    nullable: bool = False


Shape: TypeAlias = PrimitiveShape | TextShape | CollectionShape | MapShape | ObjectShape

_BUILTIN_PRIMITIVES: dict[type[Any], PrimitiveKind] = {
    bool: PrimitiveKind.BOOLEAN,
    int: PrimitiveKind.LONG,
    float: PrimitiveKind.DOUBLE,
}

_COLLECTION_ORIGINS: tuple[type[Any], ...] = (
    list,
    tuple,
    set,
    frozenset,
    collections.deque,
    collections.abc.Iterable,
    collections.abc.Collection,
    collections.abc.Sequence,
    collections.abc.MutableSequence,
    collections.abc.Set,
    collections.abc.MutableSet,
)


def is_plain_class(candidate: object) -> bool:
    """Return true for a class that ``issubclass`` accepts; parametrized generics are rejected."""
    return isinstance(candidate, type) and not isinstance(candidate, types.GenericAlias)


def shape_from_annotation(annotation: Any, *, nullable: bool = False) -> Shape:
    """Build the decode shape for a parameter annotation.

    ``Annotated`` metadata may carry a ``PrimitiveKind`` (see ``multibody.types``)
    to select a narrower scalar kind. ``T | None`` marks the shape nullable, as
    does passing ``nullable=True`` for parameters defaulting to ``None``.
    """
    base, kind = _unwrap_annotated(annotation)
    base, is_optional = _unwrap_optional(base)
    nullable = nullable or is_optional
    if is_optional:
        base, inner_kind = _unwrap_annotated(base)
        kind = kind or inner_kind

    if kind is not None:
        return PrimitiveShape(kind=kind, nullable=nullable)
    if base in _BUILTIN_PRIMITIVES:
        return PrimitiveShape(kind=_BUILTIN_PRIMITIVES[base], nullable=nullable)
    if base is str:
        return TextShape(nullable=nullable)
    if base is inspect.Parameter.empty:
        base = Any

    origin = get_origin(base) or base
    if is_plain_class(origin) and is_typeddict(origin):
        return ObjectShape(annotation=base, field_names=object_field_names(origin), nullable=nullable)
    if is_plain_class(origin) and issubclass(origin, collections.abc.Mapping):
        return MapShape(annotation=base, nullable=nullable)
    if origin in _COLLECTION_ORIGINS:
        return CollectionShape(annotation=base, nullable=nullable)
    return ObjectShape(
        annotation=base,
        field_names=object_field_names(origin),
        nullable=nullable,
    )


def object_field_names(cls: Any) -> tuple[str, ...]:
    """Return the declared field names of a structured type, or an empty tuple."""
    if not is_plain_class(cls):
        return ()
    if issubclass(cls, BaseModel):
        return tuple(cls.model_fields)
    if dataclasses.is_dataclass(cls):
        return tuple(field.name for field in dataclasses.fields(cls))
    if is_typeddict(cls):
        return tuple(getattr(cls, "__annotations__", {}))
    return ()


def _unwrap_annotated(annotation: Any) -> tuple[Any, PrimitiveKind | None]:
    if get_origin(annotation) is not Annotated:
        return annotation, None
    args = get_args(annotation)
    kind = next((item for item in args[1:] if isinstance(item, PrimitiveKind)), None)
    return args[0], kind


def _unwrap_optional(annotation: Any) -> tuple[Any, bool]:
    origin = get_origin(annotation)
    if origin is not Union and origin is not types.UnionType:
        return annotation, False
    args = get_args(annotation)
    non_none = tuple(arg for arg in args if arg is not type(None))
    is_optional = len(non_none) != len(args)
    if len(non_none) == 1:
        return non_none[0], is_optional
    if not is_optional:
        return annotation, False
    return Union[non_none], True  # noqa: UP007


__all__ = [
    "CollectionShape",
    "MapShape",
    "ObjectShape",
    "PrimitiveKind",
    "PrimitiveShape",
    "Shape",
    "TextShape",
    "is_plain_class",
    "object_field_names",
    "shape_from_annotation",
]
