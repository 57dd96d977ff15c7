from __future__ import annotations

import inspect
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, get_type_hints

from multibody.decoding import type_adapter
from multibody.exceptions import MissingParameterNameError
from multibody.markers import (
    MultiBody,
    extract_multibody_marker,
    extract_valid_marker,
    is_binding_errors_annotation,
)
from multibody.settings import MultiBodySettings
from multibody.shapes import PrimitiveShape, Shape, TextShape, shape_from_annotation


@dataclass(frozen=True, slots=True)
class BindingDescriptor:
    """Static metadata describing how one parameter is extracted from the shared body.

    Built once per handler parameter at registration time and reused for every
    request.
    """

    parameter_name: str | None
    shape: Shape
    explicit_key: str | None = None
    required: bool = True
    parse_all_fields: bool = True
    validation_hints: tuple[Any, ...] | None = None
    has_errors_sink: bool = False
    default: Any = inspect.Parameter.empty

    @property
    def lookup_key(self) -> str:
        """Return the explicit key when set, otherwise the parameter name."""
        if self.explicit_key:
            return self.explicit_key
        if not self.parameter_name:
            raise MissingParameterNameError
        return self.parameter_name

    @property
    def has_default(self) -> bool:
        return self.default is not inspect.Parameter.empty

    @classmethod
    def from_annotation(
        cls,
        parameter_name: str | None,
        annotation: Any,
        *,
        marker: MultiBody | None = None,
        default: Any = inspect.Parameter.empty,
        has_errors_sink: bool = False,
        settings: MultiBodySettings | None = None,
    ) -> BindingDescriptor:
        """Build a descriptor from a parameter annotation.

        ``marker`` overrides the ``MultiBody`` metadata found in ``annotation``.
        A parameter default makes the binding optional unless the marker sets
        ``required`` explicitly, and absent values then bind to the default.
        """
        settings = settings or MultiBodySettings()
        marker = marker or extract_multibody_marker(annotation) or MultiBody()
        if not parameter_name and not marker.key:
            raise MissingParameterNameError
        has_default = default is not inspect.Parameter.empty
        required = marker.required
        if required is None:
            required = settings.default_required and not has_default
        parse_all_fields = marker.parse_all_fields
        if parse_all_fields is None:
            parse_all_fields = settings.default_parse_all_fields

        shape = shape_from_annotation(annotation, nullable=has_default)
        if not isinstance(shape, PrimitiveShape | TextShape):
            # Fail at registration for annotations pydantic cannot decode.
            type_adapter(shape.annotation)

        valid = extract_valid_marker(annotation)
        return cls(
            parameter_name=parameter_name,
            shape=shape,
            explicit_key=marker.key or None,
            required=required,
            parse_all_fields=parse_all_fields,
            validation_hints=valid.hints if valid is not None else None,
            has_errors_sink=has_errors_sink,
            default=default,
        )


@dataclass(frozen=True, slots=True)
class ErrorsSinkParameter:
    """A ``BindingErrors`` parameter and the bound parameter whose errors it receives."""

    name: str
    target: str


@dataclass(frozen=True, slots=True)
class MultiBodyCallableInspection:
    """Binding metadata derived from a callable signature and annotations."""

    signature: inspect.Signature
    descriptors: tuple[BindingDescriptor, ...]
    sink_parameters: tuple[ErrorsSinkParameter, ...]
    public_signature: inspect.Signature

    @property
    def has_bindings(self) -> bool:
        return bool(self.descriptors)


@dataclass(slots=True)
class MultiBodyCallableInspector:
    """Inspect callables for ``MultiBody`` and ``BindingErrors`` parameters."""

    settings: MultiBodySettings

    def inspect_callable(self, callable_obj: Callable[..., Any]) -> MultiBodyCallableInspection:
        """Build descriptors and a public signature without the bound parameters."""
        signature = self.resolved_signature(callable_obj=callable_obj)
        parameters = [
            parameter
            for parameter in signature.parameters.values()
            if parameter.kind not in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD)
        ]

        descriptors: list[BindingDescriptor] = []
        sink_parameters: list[ErrorsSinkParameter] = []
        for index, parameter in enumerate(parameters):
            if is_binding_errors_annotation(parameter.annotation):
                previous = parameters[index - 1].name if index > 0 else ""
                sink_parameters.append(ErrorsSinkParameter(name=parameter.name, target=previous))
                continue
            marker = extract_multibody_marker(parameter.annotation)
            if marker is None:
                continue
            following = parameters[index + 1] if index + 1 < len(parameters) else None
            descriptors.append(
                BindingDescriptor.from_annotation(
                    parameter.name,
                    parameter.annotation,
                    marker=marker,
                    default=parameter.default,
                    has_errors_sink=following is not None
                    and is_binding_errors_annotation(following.annotation),
                    settings=self.settings,
                ),
            )

        hidden_parameter_names = {descriptor.parameter_name for descriptor in descriptors}
        hidden_parameter_names.update(sink.name for sink in sink_parameters)
        public_signature = signature.replace(
            parameters=[
                parameter
                for parameter in signature.parameters.values()
                if parameter.name not in hidden_parameter_names
            ],
        )
        return MultiBodyCallableInspection(
            signature=signature,
            descriptors=tuple(descriptors),
            sink_parameters=tuple(sink_parameters),
            public_signature=public_signature,
        )

    def resolved_signature(self, *, callable_obj: Callable[..., Any]) -> inspect.Signature:
        """Return the signature with string annotations replaced by resolved types."""
        signature = inspect.signature(callable_obj)
        try:
            hints = get_type_hints(callable_obj, include_extras=True)
        except (AttributeError, NameError, TypeError):
            hints = {}
        return signature.replace(
            parameters=[
                parameter.replace(annotation=hints.get(parameter.name, parameter.annotation))
                for parameter in signature.parameters.values()
            ],
            return_annotation=hints.get("return", signature.return_annotation),
        )


__all__ = [
    "BindingDescriptor",
    "ErrorsSinkParameter",
    "MultiBodyCallableInspection",
    "MultiBodyCallableInspector",
]
