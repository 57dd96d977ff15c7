from __future__ import annotations

import math
import struct
from dataclasses import dataclass
from functools import lru_cache
from typing import Any

import pydantic_core
from pydantic import BaseModel, TypeAdapter, ValidationError

from multibody.exceptions import MalformedBodyError, StructuralDecodeError
from multibody.shapes import CollectionShape, MapShape, ObjectShape, PrimitiveKind

_INTEGRAL_BITS: dict[PrimitiveKind, int] = {
    PrimitiveKind.BYTE: 8,
    PrimitiveKind.SHORT: 16,
    PrimitiveKind.INTEGER: 32,
    PrimitiveKind.LONG: 64,
}
# Fractional values narrow to int, or to long for LONG, before any further wrap.
_INT_BITS = 32
_NARROWING_BITS: dict[PrimitiveKind, int] = {PrimitiveKind.LONG: 64}
_EMPTY_BODY = "{}"


@dataclass(frozen=True, slots=True)
class Decoded:
    """Structural decode result with the declared fields the input actually populated."""

    value: Any
    populated_fields: frozenset[str]


def normalize_body(json_body: str) -> str:
    """Treat a blank body as an empty JSON object."""
    if not json_body.strip():
        return _EMPTY_BODY
    return json_body


def parse_json_body(json_body: str) -> Any:
    """Parse the raw request body into a JSON tree of plain Python values."""
    try:
        return pydantic_core.from_json(normalize_body(json_body), allow_inf_nan=False)
    except ValueError as exc:
        raise MalformedBodyError(str(exc)) from exc


def to_json_text(node: Any) -> str:
    return pydantic_core.to_json(node).decode()


@lru_cache(maxsize=256)
def type_adapter(annotation: Any) -> TypeAdapter[Any]:
    """Return a cached pydantic adapter for a structural annotation."""
    return TypeAdapter(annotation)


def validation_errors(exc: ValidationError) -> list[dict[str, Any]]:
    """Return JSON-safe error details without echoing request input."""
    return [
        dict(error)
        for error in exc.errors(include_url=False, include_context=False, include_input=False)
    ]


class StructuralDecoder:
    """Decode JSON text into object, mapping and collection shapes with pydantic.

    Alongside the instance, the decoder reports which declared fields the
    input populated with a non-null value. Pydantic models report their own
    ``model_fields_set``; dataclasses and TypedDicts are matched against the
    top-level keys of the input.
    """

    def decode(
        self,
        json_text: str,
        shape: ObjectShape | MapShape | CollectionShape,
        *,
        key: str,
    ) -> Decoded:
        adapter = type_adapter(shape.annotation)
        try:
            value = adapter.validate_json(json_text)
        except ValidationError as exc:
            raise StructuralDecodeError(
                key,
                f"{exc.error_count()} validation error(s) for {_type_name(shape.annotation)}",
                validation_errors(exc),
            ) from exc
        return Decoded(value=value, populated_fields=self.populated_fields(value, json_text, shape))

    def populated_fields(
        self,
        value: Any,
        json_text: str,
        shape: ObjectShape | MapShape | CollectionShape,
    ) -> frozenset[str]:
        if not isinstance(shape, ObjectShape):
            return frozenset()
        if isinstance(value, BaseModel):
            return frozenset(
                name for name in value.model_fields_set if getattr(value, name, None) is not None
            )
        return self.matching_fields(pydantic_core.from_json(json_text, allow_inf_nan=False), shape)

    def matching_fields(self, tree: Any, shape: ObjectShape) -> frozenset[str]:
        """Return declared fields whose name or alias is a non-null top-level key of tree."""
        if not isinstance(tree, dict):
            return frozenset()
        matched: set[str] = set()
        for field_name, candidates in _field_keys(shape.annotation, shape.field_names).items():
            if any(tree.get(candidate) is not None for candidate in candidates):
                matched.add(field_name)
        return frozenset(matched)


def coerce_primitive(kind: PrimitiveKind, node: Any, *, key: str) -> Any:
    """Convert a JSON scalar the way the JSON library's accessors do.

    Integral numbers wrap to the width of their kind. Fractional numbers are
    truncated toward zero and saturate at the 32-bit range (64-bit for
    ``LONG``), NaN becomes 0, and bytes and shorts then wrap the saturated
    value. ``BOOLEAN`` is true only for ``true``, non-zero numbers and the text
    ``"true"``. ``CHARACTER`` returns the first character, or None for an
    empty textual value.
    """
    if kind is PrimitiveKind.BOOLEAN:
        return _as_boolean(node)
    if kind is PrimitiveKind.CHARACTER:
        text = as_text(node)
        return text[0] if text else None
    try:
        number = _as_number(node)
        if kind is PrimitiveKind.DOUBLE:
            return float(number)
        if kind is PrimitiveKind.FLOAT:
            return _as_float32(float(number))
        if isinstance(number, float):
            number = _narrow(number, _NARROWING_BITS.get(kind, _INT_BITS))
        return _wrap(number, _INTEGRAL_BITS[kind])
    except (TypeError, ValueError, OverflowError) as exc:
        message = f"{to_json_text(node)} is not a valid {kind.value}"
        raise StructuralDecodeError(key, message) from exc


def as_text(node: Any) -> str:
    """Return the textual form of a JSON scalar.

    Strings come back verbatim, numbers and booleans as their JSON text.
    Objects and arrays have no textual form and yield an empty string.
    """
    if isinstance(node, str):
        return node
    if isinstance(node, dict | list):
        return ""
    return to_json_text(node)


def _as_number(node: Any) -> int | float:
    if isinstance(node, bool):
        return int(node)
    if isinstance(node, int | float):
        return node
    if isinstance(node, str):
        text = node.strip()
        try:
            return int(text)
        except ValueError:
            return float(text)
    message = f"cannot convert {type(node).__name__} to a number"
    raise TypeError(message)


def _as_boolean(node: Any) -> bool:
    if isinstance(node, bool):
        return node
    if isinstance(node, int | float):
        return node != 0
    if isinstance(node, str):
        return node.strip() == "true"
    return False


def _as_float32(value: float) -> float:
    try:
        return struct.unpack("f", struct.pack("f", value))[0]
    except OverflowError:
        return math.copysign(math.inf, value)


def _narrow(value: float, bits: int) -> int:
    if math.isnan(value):
        return 0
    low = -(1 << (bits - 1))
    high = (1 << (bits - 1)) - 1
    if value <= low:
        return low
    if value >= high:
        return high
    return math.trunc(value)


def _wrap(value: int, bits: int) -> int:
    value &= (1 << bits) - 1
    if value >= 1 << (bits - 1):
        value -= 1 << bits
    return value


def _field_keys(annotation: Any, field_names: tuple[str, ...]) -> dict[str, tuple[str, ...]]:
    model_fields = getattr(annotation, "model_fields", None)
    if not isinstance(model_fields, dict):
        return {name: (name,) for name in field_names}
    keys: dict[str, tuple[str, ...]] = {}
    for name in field_names:
        info = model_fields[name]
        candidates = [name]
        if isinstance(info.alias, str):
            candidates.append(info.alias)
        if isinstance(info.validation_alias, str):
            candidates.append(info.validation_alias)
        keys[name] = tuple(candidates)
    return keys


def _type_name(annotation: Any) -> str:
    return getattr(annotation, "__name__", None) or repr(annotation)


__all__ = [
    "Decoded",
    "StructuralDecoder",
    "as_text",
    "coerce_primitive",
    "normalize_body",
    "parse_json_body",
    "to_json_text",
    "type_adapter",
    "validation_errors",
]
