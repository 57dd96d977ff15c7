from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any, cast

from multibody.context import BindingContext
from multibody.decoding import (
    StructuralDecoder,
    as_text,
    coerce_primitive,
    normalize_body,
    parse_json_body,
    to_json_text,
)
from multibody.descriptors import BindingDescriptor
from multibody.exceptions import (
    MalformedBodyError,
    MissingParameterNameError,
    MissingRequiredKeyError,
    StructuralDecodeError,
    ValidationFailedError,
)
from multibody.results import ABSENT, BindingResult, Bound, Failure
from multibody.shapes import (
    CollectionShape,
    MapShape,
    ObjectShape,
    PrimitiveKind,
    PrimitiveShape,
    Shape,
    TextShape,
)
from multibody.validation import PydanticValidator, Validator

logger = logging.getLogger(__name__)


class MultiBodyBinder:
    """Bind handler parameters from keys of one shared JSON request body.

    ``resolve`` returns a ``BindingResult`` and never raises for binding
    failures. ``bind`` and ``bind_in_context`` raise the failure instead and
    turn an absent value into ``None`` (or the parameter default).

    Lookup order for a parameter:

    1. the explicit ``MultiBody`` key, else the parameter name;
    2. when the key holds a value, decode it by shape;
    3. when it does not, objects and mappings with ``parse_all_fields`` are
       decoded from the whole body. A required object for which the body
       populated no declared field counts as missing.
    """

    def __init__(
        self,
        *,
        decoder: StructuralDecoder | None = None,
        validator: Validator | None = None,
    ) -> None:
        self._decoder = decoder or StructuralDecoder()
        self._validator = validator or PydanticValidator()
        self._value_decoders: dict[type[Any], Callable[[Any, str, Any], BindingResult]] = {
            PrimitiveShape: self._decode_primitive,
            TextShape: self._decode_text,
            CollectionShape: self._decode_structural,
            MapShape: self._decode_structural,
            ObjectShape: self._decode_structural,
        }

    def resolve(self, descriptor: BindingDescriptor, json_body: str) -> BindingResult:
        """Resolve one parameter from a raw JSON body."""
        try:
            tree = parse_json_body(json_body)
        except MalformedBodyError as exc:
            return Failure(exc)
        return self.resolve_tree(descriptor, json_body, tree)

    def resolve_tree(self, descriptor: BindingDescriptor, json_body: str, tree: Any) -> BindingResult:
        """Resolve one parameter from a body that has already been parsed."""
        try:
            key = descriptor.lookup_key
        except MissingParameterNameError as exc:
            return Failure(exc)

        has_key = isinstance(tree, dict) and key in tree
        if descriptor.explicit_key and not has_key and descriptor.required:
            return Failure(MissingRequiredKeyError(key))

        shape = descriptor.shape
        if has_key:
            logger.debug("Binding param %s from body key %s", descriptor.parameter_name, key)
            try:
                return self._decode_value(shape, key, tree[key])
            except StructuralDecodeError as exc:
                return Failure(exc)

        if isinstance(shape, PrimitiveShape | TextShape | CollectionShape) or not descriptor.parse_all_fields:
            return self._missing(descriptor, key)
        return self._decode_whole_body(descriptor, key, json_body, tree)

    def bind(self, descriptor: BindingDescriptor, json_body: str) -> Any:
        """Resolve one parameter and raise on failure."""
        return self._unwrap(descriptor, self.resolve(descriptor, json_body))

    async def bind_in_context(self, descriptor: BindingDescriptor, context: BindingContext) -> Any:
        """Resolve one parameter of a request, reading its body through the context cache.

        Runs the validation pass for parameters marked with ``Valid``.
        """
        json_body = await context.body.get_text()
        tree = await context.body.get_tree()
        value = self._unwrap(descriptor, self.resolve_tree(descriptor, json_body, tree))
        self.validate_if_applicable(descriptor, value, context)
        return value

    def validate_if_applicable(
        self,
        descriptor: BindingDescriptor,
        value: Any,
        context: BindingContext,
    ) -> None:
        """Validate a bound value and raise unless a ``BindingErrors`` parameter absorbs errors."""
        parameter_name = descriptor.parameter_name or descriptor.lookup_key
        errors = context.errors_for(parameter_name)
        if value is None or descriptor.validation_hints is None:
            return
        errors.add(self._validator.validate(value, descriptor.validation_hints))
        if errors.has_errors() and not descriptor.has_errors_sink:
            raise ValidationFailedError(parameter_name, errors.errors)

    def _unwrap(self, descriptor: BindingDescriptor, result: BindingResult) -> Any:
        default = descriptor.default if descriptor.has_default else None
        return result.unwrap(default)

    def _decode_value(self, shape: Shape, key: str, node: Any) -> BindingResult:
        if node is None:
            if shape.nullable:
                return ABSENT
            raise StructuralDecodeError(key, "value must not be null")
        return self._value_decoders[type(shape)](shape, key, node)

    def _decode_primitive(self, shape: PrimitiveShape, key: str, node: Any) -> BindingResult:
        value = coerce_primitive(shape.kind, node, key=key)
        if value is None and shape.kind is PrimitiveKind.CHARACTER:
            return ABSENT
        return Bound(value)

    def _decode_text(self, shape: TextShape, key: str, node: Any) -> BindingResult:
        return Bound(as_text(node))

    def _decode_structural(
        self,
        shape: ObjectShape | MapShape | CollectionShape,
        key: str,
        node: Any,
    ) -> BindingResult:
        return Bound(self._decoder.decode(to_json_text(node), shape, key=key).value)

    def _decode_whole_body(
        self,
        descriptor: BindingDescriptor,
        key: str,
        json_body: str,
        tree: Any,
    ) -> BindingResult:
        shape = cast("ObjectShape | MapShape", descriptor.shape)
        logger.debug("Body key %s not found, decoding whole body into %s", key, descriptor.parameter_name)
        try:
            decoded = self._decoder.decode(normalize_body(json_body), shape, key=key)
        except StructuralDecodeError as exc:
            if isinstance(shape, ObjectShape) and not self._decoder.matching_fields(tree, shape):
                # Nothing in the body matches the object, so it cannot be built.
                return self._missing(descriptor, key)
            return Failure(exc)

        if isinstance(shape, MapShape):
            return Bound(decoded.value)
        if descriptor.required and not decoded.populated_fields:
            return Failure(MissingRequiredKeyError(key))
        return Bound(decoded.value)

    def _missing(self, descriptor: BindingDescriptor, key: str) -> BindingResult:
        shape = descriptor.shape
        if descriptor.required or (isinstance(shape, PrimitiveShape) and not shape.nullable):
            return Failure(MissingRequiredKeyError(key))
        logger.debug("Optional param %s not present in body", descriptor.parameter_name)
        return ABSENT


__all__ = ["MultiBodyBinder"]
