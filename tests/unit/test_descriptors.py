from __future__ import annotations

import inspect
from typing import Annotated

import pytest
from pydantic.errors import PydanticSchemaGenerationError

from multibody.descriptors import BindingDescriptor, MultiBodyCallableInspector
from multibody.exceptions import MissingParameterNameError
from multibody.markers import BindingErrors, FromBody, MultiBody, Valid
from multibody.settings import MultiBodySettings
from multibody.shapes import ObjectShape, PrimitiveKind, PrimitiveShape, TextShape
from tests.models import User


class Opaque:
    def __init__(self, handle: object) -> None:
        self.handle = handle


class TestBindingDescriptor:
    def test_defaults_follow_settings(self, settings: MultiBodySettings) -> None:
        descriptor = BindingDescriptor.from_annotation(
            "user",
            Annotated[User, MultiBody()],
            settings=settings,
        )

        assert descriptor.parameter_name == "user"
        assert descriptor.explicit_key is None
        assert descriptor.required is True
        assert descriptor.parse_all_fields is True
        assert descriptor.shape == ObjectShape(annotation=User, field_names=("name", "age"))
        assert descriptor.validation_hints is None

    def test_marker_flags_override_settings(self) -> None:
        settings = MultiBodySettings(default_required=False, default_parse_all_fields=False)

        descriptor = BindingDescriptor.from_annotation(
            "user",
            Annotated[User, MultiBody("u", required=True, parse_all_fields=True)],
            settings=settings,
        )

        assert descriptor.explicit_key == "u"
        assert descriptor.required is True
        assert descriptor.parse_all_fields is True

    def test_unset_flags_take_settings_defaults(self) -> None:
        settings = MultiBodySettings(default_required=False, default_parse_all_fields=False)

        descriptor = BindingDescriptor.from_annotation("n", FromBody[int], settings=settings)

        assert descriptor.required is False
        assert descriptor.parse_all_fields is False

    def test_default_value_makes_binding_optional(self, settings: MultiBodySettings) -> None:
        descriptor = BindingDescriptor.from_annotation(
            "page",
            FromBody[int],
            default=1,
            settings=settings,
        )

        assert descriptor.required is False
        assert descriptor.shape == PrimitiveShape(PrimitiveKind.LONG, nullable=True)
        assert descriptor.has_default

    def test_valid_marker_sets_hints(self, settings: MultiBodySettings) -> None:
        descriptor = BindingDescriptor.from_annotation(
            "user",
            Annotated[User, MultiBody(), Valid(("create",))],
            settings=settings,
        )

        assert descriptor.validation_hints == ("create",)

    def test_lookup_key_prefers_explicit_key(self) -> None:
        descriptor = BindingDescriptor(parameter_name="name", shape=TextShape(), explicit_key="n")

        assert descriptor.lookup_key == "n"

    def test_lookup_key_without_any_name_raises(self) -> None:
        descriptor = BindingDescriptor(parameter_name="", shape=TextShape())

        with pytest.raises(MissingParameterNameError):
            _ = descriptor.lookup_key

    def test_nameless_descriptor_fails_at_registration(self) -> None:
        with pytest.raises(MissingParameterNameError):
            BindingDescriptor.from_annotation(None, FromBody[int])

    def test_undecodable_annotation_fails_at_registration(self) -> None:
        with pytest.raises(PydanticSchemaGenerationError):
            BindingDescriptor.from_annotation("opaque", FromBody[Opaque])


def handler(
    item_id: int,
    user: Annotated[User, MultiBody(), Valid()],
    errors: BindingErrors,
    note: Annotated[str | None, MultiBody("comment")] = None,
) -> dict[str, str]:
    return {}


def plain(item_id: int) -> int:
    return item_id


class TestMultiBodyCallableInspector:
    def test_inspects_bound_and_sink_parameters(self, settings: MultiBodySettings) -> None:
        inspection = MultiBodyCallableInspector(settings=settings).inspect_callable(handler)

        assert inspection.has_bindings
        assert [descriptor.parameter_name for descriptor in inspection.descriptors] == ["user", "note"]
        user, note = inspection.descriptors
        assert user.has_errors_sink is True
        assert user.validation_hints == ()
        assert note.has_errors_sink is False
        assert note.explicit_key == "comment"
        assert note.required is False
        assert [(sink.name, sink.target) for sink in inspection.sink_parameters] == [("errors", "user")]

    def test_public_signature_hides_bound_parameters(self, settings: MultiBodySettings) -> None:
        inspection = MultiBodyCallableInspector(settings=settings).inspect_callable(handler)

        assert list(inspection.public_signature.parameters) == ["item_id"]
        assert inspection.public_signature.parameters["item_id"].annotation is int
        assert inspection.public_signature.return_annotation == dict[str, str]

    def test_callable_without_markers_has_no_bindings(self, settings: MultiBodySettings) -> None:
        inspection = MultiBodyCallableInspector(settings=settings).inspect_callable(plain)

        assert not inspection.has_bindings
        assert inspection.public_signature == inspect.signature(plain).replace(
            parameters=[
                inspect.Parameter("item_id", inspect.Parameter.POSITIONAL_OR_KEYWORD, annotation=int),
            ],
            return_annotation=int,
        )
