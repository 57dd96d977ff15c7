from __future__ import annotations

from typing import Annotated, Any

import pytest

from multibody.binder import MultiBodyBinder
from multibody.context import BindingContext, RequestJsonCache
from multibody.descriptors import BindingDescriptor
from multibody.exceptions import ValidationFailedError
from multibody.markers import MultiBody, Valid
from multibody.validation import PydanticValidator, Validator
from tests.models import Contact, Point, User


class RecordingValidator:
    def __init__(self, errors: list[dict[str, Any]]) -> None:
        self.errors = errors
        self.calls: list[tuple[Any, tuple[Any, ...]]] = []

    def validate(self, value: Any, hints: tuple[Any, ...]) -> list[dict[str, Any]]:
        self.calls.append((value, hints))
        return self.errors


def test_recording_validator_satisfies_protocol() -> None:
    assert isinstance(RecordingValidator([]), Validator)


class TestPydanticValidator:
    def test_hints_reach_model_validators(self) -> None:
        errors = PydanticValidator().validate(Contact(name="Ann"), ("create",))

        assert len(errors) == 1
        assert "email is required" in errors[0]["msg"]

    def test_valid_model_has_no_errors(self) -> None:
        assert PydanticValidator().validate(Contact(name="Ann"), ("update",)) == []

    def test_dataclasses_are_revalidated(self) -> None:
        assert PydanticValidator().validate(Point(x=1, y=2), ()) == []

    def test_plain_values_are_not_validated(self) -> None:
        assert PydanticValidator().validate({"a": 1}, ("create",)) == []
        assert PydanticValidator().validate(5, ()) == []


def context_for(body: str) -> BindingContext:
    return BindingContext(RequestJsonCache.from_text(body))


@pytest.mark.asyncio
async def test_validation_errors_raise_without_sink() -> None:
    binder = MultiBodyBinder()
    descriptor = BindingDescriptor.from_annotation(
        "contact",
        Annotated[Contact, MultiBody(), Valid(("create",))],
    )

    with pytest.raises(ValidationFailedError) as exc_info:
        await binder.bind_in_context(descriptor, context_for('{"contact": {"name": "Ann"}}'))

    assert exc_info.value.parameter_name == "contact"
    assert exc_info.value.errors
    assert exc_info.value.status_code == 422


@pytest.mark.asyncio
async def test_validation_errors_go_to_sink() -> None:
    binder = MultiBodyBinder()
    descriptor = BindingDescriptor.from_annotation(
        "contact",
        Annotated[Contact, MultiBody(), Valid(("create",))],
        has_errors_sink=True,
    )
    context = context_for('{"contact": {"name": "Ann"}}')

    value = await binder.bind_in_context(descriptor, context)

    assert value == Contact(name="Ann")
    assert context.errors_for("contact").has_errors()


@pytest.mark.asyncio
async def test_validation_skipped_without_valid_marker() -> None:
    validator = RecordingValidator([{"msg": "bad"}])
    binder = MultiBodyBinder(validator=validator)
    descriptor = BindingDescriptor.from_annotation("user", Annotated[User, MultiBody()])

    await binder.bind_in_context(descriptor, context_for('{"user": {"name": "x"}}'))

    assert validator.calls == []


@pytest.mark.asyncio
async def test_validation_skipped_for_absent_values() -> None:
    validator = RecordingValidator([{"msg": "bad"}])
    binder = MultiBodyBinder(validator=validator)
    descriptor = BindingDescriptor.from_annotation(
        "user",
        Annotated[User | None, MultiBody(required=False, parse_all_fields=False), Valid()],
    )

    assert await binder.bind_in_context(descriptor, context_for("{}")) is None
    assert validator.calls == []


@pytest.mark.asyncio
async def test_custom_validator_receives_hints() -> None:
    validator = RecordingValidator([])
    binder = MultiBodyBinder(validator=validator)
    descriptor = BindingDescriptor.from_annotation(
        "user",
        Annotated[User, MultiBody(), Valid(("a", "b"))],
    )

    value = await binder.bind_in_context(descriptor, context_for('{"name": "Zoe"}'))

    assert validator.calls == [(value, ("a", "b"))]
