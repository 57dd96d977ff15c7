from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from pydantic import BaseModel, ValidationError

from multibody.decoding import type_adapter, validation_errors

VALIDATION_HINTS_CONTEXT_KEY = "validation_hints"


@runtime_checkable
class Validator(Protocol):
    """Secondary validation pass run on bound values marked with ``Valid``."""

    def validate(self, value: Any, hints: tuple[Any, ...]) -> list[dict[str, Any]]:
        """Return the errors found for value; an empty list means valid."""
        ...


class PydanticValidator:
    """Re-validate a bound value through pydantic with the hints in the validation context.

    Validators declared on the model can read ``info.context["validation_hints"]``
    to apply group-specific rules, for example:

    .. code-block:: python

        class User(BaseModel):
            name: str
            email: str | None = None

            @model_validator(mode="after")
            def email_on_create(self, info: ValidationInfo) -> User:
                hints = (info.context or {}).get("validation_hints", ())
                if "create" in hints and self.email is None:
                    raise ValueError("email is required")
                return self

    Values that are not models or dataclasses have nothing to re-validate.
    """

    def validate(self, value: Any, hints: tuple[Any, ...]) -> list[dict[str, Any]]:
        value_type = type(value)
        if not _is_structured(value_type):
            return []
        adapter = type_adapter(value_type)
        data = adapter.dump_python(value, by_alias=True)
        try:
            adapter.validate_python(data, context={VALIDATION_HINTS_CONTEXT_KEY: hints})
        except ValidationError as exc:
            return validation_errors(exc)
        return []


def _is_structured(value_type: type[Any]) -> bool:
    return issubclass(value_type, BaseModel) or hasattr(value_type, "__dataclass_fields__")


__all__ = ["VALIDATION_HINTS_CONTEXT_KEY", "PydanticValidator", "Validator"]
