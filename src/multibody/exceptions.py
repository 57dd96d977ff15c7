from __future__ import annotations

from collections.abc import Sequence
from typing import Any

_MISSING_KEY_MESSAGE_TEMPLATE = "required param %s is not present"


class MultiBodyError(Exception):
    """Represent a base class for all multibody binding failures.

    Catch this type when you want to handle any binding error path without
    matching each concrete exception class individually. ``status_code`` is the
    HTTP status the FastAPI integration answers with by default.
    """

    status_code: int = 400

    def to_payload(self) -> dict[str, Any]:
        """Return the JSON-serializable body used in HTTP error responses."""
        return {"detail": str(self)}


class MalformedBodyError(MultiBodyError):
    """Signal that the request body is not a valid JSON document.

    Raised for every ``MultiBody`` parameter of the request, since all of them
    read the same body.
    """

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"Malformed JSON request body: {reason}")


class MissingRequiredKeyError(MultiBodyError):
    """Signal that a required value is absent after every lookup strategy.

    Raised when an explicit key is missing from the body, when a
    non-nullable primitive parameter finds nothing, and when the whole-body
    fallback produced an object without a single populated field.

    Typical fixes include sending the key, marking the parameter
    ``MultiBody(required=False)``, or giving it an ``Optional`` annotation.
    """

    def __init__(self, key: str) -> None:
        self.key = key
        super().__init__(_MISSING_KEY_MESSAGE_TEMPLATE % key)


class StructuralDecodeError(MultiBodyError):
    """Signal that a value is present but cannot be coerced to the declared shape.

    ``errors`` carries the structured error list reported by the decoder
    (pydantic's ``ValidationError.errors()`` format) when one is available.
    """

    def __init__(self, key: str, message: str, errors: Sequence[dict[str, Any]] = ()) -> None:
        self.key = key
        self.errors = list(errors)
        super().__init__(f"Cannot decode param {key}: {message}")

    def to_payload(self) -> dict[str, Any]:
        payload = super().to_payload()
        if self.errors:
            payload["errors"] = self.errors
        return payload


class ValidationFailedError(MultiBodyError):
    """Signal that the post-decode validation pass reported errors.

    Raised only when the parameter is not immediately followed by a
    ``BindingErrors`` parameter that would absorb the errors.
    """

    status_code = 422

    def __init__(self, parameter_name: str, errors: Sequence[dict[str, Any]]) -> None:
        self.parameter_name = parameter_name
        self.errors = list(errors)
        super().__init__(
            f"Validation failed for param {parameter_name} with {len(self.errors)} error(s)",
        )

    def to_payload(self) -> dict[str, Any]:
        payload = super().to_payload()
        payload["errors"] = self.errors
        return payload


class MissingParameterNameError(MultiBodyError):
    """Signal binding metadata without any resolvable lookup key.

    This is a configuration error: the descriptor has neither an explicit key
    nor a parameter name. It is raised at registration when detectable and
    otherwise at first invocation.
    """

    status_code = 500

    def __init__(self) -> None:
        super().__init__("parameter name must not be empty")


__all__ = [
    "MalformedBodyError",
    "MissingParameterNameError",
    "MissingRequiredKeyError",
    "MultiBodyError",
    "StructuralDecodeError",
    "ValidationFailedError",
]
