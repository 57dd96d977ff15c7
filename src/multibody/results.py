from __future__ import annotations

from dataclasses import dataclass
from typing import Any, TypeAlias

from multibody.exceptions import MultiBodyError


@dataclass(frozen=True, slots=True)
class Bound:
    """A value decoded for the parameter."""

    value: Any

    def unwrap(self, default: Any = None) -> Any:
        return self.value


@dataclass(frozen=True, slots=True)
class Absent:
    """Nothing found for an optional parameter; not an error."""

    def unwrap(self, default: Any = None) -> Any:
        return default


@dataclass(frozen=True, slots=True)
class Failure:
    """A terminal binding failure for the request."""

    error: MultiBodyError

    def unwrap(self, default: Any = None) -> Any:
        raise self.error


BindingResult: TypeAlias = Bound | Absent | Failure

ABSENT = Absent()

__all__ = ["ABSENT", "Absent", "BindingResult", "Bound", "Failure"]
