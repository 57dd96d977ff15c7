"""Scalar aliases selecting narrower primitive kinds.

Python has a single ``int`` and ``float``; these aliases tell the binder which
width to coerce to, matching the JSON-library conversions (truncation and
two's-complement wrapping, no range validation).
"""

from typing import Annotated, TypeAlias

from multibody.shapes import PrimitiveKind

Byte: TypeAlias = Annotated[int, PrimitiveKind.BYTE]
"""Integer wrapped to 8 bits."""

Short: TypeAlias = Annotated[int, PrimitiveKind.SHORT]
"""Integer wrapped to 16 bits."""

Int32: TypeAlias = Annotated[int, PrimitiveKind.INTEGER]
"""Integer wrapped to 32 bits."""

Long: TypeAlias = Annotated[int, PrimitiveKind.LONG]
"""Integer wrapped to 64 bits; plain ``int`` binds the same way."""

Float32: TypeAlias = Annotated[float, PrimitiveKind.FLOAT]
"""Float rounded through IEEE-754 single precision."""

Char: TypeAlias = Annotated[str, PrimitiveKind.CHARACTER]
"""First character of the textual value; an empty value binds as absent."""

__all__ = ["Byte", "Char", "Float32", "Int32", "Long", "Short"]
