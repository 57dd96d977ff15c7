from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Annotated, Any, Optional

import pytest

from multibody.markers import MultiBody
from multibody.shapes import (
    CollectionShape,
    MapShape,
    ObjectShape,
    PrimitiveKind,
    PrimitiveShape,
    TextShape,
    object_field_names,
    shape_from_annotation,
)
from multibody.types import Byte, Char, Float32, Int32, Long, Short
from tests.models import Address, Point, User


@pytest.mark.parametrize(
    ("annotation", "kind"),
    [
        (int, PrimitiveKind.LONG),
        (float, PrimitiveKind.DOUBLE),
        (bool, PrimitiveKind.BOOLEAN),
        (Byte, PrimitiveKind.BYTE),
        (Short, PrimitiveKind.SHORT),
        (Int32, PrimitiveKind.INTEGER),
        (Long, PrimitiveKind.LONG),
        (Float32, PrimitiveKind.FLOAT),
        (Char, PrimitiveKind.CHARACTER),
    ],
)
def test_scalar_annotations_build_primitive_shapes(annotation: Any, kind: PrimitiveKind) -> None:
    assert shape_from_annotation(annotation) == PrimitiveShape(kind=kind, nullable=False)


def test_optional_primitive_is_nullable() -> None:
    assert shape_from_annotation(int | None) == PrimitiveShape(PrimitiveKind.LONG, nullable=True)
    assert shape_from_annotation(Optional[Short]) == PrimitiveShape(  # noqa: UP045
        PrimitiveKind.SHORT,
        nullable=True,
    )


def test_parameter_default_marks_shape_nullable() -> None:
    assert shape_from_annotation(int, nullable=True).nullable is True


def test_multibody_metadata_does_not_change_shape() -> None:
    shape = shape_from_annotation(Annotated[Short, MultiBody("code")])

    assert shape == PrimitiveShape(PrimitiveKind.SHORT)


def test_str_builds_text_shape() -> None:
    assert shape_from_annotation(str) == TextShape()
    assert shape_from_annotation(str | None) == TextShape(nullable=True)


@pytest.mark.parametrize("annotation", [list[int], tuple[str, ...], set[int], Sequence[int], list])
def test_sequences_build_collection_shapes(annotation: Any) -> None:
    shape = shape_from_annotation(annotation)

    assert isinstance(shape, CollectionShape)
    assert shape.annotation == annotation


@pytest.mark.parametrize("annotation", [dict[str, int], Mapping[str, Any], dict])
def test_mappings_build_map_shapes(annotation: Any) -> None:
    assert shape_from_annotation(annotation) == MapShape(annotation=annotation)


def test_pydantic_model_builds_object_shape_with_fields() -> None:
    assert shape_from_annotation(User) == ObjectShape(annotation=User, field_names=("name", "age"))


def test_dataclass_and_typeddict_build_object_shapes() -> None:
    point_shape = shape_from_annotation(Point)
    address_shape = shape_from_annotation(Address | None)

    assert point_shape == ObjectShape(annotation=Point, field_names=("x", "y"))
    assert isinstance(address_shape, ObjectShape)
    assert address_shape.field_names == ("city", "zip")
    assert address_shape.nullable is True


def test_object_field_names_for_unstructured_types_is_empty() -> None:
    assert object_field_names(object) == ()
    assert object_field_names(list[int]) == ()


def test_builtin_int_binds_as_long() -> None:
    assert shape_from_annotation(int).kind is PrimitiveKind.LONG
    assert shape_from_annotation(Int32).kind is PrimitiveKind.INTEGER
