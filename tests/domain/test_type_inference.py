from __future__ import annotations

import pytest

from ilimeta.domain.model import (
    BooleanType,
    CompositionType,
    EnumerationType,
    FormattedType,
    GeometryType,
    NumericType,
    ObjectType,
    ReferenceType,
    TargetType,
    Temporal,
    TextType,
)
from ilimeta.domain.type_inference import infer_physical_type, infer_semantic_type


@pytest.mark.parametrize(
    ("semantic_type", "expected"),
    [
        (TextType(max_length=20), TargetType.STRING),
        (TextType(multiline=True), TargetType.STRING),
        (NumericType(minimum="0", maximum="100"), TargetType.INTEGER),
        (NumericType(minimum="0", maximum="4294967295"), TargetType.LONG),
        (NumericType(minimum="-3000000000", maximum="0"), TargetType.LONG),
        (NumericType(minimum="0.0", maximum="1.0", fractional=True), TargetType.DECIMAL),
        (NumericType(), TargetType.INTEGER),
        (BooleanType(), TargetType.BOOLEAN),
        (EnumerationType(enum_name="M.Status"), TargetType.STRING),
        (FormattedType(base_domain="M.Code"), TargetType.STRING),
        (FormattedType(base_domain="INTERLIS.XMLDate", temporal=Temporal.DATE), TargetType.DATE),
        (FormattedType(temporal=Temporal.TIME), TargetType.TIME),
        (FormattedType(temporal=Temporal.DATETIME), TargetType.DATETIME),
        (GeometryType(form="SURFACE"), TargetType.GEOMETRY),
        (ObjectType(name="BLACKBOX"), TargetType.OBJECT),
    ],
)
def test_infer_semantic_type(semantic_type: object, expected: TargetType) -> None:
    assert infer_semantic_type(semantic_type) == expected  # type: ignore[arg-type]


def test_references_and_compositions_target_the_simple_class_name() -> None:
    assert infer_semantic_type(ReferenceType(target="M.Topic.Parcel")) == "Parcel"
    assert infer_semantic_type(CompositionType(target="M.Contact", multiple=True)) == "Contact"


@pytest.mark.parametrize(
    ("db_type", "expected"),
    [
        ("VARCHAR(255)", TargetType.STRING),
        ("character varying", TargetType.STRING),
        ("text", TargetType.STRING),
        ("CLOB", TargetType.STRING),
        ("integer", TargetType.INTEGER),
        ("int4", TargetType.INTEGER),
        ("serial", TargetType.INTEGER),
        ("bigint", TargetType.LONG),
        ("BIGSERIAL", TargetType.LONG),
        ("numeric(10,3)", TargetType.DECIMAL),
        ("DECIMAL", TargetType.DECIMAL),
        ("double precision", TargetType.DOUBLE),
        ("float8", TargetType.DOUBLE),
        ("REAL", TargetType.DOUBLE),
        ("boolean", TargetType.BOOLEAN),
        ("bool", TargetType.BOOLEAN),
        ("date", TargetType.DATE),
        ("timestamp without time zone", TargetType.DATETIME),
        ("TIMESTAMP", TargetType.DATETIME),
        ("geometry", TargetType.GEOMETRY),
        ("POINT", TargetType.GEOMETRY),
        ("MULTIPOLYGON", TargetType.GEOMETRY),
        ("bytea", TargetType.OBJECT),
        ("", TargetType.OBJECT),
        (None, TargetType.OBJECT),
    ],
)
def test_infer_physical_type(db_type: str | None, expected: TargetType) -> None:
    assert infer_physical_type(db_type) is expected
