"""Map semantic descriptors and physical column types to target type tags."""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import TYPE_CHECKING, Final

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
    simple_name_of,
)

if TYPE_CHECKING:
    from ilimeta.domain.model import SemanticType

_INT32_MIN: Final = Decimal(-(2**31))
_INT32_MAX: Final = Decimal(2**31 - 1)

_TEMPORAL_TARGETS: Final[dict[Temporal, TargetType]] = {
    Temporal.DATE: TargetType.DATE,
    Temporal.TIME: TargetType.TIME,
    Temporal.DATETIME: TargetType.DATETIME,
}

# Checked in order; geometry first so that e.g. "POINT" never reads as an integer.
_GEOMETRY_MARKERS: Final = ("GEOMETRY", "POINT", "LINESTRING", "POLYGON")
_TEXT_MARKERS: Final = ("CHAR", "TEXT", "CLOB", "STRING")
_INTEGER_MARKERS: Final = ("INT", "SERIAL")
_DECIMAL_MARKERS: Final = ("DECIMAL", "NUMERIC")
_FLOAT_MARKERS: Final = ("DOUBLE", "FLOAT", "REAL")
_BOOLEAN_MARKERS: Final = ("BOOL", "BIT")
_DATE_MARKERS: Final = ("DATE", "TIMESTAMP")


def infer_semantic_type(semantic_type: SemanticType) -> str:
    """Return the target type for a resolved semantic descriptor."""

    match semantic_type:
        case TextType():
            return TargetType.STRING
        case NumericType(fractional=True):
            return TargetType.DECIMAL
        case NumericType(minimum=minimum, maximum=maximum):
            return TargetType.LONG if _exceeds_int32(minimum, maximum) else TargetType.INTEGER
        case BooleanType():
            return TargetType.BOOLEAN
        case EnumerationType():
            return TargetType.STRING
        case FormattedType(temporal=None):
            return TargetType.STRING
        case FormattedType(temporal=temporal):
            return _TEMPORAL_TARGETS[temporal]
        case GeometryType():
            return TargetType.GEOMETRY
        case ReferenceType(target=target) | CompositionType(target=target):
            return simple_name_of(target)
        case ObjectType():
            return TargetType.OBJECT


def infer_physical_type(db_type: str | None) -> TargetType:
    """Return the target type for a physical column type string."""

    if not db_type:
        return TargetType.OBJECT
    upper = db_type.upper()
    if _contains_any(upper, _GEOMETRY_MARKERS):
        result = TargetType.GEOMETRY
    elif _contains_any(upper, _TEXT_MARKERS):
        result = TargetType.STRING
    elif _contains_any(upper, _INTEGER_MARKERS):
        result = TargetType.LONG if "BIG" in upper else TargetType.INTEGER
    elif _contains_any(upper, _DECIMAL_MARKERS):
        result = TargetType.DECIMAL
    elif _contains_any(upper, _FLOAT_MARKERS):
        result = TargetType.DOUBLE
    elif _contains_any(upper, _BOOLEAN_MARKERS):
        result = TargetType.BOOLEAN
    elif _contains_any(upper, _DATE_MARKERS):
        result = TargetType.DATETIME if "TIME" in upper else TargetType.DATE
    else:
        result = TargetType.OBJECT
    return result


def _contains_any(value: str, markers: tuple[str, ...]) -> bool:
    return any(marker in value for marker in markers)


def _exceeds_int32(minimum: str | None, maximum: str | None) -> bool:
    for bound in (minimum, maximum):
        if bound is None:
            continue
        try:
            number = Decimal(bound)
        except InvalidOperation:
            continue
        if number < _INT32_MIN or number > _INT32_MAX:
            return True
    return False
