"""Domain model for reconciled INTERLIS metadata."""

from __future__ import annotations

from .enums import ClassKind, RelationshipKind, TargetType, Temporal
from .metadata import (
    DEFAULT_TARGET_ATTRIBUTE,
    TOOL_VERSION_SETTING,
    AttributeEntity,
    ClassEntity,
    EnumEntity,
    EnumValue,
    ModelMetadata,
    RelationshipEntity,
    owner_name_of,
    simple_name_of,
)
from .types import (
    BooleanType,
    CompositionType,
    EnumerationType,
    FormattedType,
    GeometryType,
    NumericType,
    ObjectType,
    ReferenceType,
    SemanticType,
    TextType,
)

__all__ = [
    "DEFAULT_TARGET_ATTRIBUTE",
    "TOOL_VERSION_SETTING",
    "AttributeEntity",
    "BooleanType",
    "ClassEntity",
    "ClassKind",
    "CompositionType",
    "EnumEntity",
    "EnumValue",
    "EnumerationType",
    "FormattedType",
    "GeometryType",
    "ModelMetadata",
    "NumericType",
    "ObjectType",
    "ReferenceType",
    "RelationshipEntity",
    "RelationshipKind",
    "SemanticType",
    "TargetType",
    "Temporal",
    "TextType",
    "owner_name_of",
    "simple_name_of",
]
