"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class ClassKind(StrEnum):
    CLASS = "CLASS"
    STRUCTURE = "STRUCTURE"
    ASSOCIATION = "ASSOCIATION"


class RelationshipKind(StrEnum):
    MANY_TO_ONE = "MANY_TO_ONE"


class TargetType(StrEnum):
    """Language-neutral type tags handed to code generators.

    Reference and composition attributes do not use a tag; their target type is
    the simple name of the referenced class.
    """

    STRING = "string"
    INTEGER = "integer"
    LONG = "long"
    DECIMAL = "decimal"
    DOUBLE = "double"
    BOOLEAN = "boolean"
    DATE = "date"
    TIME = "time"
    DATETIME = "datetime"
    GEOMETRY = "geometry"
    OBJECT = "object"


class Temporal(StrEnum):
    DATE = "date"
    TIME = "time"
    DATETIME = "datetime"
