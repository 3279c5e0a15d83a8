"""Semantic type descriptors.

A closed set of variants produced by resolving an INTERLIS type. Consumers
dispatch with a single ``match`` statement (see ``ilimeta.domain.type_inference``).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .enums import Temporal


@dataclass(frozen=True, slots=True, kw_only=True)
class TextType:
    max_length: int | None = None
    multiline: bool = False

    @property
    def descriptor(self) -> str:
        return "MTEXT" if self.multiline else "TEXT"


@dataclass(frozen=True, slots=True, kw_only=True)
class NumericType:
    minimum: str | None = None
    maximum: str | None = None
    fractional: bool = False
    unit: str | None = None

    @property
    def descriptor(self) -> str:
        return "NUMERIC"


@dataclass(frozen=True, slots=True, kw_only=True)
class BooleanType:
    @property
    def descriptor(self) -> str:
        return "BOOLEAN"


@dataclass(frozen=True, slots=True, kw_only=True)
class EnumerationType:
    enum_name: str | None = None
    extendable: bool = True

    @property
    def descriptor(self) -> str:
        return "ENUMERATION"


@dataclass(frozen=True, slots=True, kw_only=True)
class FormattedType:
    base_domain: str | None = None
    temporal: Temporal | None = None

    @property
    def descriptor(self) -> str:
        return self.base_domain or "FORMAT"


@dataclass(frozen=True, slots=True, kw_only=True)
class GeometryType:
    form: str

    @property
    def descriptor(self) -> str:
        return self.form


@dataclass(frozen=True, slots=True, kw_only=True)
class ReferenceType:
    target: str
    external: bool = False

    @property
    def descriptor(self) -> str:
        return "REFERENCE"


@dataclass(frozen=True, slots=True, kw_only=True)
class CompositionType:
    target: str
    multiple: bool = False

    @property
    def descriptor(self) -> str:
        return "BAG" if self.multiple else "STRUCTURE"


@dataclass(frozen=True, slots=True, kw_only=True)
class ObjectType:
    name: str = "OBJECT"

    @property
    def descriptor(self) -> str:
        return self.name


type SemanticType = (
    TextType
    | NumericType
    | BooleanType
    | EnumerationType
    | FormattedType
    | GeometryType
    | ReferenceType
    | CompositionType
    | ObjectType
)
