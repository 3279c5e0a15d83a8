"""Parse tree for the supported INTERLIS subset.

Type expressions are kept as written; names inside them are resolved later by
``ModelTree.resolve`` because they may point into imported models.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from ilimeta.domain.model import ClassKind

if TYPE_CHECKING:
    from pathlib import Path

# --- type expressions -------------------------------------------------------


@dataclass(frozen=True, slots=True, kw_only=True)
class Cardinality:
    minimum: int = 0
    maximum: int | None = 1  # None means "*"


@dataclass(frozen=True, slots=True, kw_only=True)
class TextNode:
    length: int | None = None
    multiline: bool = False


@dataclass(frozen=True, slots=True, kw_only=True)
class NumericNode:
    minimum: str | None = None
    maximum: str | None = None
    unit: str | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class EnumElementNode:
    name: str
    children: tuple[EnumElementNode, ...] = ()
    documentation: str | None = None
    display_name: str | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class EnumerationNode:
    elements: tuple[EnumElementNode, ...]
    final: bool = False


@dataclass(frozen=True, slots=True, kw_only=True)
class AllOfNode:
    domain: str


@dataclass(frozen=True, slots=True, kw_only=True)
class FormatNode:
    base: str | None = None
    minimum: str | None = None
    maximum: str | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class GeometryNode:
    form: str


@dataclass(frozen=True, slots=True, kw_only=True)
class ReferenceNode:
    target: str
    external: bool = False


@dataclass(frozen=True, slots=True, kw_only=True)
class CompositionNode:
    target: str
    multiple: bool = True
    cardinality: Cardinality = field(default_factory=lambda: Cardinality(maximum=None))


@dataclass(frozen=True, slots=True, kw_only=True)
class AliasNode:
    name: str


@dataclass(frozen=True, slots=True, kw_only=True)
class OpaqueNode:
    keyword: str


type TypeNode = (
    TextNode
    | NumericNode
    | EnumerationNode
    | AllOfNode
    | FormatNode
    | GeometryNode
    | ReferenceNode
    | CompositionNode
    | AliasNode
    | OpaqueNode
)

# --- definitions ------------------------------------------------------------


@dataclass(slots=True, kw_only=True)
class Definition:
    name: str
    qualified_name: str
    container: str | None = None
    documentation: str | None = None
    metaattributes: dict[str, str] = field(default_factory=dict)
    location: str | None = None


@dataclass(slots=True, kw_only=True)
class DomainDef(Definition):
    type: TypeNode
    mandatory: bool = False
    abstract: bool = False
    final: bool = False
    extends: str | None = None


@dataclass(slots=True, kw_only=True)
class AttributeDef(Definition):
    type: TypeNode
    cardinality: Cardinality = field(default_factory=Cardinality)
    extended: bool = False


@dataclass(slots=True, kw_only=True)
class RoleDef(Definition):
    targets: tuple[str, ...]
    strength: str = "--"
    cardinality: Cardinality = field(default_factory=lambda: Cardinality(maximum=None))
    external: bool = False


@dataclass(slots=True, kw_only=True)
class ClassDef(Definition):
    kind: ClassKind = ClassKind.CLASS
    abstract: bool = False
    final: bool = False
    extended: bool = False
    extends: str | None = None
    attributes: list[AttributeDef] = field(default_factory=list)
    roles: list[RoleDef] = field(default_factory=list)


@dataclass(slots=True, kw_only=True)
class TopicDef(Definition):
    abstract: bool = False
    final: bool = False
    extends: str | None = None
    depends_on: tuple[str, ...] = ()
    classes: list[ClassDef] = field(default_factory=list)
    domains: list[DomainDef] = field(default_factory=list)


@dataclass(slots=True, kw_only=True)
class ModelDef(Definition):
    ili_version: str | None = None
    language: str | None = None
    issuer: str | None = None
    version: str | None = None
    type_model: bool = False
    imports: tuple[str, ...] = ()
    unqualified_imports: tuple[str, ...] = ()
    topics: list[TopicDef] = field(default_factory=list)
    classes: list[ClassDef] = field(default_factory=list)
    domains: list[DomainDef] = field(default_factory=list)
    source: Path | None = None
