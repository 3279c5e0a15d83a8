"""Metadata entities describing one INTERLIS model.

The graph is built once per read. Readers set scalar fields while merging.
Collections, labels and settings are only reachable through read-only views and
explicit ``add_*`` or ``set_*`` commands, so consumers cannot restructure the
graph.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Final

from .enums import ClassKind, RelationshipKind

if TYPE_CHECKING:
    from collections.abc import Iterator, Mapping

    from .types import SemanticType

TOOL_VERSION_SETTING: Final[str] = "ch.ehi.ili2db.sender"
DEFAULT_TARGET_ATTRIBUTE: Final[str] = "T_Id"


def simple_name_of(qualified_name: str) -> str:
    return qualified_name.rsplit(".", 1)[-1]


def owner_name_of(qualified_name: str) -> str | None:
    """Return everything before the last dot, or ``None`` for undotted names."""

    if "." not in qualified_name:
        return None
    return qualified_name.rsplit(".", 1)[0]


@dataclass(frozen=True, slots=True)
class EnumValue:
    code: str
    sequence: int
    display_name: str | None = None


@dataclass(slots=True, kw_only=True)
class EnumEntity:
    qualified_name: str
    extendable: bool = False
    base_enum: str | None = None
    _values: list[EnumValue] = field(default_factory=list)

    @property
    def simple_name(self) -> str:
        return simple_name_of(self.qualified_name)

    @property
    def values(self) -> tuple[EnumValue, ...]:
        return tuple(self._values)

    def append_value(self, code: str, display_name: str | None = None) -> EnumValue:
        """Append ``code`` with the next sequence number."""

        value = EnumValue(code=code, sequence=len(self._values), display_name=display_name)
        self._values.append(value)
        return value


@dataclass(slots=True, kw_only=True)
class RelationshipEntity:
    name: str
    source_class: str
    target_class: str
    source_attribute: str
    target_attribute: str = DEFAULT_TARGET_ATTRIBUTE
    kind: RelationshipKind = RelationshipKind.MANY_TO_ONE
    mandatory: bool = False


@dataclass(slots=True, kw_only=True)
class AttributeEntity:
    name: str
    qualified_name: str | None = None
    column_name: str | None = None
    db_type: str | None = None
    semantic_type_name: str | None = None
    semantic_type: SemanticType | None = None
    target_type: str | None = None
    documentation: str | None = None

    mandatory: bool | None = None
    primary_key: bool = False
    foreign_key: bool = False
    geometry: bool = False

    max_length: int | None = None
    min_value: str | None = None
    max_value: str | None = None
    enum_type: str | None = None
    enum_values: tuple[EnumValue, ...] | None = None
    unit: str | None = None
    referenced_class: str | None = None
    _labels: dict[str, str] = field(default_factory=dict)

    @property
    def labels(self) -> Mapping[str, str]:
        return MappingProxyType(self._labels)

    def set_label(self, language: str, label: str) -> None:
        self._labels[language] = label

    @property
    def is_mandatory(self) -> bool:
        return bool(self.mandatory)


@dataclass(slots=True, kw_only=True)
class ClassEntity:
    qualified_name: str
    table_name: str | None = None
    sql_name: str | None = None
    kind: ClassKind = ClassKind.CLASS
    abstract: bool = False
    base_class: str | None = None
    documentation: str | None = None
    _labels: dict[str, str] = field(default_factory=dict)
    _attributes: dict[str, AttributeEntity] = field(default_factory=dict)
    _relationships: list[RelationshipEntity] = field(default_factory=list)

    @property
    def simple_name(self) -> str:
        return simple_name_of(self.qualified_name)

    @property
    def labels(self) -> Mapping[str, str]:
        return MappingProxyType(self._labels)

    def set_label(self, language: str, label: str) -> None:
        self._labels[language] = label

    @property
    def attributes(self) -> Mapping[str, AttributeEntity]:
        return MappingProxyType(self._attributes)

    @property
    def relationships(self) -> tuple[RelationshipEntity, ...]:
        return tuple(self._relationships)

    def add_attribute(self, attribute: AttributeEntity) -> bool:
        """Register ``attribute`` under its simple name; the first one wins."""

        if attribute.name in self._attributes:
            return False
        self._attributes[attribute.name] = attribute
        return True

    def get_attribute(self, name: str) -> AttributeEntity | None:
        return self._attributes.get(name)

    def find_attribute_by_column(self, column_name: str) -> AttributeEntity | None:
        wanted = column_name.casefold()
        for attribute in self._attributes.values():
            if attribute.column_name is not None and attribute.column_name.casefold() == wanted:
                return attribute
        return None

    def add_relationship(self, relationship: RelationshipEntity) -> None:
        self._relationships.append(relationship)

    def geometry_attributes(self) -> list[AttributeEntity]:
        return [attribute for attribute in self._attributes.values() if attribute.geometry]


@dataclass(slots=True, kw_only=True)
class ModelMetadata:
    model_name: str
    schema_name: str | None = None
    ili_version: str | None = None
    _settings: dict[str, str] = field(default_factory=dict)
    _classes: dict[str, ClassEntity] = field(default_factory=dict)
    _enums: dict[str, EnumEntity] = field(default_factory=dict)

    @property
    def classes(self) -> Mapping[str, ClassEntity]:
        return MappingProxyType(self._classes)

    @property
    def enums(self) -> Mapping[str, EnumEntity]:
        return MappingProxyType(self._enums)

    @property
    def settings(self) -> Mapping[str, str]:
        return MappingProxyType(self._settings)

    def set_setting(self, tag: str, value: str) -> None:
        self._settings[tag] = value

    @property
    def tool_version(self) -> str | None:
        return self._settings.get(TOOL_VERSION_SETTING)

    def add_class(self, entity: ClassEntity) -> None:
        self._classes[entity.qualified_name] = entity

    def get_class(self, qualified_name: str) -> ClassEntity | None:
        return self._classes.get(qualified_name)

    def find_class_by_table(self, table_name: str) -> ClassEntity | None:
        wanted = table_name.casefold()
        for entity in self._classes.values():
            if entity.table_name is not None and entity.table_name.casefold() == wanted:
                return entity
        return None

    def add_enum(self, entity: EnumEntity) -> None:
        self._enums[entity.qualified_name] = entity

    def get_enum(self, qualified_name: str) -> EnumEntity | None:
        return self._enums.get(qualified_name)

    def iter_attributes(self) -> Iterator[tuple[ClassEntity, AttributeEntity]]:
        for entity in self._classes.values():
            for attribute in entity.attributes.values():
                yield entity, attribute
