"""Human-readable listing of reconciled metadata."""

from __future__ import annotations

from typing import TYPE_CHECKING, Final

if TYPE_CHECKING:
    from ilimeta.domain.model import (
        AttributeEntity,
        ClassEntity,
        EnumEntity,
        ModelMetadata,
        RelationshipEntity,
    )

RULE: Final = "=" * 60
THIN_RULE: Final = "-" * 60
DOC_WIDTH: Final = 60


def render_metadata(metadata: ModelMetadata) -> str:
    lines: list[str] = []
    lines.extend(_header(metadata))
    lines.append("CLASSES:")
    lines.append(THIN_RULE)
    for entity in metadata.classes.values():
        lines.extend(_class(entity))
    if metadata.enums:
        lines.append("")
        lines.append("ENUMERATIONS:")
        lines.append(THIN_RULE)
        for enum in metadata.enums.values():
            lines.extend(_enum(enum))
    return "\n".join(lines) + "\n"


def _header(metadata: ModelMetadata) -> list[str]:
    return [
        RULE,
        "INTERLIS Model Metadata",
        RULE,
        f"Model Name:     {metadata.model_name}",
        f"Schema:         {metadata.schema_name}",
        f"ILI Version:    {metadata.ili_version}",
        f"ili2db Version: {metadata.tool_version}",
        f"Classes:        {len(metadata.classes)}",
        f"Enumerations:   {len(metadata.enums)}",
        RULE,
        "",
    ]


def _class(entity: ClassEntity) -> list[str]:
    lines = [
        "",
        f"* {entity.qualified_name}",
        f"  Simple Name:  {entity.simple_name}",
        f"  Table:        {entity.table_name}",
        f"  Kind:         {entity.kind}",
        f"  Abstract:     {entity.abstract}",
    ]
    if entity.base_class:
        lines.append(f"  Extends:      {entity.base_class}")
    if entity.documentation:
        lines.append(f"  Doc:          {_truncate(entity.documentation, DOC_WIDTH)}")
    if entity.attributes:
        lines.append("  Attributes:")
        for attribute in entity.attributes.values():
            lines.extend(_attribute(attribute, "    "))
    if geometries := entity.geometry_attributes():
        lines.append(f"  Geometry:     {', '.join(attribute.name for attribute in geometries)}")
    if entity.relationships:
        lines.append("  Relationships:")
        for relationship in entity.relationships:
            lines.extend(_relationship(relationship, "    "))
    return lines


def _attribute(attribute: AttributeEntity, indent: str) -> list[str]:
    lines = [
        f"{indent}- {attribute.name:<20} : {attribute.target_type or '?':<15} "
        f"[{attribute.column_name or '':<12}] {_flags(attribute)}".rstrip()
    ]
    if attribute.documentation:
        lines.append(f"{indent}  > {_truncate(attribute.documentation, DOC_WIDTH - 5)}")
    if attribute.enum_type:
        lines.append(f"{indent}  > Enum: {attribute.enum_type}")
    if attribute.unit:
        lines.append(f"{indent}  > Unit: {attribute.unit}")
    if attribute.min_value is not None or attribute.max_value is not None:
        lower = attribute.min_value if attribute.min_value is not None else "-inf"
        upper = attribute.max_value if attribute.max_value is not None else "+inf"
        lines.append(f"{indent}  > Range: [{lower} .. {upper}]")
    return lines


def _flags(attribute: AttributeEntity) -> str:
    flags: list[str] = []
    if attribute.primary_key:
        flags.append("PK")
    if attribute.foreign_key:
        flags.append("FK")
    if attribute.is_mandatory:
        flags.append("NOT NULL")
    if attribute.geometry:
        flags.append("GEOMETRY")
    if attribute.max_length is not None:
        flags.append(f"({attribute.max_length})")
    return " ".join(flags)


def _relationship(relationship: RelationshipEntity, indent: str) -> list[str]:
    return [
        f"{indent}> {relationship.target_class} [{relationship.kind}]",
        f"{indent}  via: {relationship.source_attribute} -> {relationship.target_attribute}",
    ]


def _enum(enum: EnumEntity) -> list[str]:
    header = f"* {enum.qualified_name}"
    if enum.base_enum:
        header += f" (extends {enum.base_enum})"
    lines = ["", header]
    for value in enum.values:
        label = f" ({value.display_name})" if value.display_name else ""
        lines.append(f"    {value.sequence:>3}: {value.code}{label}")
    return lines


def _truncate(text: str, width: int) -> str:
    flat = " ".join(text.split())
    if len(flat) <= width:
        return flat
    return flat[: width - 3] + "..."
