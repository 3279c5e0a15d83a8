"""Read the physical model that ili2db deployed into a database schema.

The read runs as a fixed sequence of metatable queries. Every metatable is
optional: one that is missing, unreadable or shaped differently than expected is
logged and contributes no rows. Only a dead connection or an unusable schema name
aborts the read.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from pydantic import ValidationError
from sqlalchemy import literal_column, select, table
from sqlalchemy.exc import DBAPIError, ResourceClosedError

from ilimeta.domain.errors import DatabaseConnectionError, InvalidSchemaNameError
from ilimeta.domain.model import (
    AttributeEntity,
    ClassEntity,
    ClassKind,
    EnumEntity,
    EnumValue,
    ModelMetadata,
    RelationshipEntity,
    RelationshipKind,
    owner_name_of,
    simple_name_of,
)

from .catalog import catalog_for
from .schema import (
    ATTRNAME_TABLE,
    CLASSNAME_TABLE,
    COLUMN_PROP_TABLE,
    ENUM_DOMAIN_TAG,
    INHERITANCE_TABLE,
    MODEL_TABLE,
    SETTINGS_TABLE,
    TABLE_KIND_TAG,
    TABLE_PROP_TABLE,
    UNIT_TAG,
    AttrNameRow,
    ClassNameRow,
    ColumnPropRow,
    EnumLookupRow,
    InheritanceRow,
    MetatableRow,
    ModelRow,
    SettingRow,
    TableKind,
    TablePropRow,
)

if TYPE_CHECKING:
    from sqlalchemy import Connection

    from ilimeta.domain.ports.catalog import ColumnInfo, SchemaCatalog

log = logging.getLogger(__name__)

_CLASS_KINDS: dict[str, ClassKind] = {
    TableKind.CLASS.value: ClassKind.CLASS,
    TableKind.STRUCTURE.value: ClassKind.STRUCTURE,
    TableKind.ASSOCIATION.value: ClassKind.ASSOCIATION,
}


@dataclass(slots=True)
class ReadContext:
    """State scoped to one ``read_physical_model`` call."""

    schema_name: str
    catalog: SchemaCatalog
    model_names: frozenset[str] = frozenset()
    # qualified name -> sql table name, for every row of t_ili2db_classname
    table_names: dict[str, str] = field(default_factory=dict)
    enum_lookups: dict[str, tuple[EnumValue, ...]] = field(default_factory=dict)
    columns: dict[str, dict[str, ColumnInfo]] = field(default_factory=dict)
    primary_keys: dict[str, frozenset[str]] = field(default_factory=dict)

    def in_relevant_model(self, qualified_name: str) -> bool:
        return any(qualified_name.startswith(f"{name}.") for name in self.model_names)


class SchemaIntrospector:
    """Build a ``ModelMetadata`` from the ili2db metatables of one schema."""

    def __init__(self, connection: Connection) -> None:
        self.connection = connection

    def read_physical_model(self, schema_name: str, model_name: str) -> ModelMetadata:
        if not schema_name or not schema_name.strip():
            raise InvalidSchemaNameError("A schema name is required to read ili2db metadata")
        self._ensure_connected()

        log.info("Reading ili2db metadata for model %s in schema %s", model_name, schema_name)
        context = ReadContext(schema_name=schema_name, catalog=catalog_for(self.connection))
        metadata = ModelMetadata(model_name=model_name, schema_name=schema_name)

        self._read_settings(context, metadata)
        context.model_names = self._resolve_model_names(context, model_name)
        self._read_classes(context, metadata)
        self._read_attributes(context, metadata)
        self._read_inheritance(context, metadata)
        self._apply_column_properties(context, metadata)
        self._derive_relationships(metadata)

        log.info(
            "Read %d classes and %d enums from schema %s",
            len(metadata.classes),
            len(metadata.enums),
            schema_name,
        )
        return metadata

    # ------------------------------------------------------------------
    # Metatable access

    def _ensure_connected(self) -> None:
        if self.connection.closed or self.connection.invalidated:
            raise DatabaseConnectionError("The database connection is closed")

    def _read_metatable[RowT: MetatableRow](
        self,
        context: ReadContext,
        table_name: str,
        row_type: type[RowT],
    ) -> list[RowT] | None:
        """Return the validated rows of ``table_name``, or ``None`` when it cannot be read."""

        statement = select(literal_column("*")).select_from(
            table(table_name, schema=context.schema_name)
        )
        try:
            with context.catalog.statement_scope():
                result = self.connection.execute(statement)
                rows = [row_type.from_row(row) for row in result.mappings()]
        except ResourceClosedError as exc:
            raise DatabaseConnectionError(str(exc)) from exc
        except DBAPIError as exc:
            if exc.connection_invalidated:
                raise DatabaseConnectionError(str(exc.orig)) from exc
            log.warning("Could not read %s.%s: %s", context.schema_name, table_name, exc.orig)
            return None
        except ValidationError as exc:
            log.warning(
                "Unexpected structure in %s.%s: %d validation errors",
                context.schema_name,
                table_name,
                exc.error_count(),
            )
            return None
        log.debug("Read %d rows from %s", len(rows), table_name)
        return rows

    def _table_columns(self, context: ReadContext, table_name: str) -> dict[str, ColumnInfo]:
        key = table_name.casefold()
        cached = context.columns.get(key)
        if cached is not None:
            return cached
        columns: dict[str, ColumnInfo] = {}
        primary_keys: frozenset[str] = frozenset()
        try:
            with context.catalog.statement_scope():
                columns = context.catalog.columns(context.schema_name, table_name)
                primary_keys = context.catalog.primary_key_columns(context.schema_name, table_name)
        except ResourceClosedError as exc:
            raise DatabaseConnectionError(str(exc)) from exc
        except DBAPIError as exc:
            if exc.connection_invalidated:
                raise DatabaseConnectionError(str(exc.orig)) from exc
            log.warning("Could not inspect table %s: %s", table_name, exc.orig)
        if not columns:
            log.debug("No catalog columns found for table %s", table_name)
        context.columns[key] = columns
        context.primary_keys[key] = primary_keys
        return columns

    # ------------------------------------------------------------------
    # Steps

    def _read_settings(self, context: ReadContext, metadata: ModelMetadata) -> None:
        for row in self._read_metatable(context, SETTINGS_TABLE, SettingRow) or ():
            if row.setting is not None:
                metadata.set_setting(row.tag, row.setting)
        if metadata.tool_version:
            log.debug("Schema was written by %s", metadata.tool_version)

    def _resolve_model_names(self, context: ReadContext, model_name: str) -> frozenset[str]:
        names = {model_name}
        rows = self._read_metatable(context, MODEL_TABLE, ModelRow)
        if rows is None:
            log.warning("Model registry unavailable, using requested model %s only", model_name)
            return frozenset(names)
        for row in rows:
            if not row.model_name:
                continue
            if row.is_type_model:
                log.debug("Skipping type model %s", row.model_name)
                continue
            names.add(row.model_name)
        log.debug("Relevant models: %s", ", ".join(sorted(names)))
        return frozenset(names)

    def _read_classes(self, context: ReadContext, metadata: ModelMetadata) -> None:
        class_rows = self._read_metatable(context, CLASSNAME_TABLE, ClassNameRow) or []
        kinds = self._read_table_kinds(context)

        for row in class_rows:
            context.table_names[row.ili_name] = row.sql_name
            if not context.in_relevant_model(row.ili_name):
                continue
            if kinds is None:
                kind = ClassKind.CLASS
            else:
                setting = kinds.get(row.sql_name.casefold()) or TableKind.CLASS.value
                if setting == TableKind.ENUM:
                    log.debug("Table %s holds enumeration %s", row.sql_name, row.ili_name)
                    continue
                if setting not in _CLASS_KINDS:
                    log.warning(
                        "Skipping %s: table %s has unknown kind %r",
                        row.ili_name,
                        row.sql_name,
                        setting,
                    )
                    continue
                kind = _CLASS_KINDS[setting]

            metadata.add_class(
                ClassEntity(
                    qualified_name=row.ili_name,
                    table_name=row.sql_name,
                    sql_name=f"{context.schema_name}.{row.sql_name}",
                    kind=kind,
                )
            )
            log.debug("Found class %s -> %s (%s)", row.ili_name, row.sql_name, kind)

    def _read_table_kinds(self, context: ReadContext) -> dict[str, str] | None:
        rows = self._read_metatable(context, TABLE_PROP_TABLE, TablePropRow)
        if rows is None:
            log.info("No table properties, all mapped classes default to CLASS")
            return None
        return {
            row.table_name.casefold(): (row.setting or "").strip().upper()
            for row in rows
            if row.tag == TABLE_KIND_TAG
        }

    def _read_attributes(self, context: ReadContext, metadata: ModelMetadata) -> None:
        for row in self._read_metatable(context, ATTRNAME_TABLE, AttrNameRow) or ():
            owner = self._resolve_owner(metadata, row)
            if owner is None:
                log.warning(
                    "Attribute %s belongs to no known class (owner %s)", row.ili_name, row.owner
                )
                continue

            attribute = AttributeEntity(
                name=simple_name_of(row.ili_name),
                qualified_name=row.ili_name,
                column_name=row.sql_name,
            )
            if row.target:
                self._resolve_foreign_key(metadata, attribute, row.target)
            self._enrich_from_catalog(context, owner, attribute)

            if not owner.add_attribute(attribute):
                log.debug("Duplicate attribute %s on %s ignored", attribute.name, owner.qualified_name)

    def _resolve_owner(self, metadata: ModelMetadata, row: AttrNameRow) -> ClassEntity | None:
        prefix = owner_name_of(row.ili_name)
        if prefix is not None:
            entity = metadata.get_class(prefix)
            if entity is not None:
                return entity
        if not row.owner:
            return None
        return metadata.get_class(row.owner) or metadata.find_class_by_table(row.owner)

    def _resolve_foreign_key(
        self, metadata: ModelMetadata, attribute: AttributeEntity, target: str
    ) -> None:
        attribute.foreign_key = True
        referenced = metadata.get_class(target) or metadata.find_class_by_table(target)
        if referenced is None:
            log.warning("Foreign key %s references unknown class %s", attribute.qualified_name, target)
            return
        attribute.referenced_class = referenced.qualified_name

    def _enrich_from_catalog(
        self, context: ReadContext, owner: ClassEntity, attribute: AttributeEntity
    ) -> None:
        if owner.table_name is None or attribute.column_name is None:
            return
        columns = self._table_columns(context, owner.table_name)
        info = columns.get(attribute.column_name.casefold())
        if info is None:
            log.debug("Column %s.%s not in catalog", owner.table_name, attribute.column_name)
            return
        attribute.db_type = info.data_type
        attribute.mandatory = not info.nullable
        attribute.max_length = info.max_length
        attribute.geometry = info.geometry
        attribute.primary_key = attribute.column_name.casefold() in context.primary_keys.get(
            owner.table_name.casefold(), frozenset()
        )

    def _read_inheritance(self, context: ReadContext, metadata: ModelMetadata) -> None:
        for row in self._read_metatable(context, INHERITANCE_TABLE, InheritanceRow) or ():
            entity = metadata.get_class(row.this_class)
            if entity is None or not row.base_class:
                continue
            entity.base_class = row.base_class
            log.debug("Inheritance: %s extends %s", row.this_class, row.base_class)

    def _apply_column_properties(self, context: ReadContext, metadata: ModelMetadata) -> None:
        rows = self._read_metatable(context, COLUMN_PROP_TABLE, ColumnPropRow) or []
        for row in rows:
            if row.tag not in {UNIT_TAG, ENUM_DOMAIN_TAG}:
                continue
            entity = metadata.find_class_by_table(row.table_name)
            attribute = entity.find_attribute_by_column(row.column_name) if entity else None
            if attribute is None:
                log.debug(
                    "Column property %s for unknown column %s.%s skipped",
                    row.tag,
                    row.table_name,
                    row.column_name,
                )
                continue
            if not row.setting:
                continue
            if row.tag == UNIT_TAG:
                attribute.unit = row.setting
            else:
                self._link_enum_domain(context, metadata, attribute, row.setting)

    def _link_enum_domain(
        self,
        context: ReadContext,
        metadata: ModelMetadata,
        attribute: AttributeEntity,
        enum_name: str,
    ) -> None:
        attribute.enum_type = enum_name
        lookup_table = context.table_names.get(enum_name)
        if lookup_table is None:
            log.debug("Enumeration %s has no lookup table", enum_name)
            return
        values = self._lookup_values(context, lookup_table)
        attribute.enum_values = values
        if metadata.get_enum(enum_name) is None:
            enum = EnumEntity(qualified_name=enum_name)
            for value in values:
                enum.append_value(value.code, value.display_name)
            metadata.add_enum(enum)

    def _lookup_values(self, context: ReadContext, lookup_table: str) -> tuple[EnumValue, ...]:
        key = lookup_table.casefold()
        cached = context.enum_lookups.get(key)
        if cached is not None:
            return cached
        rows = self._read_metatable(context, lookup_table, EnumLookupRow) or []
        ordered = sorted(rows, key=lambda row: (row.seq is None, row.seq or 0))
        values = tuple(
            EnumValue(code=row.code, sequence=index, display_name=row.display_name)
            for index, row in enumerate(ordered)
        )
        context.enum_lookups[key] = values
        return values

    def _derive_relationships(self, metadata: ModelMetadata) -> None:
        for entity, attribute in metadata.iter_attributes():
            if not attribute.foreign_key or attribute.referenced_class is None:
                continue
            entity.add_relationship(
                RelationshipEntity(
                    name=f"{entity.qualified_name}_{attribute.name}",
                    source_class=entity.qualified_name,
                    target_class=attribute.referenced_class,
                    source_attribute=attribute.name,
                    kind=RelationshipKind.MANY_TO_ONE,
                    mandatory=attribute.is_mandatory,
                )
            )

