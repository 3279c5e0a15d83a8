"""Engine-specific schema catalogs.

The generic SQLAlchemy inspector is unreliable for some engines (geometry columns
on PostgreSQL come back as ``NullType``; SQLite loses declared lengths), so the
common engines get a direct table-structure query instead.
"""

from __future__ import annotations

import logging
import re
from contextlib import nullcontext
from typing import TYPE_CHECKING, Final

from sqlalchemy import inspect, text
from sqlalchemy.exc import CompileError

from ilimeta.domain.model import TargetType
from ilimeta.domain.ports.catalog import ColumnInfo
from ilimeta.domain.type_inference import infer_physical_type

if TYPE_CHECKING:
    from contextlib import AbstractContextManager

    from sqlalchemy import Connection

    from ilimeta.domain.ports.catalog import SchemaCatalog

log = logging.getLogger(__name__)

_GEOMETRY_TYPES: Final = frozenset(
    {
        "geometry",
        "geography",
        "point",
        "linestring",
        "polygon",
        "multipoint",
        "multilinestring",
        "multipolygon",
        "geometrycollection",
    }
)
_LENGTH_PATTERN: Final = re.compile(r"\(\s*(\d+)\s*(?:,\s*\d+\s*)?\)")

_PG_COLUMNS_SQL: Final = text(
    "SELECT column_name, data_type, udt_name, is_nullable, character_maximum_length "
    "FROM information_schema.columns "
    "WHERE table_schema = :schema AND lower(table_name) = lower(:table) "
    "ORDER BY ordinal_position"
)
_PG_PRIMARY_KEY_SQL: Final = text(
    "SELECT kcu.column_name "
    "FROM information_schema.table_constraints tc "
    "JOIN information_schema.key_column_usage kcu "
    "  ON tc.constraint_name = kcu.constraint_name "
    " AND tc.table_schema = kcu.table_schema "
    " AND tc.table_name = kcu.table_name "
    "WHERE tc.constraint_type = 'PRIMARY KEY' "
    "  AND tc.table_schema = :schema AND lower(tc.table_name) = lower(:table)"
)


def parse_declared_length(declared_type: str | None) -> int | None:
    if not declared_type:
        return None
    match = _LENGTH_PATTERN.search(declared_type)
    return int(match.group(1)) if match else None


def is_geometry_type(type_name: str | None) -> bool:
    return type_name is not None and type_name.strip().lower() in _GEOMETRY_TYPES


def _text_length(declared_type: str | None) -> int | None:
    if infer_physical_type(declared_type) is not TargetType.STRING:
        return None
    return parse_declared_length(declared_type)


class PostgresCatalog:
    """Queries ``information_schema`` directly; savepoints isolate failed statements."""

    def __init__(self, connection: Connection) -> None:
        self.connection = connection

    @property
    def engine_name(self) -> str:
        return "postgresql"

    def columns(self, schema: str, table: str) -> dict[str, ColumnInfo]:
        rows = self.connection.execute(_PG_COLUMNS_SQL, {"schema": schema, "table": table})
        result: dict[str, ColumnInfo] = {}
        for row in rows.mappings():
            data_type = row["data_type"]
            udt_name = row["udt_name"]
            resolved = udt_name if data_type == "USER-DEFINED" and udt_name else data_type
            result[str(row["column_name"]).casefold()] = ColumnInfo(
                name=row["column_name"],
                data_type=resolved,
                nullable=row["is_nullable"] != "NO",
                max_length=row["character_maximum_length"],
                geometry=is_geometry_type(udt_name),
            )
        return result

    def primary_key_columns(self, schema: str, table: str) -> frozenset[str]:
        rows = self.connection.execute(_PG_PRIMARY_KEY_SQL, {"schema": schema, "table": table})
        return frozenset(str(name).casefold() for name in rows.scalars())

    def statement_scope(self) -> AbstractContextManager[object]:
        return self.connection.begin_nested()


class SqliteCatalog:
    """Reads ``PRAGMA table_info``, which keeps the declared column type verbatim."""

    def __init__(self, connection: Connection) -> None:
        self.connection = connection

    @property
    def engine_name(self) -> str:
        return "sqlite"

    def _table_info(self, schema: str, table: str) -> list[dict[str, object]]:
        preparer = self.connection.dialect.identifier_preparer
        statement = text(
            f"PRAGMA {preparer.quote_identifier(schema)}.table_info("
            f"{preparer.quote_identifier(table)})"
        )
        return [dict(row) for row in self.connection.execute(statement).mappings()]

    def columns(self, schema: str, table: str) -> dict[str, ColumnInfo]:
        result: dict[str, ColumnInfo] = {}
        for row in self._table_info(schema, table):
            declared = str(row["type"] or "") or None
            result[str(row["name"]).casefold()] = ColumnInfo(
                name=str(row["name"]),
                data_type=declared,
                nullable=not row["notnull"],
                max_length=_text_length(declared),
                geometry=is_geometry_type(declared),
            )
        return result

    def primary_key_columns(self, schema: str, table: str) -> frozenset[str]:
        return frozenset(
            str(row["name"]).casefold() for row in self._table_info(schema, table) if row["pk"]
        )

    def statement_scope(self) -> AbstractContextManager[object]:
        return nullcontext()


class InspectorCatalog:
    """Fallback for other engines, backed by the SQLAlchemy ``Inspector``."""

    def __init__(self, connection: Connection) -> None:
        self.connection = connection

    @property
    def engine_name(self) -> str:
        return self.connection.dialect.name

    def _actual_table_name(self, schema: str, table: str) -> str | None:
        wanted = table.casefold()
        for candidate in inspect(self.connection).get_table_names(schema=schema):
            if candidate.casefold() == wanted:
                return candidate
        return None

    def columns(self, schema: str, table: str) -> dict[str, ColumnInfo]:
        actual = self._actual_table_name(schema, table)
        if actual is None:
            return {}
        result: dict[str, ColumnInfo] = {}
        for column in inspect(self.connection).get_columns(actual, schema=schema):
            column_type = column["type"]
            type_name = _type_name(column_type)
            result[column["name"].casefold()] = ColumnInfo(
                name=column["name"],
                data_type=type_name,
                nullable=bool(column.get("nullable", True)),
                max_length=getattr(column_type, "length", None),
                geometry=is_geometry_type(type_name),
            )
        return result

    def primary_key_columns(self, schema: str, table: str) -> frozenset[str]:
        actual = self._actual_table_name(schema, table)
        if actual is None:
            return frozenset()
        constraint = inspect(self.connection).get_pk_constraint(actual, schema=schema)
        return frozenset(name.casefold() for name in constraint.get("constrained_columns") or ())

    def statement_scope(self) -> AbstractContextManager[object]:
        return nullcontext()


def _type_name(column_type: object) -> str:
    try:
        return str(column_type)
    except CompileError:
        return type(column_type).__name__


def catalog_for(connection: Connection) -> SchemaCatalog:
    """Select the catalog implementation once per connection."""

    engine = connection.dialect.name
    catalog: SchemaCatalog
    if engine == "postgresql":
        catalog = PostgresCatalog(connection)
    elif engine == "sqlite":
        catalog = SqliteCatalog(connection)
    else:
        catalog = InspectorCatalog(connection)
    log.debug("Using %s for engine %s", type(catalog).__name__, engine)
    return catalog
