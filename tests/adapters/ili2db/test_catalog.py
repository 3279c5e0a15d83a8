from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from sqlalchemy import text

from ilimeta.adapters.ili2db import catalog_for
from ilimeta.adapters.ili2db.catalog import (
    InspectorCatalog,
    SqliteCatalog,
    is_geometry_type,
    parse_declared_length,
)
from ilimeta.domain.ports.catalog import SchemaCatalog
from tests.helpers.ili2db import SQLITE_SCHEMA

if TYPE_CHECKING:
    from sqlalchemy import Connection


@pytest.fixture
def parcel_table(sqlite_connection: Connection) -> str:
    sqlite_connection.execute(
        text(
            "CREATE TABLE parcel ("
            "t_id INTEGER PRIMARY KEY, "
            "Number VARCHAR(12) NOT NULL, "
            "area DECIMAL(10,2), "
            "shape POLYGON, "
            "notes TEXT)"
        )
    )
    return "parcel"


def test_sqlite_connections_get_the_pragma_catalog(sqlite_connection: Connection) -> None:
    catalog = catalog_for(sqlite_connection)

    assert isinstance(catalog, SqliteCatalog)
    assert isinstance(catalog, SchemaCatalog)
    assert catalog.engine_name == "sqlite"


def test_sqlite_catalog_reports_declared_columns(
    sqlite_connection: Connection, parcel_table: str
) -> None:
    columns = SqliteCatalog(sqlite_connection).columns(SQLITE_SCHEMA, parcel_table)

    assert list(columns) == ["t_id", "number", "area", "shape", "notes"]
    number = columns["number"]
    assert number.name == "Number"
    assert number.data_type == "VARCHAR(12)"
    assert number.nullable is False
    assert number.max_length == 12
    assert columns["area"].max_length is None
    assert columns["shape"].geometry is True
    assert columns["notes"].max_length is None
    assert columns["notes"].nullable is True


def test_sqlite_catalog_primary_keys(sqlite_connection: Connection, parcel_table: str) -> None:
    catalog = SqliteCatalog(sqlite_connection)

    assert catalog.primary_key_columns(SQLITE_SCHEMA, parcel_table) == frozenset({"t_id"})
    assert catalog.columns(SQLITE_SCHEMA, "missing") == {}


def test_inspector_catalog_matches_tables_case_insensitively(
    sqlite_connection: Connection, parcel_table: str
) -> None:
    catalog = InspectorCatalog(sqlite_connection)

    columns = catalog.columns(SQLITE_SCHEMA, "PARCEL")

    assert set(columns) == {"t_id", "number", "area", "shape", "notes"}
    assert columns["number"].max_length == 12
    assert columns["number"].nullable is False
    assert catalog.primary_key_columns(SQLITE_SCHEMA, "Parcel") == frozenset({"t_id"})
    assert catalog.columns(SQLITE_SCHEMA, "missing") == {}
    assert catalog.primary_key_columns(SQLITE_SCHEMA, "missing") == frozenset()


@pytest.mark.parametrize(
    ("declared", "expected"),
    [
        ("VARCHAR(40)", 40),
        ("character varying( 255 )", 255),
        ("NUMERIC(10, 3)", 10),
        ("TEXT", None),
        (None, None),
    ],
)
def test_parse_declared_length(declared: str | None, expected: int | None) -> None:
    assert parse_declared_length(declared) == expected


def test_geometry_type_names() -> None:
    assert is_geometry_type("geometry")
    assert is_geometry_type(" MultiPolygon ")
    assert not is_geometry_type("varchar")
    assert not is_geometry_type(None)
