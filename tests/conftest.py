from __future__ import annotations

import os
from pathlib import Path
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Connection, Engine  # noqa: TC002

from tests.helpers.ili2db import Ili2dbSchema, build_address_schema

os.environ.setdefault("ILIMETA_DATABASE_URI", "sqlite+pysqlite:///:memory:")

if TYPE_CHECKING:
    from collections.abc import Iterator


@pytest.fixture(scope="session")
def data_dir() -> Path:
    return Path(__file__).resolve().parent / "data"


@pytest.fixture(scope="session")
def addresses_model(data_dir: Path) -> Path:
    return data_dir / "Addresses.ili"


@pytest.fixture
def sqlite_engine() -> Iterator[Engine]:
    engine = create_engine("sqlite+pysqlite:///:memory:")
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def sqlite_connection(sqlite_engine: Engine) -> Iterator[Connection]:
    with sqlite_engine.connect() as connection:
        yield connection


@pytest.fixture
def ili2db(sqlite_connection: Connection) -> Ili2dbSchema:
    return Ili2dbSchema(sqlite_connection)


@pytest.fixture
def address_schema(ili2db: Ili2dbSchema) -> Ili2dbSchema:
    build_address_schema(ili2db)
    return ili2db
