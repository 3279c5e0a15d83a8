from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import event

from ilimeta.adapters.ili2db import SchemaIntrospector
from ilimeta.adapters.ili2db.schema import (
    ATTRNAME_TABLE,
    CLASSNAME_TABLE,
    INHERITANCE_TABLE,
    MODEL_TABLE,
    TABLE_PROP_TABLE,
)
from ilimeta.config import ConfigurationError
from ilimeta.domain.errors import DatabaseConnectionError, InvalidSchemaNameError
from ilimeta.domain.model import ClassKind, ModelMetadata, RelationshipKind
from tests.helpers.ili2db import SQLITE_SCHEMA, Ili2dbSchema

if TYPE_CHECKING:
    from sqlalchemy import Connection
    from sqlalchemy.engine import Engine


def _read(connection: Connection, model_name: str = "Addresses") -> ModelMetadata:
    return SchemaIntrospector(connection).read_physical_model(SQLITE_SCHEMA, model_name)


def test_reads_classes_of_relevant_models(
    sqlite_connection: Connection, address_schema: Ili2dbSchema
) -> None:
    metadata = _read(sqlite_connection)

    assert list(metadata.classes) == [
        "Addresses.Registry.Address",
        "Addresses.Registry.House",
        "Addresses.Registry.Person",
        "Addresses.Registry.Contact",
    ]
    address = metadata.classes["Addresses.Registry.Address"]
    assert address.table_name == "address"
    assert address.sql_name == "main.address"
    assert address.kind is ClassKind.CLASS
    assert metadata.classes["Addresses.Registry.Contact"].kind is ClassKind.STRUCTURE
    assert metadata.tool_version == "ili2db-4.9.1"


def test_columns_are_enriched_from_the_catalog(
    sqlite_connection: Connection, address_schema: Ili2dbSchema
) -> None:
    metadata = _read(sqlite_connection)

    address = metadata.classes["Addresses.Registry.Address"]
    street = address.attributes["street"]
    assert street.qualified_name == "Addresses.Registry.Address.street"
    assert street.column_name == "street"
    assert street.db_type == "VARCHAR(60)"
    assert street.max_length == 60
    assert street.mandatory is False

    zip_code = address.attributes["zip"]
    assert zip_code.mandatory is True
    assert zip_code.max_length is None

    position = address.attributes["position"]
    assert position.geometry is True
    assert address.geometry_attributes() == [position]


def test_owner_falls_back_to_table_name(
    sqlite_connection: Connection, address_schema: Ili2dbSchema
) -> None:
    metadata = _read(sqlite_connection)

    house = metadata.classes["Addresses.Registry.House"]
    assert list(house.attributes) == ["name", "floors", "garden"]
    name = house.attributes["name"]
    assert name.qualified_name == "Addresses.Registry.Building.name"
    assert name.column_name == "aname"
    assert name.mandatory is True
    assert house.base_class == "Addresses.Registry.Building"


def test_foreign_keys_become_relationships(
    sqlite_connection: Connection, address_schema: Ili2dbSchema
) -> None:
    metadata = _read(sqlite_connection)

    person = metadata.classes["Addresses.Registry.Person"]
    home = person.attributes["home"]
    assert home.foreign_key is True
    assert home.referenced_class == "Addresses.Registry.Address"

    assert len(person.relationships) == 1
    relationship = person.relationships[0]
    assert relationship.name == "Addresses.Registry.Person_home"
    assert relationship.source_class == "Addresses.Registry.Person"
    assert relationship.target_class == "Addresses.Registry.Address"
    assert relationship.source_attribute == "home"
    assert relationship.target_attribute == "T_Id"
    assert relationship.kind is RelationshipKind.MANY_TO_ONE
    assert relationship.mandatory is False


def test_every_resolved_foreign_key_has_one_relationship(
    sqlite_connection: Connection, address_schema: Ili2dbSchema
) -> None:
    metadata = _read(sqlite_connection)

    for entity, attribute in metadata.iter_attributes():
        matching = [
            relationship
            for relationship in entity.relationships
            if relationship.source_attribute == attribute.name
        ]
        if attribute.foreign_key and attribute.referenced_class is not None:
            assert len(matching) == 1
            assert matching[0].target_class == attribute.referenced_class
        else:
            assert matching == []


def test_unresolved_foreign_key_gets_no_relationship(
    sqlite_connection: Connection, ili2db: Ili2dbSchema, caplog: pytest.LogCaptureFixture
) -> None:
    ili2db.add_model("M")
    ili2db.add_class("M.T.Parcel", "parcel")
    ili2db.create_table("parcel", "t_id INTEGER PRIMARY KEY", "owner INTEGER")
    ili2db.add_attribute("M.T.Parcel.owner", "owner", "parcel", target="nobody")

    with caplog.at_level(logging.WARNING):
        metadata = _read(sqlite_connection, "M")

    parcel = metadata.classes["M.T.Parcel"]
    assert parcel.attributes["owner"].foreign_key is True
    assert parcel.attributes["owner"].referenced_class is None
    assert parcel.relationships == ()
    assert "nobody" in caplog.text


def test_enum_domains_resolve_lookup_values(
    sqlite_connection: Connection, address_schema: Ili2dbSchema
) -> None:
    metadata = _read(sqlite_connection)

    status = metadata.classes["Addresses.Registry.Address"].attributes["status"]
    assert status.enum_type == "Addresses.Status"
    assert status.enum_values is not None
    assert [(value.code, value.sequence, value.display_name) for value in status.enum_values] == [
        ("active", 0, "Aktiv"),
        ("inactive", 1, "Inaktiv"),
        ("inactive.moved", 2, None),
    ]
    enum = metadata.get_enum("Addresses.Status")
    assert enum is not None
    assert [value.code for value in enum.values] == ["active", "inactive", "inactive.moved"]


def test_units_come_from_column_properties(
    sqlite_connection: Connection, address_schema: Ili2dbSchema
) -> None:
    metadata = _read(sqlite_connection)

    assert metadata.classes["Addresses.Registry.Address"].attributes["number"].unit == "pcs"


def test_lookup_table_is_read_once_per_read(
    sqlite_connection: Connection, address_schema: Ili2dbSchema
) -> None:
    address_schema.create_table("office", "t_id INTEGER PRIMARY KEY", "state VARCHAR(255)")
    address_schema.add_class("Addresses.Registry.Office", "office")
    address_schema.add_attribute("Addresses.Registry.Office.state", "state", "office")
    address_schema.add_enum_domain("office", "state", "Addresses.Status")

    statements: list[str] = []

    def record(_conn: object, _cursor: object, statement: str, *_args: object) -> None:
        statements.append(statement)

    engine: Engine = sqlite_connection.engine
    event.listen(engine, "before_cursor_execute", record)
    try:
        metadata = _read(sqlite_connection)
    finally:
        event.remove(engine, "before_cursor_execute", record)

    lookups = [statement for statement in statements if "main.status" in statement]
    assert len(lookups) == 1
    office_state = metadata.classes["Addresses.Registry.Office"].attributes["state"]
    assert office_state.enum_values == (
        metadata.classes["Addresses.Registry.Address"].attributes["status"].enum_values
    )


def test_type_models_and_other_models_are_ignored(
    sqlite_connection: Connection, address_schema: Ili2dbSchema
) -> None:
    address_schema.add_class("Units.Meter", "meter")
    address_schema.add_class("Other.T.Thing", "thing")

    metadata = _read(sqlite_connection)

    assert "Units.Meter" not in metadata.classes
    assert "Other.T.Thing" not in metadata.classes


def test_registered_dependency_models_are_relevant(
    sqlite_connection: Connection, address_schema: Ili2dbSchema
) -> None:
    address_schema.add_model("Base")
    address_schema.add_class("Base.Core.Thing", "thing")
    address_schema.create_table("thing", "t_id INTEGER PRIMARY KEY")

    metadata = _read(sqlite_connection)

    assert "Base.Core.Thing" in metadata.classes


def test_missing_model_registry_uses_requested_model(
    sqlite_connection: Connection, caplog: pytest.LogCaptureFixture
) -> None:
    schema = Ili2dbSchema(sqlite_connection, omit=[MODEL_TABLE])
    schema.add_class("M.T.Parcel", "parcel")
    schema.add_class("Other.T.Thing", "thing")
    schema.create_table("parcel", "t_id INTEGER PRIMARY KEY", "area DOUBLE")
    schema.add_attribute("M.T.Parcel.area", "area", "parcel")

    with caplog.at_level(logging.WARNING):
        metadata = _read(sqlite_connection, "M")

    assert list(metadata.classes) == ["M.T.Parcel"]
    assert metadata.classes["M.T.Parcel"].attributes["area"].db_type == "DOUBLE"
    assert "Model registry unavailable" in caplog.text


def test_inherited_attribute_from_other_model_keeps_its_owner(
    sqlite_connection: Connection,
) -> None:
    schema = Ili2dbSchema(sqlite_connection, omit=[MODEL_TABLE])
    schema.add_class("M2.T.Sub", "sub")
    schema.create_table("sub", "t_id INTEGER PRIMARY KEY", "aname TEXT", "extra TEXT")
    schema.add_attribute("Base.T.Thing.name", "aname", "sub")
    schema.add_attribute("M2.T.Sub.extra", "extra", "sub")

    metadata = _read(sqlite_connection, "M2")

    attributes = metadata.classes["M2.T.Sub"].attributes
    assert set(attributes) == {"name", "extra"}
    assert attributes["name"].qualified_name == "Base.T.Thing.name"
    assert attributes["name"].column_name == "aname"


def test_missing_table_properties_default_to_class(sqlite_connection: Connection) -> None:
    schema = Ili2dbSchema(sqlite_connection, omit=[TABLE_PROP_TABLE])
    schema.add_model("M")
    schema.add_class("M.T.Parcel", "parcel", kind="STRUCTURE")

    metadata = _read(sqlite_connection, "M")

    assert metadata.classes["M.T.Parcel"].kind is ClassKind.CLASS


def test_unknown_table_kind_is_skipped(sqlite_connection: Connection, ili2db: Ili2dbSchema) -> None:
    ili2db.add_model("M")
    ili2db.add_class("M.T.Parcel", "parcel")
    ili2db.add_class("M.T.Odd", "odd", kind="SECONDARY")

    metadata = _read(sqlite_connection, "M")

    assert list(metadata.classes) == ["M.T.Parcel"]


@pytest.mark.parametrize("missing", [CLASSNAME_TABLE, ATTRNAME_TABLE, INHERITANCE_TABLE])
def test_any_missing_metatable_degrades_gracefully(
    sqlite_connection: Connection, missing: str
) -> None:
    schema = Ili2dbSchema(sqlite_connection, omit=[missing])
    schema.add_model("M")
    schema.add_class("M.T.Parcel", "parcel")
    schema.create_table("parcel", "t_id INTEGER PRIMARY KEY", "area DOUBLE")
    schema.add_attribute("M.T.Parcel.area", "area", "parcel")
    schema.add_inheritance("M.T.Parcel", None)

    metadata = _read(sqlite_connection, "M")

    assert metadata.model_name == "M"
    if missing == CLASSNAME_TABLE:
        assert metadata.classes == {}
    else:
        assert "M.T.Parcel" in metadata.classes


def test_attribute_without_owner_is_skipped(
    sqlite_connection: Connection, ili2db: Ili2dbSchema, caplog: pytest.LogCaptureFixture
) -> None:
    ili2db.add_model("M")
    ili2db.add_class("M.T.Parcel", "parcel")
    ili2db.add_attribute("M.T.Ghost.name", "aname", "ghost")

    with caplog.at_level(logging.WARNING):
        metadata = _read(sqlite_connection, "M")

    assert metadata.classes["M.T.Parcel"].attributes == {}
    assert "M.T.Ghost.name" in caplog.text


def test_blank_schema_name_is_rejected(sqlite_connection: Connection) -> None:
    introspector = SchemaIntrospector(sqlite_connection)

    with pytest.raises(InvalidSchemaNameError):
        introspector.read_physical_model("  ", "M")
    with pytest.raises(ConfigurationError):
        introspector.read_physical_model("", "M")


def test_closed_connection_is_fatal(sqlite_engine: Engine) -> None:
    connection = sqlite_engine.connect()
    connection.close()

    with pytest.raises(DatabaseConnectionError):
        SchemaIntrospector(connection).read_physical_model(SQLITE_SCHEMA, "M")


def test_introspector_is_reentrant(
    sqlite_connection: Connection, address_schema: Ili2dbSchema
) -> None:
    introspector = SchemaIntrospector(sqlite_connection)

    first = introspector.read_physical_model(SQLITE_SCHEMA, "Addresses")
    second = introspector.read_physical_model(SQLITE_SCHEMA, "Addresses")

    assert list(first.classes) == list(second.classes)
    assert first.classes["Addresses.Registry.Address"] is not second.classes[
        "Addresses.Registry.Address"
    ]
