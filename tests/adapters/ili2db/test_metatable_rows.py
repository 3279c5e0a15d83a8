from __future__ import annotations

import logging

import pytest
from pydantic import ValidationError

from ilimeta.adapters.ili2db.schema import (
    AttrNameRow,
    ClassNameRow,
    EnumLookupRow,
    ModelRow,
    TablePropRow,
)


def test_rows_accept_upper_case_column_names() -> None:
    row = ClassNameRow.from_row({"ILINAME": "M.T.Parcel", "SQLNAME": "parcel"})

    assert row.ili_name == "M.T.Parcel"
    assert row.sql_name == "parcel"


def test_attribute_owner_accepts_both_column_spellings() -> None:
    old = AttrNameRow.from_row({"iliname": "M.T.A.b", "sqlname": "b", "owner": "a"})
    new = AttrNameRow.from_row(
        {"iliname": "M.T.A.b", "sqlname": "b", "colowner": "a", "target": "c"}
    )

    assert old.owner == "a"
    assert old.target is None
    assert new.owner == "a"
    assert new.target == "c"


def test_model_name_drops_import_list() -> None:
    row = ModelRow.from_row({"modelname": "Addresses{ Units Base}", "content": "MODEL Addresses"})

    assert row.model_name == "Addresses"
    assert row.is_type_model is False


def test_type_models_are_recognised() -> None:
    row = ModelRow.from_row({"modelname": "Units", "content": "!! units\nTYPE  MODEL Units ="})

    assert row.is_type_model is True


def test_extra_columns_are_allowed() -> None:
    row = TablePropRow.from_row(
        {"tablename": "parcel", "tag": "ch.ehi.ili2db.tableKind", "setting": "CLASS", "x": 1}
    )

    assert row.setting == "CLASS"


def test_extra_columns_are_reported_once_per_row_model(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.DEBUG, logger="ilimeta.adapters.ili2db.schema"):
        ClassNameRow.from_row({"iliname": "M.T.A", "sqlname": "a", "legacy_flag": 1})
        ClassNameRow.from_row({"iliname": "M.T.B", "sqlname": "b", "legacy_flag": 1})
        AttrNameRow.from_row(
            {"iliname": "M.T.A.x", "sqlname": "x", "colowner": "a", "legacy_flag": 1}
        )

    reports = [
        record.getMessage() for record in caplog.records if "legacy_flag" in record.getMessage()
    ]
    assert reports == [
        "ClassNameRow: ignoring columns: legacy_flag",
        "AttrNameRow: ignoring columns: legacy_flag",
    ]


def test_missing_required_column_is_a_validation_error() -> None:
    with pytest.raises(ValidationError):
        ClassNameRow.from_row({"iliname": "M.T.Parcel"})


def test_enum_lookup_rows() -> None:
    row = EnumLookupRow.from_row(
        {"t_id": 4, "seq": None, "iliCode": "inactive.moved", "dispName": "Umgezogen"}
    )

    assert row.code == "inactive.moved"
    assert row.display_name == "Umgezogen"
    assert row.seq is None
