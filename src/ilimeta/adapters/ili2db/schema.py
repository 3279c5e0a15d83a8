"""Row schemas for the ili2db metatables.

Column names differ between ili2db releases and engines (``colowner`` vs ``owner``,
upper-case identifiers on H2/Oracle), so rows are normalised to lower-case keys and
validated against these models. A row that does not fit raises ``ValidationError``,
which the introspector treats as an unreadable metatable.
"""

from __future__ import annotations

import logging
import re
from enum import StrEnum
from typing import TYPE_CHECKING, Any, ClassVar, Final, Self

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

if TYPE_CHECKING:
    from collections.abc import Mapping

log = logging.getLogger(__name__)

MODEL_TABLE: Final = "t_ili2db_model"
CLASSNAME_TABLE: Final = "t_ili2db_classname"
ATTRNAME_TABLE: Final = "t_ili2db_attrname"
INHERITANCE_TABLE: Final = "t_ili2db_inheritance"
TABLE_PROP_TABLE: Final = "t_ili2db_table_prop"
COLUMN_PROP_TABLE: Final = "t_ili2db_column_prop"
SETTINGS_TABLE: Final = "t_ili2db_settings"

TABLE_KIND_TAG: Final = "ch.ehi.ili2db.tableKind"
UNIT_TAG: Final = "ch.ehi.ili2db.unit"
ENUM_DOMAIN_TAG: Final = "ch.ehi.ili2db.enumDomain"

_TYPE_MODEL_PATTERN: Final = re.compile(r"TYPE\s+MODEL")


class TableKind(StrEnum):
    CLASS = "CLASS"
    STRUCTURE = "STRUCTURE"
    ASSOCIATION = "ASSOCIATION"
    ENUM = "ENUM"


class MetatableRow(BaseModel):
    model_config = ConfigDict(extra="allow", frozen=True)
    # (row model, column) pairs already reported
    _logged_extra_keys: ClassVar[set[tuple[str, str]]] = set()

    def model_post_init(self, _context: object, /) -> None:
        extras = self.__pydantic_extra__
        if not extras:
            return
        row_type = type(self).__name__
        new_keys = {key for key in extras if (row_type, key) not in self._logged_extra_keys}
        if not new_keys:
            return
        self._logged_extra_keys.update((row_type, key) for key in new_keys)
        log.debug("%s: ignoring columns: %s", row_type, ", ".join(sorted(new_keys)))

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> Self:
        return cls.model_validate({str(key).lower(): value for key, value in row.items()})


class ModelRow(MetatableRow):
    model_name: str = Field(validation_alias=AliasChoices("modelname", "model", "name"))
    content: str | None = None

    @field_validator("model_name")
    @classmethod
    def _strip_imports(cls, value: str) -> str:
        # ili2db stores "Name{ Import1 Import2}"
        return value.split("{", 1)[0].strip()

    @property
    def is_type_model(self) -> bool:
        return self.content is not None and _TYPE_MODEL_PATTERN.search(self.content) is not None


class ClassNameRow(MetatableRow):
    ili_name: str = Field(validation_alias=AliasChoices("iliname"))
    sql_name: str = Field(validation_alias=AliasChoices("sqlname"))


class AttrNameRow(MetatableRow):
    ili_name: str = Field(validation_alias=AliasChoices("iliname"))
    sql_name: str = Field(validation_alias=AliasChoices("sqlname"))
    owner: str | None = Field(default=None, validation_alias=AliasChoices("colowner", "owner"))
    target: str | None = None


class InheritanceRow(MetatableRow):
    this_class: str = Field(validation_alias=AliasChoices("thisclass"))
    base_class: str | None = Field(default=None, validation_alias=AliasChoices("baseclass"))


class TablePropRow(MetatableRow):
    table_name: str = Field(validation_alias=AliasChoices("tablename"))
    tag: str
    setting: str | None = None


class ColumnPropRow(MetatableRow):
    table_name: str = Field(validation_alias=AliasChoices("tablename"))
    column_name: str = Field(validation_alias=AliasChoices("columnname"))
    tag: str
    setting: str | None = None


class SettingRow(MetatableRow):
    tag: str
    setting: str | None = None


class EnumLookupRow(MetatableRow):
    code: str = Field(validation_alias=AliasChoices("ilicode", "code"))
    display_name: str | None = Field(
        default=None, validation_alias=AliasChoices("dispname", "display_name")
    )
    seq: int | None = None
