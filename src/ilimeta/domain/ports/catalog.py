"""Catalog capability: physical column facts for one database engine family."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from contextlib import AbstractContextManager


@dataclass(frozen=True, slots=True, kw_only=True)
class ColumnInfo:
    name: str
    data_type: str | None
    nullable: bool = True
    max_length: int | None = None
    geometry: bool = False


@runtime_checkable
class SchemaCatalog(Protocol):
    """Engine-specific access to table structure and key metadata."""

    @property
    def engine_name(self) -> str: ...

    def columns(self, schema: str, table: str) -> dict[str, ColumnInfo]:
        """Return column facts keyed by casefolded column name."""
        ...

    def primary_key_columns(self, schema: str, table: str) -> frozenset[str]:
        """Return casefolded names of the primary-key columns."""
        ...

    def statement_scope(self) -> AbstractContextManager[object]:
        """Scope one metatable statement so its failure leaves the connection usable."""
        ...
