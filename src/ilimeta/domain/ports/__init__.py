"""Ports the reader depends on."""

from __future__ import annotations

from .catalog import ColumnInfo, SchemaCatalog

__all__ = ["ColumnInfo", "SchemaCatalog"]
