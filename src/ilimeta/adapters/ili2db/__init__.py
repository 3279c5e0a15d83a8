"""ili2db physical-schema adapter."""

from __future__ import annotations

from .catalog import catalog_for
from .introspector import ReadContext, SchemaIntrospector

__all__ = [
    "ReadContext",
    "SchemaIntrospector",
    "catalog_for",
]
