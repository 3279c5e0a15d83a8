"""Reconcile physical and semantic metadata into one model."""

from __future__ import annotations

from .finalize import finalize_types
from .merge import MergeResult, merge

__all__ = [
    "MergeResult",
    "finalize_types",
    "merge",
]
