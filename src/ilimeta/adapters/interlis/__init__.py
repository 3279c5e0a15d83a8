"""INTERLIS model compiler adapter."""

from __future__ import annotations

from .compiler import ModelTree, compile_models
from .walker import SemanticWalker

__all__ = [
    "ModelTree",
    "SemanticWalker",
    "compile_models",
]
