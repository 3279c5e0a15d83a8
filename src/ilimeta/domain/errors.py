"""Fatal errors raised by a metadata read.

Recoverable problems (a missing metatable, an attribute without owner, ...) are
logged and never surface as exceptions.
"""

from __future__ import annotations

from ilimeta.config.errors import ConfigurationError


class MetadataReadError(RuntimeError):
    """Base class for errors that abort a metadata read."""


class DatabaseConnectionError(MetadataReadError):
    """Raised when the database connection is closed or has been invalidated."""


class ModelCompilationError(MetadataReadError):
    """Raised when an INTERLIS model cannot be compiled."""

    def __init__(self, message: str, *, location: str | None = None) -> None:
        super().__init__(f"{location}: {message}" if location else message)
        self.location = location


class ModelNotFoundError(MetadataReadError):
    """Raised when the requested model is not part of the compiled models."""

    def __init__(self, model_name: str) -> None:
        super().__init__(f"Model not found: {model_name}")
        self.model_name = model_name


class InvalidSchemaNameError(MetadataReadError, ConfigurationError):
    """Raised when no usable schema name was supplied."""
