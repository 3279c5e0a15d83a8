"""Errors raised while assembling the reader configuration."""

from __future__ import annotations


class ConfigurationError(RuntimeError):
    """Raised when a reader setting is present but unusable."""


class MissingConfigurationError(ConfigurationError):
    """Raised when a required reader setting (database URI, model name) is absent or blank."""
