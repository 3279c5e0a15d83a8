"""Application configuration helpers."""

from __future__ import annotations

from .env import optional_env_var, require_env_vars
from .errors import ConfigurationError, MissingConfigurationError
from .logging import configure_logging
from .reader import DEFAULT_SCHEMA_NAME, ReaderConfig, get_reader_config, split_modeldir
from .repository import (
    DEFAULT_REPOSITORY,
    RepositoryConfig,
    RetryPolicy,
    get_repository_config,
)

__all__ = [
    "DEFAULT_REPOSITORY",
    "DEFAULT_SCHEMA_NAME",
    "ConfigurationError",
    "MissingConfigurationError",
    "ReaderConfig",
    "RepositoryConfig",
    "RetryPolicy",
    "configure_logging",
    "get_reader_config",
    "get_repository_config",
    "optional_env_var",
    "require_env_vars",
    "split_modeldir",
]
