"""Reader configuration: where the database and the model sources live."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Final

from .env import optional_env_var, require_env_vars
from .errors import MissingConfigurationError

DEFAULT_SCHEMA_NAME: Final[str] = "public"
MODELDIR_SEPARATOR: Final[str] = ";"


@dataclass(frozen=True, slots=True)
class ReaderConfig:
    database_uri: str
    model_name: str
    schema_name: str = DEFAULT_SCHEMA_NAME
    model_file: Path | None = None
    repositories: tuple[str, ...] = field(default_factory=tuple)

    def with_overrides(
        self,
        *,
        database_uri: str | None = None,
        model_name: str | None = None,
        schema_name: str | None = None,
        model_file: Path | None = None,
        repositories: tuple[str, ...] | None = None,
    ) -> ReaderConfig:
        return ReaderConfig(
            database_uri=database_uri or self.database_uri,
            model_name=model_name or self.model_name,
            schema_name=schema_name or self.schema_name,
            model_file=model_file or self.model_file,
            repositories=repositories if repositories else self.repositories,
        )


def split_modeldir(value: str | None) -> tuple[str, ...]:
    """Split an ili2c-style ``modeldir`` value (``dir1;dir2;http://...``)."""

    if not value:
        return ()
    return tuple(part.strip() for part in value.split(MODELDIR_SEPARATOR) if part.strip())


def get_reader_config() -> ReaderConfig:
    database_uri = optional_env_var("ILIMETA_DATABASE_URI", "DATABASE_URI")
    if database_uri is None:
        raise MissingConfigurationError(
            "Missing configuration for: ILIMETA_DATABASE_URI (or DATABASE_URI)"
        )
    model_name = require_env_vars(("ILIMETA_MODEL",))["ILIMETA_MODEL"].strip()
    model_file = optional_env_var("ILIMETA_MODEL_FILE")
    return ReaderConfig(
        database_uri=database_uri,
        model_name=model_name,
        schema_name=optional_env_var("ILIMETA_SCHEMA") or DEFAULT_SCHEMA_NAME,
        model_file=Path(model_file) if model_file else None,
        repositories=split_modeldir(optional_env_var("ILIMETA_MODELDIR")),
    )
