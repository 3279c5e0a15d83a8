from __future__ import annotations

from pathlib import Path

import pytest

from ilimeta.config import (
    DEFAULT_SCHEMA_NAME,
    MissingConfigurationError,
    ReaderConfig,
    get_reader_config,
    optional_env_var,
    require_env_vars,
    split_modeldir,
)

_READER_VARS = (
    "ILIMETA_DATABASE_URI",
    "DATABASE_URI",
    "ILIMETA_MODEL",
    "ILIMETA_SCHEMA",
    "ILIMETA_MODEL_FILE",
    "ILIMETA_MODELDIR",
)


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    for name in _READER_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_require_env_vars_returns_values(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EXAMPLE_VAR", "value")

    assert require_env_vars(["EXAMPLE_VAR"]) == {"EXAMPLE_VAR": "value"}


def test_require_env_vars_lists_every_missing_name(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("MISSING_B", raising=False)
    monkeypatch.setenv("MISSING_A", "   ")

    with pytest.raises(MissingConfigurationError) as exc:
        require_env_vars(["MISSING_B", "MISSING_A"])

    assert "MISSING_A, MISSING_B" in str(exc.value)


def test_optional_env_var_takes_first_non_blank(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("FIRST_VAR", " ")
    monkeypatch.setenv("SECOND_VAR", " second ")

    assert optional_env_var("FIRST_VAR", "SECOND_VAR") == "second"
    assert optional_env_var("FIRST_VAR") is None


def test_reader_config_from_environment(clean_env: pytest.MonkeyPatch) -> None:
    clean_env.setenv("DATABASE_URI", "postgresql+psycopg://localhost/ili")
    clean_env.setenv("ILIMETA_MODEL", " Addresses ")
    clean_env.setenv("ILIMETA_SCHEMA", "addresses")
    clean_env.setenv("ILIMETA_MODEL_FILE", "/models/Addresses.ili")
    clean_env.setenv("ILIMETA_MODELDIR", "%ILI_DIR;https://models.interlis.ch/")

    config = get_reader_config()

    assert config == ReaderConfig(
        database_uri="postgresql+psycopg://localhost/ili",
        model_name="Addresses",
        schema_name="addresses",
        model_file=Path("/models/Addresses.ili"),
        repositories=("%ILI_DIR", "https://models.interlis.ch/"),
    )


def test_prefixed_database_uri_wins(clean_env: pytest.MonkeyPatch) -> None:
    clean_env.setenv("ILIMETA_DATABASE_URI", "sqlite://")
    clean_env.setenv("DATABASE_URI", "postgresql://ignored")
    clean_env.setenv("ILIMETA_MODEL", "Addresses")

    config = get_reader_config()

    assert config.database_uri == "sqlite://"
    assert config.schema_name == DEFAULT_SCHEMA_NAME
    assert config.model_file is None
    assert config.repositories == ()


def test_missing_database_uri(clean_env: pytest.MonkeyPatch) -> None:
    clean_env.setenv("ILIMETA_MODEL", "Addresses")

    with pytest.raises(MissingConfigurationError, match="ILIMETA_DATABASE_URI"):
        get_reader_config()


def test_missing_model_name(clean_env: pytest.MonkeyPatch) -> None:
    clean_env.setenv("ILIMETA_DATABASE_URI", "sqlite://")

    with pytest.raises(MissingConfigurationError, match="ILIMETA_MODEL"):
        get_reader_config()


def test_overrides_replace_only_given_values() -> None:
    config = ReaderConfig(database_uri="sqlite://", model_name="A", repositories=("/models",))

    overridden = config.with_overrides(model_name="B", schema_name=None, repositories=())

    assert overridden.model_name == "B"
    assert overridden.database_uri == "sqlite://"
    assert overridden.schema_name == DEFAULT_SCHEMA_NAME
    assert overridden.repositories == ("/models",)


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (None, ()),
        ("", ()),
        ("/models", ("/models",)),
        (" /a ; ;https://b/ ", ("/a", "https://b/")),
    ],
)
def test_split_modeldir(value: str | None, expected: tuple[str, ...]) -> None:
    assert split_modeldir(value) == expected
