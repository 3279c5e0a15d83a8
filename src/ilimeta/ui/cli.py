from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv
from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError

from ilimeta.app import read_model_metadata
from ilimeta.config import (
    DEFAULT_SCHEMA_NAME,
    ConfigurationError,
    ReaderConfig,
    configure_logging,
    get_reader_config,
    split_modeldir,
)
from ilimeta.domain.errors import MetadataReadError
from ilimeta.ui.report import render_metadata

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

log = logging.getLogger(__name__)


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Read ili2db metadata and enrich it from the INTERLIS model"
    )
    parser.add_argument(
        "--database-uri",
        type=str,
        help="SQLAlchemy database URL (defaults to ILIMETA_DATABASE_URI)",
    )
    parser.add_argument(
        "--model",
        type=str,
        help="Name of the INTERLIS model to read (defaults to ILIMETA_MODEL)",
    )
    parser.add_argument(
        "--schema",
        type=str,
        help=f"Database schema holding the ili2db tables (default: {DEFAULT_SCHEMA_NAME})",
    )
    parser.add_argument(
        "--model-file",
        type=Path,
        help="Path to the .ili file declaring the model",
    )
    parser.add_argument(
        "--modeldir",
        type=str,
        help="Model repositories separated by ';' (directories or URLs, %%ILI_DIR allowed)",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Log debug output",
    )
    return parser.parse_args(list(argv))


def _build_config(args: argparse.Namespace) -> ReaderConfig:
    repositories = split_modeldir(args.modeldir)
    if args.database_uri and args.model:
        return ReaderConfig(
            database_uri=args.database_uri,
            model_name=args.model,
            schema_name=args.schema or DEFAULT_SCHEMA_NAME,
            model_file=args.model_file,
            repositories=repositories,
        )
    return get_reader_config().with_overrides(
        database_uri=args.database_uri,
        model_name=args.model,
        schema_name=args.schema,
        model_file=args.model_file,
        repositories=repositories,
    )


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    load_dotenv()
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    parsed_args = _parse_args(args_list)
    configure_logging(level=logging.DEBUG if parsed_args.verbose else logging.INFO)

    try:
        config = _build_config(parsed_args)
    except ConfigurationError:
        log.exception("CLI configuration error")
        sys.exit(2)

    try:
        engine = create_engine(config.database_uri)
        try:
            with engine.connect() as connection:
                metadata = read_model_metadata(
                    connection,
                    model_name=config.model_name,
                    schema_name=config.schema_name,
                    model_file=config.model_file,
                    repositories=config.repositories,
                )
        finally:
            engine.dispose()
    except ConfigurationError:
        log.exception("CLI configuration error")
        sys.exit(2)
    except (MetadataReadError, SQLAlchemyError):
        log.exception("Fatal error while reading metadata")
        sys.exit(1)

    sys.stdout.write(render_metadata(metadata))


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


if __name__ == "__main__":
    signal(SIGINT, sigint_handler)
    main()
