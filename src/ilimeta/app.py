"""Application orchestration entry points."""

from __future__ import annotations

from logging import getLogger
from pathlib import Path
from typing import TYPE_CHECKING

from ilimeta.adapters.ili2db import SchemaIntrospector
from ilimeta.adapters.interlis import SemanticWalker
from ilimeta.domain.reconciliation import finalize_types, merge

if TYPE_CHECKING:
    from collections.abc import Sequence

    import httpx
    from sqlalchemy import Connection

    from ilimeta.domain.model import ModelMetadata

log = getLogger(__name__)


def read_model_metadata(
    connection: Connection,
    *,
    model_name: str,
    schema_name: str,
    model_file: Path | str | None = None,
    repositories: Sequence[str] | None = None,
    client: httpx.Client | None = None,
) -> ModelMetadata:
    """Read the physical model from ``connection`` and enrich it from the INTERLIS model.

    The INTERLIS model is compiled from ``model_file`` when it exists, otherwise it
    is looked up by name in ``repositories``. Without either the enrichment step
    is skipped and only the database metadata is returned.
    """

    log.info("Reading metadata for model %s (schema %s)", model_name, schema_name)
    metadata = SchemaIntrospector(connection).read_physical_model(schema_name, model_name)

    path = Path(model_file) if model_file is not None else None
    if (path is not None and path.is_file()) or repositories:
        walker = SemanticWalker(path, repositories, client=client)
        semantic = walker.read_semantic_model(model_name)
        merge(metadata, semantic)
    else:
        log.warning("No model file or repository given, skipping INTERLIS enrichment")

    filled = finalize_types(metadata)
    log.info(
        "Finished reading %s: classes=%d, enums=%d, types from columns=%d",
        model_name,
        len(metadata.classes),
        len(metadata.enums),
        filled,
    )
    return metadata
