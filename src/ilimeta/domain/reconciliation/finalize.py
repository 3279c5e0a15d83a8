"""Fill target types the reconciled sources left open."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ilimeta.domain.type_inference import infer_physical_type

if TYPE_CHECKING:
    from ilimeta.domain.model import ModelMetadata

log = logging.getLogger(__name__)


def finalize_types(metadata: ModelMetadata) -> int:
    """Derive missing target types from the column types; returns how many were set.

    Attributes that already carry a target type are left alone, so a second call
    changes nothing.
    """

    filled = 0
    for entity, attribute in metadata.iter_attributes():
        if attribute.target_type is not None:
            continue
        attribute.target_type = infer_physical_type(attribute.db_type)
        log.debug(
            "%s.%s: %s -> %s",
            entity.qualified_name,
            attribute.name,
            attribute.db_type,
            attribute.target_type,
        )
        filled += 1
    return filled
