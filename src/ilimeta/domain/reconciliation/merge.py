"""Merge semantic metadata into the physical metadata read from the database.

The physical graph is the result: classes the semantic side knows but the
database does not are dropped. For each matched class the semantic side is
authoritative for documentation, kind and the abstract flag. Attribute
constraints the physical side already carries (mandatory, lengths, ranges) are
kept on conflict.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ilimeta.domain.model import AttributeEntity, ClassEntity, ModelMetadata

log = logging.getLogger(__name__)


@dataclass(slots=True)
class MergeResult:
    """Summary of what a merge matched and skipped."""

    matched_classes: int = 0
    skipped_classes: int = 0
    matched_attributes: int = 0
    unmatched_attributes: int = 0
    enums: int = 0


def merge(physical: ModelMetadata, semantic: ModelMetadata) -> MergeResult:
    """Enrich ``physical`` in place with what ``semantic`` knows."""

    result = MergeResult()
    for semantic_class in semantic.classes.values():
        target = physical.get_class(semantic_class.qualified_name)
        if target is None:
            log.debug("No table for %s, skipping", semantic_class.qualified_name)
            result.skipped_classes += 1
            continue
        result.matched_classes += 1
        _merge_class(target, semantic_class, result)

    for enum in semantic.enums.values():
        physical.add_enum(enum)
        result.enums += 1

    if semantic.ili_version:
        physical.ili_version = semantic.ili_version

    log.info(
        "Merged %d classes (%d without table), %d attributes (%d unmatched), %d enums",
        result.matched_classes,
        result.skipped_classes,
        result.matched_attributes,
        result.unmatched_attributes,
        result.enums,
    )
    return result


def _merge_class(target: ClassEntity, source: ClassEntity, result: MergeResult) -> None:
    target.documentation = source.documentation
    target.kind = source.kind
    target.abstract = source.abstract
    _merge_labels(target, source)

    for attribute in source.attributes.values():
        counterpart = _match_attribute(target, attribute)
        if counterpart is None:
            log.debug(
                "Attribute %s of %s has no column",
                attribute.qualified_name or attribute.name,
                target.qualified_name,
            )
            result.unmatched_attributes += 1
            continue
        _merge_attribute(counterpart, attribute)
        result.matched_attributes += 1


def _match_attribute(target: ClassEntity, attribute: AttributeEntity) -> AttributeEntity | None:
    if attribute.qualified_name is not None:
        for candidate in target.attributes.values():
            if candidate.qualified_name == attribute.qualified_name:
                return candidate
    return target.get_attribute(attribute.name)


def _merge_attribute(target: AttributeEntity, source: AttributeEntity) -> None:
    if source.documentation:
        target.documentation = source.documentation
    if source.semantic_type is not None:
        target.semantic_type = source.semantic_type
        target.semantic_type_name = source.semantic_type_name
        target.target_type = source.target_type
    if source.unit:
        target.unit = source.unit
    if source.enum_type:
        target.enum_type = source.enum_type
    if source.enum_values:
        target.enum_values = source.enum_values

    # physical values win
    if target.max_length is None:
        target.max_length = source.max_length
    if target.min_value is None:
        target.min_value = source.min_value
    if target.max_value is None:
        target.max_value = source.max_value
    if target.mandatory is None:
        target.mandatory = source.mandatory

    target.geometry = target.geometry or source.geometry
    _merge_labels(target, source)


def _merge_labels(
    target: ClassEntity | AttributeEntity, source: ClassEntity | AttributeEntity
) -> None:
    for language, label in source.labels.items():
        if language not in target.labels:
            target.set_label(language, label)
