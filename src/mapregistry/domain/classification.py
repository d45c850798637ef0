"""Duplicate classification for colliding creation attempts."""

from __future__ import annotations

from typing import TYPE_CHECKING

from mapregistry.domain.model import DuplicateClassification

if TYPE_CHECKING:
    from mapregistry.domain.model import MappingRecord


def classify_duplicate(proposed: MappingRecord, existing: MappingRecord) -> DuplicateClassification:
    """Compare a proposed record with an existing one found through either key.

    Only the two keys matter. Both equal means the same mapping was submitted
    twice; exactly one equal means two mappings are fighting over a key.
    """

    same_primary = proposed.primary_key == existing.primary_key
    same_secondary = proposed.secondary_key == existing.secondary_key
    if same_primary and same_secondary:
        return DuplicateClassification.BENIGN
    if same_primary or same_secondary:
        return DuplicateClassification.CONFLICT
    return DuplicateClassification.OK
