"""Translate between JSON payloads and mapping records.

Payloads may name their keys generically (``primaryKey``/``secondaryKey``) or by
the kind's own column names, e.g. ``dps_csra_id``, ``nomis_booking_id`` and
``nomis_sequence`` for CSRAs. A group column that is not part of the key maps
to ``groupRef``.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from logging import getLogger
from typing import TYPE_CHECKING, cast

from mapregistry.domain.model import MappingProvenance, MappingRecord

from .schema import MappingBatchPayload, MappingPayload

if TYPE_CHECKING:
    from mapregistry.domain.model import MappingKind, Page

log = getLogger(__name__)


def _with_generic_keys(kind: MappingKind, data: Mapping[str, object]) -> dict[str, object]:
    generic: dict[str, object] = dict(data)
    if "primaryKey" not in generic and kind.primary.name in generic:
        generic["primaryKey"] = generic.pop(kind.primary.name)
    if "secondaryKey" not in generic and all(name in generic for name in kind.secondary_names):
        generic["secondaryKey"] = [generic.pop(name) for name in kind.secondary_names]
    if (
        "subjectRef" not in generic
        and kind.subject_column is not None
        and kind.subject_column in generic
    ):
        generic["subjectRef"] = generic.pop(kind.subject_column)
    if (
        "groupRef" not in generic
        and kind.stores_group_separately
        and kind.group_column in generic
    ):
        generic["groupRef"] = generic.pop(kind.group_column)
    return generic


def parse_mapping(kind: MappingKind, data: Mapping[str, object]) -> MappingPayload:
    return MappingPayload.model_validate(_with_generic_keys(kind, data))


def _normalise_items(kind: MappingKind, items: object) -> object:
    if isinstance(items, Sequence) and not isinstance(items, str):
        return [
            _with_generic_keys(kind, cast(Mapping[str, object], item))
            if isinstance(item, Mapping)
            else item
            for item in cast(Sequence[object], items)
        ]
    return items


def parse_batch(kind: MappingKind, data: object) -> MappingBatchPayload:
    """Accept a single mapping, a JSON array of mappings, or a ``{"mappings": [...]}`` batch."""

    if isinstance(data, Mapping) and "mappings" in data:
        batch = dict(cast(Mapping[str, object], data))
        batch["mappings"] = _normalise_items(kind, batch["mappings"])
        return MappingBatchPayload.model_validate(batch)
    if isinstance(data, Mapping):
        return MappingBatchPayload(mappings=[parse_mapping(kind, cast(Mapping[str, object], data))])
    if isinstance(data, Sequence) and not isinstance(data, str):
        return MappingBatchPayload.model_validate({"mappings": _normalise_items(kind, data)})
    raise ValueError(f"Unsupported mapping payload: expected object or array, got {type(data)}")


def payload_to_record(
    kind: MappingKind,
    payload: MappingPayload,
    *,
    defaults: MappingBatchPayload | None = None,
) -> MappingRecord:
    subject_ref = payload.subject_ref or (defaults.subject_ref if defaults else None)
    label = payload.label or (defaults.label if defaults else None)
    provenance = (
        payload.mapping_type
        or (defaults.mapping_type if defaults else None)
        or MappingProvenance.TARGET_CREATED
    )
    return MappingRecord(
        primary_key=kind.primary_key(payload.primary_key),
        secondary_key=kind.secondary_key(*payload.secondary_key),
        provenance=provenance,
        subject_ref=subject_ref,
        label=label,
        group_ref=kind.coerce_group_ref(payload.group_ref),
        created_at=payload.when_created,
    )


def batch_to_records(kind: MappingKind, batch: MappingBatchPayload) -> list[MappingRecord]:
    records = [payload_to_record(kind, item, defaults=batch) for item in batch.mappings]
    log.debug("Parsed %s %s mapping payload(s)", len(records), kind.name)
    return records


def record_to_dict(kind: MappingKind, record: MappingRecord) -> dict[str, object]:
    data: dict[str, object] = {kind.primary.name: record.primary_key}
    data.update(zip(kind.secondary_names, record.secondary_key, strict=True))
    if kind.subject_column is not None:
        data[kind.subject_column] = record.subject_ref
    if kind.stores_group_separately:
        data[kind.group.name] = record.group_ref
    data["label"] = record.label
    data["mappingType"] = record.provenance.value
    data["whenCreated"] = record.created_at.isoformat() if record.created_at else None
    return data


def page_to_dict(kind: MappingKind, page: Page[MappingRecord]) -> dict[str, object]:
    return {
        "content": [record_to_dict(kind, record) for record in page.content],
        "totalElements": page.total_elements,
        "totalPages": page.total_pages,
        "number": page.page,
        "size": page.size,
        "numberOfElements": page.number_of_elements,
        "first": page.first,
        "last": page.last,
    }
