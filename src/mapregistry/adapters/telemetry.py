"""Observer that records registry events as structured log records."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from mapregistry.domain.model import KeyComponent, MappingKind, MappingRecord

log = logging.getLogger(__name__)


class LoggingMappingObserver:
    """Emit one INFO record per event; properties travel in ``extra["telemetry"]``."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._log = logger or log

    def _emit(self, event: str, properties: Mapping[str, object]) -> None:
        self._log.info(
            "%s %s",
            event,
            " ".join(f"{key}={value}" for key, value in properties.items()),
            extra={"event": event, "telemetry": dict(properties)},
        )

    def mapping_created(self, kind: MappingKind, record: MappingRecord) -> None:
        properties: dict[str, object] = {kind.primary.name: record.primary_key}
        properties.update(zip(kind.secondary_names, record.secondary_key, strict=True))
        if kind.subject_column is not None:
            properties[kind.subject_column] = record.subject_ref
        if kind.stores_group_separately:
            properties[kind.group.name] = record.group_ref
        properties["batchId"] = record.label
        properties["mappingType"] = record.provenance.value
        self._emit(f"{kind.event_name}-mapping-created", properties)

    def mappings_deleted(self, kind: MappingKind, count: int, *, only_migrated: bool) -> None:
        self._emit(
            f"{kind.event_name}-mappings-deleted",
            {"count": count, "onlyMigrated": only_migrated},
        )

    def subject_merged(
        self,
        kind: MappingKind,
        old_subject_ref: str,
        new_subject_ref: str,
        count: int,
    ) -> None:
        self._emit(
            f"{kind.event_name}-mapping-prisoner-merged",
            {"count": count, "oldOffenderNo": old_subject_ref, "newOffenderNo": new_subject_ref},
        )

    def group_moved(
        self,
        kind: MappingKind,
        group_key: KeyComponent,
        new_subject_ref: str,
        records: Sequence[MappingRecord],
    ) -> None:
        self._emit(
            f"{kind.event_name}-mapping-booking-moved",
            {
                "count": len(records),
                kind.group_column or "group": group_key,
                "newOffenderNo": new_subject_ref,
                kind.primary.name: ",".join(str(record.primary_key) for record in records),
            },
        )


if TYPE_CHECKING:
    from mapregistry.domain.ports import MappingObserver

    _observer_check: MappingObserver = LoggingMappingObserver()
