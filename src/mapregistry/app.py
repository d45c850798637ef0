"""Application orchestration entry points."""

from __future__ import annotations

from dataclasses import dataclass, replace
from functools import partial
from logging import getLogger
from typing import TYPE_CHECKING

from mapregistry.adapters.payloads import batch_to_records, parse_batch
from mapregistry.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyMappingUnitOfWork,
    is_started,
    startup,
)
from mapregistry.adapters.telemetry import LoggingMappingObserver
from mapregistry.config import get_registry_config
from mapregistry.domain.errors import MappingConflictError, MappingStoreError
from mapregistry.domain.merge import IdentityMergeCoordinator
from mapregistry.domain.migration import MigrationBatchQuery
from mapregistry.domain.model import KINDS, InsertOutcome, MappingProvenance, get_kind
from mapregistry.domain.registry import MappingRegistry

if TYPE_CHECKING:
    from collections.abc import Iterable

    from mapregistry.config import RegistryConfig
    from mapregistry.domain.model import CreateOutcome, MappingKind, MappingRecord
    from mapregistry.domain.ports import MappingObserver
    from mapregistry.domain.registry import UnitOfWorkFactory


log = getLogger(__name__)


@dataclass(frozen=True, slots=True)
class RegistryServices:
    """Registry, migration query and merge coordinator wired for one kind."""

    kind: MappingKind
    registry: MappingRegistry
    migrations: MigrationBatchQuery
    merges: IdentityMergeCoordinator | None
    unit_of_work_factory: UnitOfWorkFactory
    config: RegistryConfig


def _resolve_kind(kind: MappingKind | str) -> MappingKind:
    return get_kind(kind) if isinstance(kind, str) else kind


def default_unit_of_work_factory(kind: MappingKind) -> UnitOfWorkFactory:
    if not is_started():
        startup()
    return partial(SqlAlchemyMappingUnitOfWork, kind)


def build_services(
    kind: MappingKind | str,
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    observer: MappingObserver | None = None,
    config: RegistryConfig | None = None,
) -> RegistryServices:
    resolved = _resolve_kind(kind)
    effective_config = config or get_registry_config(KINDS)
    effective_uow = unit_of_work_factory or default_unit_of_work_factory(resolved)
    effective_observer = observer or LoggingMappingObserver()

    return RegistryServices(
        kind=resolved,
        registry=MappingRegistry(
            resolved,
            effective_uow,
            observer=effective_observer,
            accept_client_timestamps=effective_config.accept_client_timestamps,
        ),
        migrations=MigrationBatchQuery(
            resolved,
            effective_uow,
            default_page_size=effective_config.default_page_size,
            max_page_size=effective_config.max_page_size,
            average_rows_per_subject=effective_config.average_for(resolved.name),
        ),
        merges=(
            IdentityMergeCoordinator(resolved, effective_uow, observer=effective_observer)
            if resolved.supports_subject
            else None
        ),
        unit_of_work_factory=effective_uow,
        config=effective_config,
    )


def create_mappings(services: RegistryServices, payload: object) -> list[CreateOutcome]:
    """Validate a JSON payload (object, array or batch) and create every mapping in it."""

    records = batch_to_records(services.kind, parse_batch(services.kind, payload))
    log.info("Creating %s %s mapping(s)", len(records), services.kind.name)
    return services.registry.create_batch(records)


def create_mappings_for_subject(
    services: RegistryServices,
    subject_ref: str,
    records: Iterable[MappingRecord],
    *,
    label: str | None = None,
    provenance: MappingProvenance = MappingProvenance.MIGRATED,
) -> list[CreateOutcome]:
    """Create a batch for one subject; every record gets the same label and provenance."""

    stamped = [
        replace(
            record,
            subject_ref=subject_ref,
            label=label or record.label,
            provenance=provenance,
        )
        for record in records
    ]
    log.info(
        "Creating %s %s mapping(s) for %s (label=%s)",
        len(stamped),
        services.kind.name,
        subject_ref,
        label,
    )
    return services.registry.create_batch(stamped)


def replace_mappings(services: RegistryServices, records: Iterable[MappingRecord]) -> int:
    """Delete any rows holding the records' secondary keys, then insert the records.

    Runs in one unit of work: a collision on a primary key held by an unrelated row
    aborts the whole replacement with :class:`MappingConflictError`.
    """

    kind = services.kind
    prepared = [
        replace(
            record,
            primary_key=kind.primary_key(record.primary_key),
            secondary_key=kind.secondary_key(*record.secondary_key),
            group_ref=kind.coerce_group_ref(record.group_ref),
            created_at=None,
        )
        for record in records
    ]
    with services.unit_of_work_factory() as uow:
        store = uow.repositories.mappings
        removed = sum(store.delete_by_secondary(record.secondary_key) for record in prepared)
        for record in prepared:
            outcome = store.insert(record)
            if outcome is InsertOutcome.INSERTED:
                continue
            existing = (
                store.get_by_primary(record.primary_key)
                if outcome is InsertOutcome.PRIMARY_KEY_COLLISION
                else store.get_by_secondary(record.secondary_key)
            )
            if existing is None:
                raise MappingStoreError(f"{kind.name} replacement collided on {outcome.value}")
            raise MappingConflictError(kind.name, existing=existing, duplicate=record)
        uow.commit()

    log.info(
        "Replaced %s %s mapping(s) (%s previous row(s) removed)",
        len(prepared),
        kind.name,
        removed,
    )
    return len(prepared)
