"""Create, read and delete mapping records for one entity kind.

Creation is insert-then-classify: the store's unique constraints decide who wins
a race, and only a losing insert pays for a second read to find out whether it
lost to an identical submission (benign) or to a different mapping (conflict).
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import replace
from typing import TYPE_CHECKING

from mapregistry.domain._notify import notify
from mapregistry.domain.classification import classify_duplicate
from mapregistry.domain.errors import (
    MappingConflictError,
    MappingNotFoundError,
    MappingStoreError,
    MappingValidationError,
)
from mapregistry.domain.model import (
    CreateOutcome,
    DuplicateClassification,
    InsertOutcome,
)
from mapregistry.domain.ports.observer import NullMappingObserver
from mapregistry.domain.ports.unit_of_work import MappingUnitOfWork

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from mapregistry.domain.model import MappingKind, MappingRecord
    from mapregistry.domain.ports import MappingObserver, MappingStore

UnitOfWorkFactory = Callable[[], MappingUnitOfWork]

log = logging.getLogger(__name__)


class MappingRegistry:
    """Registry operations for a single :class:`MappingKind`."""

    def __init__(
        self,
        kind: MappingKind,
        unit_of_work_factory: UnitOfWorkFactory,
        *,
        observer: MappingObserver | None = None,
        accept_client_timestamps: bool = False,
    ) -> None:
        self.kind = kind
        self._unit_of_work_factory = unit_of_work_factory
        self._observer = observer or NullMappingObserver()
        self._accept_client_timestamps = accept_client_timestamps

    # Creation ---------------------------------------------------------------

    def create(self, record: MappingRecord) -> CreateOutcome:
        """Insert ``record`` unless an identical mapping already exists.

        Raises :class:`MappingConflictError` when a different mapping holds one of
        the record's keys. Never retries.
        """

        proposed = self._prepare(record)
        with self._unit_of_work_factory() as uow:
            store = uow.repositories.mappings
            outcome = store.insert(proposed)
            if outcome is InsertOutcome.INSERTED:
                uow.commit()
                created = store.get_by_primary(proposed.primary_key) or proposed
            else:
                existing = self._fetch_collided(store, proposed, outcome)

        if outcome is InsertOutcome.INSERTED:
            log.info(
                "Created %s mapping %s <-> %s",
                self.kind.name,
                self.kind.describe_primary(created.primary_key),
                self.kind.describe_secondary(created.secondary_key),
            )
            notify(
                f"{self.kind.name} created",
                lambda: self._observer.mapping_created(self.kind, created),
            )
            return CreateOutcome.CREATED

        if classify_duplicate(proposed, existing) is DuplicateClassification.BENIGN:
            log.debug(
                "Not creating. All OK: %s mapping %s already exists",
                self.kind.name,
                self.kind.describe_primary(proposed.primary_key),
            )
            return CreateOutcome.NO_OP

        log.warning(
            "Conflicting %s mapping rejected: existing=%s duplicate=%s",
            self.kind.name,
            existing,
            proposed,
        )
        raise MappingConflictError(self.kind.name, existing=existing, duplicate=proposed)

    def create_batch(self, records: Iterable[MappingRecord]) -> list[CreateOutcome]:
        """Create each record in turn; the first conflict stops the batch."""

        return [self.create(record) for record in records]

    def _prepare(self, record: MappingRecord) -> MappingRecord:
        if record.subject_ref is not None and not self.kind.supports_subject:
            raise MappingValidationError(f"{self.kind.name} mappings do not reference a subject")
        prepared = replace(
            record,
            primary_key=self.kind.primary_key(record.primary_key),
            secondary_key=self.kind.secondary_key(*record.secondary_key),
            group_ref=self.kind.coerce_group_ref(record.group_ref),
        )
        if prepared.created_at is not None and not self._accept_client_timestamps:
            prepared = prepared.with_created_at(None)
        return prepared

    def _fetch_collided(
        self,
        store: MappingStore,
        proposed: MappingRecord,
        outcome: InsertOutcome,
    ) -> MappingRecord:
        if outcome is InsertOutcome.PRIMARY_KEY_COLLISION:
            existing = store.get_by_primary(proposed.primary_key)
        else:
            existing = store.get_by_secondary(proposed.secondary_key)
        if existing is None:
            raise MappingStoreError(
                f"{self.kind.name} insert collided on {outcome.value} "
                "but the colliding mapping could not be read back"
            )
        return existing

    # Reads ------------------------------------------------------------------

    def get_by_primary(self, value: object) -> MappingRecord:
        key = self.kind.primary_key(value)
        with self._unit_of_work_factory() as uow:
            record = uow.repositories.mappings.get_by_primary(key)
        if record is None:
            raise MappingNotFoundError(self.kind.name, self.kind.describe_primary(key))
        return record

    def get_by_secondary(self, *components: object) -> MappingRecord:
        key = self.kind.secondary_key(*components)
        with self._unit_of_work_factory() as uow:
            record = uow.repositories.mappings.get_by_secondary(key)
        if record is None:
            raise MappingNotFoundError(self.kind.name, self.kind.describe_secondary(key))
        return record

    def get_by_secondary_keys(self, keys: Iterable[Sequence[object]]) -> list[MappingRecord]:
        """Resolve every key or fail; partial results are never returned."""

        wanted = [self.kind.secondary_key(*key) for key in keys]
        with self._unit_of_work_factory() as uow:
            store = uow.repositories.mappings
            found = [(key, store.get_by_secondary(key)) for key in wanted]
        missing = [key for key, record in found if record is None]
        if missing:
            described = "; ".join(self.kind.describe_secondary(key) for key in missing)
            raise MappingNotFoundError(self.kind.name, described)
        return [record for _, record in found if record is not None]

    def get_all_for_subject(self, subject_ref: str) -> list[MappingRecord]:
        self._require_subject()
        with self._unit_of_work_factory() as uow:
            return uow.repositories.mappings.scan_by_subject(subject_ref)

    def find_existing_similar_to(self, record: MappingRecord) -> MappingRecord | None:
        """Return the row sharing ``record``'s secondary key, else its primary key."""

        with self._unit_of_work_factory() as uow:
            store = uow.repositories.mappings
            existing = store.get_by_secondary(self.kind.secondary_key(*record.secondary_key))
            if existing is None:
                existing = store.get_by_primary(self.kind.primary_key(record.primary_key))
        return existing

    # Deletion ---------------------------------------------------------------

    def delete_by_primary(self, value: object) -> None:
        key = self.kind.primary_key(value)
        with self._unit_of_work_factory() as uow:
            deleted = uow.repositories.mappings.delete_by_primary(key)
            uow.commit()
        log.info(
            "Deleted %s %s mapping(s) with %s",
            deleted,
            self.kind.name,
            self.kind.describe_primary(key),
        )

    def delete_by_secondary(self, *components: object) -> None:
        key = self.kind.secondary_key(*components)
        with self._unit_of_work_factory() as uow:
            deleted = uow.repositories.mappings.delete_by_secondary(key)
            uow.commit()
        log.info(
            "Deleted %s %s mapping(s) with %s",
            deleted,
            self.kind.name,
            self.kind.describe_secondary(key),
        )

    def delete_all(self, *, only_migrated: bool = False) -> int:
        with self._unit_of_work_factory() as uow:
            deleted = uow.repositories.mappings.delete_all(only_migrated=only_migrated)
            uow.commit()
        log.info(
            "Deleted %s %s mapping(s) (only_migrated=%s)",
            deleted,
            self.kind.name,
            only_migrated,
        )
        notify(
            f"{self.kind.name} deleted",
            lambda: self._observer.mappings_deleted(
                self.kind, deleted, only_migrated=only_migrated
            ),
        )
        return deleted

    def _require_subject(self) -> None:
        if not self.kind.supports_subject:
            raise MappingValidationError(f"{self.kind.name} mappings do not reference a subject")

