"""Propagate a subject identity change across mapping rows."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from mapregistry.domain._notify import notify
from mapregistry.domain.errors import MappingValidationError
from mapregistry.domain.ports.observer import NullMappingObserver

if TYPE_CHECKING:
    from mapregistry.domain.model import MappingKind, MappingRecord
    from mapregistry.domain.ports import MappingObserver
    from mapregistry.domain.registry import UnitOfWorkFactory

log = logging.getLogger(__name__)


class IdentityMergeCoordinator:
    """Bulk rewrites of the subject reference.

    Neither operation checks whether a moved row now duplicates a row the new
    subject already had; such rows are moved as they are.
    """

    def __init__(
        self,
        kind: MappingKind,
        unit_of_work_factory: UnitOfWorkFactory,
        *,
        observer: MappingObserver | None = None,
    ) -> None:
        if not kind.supports_subject:
            raise MappingValidationError(f"{kind.name} mappings do not reference a subject")
        self.kind = kind
        self._unit_of_work_factory = unit_of_work_factory
        self._observer = observer or NullMappingObserver()

    def merge_by_subject(self, old_subject_ref: str, new_subject_ref: str) -> int:
        _require_ref(old_subject_ref, "old subject")
        _require_ref(new_subject_ref, "new subject")
        if old_subject_ref == new_subject_ref:
            return 0

        with self._unit_of_work_factory() as uow:
            updated = uow.repositories.mappings.update_subject_ref(
                old_subject_ref, new_subject_ref
            )
            uow.commit()

        count = len(updated)
        log.info(
            "Merged %s %s mapping(s) from %s to %s",
            count,
            self.kind.name,
            old_subject_ref,
            new_subject_ref,
        )
        notify(
            f"{self.kind.name} subject merge",
            lambda: self._observer.subject_merged(
                self.kind, old_subject_ref, new_subject_ref, count
            ),
        )
        return count

    def merge_by_group(self, group_key: object, new_subject_ref: str) -> list[MappingRecord]:
        """Move every row of one group (e.g. a booking) to ``new_subject_ref``."""

        _require_ref(new_subject_ref, "new subject")
        key = self.kind.group_key(group_key)

        with self._unit_of_work_factory() as uow:
            updated = uow.repositories.mappings.update_subject_ref_for_group(key, new_subject_ref)
            uow.commit()

        log.info(
            "Moved %s %s mapping(s) with %s=%s to %s",
            len(updated),
            self.kind.name,
            self.kind.group_column,
            key,
            new_subject_ref,
        )
        notify(
            f"{self.kind.name} group move",
            lambda: self._observer.group_moved(self.kind, key, new_subject_ref, updated),
        )
        return updated


def _require_ref(value: str, what: str) -> None:
    if not value or not value.strip():
        raise MappingValidationError(f"{what} reference must not be blank")
