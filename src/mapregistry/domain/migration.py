"""Paged queries over migration batches.

A page and its total are two independent reads run side by side. A write
landing between them can make the total disagree with the page for a moment;
batches are only queried once they have finished, so this is accepted.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from mapregistry.domain.errors import MappingNotFoundError, MappingValidationError
from mapregistry.domain.model import MappingProvenance, Page, PageRequest

if TYPE_CHECKING:
    from mapregistry.domain.model import MappingKind, MappingRecord
    from mapregistry.domain.registry import UnitOfWorkFactory

log = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 20
DEFAULT_MAX_PAGE_SIZE = 1000


class MigrationBatchQuery:
    def __init__(
        self,
        kind: MappingKind,
        unit_of_work_factory: UnitOfWorkFactory,
        *,
        default_page_size: int = DEFAULT_PAGE_SIZE,
        max_page_size: int = DEFAULT_MAX_PAGE_SIZE,
        average_rows_per_subject: int | None = None,
    ) -> None:
        self.kind = kind
        self._unit_of_work_factory = unit_of_work_factory
        self._default_page_size = default_page_size
        self._max_page_size = max_page_size
        self._average_rows_per_subject = average_rows_per_subject or kind.average_rows_per_subject

    def list_page(
        self,
        label: str,
        page_request: PageRequest | None = None,
    ) -> Page[MappingRecord]:
        """Return one page of the migrated mappings tagged with ``label``.

        Synchronous wrapper around :meth:`list_page_async`; do not call it from a
        running event loop.
        """

        return asyncio.run(self.list_page_async(label, page_request))

    async def list_page_async(
        self,
        label: str,
        page_request: PageRequest | None = None,
    ) -> Page[MappingRecord]:
        return await self._page(label, MappingProvenance.MIGRATED, page_request)

    def list_all(self, page_request: PageRequest | None = None) -> Page[MappingRecord]:
        return asyncio.run(self._page(None, None, page_request))

    async def _page(
        self,
        label: str | None,
        provenance: MappingProvenance | None,
        page_request: PageRequest | None,
    ) -> Page[MappingRecord]:
        request = page_request or PageRequest(size=self._default_page_size)
        request.validate_size(self._max_page_size)
        content, total = await asyncio.gather(
            asyncio.to_thread(self._scan, label, provenance, request),
            asyncio.to_thread(self._count, label, provenance),
        )
        log.debug(
            "%s page %s (size %s) for label=%s: %s of %s",
            self.kind.name,
            request.page,
            request.size,
            label,
            len(content),
            total,
        )
        return Page(
            content=tuple(content),
            total_elements=total,
            page=request.page,
            size=request.size,
        )

    def _scan(
        self,
        label: str | None,
        provenance: MappingProvenance | None,
        request: PageRequest,
    ) -> list[MappingRecord]:
        with self._unit_of_work_factory() as uow:
            return uow.repositories.mappings.scan_where(
                label=label,
                provenance=provenance,
                offset=request.offset,
                limit=request.size,
            )

    def _count(self, label: str | None, provenance: MappingProvenance | None) -> int:
        with self._unit_of_work_factory() as uow:
            return uow.repositories.mappings.count_where(label=label, provenance=provenance)

    def latest_migrated(self) -> MappingRecord:
        with self._unit_of_work_factory() as uow:
            record = uow.repositories.mappings.latest(provenance=MappingProvenance.MIGRATED)
        if record is None:
            raise MappingNotFoundError(self.kind.name, f"mapping_type={MappingProvenance.MIGRATED}")
        return record

    def count_grouped_by_subject(self, label: str) -> int:
        """Approximate number of subjects in a batch: matching rows // average rows per subject."""

        average = self._average_rows_per_subject
        if not self.kind.supports_subject or average is None:
            raise MappingValidationError(
                f"{self.kind.name} mappings have no average rows per subject configured"
            )
        total = self._count(label, MappingProvenance.MIGRATED)
        return total // average

    def count_grouped_by_subject_exact(self, label: str) -> int:
        if not self.kind.supports_subject:
            raise MappingValidationError(f"{self.kind.name} mappings do not reference a subject")
        with self._unit_of_work_factory() as uow:
            return uow.repositories.mappings.count_distinct_subjects(
                label=label,
                provenance=MappingProvenance.MIGRATED,
            )
