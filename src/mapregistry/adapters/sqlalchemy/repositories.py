"""Mapping store backed by a SQLAlchemy session."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from sqlalchemy import and_, delete, distinct, func, insert, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from mapregistry.adapters.sqlalchemy.mappings import (
    LABEL_COLUMN,
    MAPPING_TYPE_COLUMN,
    WHEN_CREATED_COLUMN,
    table_for,
)
from mapregistry.domain.errors import MappingStoreError, MappingValidationError
from mapregistry.domain.model import InsertOutcome, MappingProvenance, MappingRecord, PageOrder

if TYPE_CHECKING:
    from collections.abc import Sequence

    from sqlalchemy import Column, ColumnElement, Executable, Result, RowMapping
    from sqlalchemy.orm import Session

    from mapregistry.domain.model import KeyComponent, MappingKind, SecondaryKey

log = logging.getLogger(__name__)


class SqlAlchemyMappingStore:
    """Store for one entity kind.

    Key uniqueness is left to the table's constraints. Each insert runs in its own
    savepoint, so a collision only undoes that statement before the store works
    out which key collided, secondary key first.
    """

    def __init__(self, session: Session, kind: MappingKind) -> None:
        self.session = session
        self._kind = kind
        self._table = table_for(kind)
        self._primary = self._table.c[kind.primary.name]
        self._secondary = tuple(self._table.c[name] for name in kind.secondary_names)
        self._subject = self._table.c[kind.subject_column] if kind.subject_column else None
        self._group = self._table.c[kind.group.name] if kind.stores_group_separately else None
        self._label = self._table.c[LABEL_COLUMN]
        self._mapping_type = self._table.c[MAPPING_TYPE_COLUMN]
        self._when_created = self._table.c[WHEN_CREATED_COLUMN]

    @property
    def kind(self) -> MappingKind:
        return self._kind

    # Lookups ----------------------------------------------------------------

    def get_by_primary(self, key: KeyComponent) -> MappingRecord | None:
        stmt = select(self._table).where(self._primary == key)
        row = self._execute(stmt).mappings().one_or_none()
        return self._to_record(row) if row is not None else None

    def get_by_secondary(self, key: SecondaryKey) -> MappingRecord | None:
        stmt = select(self._table).where(self._secondary_matches(key))
        row = self._execute(stmt).mappings().one_or_none()
        return self._to_record(row) if row is not None else None

    # Writes -----------------------------------------------------------------

    def insert(self, record: MappingRecord) -> InsertOutcome:
        try:
            with self.session.begin_nested():
                self.session.execute(insert(self._table).values(self._to_values(record)))
        except IntegrityError as exc:
            return self._identify_collision(record, exc)
        except SQLAlchemyError as exc:
            raise MappingStoreError(f"Failed to insert {self._kind.name} mapping") from exc
        return InsertOutcome.INSERTED

    def _identify_collision(self, record: MappingRecord, exc: IntegrityError) -> InsertOutcome:
        if self.get_by_secondary(record.secondary_key) is not None:
            return InsertOutcome.SECONDARY_KEY_COLLISION
        if self.get_by_primary(record.primary_key) is not None:
            return InsertOutcome.PRIMARY_KEY_COLLISION
        raise MappingStoreError(
            f"{self._kind.name} insert violated a constraint other than the mapping keys"
        ) from exc

    def delete_by_primary(self, key: KeyComponent) -> int:
        return self._rowcount(delete(self._table).where(self._primary == key))

    def delete_by_secondary(self, key: SecondaryKey) -> int:
        return self._rowcount(delete(self._table).where(self._secondary_matches(key)))

    def delete_all(self, *, only_migrated: bool = False) -> int:
        stmt = delete(self._table)
        if only_migrated:
            stmt = stmt.where(self._mapping_type == MappingProvenance.MIGRATED)
        return self._rowcount(stmt)

    # Batch queries ----------------------------------------------------------

    def count_where(
        self,
        *,
        label: str | None = None,
        provenance: MappingProvenance | None = None,
    ) -> int:
        stmt = (
            select(func.count())
            .select_from(self._table)
            .where(*self._filters(label, provenance))
        )
        return int(self._execute(stmt).scalar_one())

    def scan_where(
        self,
        *,
        label: str | None = None,
        provenance: MappingProvenance | None = None,
        offset: int = 0,
        limit: int | None = None,
    ) -> list[MappingRecord]:
        stmt = (
            select(self._table)
            .where(*self._filters(label, provenance))
            .order_by(*self._page_order())
            .offset(offset)
            .limit(limit)
        )
        return [self._to_record(row) for row in self._execute(stmt).mappings()]

    def count_distinct_subjects(
        self,
        *,
        label: str | None = None,
        provenance: MappingProvenance | None = None,
    ) -> int:
        subject = self._require_subject()
        stmt = select(func.count(distinct(subject))).where(*self._filters(label, provenance))
        return int(self._execute(stmt).scalar_one())

    def latest(self, *, provenance: MappingProvenance) -> MappingRecord | None:
        stmt = (
            select(self._table)
            .where(self._mapping_type == provenance)
            .order_by(self._when_created.desc(), self._primary.desc())
            .limit(1)
        )
        row = self._execute(stmt).mappings().one_or_none()
        return self._to_record(row) if row is not None else None

    # Subjects ---------------------------------------------------------------

    def scan_by_subject(self, subject_ref: str) -> list[MappingRecord]:
        subject = self._require_subject()
        return self._select_ordered(subject == subject_ref)

    def update_subject_ref(
        self,
        old_subject_ref: str,
        new_subject_ref: str,
    ) -> list[MappingRecord]:
        subject = self._require_subject()
        return self._rewrite_subject(subject == old_subject_ref, new_subject_ref)

    def update_subject_ref_for_group(
        self,
        group_key: KeyComponent,
        new_subject_ref: str,
    ) -> list[MappingRecord]:
        group = self._table.c[self._kind.group.name]
        return self._rewrite_subject(group == group_key, new_subject_ref)

    def _rewrite_subject(
        self,
        criterion: ColumnElement[bool],
        new_subject_ref: str,
    ) -> list[MappingRecord]:
        subject = self._require_subject()
        keys = list(self._execute(select(self._primary).where(criterion)).scalars())
        if not keys:
            return []
        self._execute(
            update(self._table)
            .where(self._primary.in_(keys))
            .values({subject.name: new_subject_ref})
        )
        return self._select_ordered(self._primary.in_(keys))

    # Helpers ----------------------------------------------------------------

    def _execute(self, stmt: Executable) -> Result[Any]:
        try:
            return self.session.execute(stmt)
        except SQLAlchemyError as exc:
            raise MappingStoreError(f"{self._kind.name} mapping store failed: {exc}") from exc

    def _rowcount(self, stmt: Executable) -> int:
        result = self._execute(stmt)
        return max(getattr(result, "rowcount", 0), 0)

    def _select_ordered(self, criterion: ColumnElement[bool]) -> list[MappingRecord]:
        stmt = select(self._table).where(criterion).order_by(*self._secondary, self._primary)
        return [self._to_record(row) for row in self._execute(stmt).mappings()]

    def _secondary_matches(self, key: SecondaryKey) -> ColumnElement[bool]:
        if len(key) != len(self._secondary):
            raise MappingValidationError(
                f"{self._kind.name} secondary key needs {len(self._secondary)} component(s)"
            )
        return and_(*(column == value for column, value in zip(self._secondary, key, strict=True)))

    def _filters(
        self,
        label: str | None,
        provenance: MappingProvenance | None,
    ) -> list[ColumnElement[bool]]:
        filters: list[ColumnElement[bool]] = []
        if label is not None:
            filters.append(self._label == label)
        if provenance is not None:
            filters.append(self._mapping_type == provenance)
        return filters

    def _page_order(self) -> Sequence[ColumnElement[Any]]:
        if self._kind.page_order is PageOrder.PRIMARY_ASC:
            return (self._primary.asc(),)
        return (self._label.desc(), self._primary.asc())

    def _require_subject(self) -> Column[Any]:
        if self._subject is None:
            raise MappingValidationError(f"{self._kind.name} mappings do not reference a subject")
        return self._subject

    def _to_values(self, record: MappingRecord) -> dict[str, object]:
        values: dict[str, object] = {
            self._primary.name: record.primary_key,
            LABEL_COLUMN: record.label,
            MAPPING_TYPE_COLUMN: record.provenance,
        }
        values.update(
            (column.name, value)
            for column, value in zip(self._secondary, record.secondary_key, strict=True)
        )
        if self._subject is not None:
            values[self._subject.name] = record.subject_ref
        if self._group is not None:
            values[self._group.name] = record.group_ref
        if record.created_at is not None:
            values[WHEN_CREATED_COLUMN] = record.created_at
        return values

    def _to_record(self, row: RowMapping) -> MappingRecord:
        return MappingRecord(
            primary_key=row[self._primary.name],
            secondary_key=tuple(row[column.name] for column in self._secondary),
            provenance=row[MAPPING_TYPE_COLUMN],
            subject_ref=row[self._subject.name] if self._subject is not None else None,
            label=row[LABEL_COLUMN],
            group_ref=row[self._group.name] if self._group is not None else None,
            created_at=row[WHEN_CREATED_COLUMN],
        )

