"""SQLAlchemy table metadata for mapping records.

Every entity kind gets its own table, built from its :class:`MappingKind`: the
primary key column, a composite unique constraint over the secondary key
columns, optional indexed subject and group columns, indexed batch label,
provenance and creation time.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Final

from sqlalchemy import (
    BigInteger,
    Column,
    DateTime,
    Dialect,
    Enum,
    Integer,
    String,
    Table,
    TypeDecorator,
    UniqueConstraint,
    orm,
)

from mapregistry.domain.model import KINDS, MAX_LABEL_LENGTH, MappingProvenance

if TYPE_CHECKING:
    from collections.abc import Iterable

    from sqlalchemy.engine import Engine

    from mapregistry.domain.model import KeyColumn, MappingKind

log = logging.getLogger(__name__)

KEY_STRING_LENGTH: Final[int] = 64
SUBJECT_REF_LENGTH: Final[int] = 20

LABEL_COLUMN: Final[str] = "label"
MAPPING_TYPE_COLUMN: Final[str] = "mapping_type"
WHEN_CREATED_COLUMN: Final[str] = "when_created"


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


mapper_registry = orm.registry()
mapper_registry.metadata.naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_label)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _key_type(column: KeyColumn) -> BigInteger | String:
    if column.python_type is int:
        return BigInteger().with_variant(Integer(), "sqlite")
    return String(KEY_STRING_LENGTH)


def table_for(kind: MappingKind) -> Table:
    """Return the table for ``kind``, defining it on first use."""

    existing = mapper_registry.metadata.tables.get(kind.table_name)
    if existing is not None:
        return existing

    columns: list[Column[object]] = [
        Column(kind.primary.name, _key_type(kind.primary), primary_key=True, autoincrement=False),
    ]
    columns.extend(
        Column(column.name, _key_type(column), nullable=False) for column in kind.secondary
    )
    if kind.subject_column is not None:
        columns.append(
            Column(kind.subject_column, String(SUBJECT_REF_LENGTH), nullable=True, index=True)
        )
    if kind.stores_group_separately:
        columns.append(Column(kind.group.name, _key_type(kind.group), nullable=True, index=True))
    columns.extend(
        (
            Column(LABEL_COLUMN, String(MAX_LABEL_LENGTH), nullable=True, index=True),
            Column(
                MAPPING_TYPE_COLUMN,
                Enum(MappingProvenance, native_enum=False, length=20),
                nullable=False,
            ),
            Column(WHEN_CREATED_COLUMN, UTCDateTime(), nullable=False, default=_utcnow),
        )
    )
    return Table(
        kind.table_name,
        mapper_registry.metadata,
        *columns,
        UniqueConstraint(*kind.secondary_names),
    )


def create_all_tables(engine: Engine, kinds: Iterable[MappingKind] | None = None) -> None:
    for kind in KINDS.values() if kinds is None else kinds:
        table_for(kind)
    log.info("Creating all tables")
    mapper_registry.metadata.create_all(engine)
