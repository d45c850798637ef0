from __future__ import annotations

import os
from functools import partial
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine  # noqa: TC002
from sqlalchemy.orm import Session, sessionmaker

from mapregistry.adapters.sqlalchemy import create_all_tables
from mapregistry.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyMappingUnitOfWork,
    shutdown,
    startup,
)
from mapregistry.domain.model import KINDS

os.environ.setdefault("DATABASE_URI", "sqlite+pysqlite:///:memory:")

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator
    from pathlib import Path

    from mapregistry.domain.model import MappingKind


@pytest.fixture
def sqlite_engine(tmp_path: Path) -> Iterator[Engine]:
    # file-backed so that reads on worker threads see the same database
    engine = create_engine(
        f"sqlite+pysqlite:///{tmp_path / 'mappings.db'}",
        future=True,
        connect_args={"check_same_thread": False},
    )
    create_all_tables(engine, KINDS.values())
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def sqlite_session(sqlite_engine: Engine) -> Iterator[Session]:
    session_factory = sessionmaker(bind=sqlite_engine, future=True)
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def sqlite_unit_of_work(
    sqlite_engine: Engine,
) -> Iterator[Callable[[MappingKind], Callable[[], SqlAlchemyMappingUnitOfWork]]]:
    startup(engine=sqlite_engine, force=True)

    def factory_for(kind: MappingKind) -> Callable[[], SqlAlchemyMappingUnitOfWork]:
        return partial(SqlAlchemyMappingUnitOfWork, kind)

    try:
        yield factory_for
    finally:
        shutdown()
