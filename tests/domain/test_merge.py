from __future__ import annotations

import logging

import pytest

from mapregistry.domain.errors import MappingValidationError
from mapregistry.domain.merge import IdentityMergeCoordinator
from mapregistry.domain.model import MappingRecord
from mapregistry.domain.model.kinds import CSRAS, INCIDENTS, TRANSACTIONS
from mapregistry.domain.registry import MappingRegistry
from tests.helpers.mappings import (
    ExplodingObserver,
    RecordingObserver,
    in_memory_factory,
    make_csra,
)


def _seeded():
    factory = in_memory_factory(CSRAS)
    MappingRegistry(CSRAS, factory).create_batch(
        [
            make_csra(1, 1, offender_no="A"),
            make_csra(1, 2, offender_no="A"),
            make_csra(2, 1, offender_no="A"),
            make_csra(3, 1, offender_no="C"),
        ]
    )
    return factory


def test_merge_by_subject_moves_every_row() -> None:
    factory = _seeded()
    observer = RecordingObserver()
    coordinator = IdentityMergeCoordinator(CSRAS, factory, observer=observer)

    assert coordinator.merge_by_subject("A", "B") == 3

    subjects = [row.subject_ref for row in factory.store.rows.values()]
    assert subjects.count("A") == 0
    assert subjects.count("B") == 3
    assert subjects.count("C") == 1
    assert observer.events == [("merged", {"kind": "csras", "old": "A", "new": "B", "count": 3})]


def test_merge_by_subject_again_is_a_no_op() -> None:
    factory = _seeded()
    coordinator = IdentityMergeCoordinator(CSRAS, factory)
    coordinator.merge_by_subject("A", "B")

    assert coordinator.merge_by_subject("A", "B") == 0


def test_merge_for_unknown_subject_succeeds_with_zero() -> None:
    coordinator = IdentityMergeCoordinator(CSRAS, _seeded())

    assert coordinator.merge_by_subject("nobody", "B") == 0


def test_merge_onto_same_subject_changes_nothing() -> None:
    factory = _seeded()
    coordinator = IdentityMergeCoordinator(CSRAS, factory)
    commits = factory.commits

    assert coordinator.merge_by_subject("A", "A") == 0
    assert factory.commits == commits


def test_merge_rows_already_on_new_subject_are_kept_side_by_side() -> None:
    factory = _seeded()
    coordinator = IdentityMergeCoordinator(CSRAS, factory)

    coordinator.merge_by_subject("A", "C")

    assert len(MappingRegistry(CSRAS, factory).get_all_for_subject("C")) == 4


def test_merge_by_group_returns_moved_records() -> None:
    factory = _seeded()
    observer = RecordingObserver()
    coordinator = IdentityMergeCoordinator(CSRAS, factory, observer=observer)

    moved = coordinator.merge_by_group("1", "B")

    assert [record.secondary_key for record in moved] == [(1, 1), (1, 2)]
    assert all(record.subject_ref == "B" for record in moved)
    assert factory.store.get_by_secondary((2, 1)).subject_ref == "A"
    name, details = observer.events[0]
    assert name == "moved"
    assert details["group"] == 1
    assert details["records"] == moved


def test_merge_by_group_for_empty_group_returns_nothing() -> None:
    coordinator = IdentityMergeCoordinator(CSRAS, _seeded())

    assert coordinator.merge_by_group(999, "B") == []


def test_merge_by_group_uses_separate_group_column() -> None:
    factory = in_memory_factory(TRANSACTIONS)
    registry = MappingRegistry(TRANSACTIONS, factory)
    for transaction_id, booking in ((10, 1), (11, 1), (12, 2)):
        registry.create(
            MappingRecord(
                primary_key=f"t-{transaction_id}",
                secondary_key=(transaction_id,),
                subject_ref="A",
                group_ref=booking,
            )
        )
    coordinator = IdentityMergeCoordinator(TRANSACTIONS, factory)

    moved = coordinator.merge_by_group(1, "B")

    assert [record.primary_key for record in moved] == ["t-10", "t-11"]
    assert factory.store.get_by_secondary((12,)).subject_ref == "A"


@pytest.mark.parametrize(("old", "new"), [("", "B"), ("A", "  ")])
def test_blank_subject_references_are_rejected(old: str, new: str) -> None:
    coordinator = IdentityMergeCoordinator(CSRAS, _seeded())

    with pytest.raises(MappingValidationError, match="must not be blank"):
        coordinator.merge_by_subject(old, new)


def test_kinds_without_subjects_cannot_be_merged() -> None:
    with pytest.raises(MappingValidationError, match="do not reference a subject"):
        IdentityMergeCoordinator(INCIDENTS, in_memory_factory(INCIDENTS))


def test_observer_failure_does_not_undo_the_merge(caplog: pytest.LogCaptureFixture) -> None:
    factory = _seeded()
    coordinator = IdentityMergeCoordinator(CSRAS, factory, observer=ExplodingObserver())

    with caplog.at_level(logging.ERROR):
        count = coordinator.merge_by_subject("A", "B")

    assert count == 3
    assert len(MappingRegistry(CSRAS, factory).get_all_for_subject("B")) == 3
    assert "Mapping observer failed" in caplog.text
