from __future__ import annotations

import logging

import pytest

from mapregistry.adapters.telemetry import LoggingMappingObserver
from mapregistry.domain.model import MappingProvenance, MappingRecord
from mapregistry.domain.model.kinds import CSRAS, TRANSACTIONS
from tests.helpers.mappings import make_csra


def _telemetry(record: logging.LogRecord) -> dict[str, object]:
    return record.__dict__["telemetry"]


def test_mapping_created_event(caplog: pytest.LogCaptureFixture) -> None:
    observer = LoggingMappingObserver()

    with caplog.at_level(logging.INFO, logger="mapregistry.adapters.telemetry"):
        observer.mapping_created(
            CSRAS,
            make_csra(
                1,
                2,
                dps_id="d-1",
                label="2024-01-01",
                provenance=MappingProvenance.MIGRATED,
            ),
        )

    [record] = caplog.records
    assert record.__dict__["event"] == "csra-mapping-created"
    assert _telemetry(record) == {
        "dps_csra_id": "d-1",
        "nomis_booking_id": 1,
        "nomis_sequence": 2,
        "offender_no": "A1234BC",
        "batchId": "2024-01-01",
        "mappingType": "MIGRATED",
    }
    assert "csra-mapping-created" in record.getMessage()


def test_subject_merged_event(caplog: pytest.LogCaptureFixture) -> None:
    observer = LoggingMappingObserver()

    with caplog.at_level(logging.INFO, logger="mapregistry.adapters.telemetry"):
        observer.subject_merged(CSRAS, "A", "B", 3)

    [record] = caplog.records
    assert record.__dict__["event"] == "csra-mapping-prisoner-merged"
    assert _telemetry(record) == {"count": 3, "oldOffenderNo": "A", "newOffenderNo": "B"}


def test_group_moved_event_lists_moved_records(caplog: pytest.LogCaptureFixture) -> None:
    observer = LoggingMappingObserver()
    moved = [make_csra(7, 1, dps_id="d-1"), make_csra(7, 2, dps_id="d-2")]

    with caplog.at_level(logging.INFO, logger="mapregistry.adapters.telemetry"):
        observer.group_moved(CSRAS, 7, "B", moved)

    [record] = caplog.records
    assert record.__dict__["event"] == "csra-mapping-booking-moved"
    assert _telemetry(record) == {
        "count": 2,
        "nomis_booking_id": 7,
        "newOffenderNo": "B",
        "dps_csra_id": "d-1,d-2",
    }


def test_observer_uses_injected_logger(caplog: pytest.LogCaptureFixture) -> None:
    observer = LoggingMappingObserver(logging.getLogger("custom.telemetry"))

    with caplog.at_level(logging.INFO, logger="custom.telemetry"):
        observer.mappings_deleted(CSRAS, 4, only_migrated=True)

    [record] = caplog.records
    assert record.__dict__["event"] == "csra-mappings-deleted"
    assert record.name == "custom.telemetry"
    assert _telemetry(record) == {"count": 4, "onlyMigrated": True}


def test_transaction_created_event_carries_booking(caplog: pytest.LogCaptureFixture) -> None:
    observer = LoggingMappingObserver()
    record = MappingRecord(
        primary_key="dps-t-1",
        secondary_key=(555,),
        subject_ref="A1234BC",
        group_ref=12,
    )

    with caplog.at_level(logging.INFO, logger="mapregistry.adapters.telemetry"):
        observer.mapping_created(TRANSACTIONS, record)

    [log_record] = caplog.records
    assert log_record.__dict__["event"] == "transactions-mapping-created"
    assert _telemetry(log_record)["nomis_transaction_id"] == 555
    assert _telemetry(log_record)["nomis_booking_id"] == 12
