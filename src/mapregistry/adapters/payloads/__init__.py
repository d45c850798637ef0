"""JSON payload adapter: validation schema and record translation."""

from __future__ import annotations

from .schema import MappingBatchPayload, MappingPayload
from .translator import (
    batch_to_records,
    page_to_dict,
    parse_batch,
    parse_mapping,
    payload_to_record,
    record_to_dict,
)

__all__ = [
    "MappingBatchPayload",
    "MappingPayload",
    "batch_to_records",
    "page_to_dict",
    "parse_batch",
    "parse_mapping",
    "payload_to_record",
    "record_to_dict",
]
