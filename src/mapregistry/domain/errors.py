"""Error taxonomy raised by the mapping registry.

Each error carries enough context for a transport layer to build a response:
``status`` is the HTTP status a request handler should answer with.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, ClassVar

if TYPE_CHECKING:
    from collections.abc import Sequence

    from mapregistry.domain.model.mapping import MappingRecord


class MappingRegistryError(RuntimeError):
    """Base class for registry failures."""

    status: ClassVar[int] = 500


class MappingNotFoundError(MappingRegistryError):
    status: ClassVar[int] = 404

    def __init__(self, kind: str, key: str) -> None:
        super().__init__(f"{kind} mapping with {key} not found")
        self.kind = kind
        self.key = key


class MappingConflictError(MappingRegistryError):
    """Two different mappings compete for the same key."""

    status: ClassVar[int] = 409
    error_code: ClassVar[int] = 1409

    def __init__(self, kind: str, existing: MappingRecord, duplicate: MappingRecord) -> None:
        super().__init__(
            f"{kind} mapping already exists.\n"
            f"Existing mapping: {existing}\n"
            f"Duplicate mapping: {duplicate}"
        )
        self.kind = kind
        self.existing = existing
        self.duplicate = duplicate

    def to_dict(self) -> dict[str, object]:
        return {
            "status": self.status,
            "errorCode": self.error_code,
            "userMessage": f"Conflict: {self}",
            "moreInfo": {
                "existing": self.existing.as_dict(),
                "duplicate": self.duplicate.as_dict(),
            },
        }


class MappingValidationError(MappingRegistryError, ValueError):
    """Malformed input rejected before it reaches the store."""

    status: ClassVar[int] = 400


class MappingStoreError(MappingRegistryError):
    """The backing store failed or is unreachable."""

    status: ClassVar[int] = 503


class UnknownMappingKindError(MappingRegistryError, LookupError):
    status: ClassVar[int] = 404

    def __init__(self, name: str, known: Sequence[str] = ()) -> None:
        message = f"Unknown mapping kind: {name}"
        if known:
            message += f" (known: {', '.join(sorted(known))})"
        super().__init__(message)
        self.name = name
