"""Page request and page result value objects."""

from __future__ import annotations

from dataclasses import dataclass
from math import ceil
from typing import TYPE_CHECKING

from mapregistry.domain.errors import MappingValidationError

if TYPE_CHECKING:
    from collections.abc import Sequence


@dataclass(frozen=True, slots=True)
class PageRequest:
    page: int = 0
    size: int = 20

    def __post_init__(self) -> None:
        if self.page < 0:
            raise MappingValidationError(f"page must be >= 0, got {self.page}")
        if self.size < 1:
            raise MappingValidationError(f"page size must be >= 1, got {self.size}")

    @property
    def offset(self) -> int:
        return self.page * self.size

    def validate_size(self, max_size: int) -> PageRequest:
        if self.size > max_size:
            raise MappingValidationError(f"page size must be <= {max_size}, got {self.size}")
        return self


@dataclass(frozen=True, slots=True)
class Page[T]:
    """One page of results plus the total the page was drawn from."""

    content: Sequence[T] = ()
    total_elements: int = 0
    page: int = 0
    size: int = 20

    @property
    def total_pages(self) -> int:
        return ceil(self.total_elements / self.size) if self.size else 0

    @property
    def number_of_elements(self) -> int:
        return len(self.content)

    @property
    def first(self) -> bool:
        return self.page == 0

    @property
    def last(self) -> bool:
        return self.page + 1 >= self.total_pages

    @property
    def empty(self) -> bool:
        return not self.content
