from __future__ import annotations

import pytest

from mapregistry.domain.errors import MappingValidationError
from mapregistry.domain.model import Page, PageRequest


def test_page_request_defaults() -> None:
    request = PageRequest()

    assert (request.page, request.size, request.offset) == (0, 20, 0)


def test_page_request_offset() -> None:
    assert PageRequest(page=3, size=5).offset == 15


@pytest.mark.parametrize(("page", "size"), [(-1, 10), (0, 0)])
def test_page_request_rejects_invalid_values(page: int, size: int) -> None:
    with pytest.raises(MappingValidationError):
        PageRequest(page=page, size=size)


def test_page_request_enforces_maximum_size() -> None:
    with pytest.raises(MappingValidationError, match="<= 100"):
        PageRequest(size=101).validate_size(100)


def test_page_metadata() -> None:
    page = Page(content=("a", "b"), total_elements=5, page=1, size=2)

    assert page.total_pages == 3
    assert page.number_of_elements == 2
    assert not page.first
    assert not page.last
    assert not page.empty


def test_last_page_and_empty_result() -> None:
    last = Page(content=("e",), total_elements=5, page=2, size=2)
    empty: Page[str] = Page(total_elements=0)

    assert last.last
    assert empty.first
    assert empty.last
    assert empty.empty
    assert empty.total_pages == 0
