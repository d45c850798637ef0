"""Observer dispatch that never lets a listener failure leak into the caller."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable

log = logging.getLogger(__name__)


def notify(event: str, callback: Callable[[], None]) -> None:
    try:
        callback()
    except Exception:
        log.exception("Mapping observer failed while handling %s", event)
