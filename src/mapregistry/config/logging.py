"""Root logger setup for the mapregistry CLI.

The level comes from the caller, else ``MAPREGISTRY_LOG_LEVEL`` (a level name
such as ``DEBUG`` or a number), else INFO. Telemetry events from
:mod:`mapregistry.adapters.telemetry` go through the same handlers.
"""

from __future__ import annotations

import logging
import os
from typing import Final

from .errors import ConfigurationError

LOG_LEVEL_VAR: Final[str] = "MAPREGISTRY_LOG_LEVEL"
LOG_FORMAT: Final[str] = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def resolve_log_level(level: int | str | None = None) -> int:
    raw = level if level is not None else os.getenv(LOG_LEVEL_VAR)
    if isinstance(raw, int):
        return raw
    if raw is None or not raw.strip():
        return logging.INFO
    name = raw.strip().upper()
    if name.isdigit():
        return int(name)
    resolved = logging.getLevelNamesMapping().get(name)
    if resolved is None:
        raise ConfigurationError(f"{LOG_LEVEL_VAR} must name a logging level, got {raw!r}")
    return resolved


def configure_logging(*, level: int | str | None = None, force: bool = False) -> int:
    """Initialise the root logger and return the level it was set to.

    Pass ``force=True`` to replace handlers installed earlier, e.g. by pytest.
    """

    resolved = resolve_log_level(level)
    logging.basicConfig(
        level=resolved,
        format=LOG_FORMAT,
        datefmt="%H:%M:%S",
        force=force,
    )
    return resolved
