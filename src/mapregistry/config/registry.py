"""Registry behaviour defaults (paging limits, replay timestamps, grouped counts)."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Final

from .env import env_flag, env_int
from .errors import ConfigurationError

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

DEFAULT_PAGE_SIZE: Final[int] = 20
DEFAULT_MAX_PAGE_SIZE: Final[int] = 1000

_AVERAGE_PREFIX: Final[str] = "MAPREGISTRY_"
_AVERAGE_SUFFIX: Final[str] = "_AVERAGE_PER_SUBJECT"


@dataclass(frozen=True, slots=True)
class RegistryConfig:
    default_page_size: int = DEFAULT_PAGE_SIZE
    max_page_size: int = DEFAULT_MAX_PAGE_SIZE
    accept_client_timestamps: bool = False
    average_rows_per_subject: Mapping[str, int] = field(default_factory=dict[str, int])

    def __post_init__(self) -> None:
        if self.default_page_size > self.max_page_size:
            raise ConfigurationError(
                f"Default page size {self.default_page_size} exceeds maximum "
                f"{self.max_page_size}"
            )

    def average_for(self, kind_name: str, default: int | None = None) -> int | None:
        return self.average_rows_per_subject.get(kind_name, default)


def _average_env_name(kind_name: str) -> str:
    return f"{_AVERAGE_PREFIX}{kind_name.upper().replace('-', '_')}{_AVERAGE_SUFFIX}"


def get_registry_config(kind_names: Iterable[str] = ()) -> RegistryConfig:
    """Load the registry configuration from ``MAPREGISTRY_*`` environment variables."""

    averages: dict[str, int] = {}
    for kind_name in kind_names:
        env_name = _average_env_name(kind_name)
        if os.getenv(env_name):
            averages[kind_name] = env_int(env_name, 1)

    return RegistryConfig(
        default_page_size=env_int("MAPREGISTRY_PAGE_SIZE", DEFAULT_PAGE_SIZE),
        max_page_size=env_int("MAPREGISTRY_MAX_PAGE_SIZE", DEFAULT_MAX_PAGE_SIZE),
        accept_client_timestamps=env_flag("MAPREGISTRY_ACCEPT_CLIENT_TIMESTAMPS"),
        average_rows_per_subject=averages,
    )
