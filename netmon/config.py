import os
from dataclasses import dataclass, field

from .datatype import SortField

DEFAULT_INTERVAL = 2
DEFAULT_HISTORY_LEN = 60
DEFAULT_SORT = SortField.RATE_IN
NETTOP_ENV = "NETMON_NETTOP"


def parse_sort_field(name: str) -> SortField:
    """Map a ``--sort-by`` value to a SortField, falling back to rate-in."""
    try:
        return SortField(name.strip().lower())
    except ValueError:
        return DEFAULT_SORT


def sort_field_names() -> list[str]:
    return [f.value for f in SortField]


@dataclass
class Config:
    interval: int = DEFAULT_INTERVAL
    sort_field: SortField = DEFAULT_SORT
    history_len: int = DEFAULT_HISTORY_LEN
    nettop_command: str = field(default_factory=lambda: os.getenv(NETTOP_ENV, "nettop"))
    dns_timeout: float = 5.0
    dns_queue_size: int = 256
    mock: bool = False

    def __post_init__(self):
        if self.interval <= 0:
            raise ValueError(f"interval must be positive, got {self.interval}")
        if self.history_len <= 0:
            raise ValueError(f"history length must be positive, got {self.history_len}")
        if self.dns_timeout <= 0:
            raise ValueError(f"DNS timeout must be positive, got {self.dns_timeout}")
