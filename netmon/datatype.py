import enum
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple


@dataclass(frozen=True)
class Protocol:
    kind: str
    tag: str = ""

    def __str__(self) -> str:
        if self.kind == "other":
            return self.tag
        return self.kind.upper()

    @classmethod
    def other(cls, tag: str) -> "Protocol":
        return cls("other", tag)

    @classmethod
    def from_tag(cls, tag: str) -> "Protocol":
        if tag in ("tcp4", "tcp6"):
            return TCP
        if tag in ("udp4", "udp6"):
            return UDP
        return cls.other(tag)


TCP = Protocol("tcp")
UDP = Protocol("udp")


def _with_port(addr: str, port: int) -> str:
    if port > 0:
        return f"{addr}:{port}"
    return addr


@dataclass
class Connection:
    protocol: Protocol
    local_addr: str
    local_port: int
    remote_addr: str
    remote_port: int
    bytes_in: int = 0
    bytes_out: int = 0
    state: str = ""
    interface: str = ""
    hostname: Optional[str] = None

    def local_display(self) -> str:
        return _with_port(self.local_addr, self.local_port)

    def remote_display(self) -> str:
        """Remote endpoint, preferring the resolved hostname over the raw address."""
        return _with_port(self.hostname or self.remote_addr, self.remote_port)


ProcessKey = Tuple[str, int]


@dataclass
class Process:
    name: str
    pid: int
    path: Optional[str] = None
    connections: list[Connection] = field(default_factory=list)
    bytes_in: int = 0
    bytes_out: int = 0
    rate_in: float = 0.0
    rate_out: float = 0.0

    @property
    def key(self) -> ProcessKey:
        return (self.name, self.pid)

    @property
    def connection_count(self) -> int:
        return len(self.connections)


@dataclass(frozen=True)
class NetworkSnapshot:
    """
    One parsed, rate-computed and enriched picture of all processes.

    Totals are computed once in ``from_processes`` and the snapshot is frozen,
    so they always agree with ``processes``.
    """

    processes: Tuple[Process, ...] = ()
    total_bytes_in: int = 0
    total_bytes_out: int = 0
    total_rate_in: float = 0.0
    total_rate_out: float = 0.0
    total_connections: int = 0

    @classmethod
    def from_processes(cls, processes) -> "NetworkSnapshot":
        processes = tuple(processes)
        return cls(
            processes=processes,
            total_bytes_in=sum(p.bytes_in for p in processes),
            total_bytes_out=sum(p.bytes_out for p in processes),
            total_rate_in=sum(p.rate_in for p in processes),
            total_rate_out=sum(p.rate_out for p in processes),
            total_connections=sum(p.connection_count for p in processes),
        )

    @classmethod
    def empty(cls) -> "NetworkSnapshot":
        return cls.from_processes([])


# ip address -> hostname; None records a finished lookup with no PTR record
DnsCache = Dict[str, Optional[str]]


class SortField(enum.Enum):
    NAME = "name"
    PID = "pid"
    CONNECTIONS = "conn"
    BYTES_IN = "down"
    BYTES_OUT = "up"
    RATE_IN = "rate-in"
    RATE_OUT = "rate-out"

    def next(self) -> "SortField":
        return _SORT_RING[self]

    @property
    def label(self) -> str:
        return _SORT_LABELS[self]


_SORT_RING = {
    SortField.NAME: SortField.PID,
    SortField.PID: SortField.CONNECTIONS,
    SortField.CONNECTIONS: SortField.BYTES_IN,
    SortField.BYTES_IN: SortField.BYTES_OUT,
    SortField.BYTES_OUT: SortField.RATE_IN,
    SortField.RATE_IN: SortField.RATE_OUT,
    SortField.RATE_OUT: SortField.NAME,
}

_SORT_LABELS = {
    SortField.NAME: "Name",
    SortField.PID: "PID",
    SortField.CONNECTIONS: "Conn",
    SortField.BYTES_IN: "Down",
    SortField.BYTES_OUT: "Up",
    SortField.RATE_IN: "Rate In",
    SortField.RATE_OUT: "Rate Out",
}


class ActiveTab(enum.Enum):
    PROCESSES = "processes"
    CONNECTIONS = "connections"
    OVERVIEW = "overview"

    def next(self) -> "ActiveTab":
        return _TAB_NEXT[self]

    def prev(self) -> "ActiveTab":
        return _TAB_PREV[self]

    @property
    def title(self) -> str:
        return self.value.capitalize()


_TAB_NEXT = {
    ActiveTab.PROCESSES: ActiveTab.CONNECTIONS,
    ActiveTab.CONNECTIONS: ActiveTab.OVERVIEW,
    ActiveTab.OVERVIEW: ActiveTab.PROCESSES,
}

_TAB_PREV = {v: k for k, v in _TAB_NEXT.items()}
