import functools
import logging
import math
from collections import deque
from typing import Optional, Set

from . import dns, parser, procinfo, rates
from .config import DEFAULT_HISTORY_LEN, DEFAULT_INTERVAL, DEFAULT_SORT
from .datatype import ActiveTab, Connection, DnsCache, NetworkSnapshot, Process, SortField
from .errors import ReportUnavailable
from .provider.abstract_provider import AbstractProvider

LOGGER = logging.getLogger(__name__)


def _compare_desc(a: float, b: float) -> int:
    # NaN compares equal to everything instead of breaking the sort
    if math.isnan(a) or math.isnan(b):
        return 0
    return (a < b) - (a > b)


def _desc_by(attr: str):
    return functools.cmp_to_key(lambda a, b: _compare_desc(getattr(a, attr), getattr(b, attr)))


_SORT_KEYS = {
    SortField.NAME: lambda p: p.name.lower(),
    SortField.PID: lambda p: p.pid,
    SortField.CONNECTIONS: lambda p: -p.connection_count,
    SortField.BYTES_IN: lambda p: -p.bytes_in,
    SortField.BYTES_OUT: lambda p: -p.bytes_out,
    SortField.RATE_IN: _desc_by("rate_in"),
    SortField.RATE_OUT: _desc_by("rate_out"),
}


def sort_processes(processes: list[Process], field: SortField) -> None:
    """Sort in place. Name and pid ascend, counters and rates put the busiest first."""
    processes.sort(key=_SORT_KEYS[field])


def process_matches(process: Process, needle: Optional[str]) -> bool:
    if not needle:
        return True
    needle = needle.lower()
    return (
        needle in process.name.lower()
        or needle in (process.path or "").lower()
        or needle in str(process.pid)
    )


def connection_matches(process: Process, conn: Connection, needle: Optional[str]) -> bool:
    if not needle:
        return True
    needle = needle.lower()
    return (
        needle in process.name.lower()
        or needle in conn.local_display().lower()
        or needle in conn.remote_display().lower()
        or needle in str(conn.protocol).lower()
    )


class MonitorState:
    """
    Everything the dashboard shows, plus the state carried between cycles.

    The UI reads the public attributes and drives the transitions below. Only
    ``update_data`` touches the DNS cache, the pending set and the byte map.
    """

    def __init__(
        self,
        resolver: dns.DnsResolver,
        sort_field: SortField = DEFAULT_SORT,
        interval_secs: float = DEFAULT_INTERVAL,
        history_len: int = DEFAULT_HISTORY_LEN,
        enrich_paths: bool = True,
    ):
        self.active_tab = ActiveTab.PROCESSES
        self.snapshot = NetworkSnapshot.empty()
        self.process_index = 0
        self.connection_index = 0
        self.sort_field = sort_field
        self.filter_text: Optional[str] = None
        self.filter_input = ""
        self.filtering = False
        self.show_help = False
        self.paused = False
        self.bandwidth_history: deque[float] = deque(maxlen=history_len)
        self.interval_secs = interval_secs
        self.enrich_paths = enrich_paths

        self.prev_bytes: rates.ByteMap = {}
        self.dns_cache: DnsCache = {}
        self.dns_pending: Set[str] = set()
        self.resolver = resolver

    # -- update cycle -----------------------------------------------------

    async def update_data(self, provider: AbstractProvider) -> bool:
        """Run one cycle. Returns False when the cycle was skipped."""
        if self.paused:
            return False

        dns.drain_dns_results(self.resolver, self.dns_cache, self.dns_pending)

        try:
            report = await provider.fetch_report()
        except ReportUnavailable as e:
            LOGGER.warning("Skipping update: %s", e)
            return False

        processes = parser.parse_nettop_output(report)

        rates.compute_rates(processes, self.prev_bytes, self.interval_secs)
        self.prev_bytes = rates.byte_map(processes)

        if self.enrich_paths:
            procinfo.enrich_process_paths(processes)

        dns.update_dns(processes, self.dns_cache, self.dns_pending, self.resolver)

        sort_processes(processes, self.sort_field)
        self.snapshot = NetworkSnapshot.from_processes(processes)
        self.bandwidth_history.append(self.snapshot.total_rate_in + self.snapshot.total_rate_out)

        self._clamp_selection()
        LOGGER.debug(
            "Updated: %d processes, %d connections, %d pending lookups",
            len(self.snapshot.processes),
            self.snapshot.total_connections,
            len(self.dns_pending),
        )
        return True

    def _clamp_selection(self) -> None:
        self.process_index = self._clamp(self.process_index, len(self.filtered_processes()))
        self.connection_index = self._clamp(self.connection_index, len(self.filtered_connections()))

    @staticmethod
    def _clamp(index: int, length: int) -> int:
        return max(0, min(index, length - 1))

    # -- views ------------------------------------------------------------

    def filtered_processes(self) -> list[Process]:
        return [p for p in self.snapshot.processes if process_matches(p, self.filter_text)]

    def filtered_connections(self) -> list[tuple[Process, Connection]]:
        return [
            (p, c)
            for p in self.snapshot.processes
            for c in p.connections
            if connection_matches(p, c, self.filter_text)
        ]

    def selected_process(self) -> Optional[Process]:
        processes = self.filtered_processes()
        if 0 <= self.process_index < len(processes):
            return processes[self.process_index]
        return None

    # -- transitions ------------------------------------------------------

    def next_tab(self) -> None:
        self.active_tab = self.active_tab.next()

    def prev_tab(self) -> None:
        self.active_tab = self.active_tab.prev()

    def nav_up(self) -> None:
        if self.active_tab == ActiveTab.PROCESSES:
            self.process_index = max(0, self.process_index - 1)
        elif self.active_tab == ActiveTab.CONNECTIONS:
            self.connection_index = max(0, self.connection_index - 1)

    def nav_down(self) -> None:
        if self.active_tab == ActiveTab.PROCESSES:
            self.process_index = self._clamp(self.process_index + 1, len(self.filtered_processes()))
        elif self.active_tab == ActiveTab.CONNECTIONS:
            self.connection_index = self._clamp(self.connection_index + 1, len(self.filtered_connections()))

    def cycle_sort(self) -> None:
        self.sort_field = self.sort_field.next()

    def enter_filter(self) -> None:
        self.filtering = True
        self.filter_input = ""

    def apply_filter(self) -> None:
        self.filtering = False
        self.filter_text = self.filter_input or None
        self._clamp_selection()

    def cancel_filter(self) -> None:
        self.filtering = False
        self.filter_text = None
        self.filter_input = ""
        self._clamp_selection()

    def drill_down(self) -> None:
        """Show only the connections of the selected process."""
        if self.active_tab != ActiveTab.PROCESSES:
            return
        selected = self.selected_process()
        self.active_tab = ActiveTab.CONNECTIONS
        if selected is not None:
            self.filter_text = selected.name
            self.filter_input = selected.name
        self.connection_index = 0

    def toggle_pause(self) -> bool:
        self.paused = not self.paused
        LOGGER.info("Data collection %s", "paused" if self.paused else "resumed")
        return self.paused

    def toggle_help(self) -> None:
        self.show_help = not self.show_help
