import ipaddress
import logging
import queue
import socket
import threading
from typing import Iterable, Optional, Set, Tuple

from .datatype import DnsCache, Process
from .errors import ResolverStartupError

LOGGER = logging.getLogger(__name__)

DnsResult = Tuple[str, Optional[str]]


def resolve_hostname(address: str) -> Optional[str]:
    """Reverse lookup of ``address``. Anything that is not an IP address gives None."""
    # link-local addresses carry the interface, e.g. fe80::1%en0
    literal = address.split("%", 1)[0]
    try:
        ipaddress.ip_address(literal)
    except ValueError:
        return None

    try:
        hostname, _, _ = socket.gethostbyaddr(address)
    except (socket.herror, socket.gaierror, OSError):
        return None
    return hostname


class DnsResolver:
    """
    Background reverse-DNS resolver.

    A single dispatcher thread reads addresses from ``requests`` and starts a
    short-lived thread per address, so a slow lookup never holds up the others.
    Each lookup has a deadline: once ``timeout`` seconds pass without an answer
    the address is reported with no hostname and a late answer is dropped.
    Results land on ``results`` as ``(address, hostname)`` tuples, exactly one
    per dispatched address. All threads are daemons, so an outstanding lookup
    never holds up shutdown.
    """

    def __init__(self, max_pending: int = 256, timeout: float = 5.0, resolve=resolve_hostname):
        self.requests: "queue.Queue[Optional[str]]" = queue.Queue(maxsize=max_pending)
        self.results: "queue.Queue[DnsResult]" = queue.Queue()
        self.resolve = resolve
        self.timeout = timeout
        self.is_finished = threading.Event()
        self.thread: threading.Thread | None = None
        self._lock = threading.Lock()

    def start(self) -> None:
        try:
            self.thread = threading.Thread(target=self._dispatch, name="dns-dispatcher", daemon=True)
            self.thread.start()
        except RuntimeError as e:
            raise ResolverStartupError(e) from e
        LOGGER.debug("DNS resolver started")

    def submit(self, address: str) -> bool:
        """Queue ``address`` for resolution. Returns False if the request was dropped."""
        try:
            self.requests.put_nowait(address)
        except queue.Full:
            LOGGER.debug("DNS request queue full, dropping %s", address)
            return False
        return True

    def poll(self) -> Optional[DnsResult]:
        try:
            return self.results.get_nowait()
        except queue.Empty:
            return None

    def close(self) -> None:
        self.is_finished.set()
        try:
            self.requests.put_nowait(None)
        except queue.Full:
            # the dispatcher checks is_finished after each request anyway
            pass

    def _dispatch(self) -> None:
        while not self.is_finished.is_set():
            address = self.requests.get()
            if address is None or self.is_finished.is_set():
                break
            self._start_lookup(address)
        LOGGER.debug("DNS dispatcher finished")

    def _start_lookup(self, address: str) -> None:
        answered = threading.Event()
        deadline = threading.Timer(self.timeout, self._expire, args=(address, answered))
        deadline.daemon = True
        worker = threading.Thread(target=self._lookup, args=(address, answered, deadline), daemon=True)
        try:
            worker.start()
            deadline.start()
        except RuntimeError as e:
            LOGGER.warning("Unable to start reverse lookup of %s: %s", address, e)
            # a worker that did start still answers, only without a deadline
            if worker.ident is None:
                self._post(address, None, answered)

    def _lookup(self, address: str, answered: threading.Event, deadline: threading.Timer) -> None:
        try:
            hostname = self.resolve(address)
        except Exception as e:
            LOGGER.debug("Reverse lookup of %s failed: %s", address, e)
            hostname = None
        deadline.cancel()
        if not self._post(address, hostname, answered):
            LOGGER.debug("Dropping late answer for %s", address)

    def _expire(self, address: str, answered: threading.Event) -> None:
        if self._post(address, None, answered):
            LOGGER.debug("Reverse lookup of %s timed out after %.1fs", address, self.timeout)

    def _post(self, address: str, hostname: Optional[str], answered: threading.Event) -> bool:
        """Publish the first answer for a lookup. Later ones return False."""
        with self._lock:
            if answered.is_set():
                return False
            answered.set()
        self.results.put((address, hostname))
        return True


def drain_dns_results(resolver: DnsResolver, cache: DnsCache, pending: Set[str]) -> int:
    """Move every result available right now into ``cache``. Never blocks."""
    drained = 0
    while True:
        result = resolver.poll()
        if result is None:
            return drained
        address, hostname = result
        pending.discard(address)
        cache[address] = hostname
        drained += 1


def update_dns(processes: Iterable[Process], cache: DnsCache, pending: Set[str], resolver: DnsResolver) -> None:
    """
    Copy cached hostnames onto connections and request lookups for new addresses.

    Addresses that are neither cached nor pending are submitted once; they
    show up with a hostname in a later cycle.
    """
    for proc in processes:
        for conn in proc.connections:
            address = conn.remote_addr
            if not address:
                continue
            if address in cache:
                conn.hostname = cache[address]
            elif address not in pending:
                pending.add(address)
                if not resolver.submit(address):
                    # let the next cycle try again
                    pending.discard(address)
