"""
Parser for the CSV report printed by ``nettop -L 1 -x -J bytes_in,bytes_out``.

The report looks like::

    ,bytes_in,bytes_out,
    apsd.376,7387,24329,
    tcp4 192.168.0.227:61859<->17.57.146.59:5223,7387,24329,
    mDNSResponder.417,1238931,266702,
    udp6 *.5353<->*.*,542567,138705,
    udp4 *:5353<->*:*,696930,128507,

Every process summary line (``name.pid``) is followed by the connection lines
belonging to it. Connection lines start with a protocol prefix.
"""

import logging
from typing import Optional, Tuple

from .datatype import Connection, Process, Protocol

LOGGER = logging.getLogger(__name__)

HEADER_MARKER = "bytes_in"
CONNECTION_PREFIXES = ("tcp4 ", "tcp6 ", "udp4 ", "udp6 ")
ADDR_SEPARATOR = "<->"
WILDCARDS = ("*:*", "*.*")

MAX_PID = 2**32 - 1
MAX_PORT = 2**16 - 1


def _parse_unsigned(text: str, maximum: int) -> Optional[int]:
    # one leading plus is allowed; int() would also take minus, underscores and spaces
    if text.startswith("+"):
        text = text[1:]
    if not text or not text.isascii() or not text.isdigit():
        return None
    value = int(text)
    if value > maximum:
        return None
    return value


def _parse_counter(parts: list[str], index: int) -> int:
    if index >= len(parts):
        return 0
    value = _parse_unsigned(parts[index].strip(), 2**64 - 1)
    return 0 if value is None else value


def is_connection_line(first_field: str) -> bool:
    return first_field.startswith(CONNECTION_PREFIXES)


def split_name_pid(identifier: str) -> Tuple[str, int]:
    """Split ``com.apple.WebKit.1234`` into ``("com.apple.WebKit", 1234)``."""
    name, dot, suffix = identifier.rpartition(".")
    if dot:
        pid = _parse_unsigned(suffix, MAX_PID)
        if pid is not None:
            return name, pid
    return identifier, 0


def _split_port(text: str, sep: str) -> Optional[Tuple[str, int]]:
    addr, found, suffix = text.rpartition(sep)
    if not found:
        return None
    port = _parse_unsigned(suffix, MAX_PORT)
    if port is None:
        return None
    return addr, port


def parse_addr_port(text: str) -> Tuple[str, int]:
    """
    Parse one side of a connection.

    IPv4 sides use ``addr:port``. IPv6 sides are printed without brackets and
    with a dot before the port (``fe80::1%en0.49152``), so the colon form is
    tried first and the dot form is the fallback.
    """
    text = text.strip()
    if text in WILDCARDS:
        return "*", 0

    for sep in (":", "."):
        split = _split_port(text, sep)
        if split is not None:
            return split

    return text, 0


def parse_process_line(line: str) -> Optional[Process]:
    parts = line.split(",")
    name, pid = split_name_pid(parts[0].strip())
    if not name:
        return None

    return Process(
        name=name,
        pid=pid,
        bytes_in=_parse_counter(parts, 1),
        bytes_out=_parse_counter(parts, 2),
    )


def parse_connection_line(line: str) -> Optional[Connection]:
    parts = line.split(",")
    proto_tag, space, addr_part = parts[0].strip().partition(" ")
    if not space:
        return None

    local, arrow, remote = addr_part.partition(ADDR_SEPARATOR)
    if not arrow:
        return None

    local_addr, local_port = parse_addr_port(local)
    remote_addr, remote_port = parse_addr_port(remote)

    return Connection(
        protocol=Protocol.from_tag(proto_tag),
        local_addr=local_addr,
        local_port=local_port,
        remote_addr=remote_addr,
        remote_port=remote_port,
        bytes_in=_parse_counter(parts, 1),
        bytes_out=_parse_counter(parts, 2),
    )


def _is_active(process: Optional[Process]) -> bool:
    if process is None:
        return False
    return process.bytes_in > 0 or process.bytes_out > 0 or bool(process.connections)


def parse_nettop_output(output: str) -> list[Process]:
    lines = output.splitlines()

    start = None
    for index, line in enumerate(lines):
        if HEADER_MARKER in line:
            start = index + 1
            break
    if start is None:
        LOGGER.debug("No header line in report, nothing to parse")
        return []

    processes: list[Process] = []
    current: Optional[Process] = None

    for line in lines[start:]:
        line = line.strip()
        if not line:
            continue

        first_field = line.split(",", 1)[0].strip()
        if is_connection_line(first_field):
            # connection lines before the first process have no owner
            if current is None:
                continue
            conn = parse_connection_line(line)
            if conn is not None:
                current.connections.append(conn)
        else:
            if _is_active(current):
                processes.append(current)
            current = parse_process_line(line)

    if _is_active(current):
        processes.append(current)

    return processes
