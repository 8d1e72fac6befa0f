import random

from .abstract_provider import AbstractProvider


# name.pid, [(connection, bytes_in per call, bytes_out per call)]
MOCK_PROCESSES = [
    ("nginx.1234", [
        ("tcp4 10.0.0.5:443<->93.184.216.34:51544", 52_000, 410_000),
        ("tcp4 10.0.0.5:443<->1.1.1.1:50212", 8_000, 64_000),
    ]),
    ("python.5678", [
        ("tcp4 127.0.0.1:8000<->127.0.0.1:60122", 1_200, 9_000),
    ]),
    ("com.apple.WebKit.Networking.5679", [
        ("tcp6 fe80::1c9b:e73b:41dd:4aa1%en0.49152<->2606:4700::6810:85e5.443", 310_000, 12_000),
        ("tcp4 192.168.0.227:61859<->17.57.146.59:5223", 700, 2_400),
    ]),
    ("postgres.9012", [
        ("tcp4 127.0.0.1:5432<->127.0.0.1:60124", 4_000, 18_000),
    ]),
    ("mDNSResponder.417", [
        ("udp6 *.5353<->*.*", 900, 300),
        ("udp4 *:5353<->*:*", 1_100, 250),
    ]),
    ("idle.9013", []),
]


class MockProvider(AbstractProvider):
    """Fake nettop reports whose counters grow on every call."""

    def __init__(self, seed: int | None = None):
        self.calls = 0
        self.random = random.Random(seed)
        self.totals: dict[str, tuple[int, int]] = {}

    def _grow(self, key: str, step_in: int, step_out: int) -> tuple[int, int]:
        jitter = self.random.uniform(0.5, 1.5)
        bytes_in, bytes_out = self.totals.get(key, (0, 0))
        bytes_in += int(step_in * jitter)
        bytes_out += int(step_out * jitter)
        self.totals[key] = (bytes_in, bytes_out)
        return bytes_in, bytes_out

    async def fetch_report(self) -> str:
        self.calls += 1
        lines = [",bytes_in,bytes_out,"]
        for ident, connections in MOCK_PROCESSES:
            rows = []
            proc_in = proc_out = 0
            for desc, step_in, step_out in connections:
                conn_in, conn_out = self._grow(f"{ident} {desc}", step_in, step_out)
                proc_in += conn_in
                proc_out += conn_out
                rows.append(f"{desc},{conn_in},{conn_out},")
            lines.append(f"{ident},{proc_in},{proc_out},")
            lines.extend(rows)
        return "\n".join(lines) + "\n"
