from netmon.errors import ReportUnavailable
from netmon.provider.abstract_provider import AbstractProvider

SAMPLE_REPORT = """\
,bytes_in,bytes_out,
apsd.376,7387,24329,
tcp4 192.168.0.227:61859<->17.57.146.59:5223,7387,24329,
mDNSResponder.417,1238931,266702,
udp6 *.5353<->*.*,542567,138705,
udp4 *:5353<->*:*,696930,128507,
"""


class FakeResolver:
    """Records submissions; results are handed out from ``ready``."""

    def __init__(self, accept=True):
        self.accept = accept
        self.submitted = []
        self.ready = []
        self.closed = False

    def submit(self, address):
        if not self.accept:
            return False
        self.submitted.append(address)
        return True

    def poll(self):
        if self.ready:
            return self.ready.pop(0)
        return None

    def close(self):
        self.closed = True


class ScriptedProvider(AbstractProvider):
    """Returns the queued reports in order; a ReportUnavailable entry is raised."""

    def __init__(self, *reports):
        self.reports = list(reports)
        self.calls = 0

    async def fetch_report(self) -> str:
        self.calls += 1
        report = self.reports.pop(0)
        if isinstance(report, ReportUnavailable):
            raise report
        return report


def make_report(*processes):
    """Build a report from ``(ident, bytes_in, bytes_out, [connection lines])`` tuples."""
    lines = [",bytes_in,bytes_out,"]
    for ident, bytes_in, bytes_out, connections in processes:
        lines.append(f"{ident},{bytes_in},{bytes_out},")
        lines.extend(connections)
    return "\n".join(lines) + "\n"


