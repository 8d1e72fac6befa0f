import asyncio
import logging

from netmon.errors import ReportUnavailable
from .abstract_provider import AbstractProvider

LOGGER = logging.getLogger(__name__)

# one sample, CSV output, only the byte counter columns; without -P nettop
# lists the connections under every process
NETTOP_ARGS = ["-L", "1", "-x", "-J", "bytes_in,bytes_out"]
NETTOP_TIMEOUT = 10.0


class NettopProvider(AbstractProvider):
    def __init__(self, command: str = "nettop", timeout: float = NETTOP_TIMEOUT):
        self.command = command
        self.timeout = timeout
        self.process: asyncio.subprocess.Process | None = None

    @property
    def name(self) -> str:
        return f"{super().name}: {self.command}"

    async def fetch_report(self) -> str:
        try:
            self.process = await asyncio.create_subprocess_exec(
                self.command,
                *NETTOP_ARGS,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.DEVNULL,
            )
        except OSError as e:
            raise ReportUnavailable(f"failed to run {self.command}: {e}") from e

        try:
            stdout, _ = await asyncio.wait_for(self.process.communicate(), timeout=self.timeout)
        except asyncio.TimeoutError as e:
            self.process.kill()
            await self.process.wait()
            raise ReportUnavailable(f"{self.command} did not finish within {self.timeout}s") from e
        except asyncio.CancelledError:
            # the handle is gone after this, so nothing else could stop the child
            if self.process.returncode is None:
                LOGGER.debug("Fetch cancelled, killing %s", self.command)
                self.process.kill()
            raise
        finally:
            returncode = self.process.returncode
            self.process = None

        if returncode != 0:
            raise ReportUnavailable(f"{self.command} exited with code {returncode}")
        return stdout.decode("utf-8", errors="replace")

    async def cleanup(self) -> None:
        if self.process is not None and self.process.returncode is None:
            LOGGER.debug("Killing running %s", self.command)
            self.process.kill()
        await super().cleanup()
