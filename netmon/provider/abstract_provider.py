import logging

from abc import ABC, abstractmethod


LOGGER = logging.getLogger(__name__)


class AbstractProvider(ABC):
    """A pull source returning one traffic report per call."""

    @property
    def name(self) -> str:
        return self.__class__.__name__

    @abstractmethod
    async def fetch_report(self) -> str:
        """
        Return the raw text of one report.

        Raises ``ReportUnavailable`` when the report could not be produced.
        Called once per cycle and never retried within the same cycle.
        """

    async def cleanup(self) -> None:
        LOGGER.debug("Cleaning up %s", self.name)
