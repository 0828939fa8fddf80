"""
Base collector interface.

A collector is anything that can produce one cycle's worth of metric
observations. The reference host (dashboard, CLI) only talks to this, so
it doesn't care whether the target is a live daemon or the fake server.
"""

from abc import ABC, abstractmethod
from typing import List

from bindstat.metrics import MetricObservation


class MetricsCollector(ABC):
    """Interface for all statistics sources."""

    @abstractmethod
    def collect(self) -> List[MetricObservation]:
        """Run one fetch-decode-emit cycle. Raises FetchError on failure."""
        ...

    @abstractmethod
    def name(self) -> str:
        """Human-readable name for this source."""
        ...

    def close(self):
        pass
