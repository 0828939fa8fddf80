"""
Accumulator: the sink observations are handed to.

In a real agent this belongs to the host framework. ListAccumulator is
the in-memory stand-in used by the CLI and the tests.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, Iterable, List, Union

from bindstat.metrics import COUNTER, GAUGE, MetricObservation

Fields = Dict[str, Union[int, float]]


class Accumulator(ABC):

    @abstractmethod
    def add_counter(self, measurement: str, fields: Fields, tags: Dict[str, str]):
        ...

    @abstractmethod
    def add_gauge(self, measurement: str, fields: Fields, tags: Dict[str, str]):
        ...


@dataclass
class RecordedPoint:
    kind: str
    measurement: str
    fields: Fields
    tags: Dict[str, str]


class ListAccumulator(Accumulator):
    """Keeps every point it's given, in order."""

    def __init__(self):
        self.points: List[RecordedPoint] = []

    def add_counter(self, measurement, fields, tags):
        self.points.append(RecordedPoint(COUNTER, measurement, dict(fields), dict(tags)))

    def add_gauge(self, measurement, fields, tags):
        self.points.append(RecordedPoint(GAUGE, measurement, dict(fields), dict(tags)))

    def counters(self) -> List[RecordedPoint]:
        return [p for p in self.points if p.kind == COUNTER]

    def gauges(self) -> List[RecordedPoint]:
        return [p for p in self.points if p.kind == GAUGE]


def feed(observations: Iterable[MetricObservation], acc: Accumulator) -> int:
    """Push observations into an accumulator one at a time. Returns how many went in."""
    count = 0
    for obs in observations:
        if obs.kind == COUNTER:
            acc.add_counter(obs.measurement, obs.fields, obs.tags)
        elif obs.kind == GAUGE:
            acc.add_gauge(obs.measurement, obs.fields, obs.tags)
        else:
            raise ValueError(f"Unknown observation kind: {obs.kind!r}")
        count += 1
    return count
