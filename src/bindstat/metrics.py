"""
Core metric definitions for bindstat.

The decoded statistics document (NormalizedTree) is version independent:
both the v2 and v3 XML schemas land in the same section types below.
MetricObservation is what the emitter hands to an accumulator.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Union

# Observation kinds
COUNTER = "counter"
GAUGE = "gauge"


class SchemaVersion(Enum):
    """Major revisions of the statistics channel XML schema."""

    V2 = "2"
    V3 = "3"


@dataclass
class Counter:
    name: str
    value: int = 0


@dataclass
class ServerStats:
    opcodes: List[Counter] = field(default_factory=list)
    query_types: List[Counter] = field(default_factory=list)
    ns_stats: List[Counter] = field(default_factory=list)
    zone_stats: List[Counter] = field(default_factory=list)
    resolver_stats: List[Counter] = field(default_factory=list)
    socket_stats: List[Counter] = field(default_factory=list)

    def extend(self, other: ServerStats):
        self.opcodes.extend(other.opcodes)
        self.query_types.extend(other.query_types)
        self.ns_stats.extend(other.ns_stats)
        self.zone_stats.extend(other.zone_stats)
        self.resolver_stats.extend(other.resolver_stats)
        self.socket_stats.extend(other.socket_stats)


@dataclass
class MemorySummary:
    total_use: int = 0
    in_use: int = 0
    block_size: int = 0
    context_size: int = 0
    lost: int = 0


@dataclass
class MemoryContext:
    id: str
    name: str
    total: int = 0
    in_use: int = 0


@dataclass
class MemoryStats:
    summary: MemorySummary = field(default_factory=MemorySummary)
    contexts: List[MemoryContext] = field(default_factory=list)
    # False when the document had no <memory> section at all (v3 subsets)
    present: bool = False


@dataclass
class CacheSection:
    name: str
    rrsets: List[Counter] = field(default_factory=list)


@dataclass
class View:
    name: str
    query_types: List[Counter] = field(default_factory=list)
    resolver_stats: List[Counter] = field(default_factory=list)
    caches: List[CacheSection] = field(default_factory=list)


@dataclass
class NormalizedTree:
    """One decoded statistics document, whatever schema it came from."""

    version: SchemaVersion
    server: ServerStats = field(default_factory=ServerStats)
    memory: MemoryStats = field(default_factory=MemoryStats)
    views: List[View] = field(default_factory=list)

    def merge(self, other: NormalizedTree) -> NormalizedTree:
        """Fold a subset document into this one (v3 serves /server and /mem separately)."""
        if other.version is not self.version:
            raise ValueError(
                f"Cannot merge schema v{other.version.value} into v{self.version.value}"
            )
        self.server.extend(other.server)
        if other.memory.present:
            self.memory = other.memory
        self.views.extend(other.views)
        return self


@dataclass
class RawDocument:
    body: bytes
    declared_version: Optional[str] = None
    source: str = ""


@dataclass(frozen=True)
class CollectionConfig:
    """Which high-cardinality sections get traversed. Fixed for a whole collect() call."""

    gather_memory_contexts: bool = False
    gather_views: bool = False


@dataclass
class MetricObservation:
    measurement: str
    kind: str                                   # COUNTER or GAUGE
    fields: Dict[str, Union[int, float]]
    tags: Dict[str, str]

    def __post_init__(self):
        # Never alias a caller's maps
        self.fields = dict(self.fields)
        self.tags = dict(self.tags)

    def summary(self) -> dict:
        """Return a plain dict for display or JSON output."""
        return {
            "measurement": self.measurement,
            "kind": self.kind,
            "fields": dict(self.fields),
            "tags": dict(self.tags),
        }
