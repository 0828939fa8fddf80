"""
Maps a NormalizedTree onto tagged metric observations.

Order is fixed (server groups, memory summary, memory contexts, views) so
test fixtures can compare lists directly. Every observation builds its
own tag dict from the base tags; nothing is shared between them.
"""

from __future__ import annotations

from typing import Dict, Iterable, Iterator

from bindstat.collector.counters import extract
from bindstat.metrics import (
    COUNTER,
    GAUGE,
    CollectionConfig,
    Counter,
    MetricObservation,
    NormalizedTree,
)

COUNTER_MEASUREMENT = "stat_counter"
MEMORY_MEASUREMENT = "stat_memory"
MEMORY_CONTEXT_MEASUREMENT = "stat_memory_context"

# ServerStats attribute -> "type" tag
SERVER_GROUP_LABELS = (
    ("opcodes", "opcode"),
    ("query_types", "qtype"),
    ("ns_stats", "nsstat"),
    ("zone_stats", "zonestat"),
    ("resolver_stats", "resstat"),
    ("socket_stats", "sockstat"),
)

VIEW_QTYPE_LABEL = "qtype"
VIEW_RESSTATS_LABEL = "resstats"


def emit_counters(
    counters: Iterable[Counter],
    tags: Dict[str, str],
    type_label: str,
) -> Iterator[MetricObservation]:
    """One counter observation per counter, tagged with type and name."""
    for counter in extract(counters):
        yield MetricObservation(
            measurement=COUNTER_MEASUREMENT,
            kind=COUNTER,
            fields={"value": counter.value},
            tags={**tags, "type": type_label, "name": counter.name},
        )


def emit(
    tree: NormalizedTree,
    base_tags: Dict[str, str],
    config: CollectionConfig,
) -> Iterator[MetricObservation]:
    for attr, label in SERVER_GROUP_LABELS:
        yield from emit_counters(getattr(tree.server, attr), base_tags, label)

    summary = tree.memory.summary
    yield MetricObservation(
        measurement=MEMORY_MEASUREMENT,
        kind=GAUGE,
        fields={
            "TotalUse": summary.total_use,
            "InUse": summary.in_use,
            "BlockSize": summary.block_size,
            "ContextSize": summary.context_size,
            "Lost": summary.lost,
        },
        tags={"url": base_tags["url"]},
    )

    if config.gather_memory_contexts:
        for ctx in tree.memory.contexts:
            yield MetricObservation(
                measurement=MEMORY_CONTEXT_MEASUREMENT,
                kind=GAUGE,
                fields={"Total": ctx.total, "InUse": ctx.in_use},
                tags={"url": base_tags["url"], "id": ctx.id, "name": ctx.name},
            )

    if config.gather_views:
        for view in tree.views:
            view_tags = {**base_tags, "view": view.name}
            yield from emit_counters(view.query_types, view_tags, VIEW_QTYPE_LABEL)
            yield from emit_counters(view.resolver_stats, view_tags, VIEW_RESSTATS_LABEL)
