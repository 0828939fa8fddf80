"""Terminal output using Rich, plus a JSONL mode. Both drive collectors on a fixed interval."""

from __future__ import annotations

import json
import logging
import sys
import time
from typing import Dict, List

from rich.console import Console, Group
from rich.live import Live
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from bindstat import __version__
from bindstat.accumulator import ListAccumulator, feed
from bindstat.collector.base import MetricsCollector
from bindstat.metrics import MetricObservation

log = logging.getLogger(__name__)

# Consecutive failed cycles before a target is given up on
MAX_FAILURES = 5


def _format_fields(fields: Dict[str, object]) -> str:
    return "  ".join(f"{k}={v}" for k, v in fields.items())


def _format_tags(tags: Dict[str, str]) -> str:
    return ",".join(f"{k}={v}" for k, v in tags.items() if k != "url")


def build_table(source_name: str, observations: List[MetricObservation], limit: int = 40) -> Panel:
    acc = ListAccumulator()
    feed(observations, acc)

    table = Table(show_header=True, header_style="bold", expand=True)
    table.add_column("Kind", width=8)
    table.add_column("Measurement", width=20)
    table.add_column("Tags")
    table.add_column("Fields", justify="right")

    for point in acc.gauges():
        table.add_row("[cyan]gauge[/cyan]", point.measurement, _format_tags(point.tags),
                      _format_fields(point.fields))

    # Busiest counters first; a full document carries hundreds
    counters = sorted(acc.counters(), key=lambda p: p.fields.get("value", 0), reverse=True)
    for point in counters[:limit]:
        table.add_row("counter", point.measurement, _format_tags(point.tags),
                      _format_fields(point.fields))

    title = f"{source_name}: {len(acc.counters())} counters, {len(acc.gauges())} gauges"
    return Panel(table, title=title, border_style="green")


def _error_panel(source_name: str, failures: int, error: Exception) -> Panel:
    text = Text(f"  {error} (failure {failures}/{MAX_FAILURES})", style="bold red")
    return Panel(text, title=source_name, border_style="red")


def _cycle(collectors: List[MetricsCollector], failures: Dict[MetricsCollector, int]):
    """Run one cycle over every live collector. Yields (collector, observations or error)."""
    for collector in list(collectors):
        source_name = collector.name()
        try:
            result = collector.collect()
            failures[collector] = 0
        except Exception as e:
            failures[collector] = failures.get(collector, 0) + 1
            log.warning("Collection from %s failed (attempt %d/%d): %s",
                        source_name, failures[collector], MAX_FAILURES, e)
            if failures[collector] >= MAX_FAILURES:
                log.error("Giving up on %s after %d failed cycles", source_name, MAX_FAILURES)
                collectors.remove(collector)
            result = e
        yield collector, result


def run_dashboard(
    collectors: List[MetricsCollector],
    refresh_interval: float = 10.0,
    once: bool = False,
):
    console = Console()
    collectors = list(collectors)
    failures: Dict[MetricsCollector, int] = {}

    log.info("Starting dashboard: %d targets, refresh=%.1fs", len(collectors), refresh_interval)
    console.print(f"\n[bold]bindstat v{__version__}[/bold]")
    for collector in collectors:
        console.print(f"Source: {collector.name()}")
    console.print()

    if once:
        for collector, result in _cycle(collectors, failures):
            if isinstance(result, Exception):
                console.print(_error_panel(collector.name(), failures[collector], result))
            else:
                console.print(build_table(collector.name(), result))
        return

    with Live(console=console, refresh_per_second=1, screen=True) as live:
        try:
            while collectors:
                panels = []
                for collector, result in _cycle(collectors, failures):
                    if isinstance(result, Exception):
                        panels.append(_error_panel(collector.name(), failures[collector], result))
                    else:
                        panels.append(build_table(collector.name(), result))
                live.update(Group(*panels))
                time.sleep(refresh_interval)
        except KeyboardInterrupt:
            pass

    console.print("\n[dim]Dashboard stopped.[/dim]")


def run_jsonl(
    collectors: List[MetricsCollector],
    refresh_interval: float = 10.0,
    once: bool = False,
):
    """Non-interactive output: one JSON object per observation per line.

    Suited to piping into a log shipper. A failed cycle writes nothing.
    """
    collectors = list(collectors)
    failures: Dict[MetricsCollector, int] = {}
    log.info("Starting JSONL output: %d targets, refresh=%.1fs", len(collectors), refresh_interval)

    try:
        while collectors:
            for collector, result in _cycle(collectors, failures):
                if isinstance(result, Exception):
                    continue
                for obs in result:
                    record = obs.summary()
                    record["source"] = collector.name()
                    sys.stdout.write(json.dumps(record) + "\n")
            sys.stdout.flush()
            if once:
                break
            time.sleep(refresh_interval)
    except KeyboardInterrupt:
        pass
