"""
bindstat entry point.

Usage:
    bindstat --mock                                    Fake server, live table
    bindstat --url http://localhost:8053/xml/v3        Live statistics channel
    bindstat --url http://ns1:8053/ --url http://ns2:8053/ --views --output jsonl --once
"""

from __future__ import annotations

import logging
import threading

import click

from bindstat import __version__
from bindstat.collector.bind_collector import DEFAULT_TIMEOUT, BindCollector
from bindstat.dashboard.terminal import run_dashboard, run_jsonl
from bindstat.metrics import CollectionConfig


log = logging.getLogger("bindstat")


def _start_mock_server() -> str:
    from bindstat.mock.fake_bind_server import make_server

    server = make_server(port=0)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    host, port = server.server_address[:2]
    log.debug("Fake statistics channel listening on %s:%d", host, port)
    return f"http://{host}:{port}/xml/v3"


@click.command()
@click.version_option(version=__version__, prog_name="bindstat")
@click.option("--url", "urls", multiple=True, help="Statistics channel URL (repeatable)")
@click.option("--mock", is_flag=True, default=False, help="Collect from an in-process fake server")
@click.option("--views", is_flag=True, default=False, help="Gather per-view counters")
@click.option("--memory-contexts", is_flag=True, default=False, help="Gather per-context memory gauges")
@click.option("--refresh", default=10.0, help="Collection interval in seconds")
@click.option("--timeout", default=DEFAULT_TIMEOUT, help="HTTP timeout in seconds")
@click.option("--output", type=click.Choice(["tui", "jsonl"]), default="tui",
              help="Output mode: tui (Rich table) or jsonl (one JSON line per observation)")
@click.option("--once", is_flag=True, default=False, help="Collect a single cycle and exit")
@click.option("--verbose", is_flag=True, default=False, help="Enable debug logging")
def cli(urls, mock: bool, views: bool, memory_contexts: bool, refresh: float,
        timeout: float, output: str, once: bool, verbose: bool):
    """bindstat - name-server statistics channel collector."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%H:%M:%S",
    )

    targets = list(urls)
    if mock:
        targets.append(_start_mock_server())
    if not targets:
        click.echo("Please specify a data source: --mock or --url <endpoint>")
        raise SystemExit(1)

    config = CollectionConfig(gather_memory_contexts=memory_contexts, gather_views=views)
    collectors = [BindCollector(url, config=config, timeout_seconds=timeout) for url in targets]

    runner = run_jsonl if output == "jsonl" else run_dashboard
    try:
        runner(collectors, refresh_interval=refresh, once=once)
    finally:
        for collector in collectors:
            collector.close()


if __name__ == "__main__":
    cli()
