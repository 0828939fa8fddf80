"""
Collector for a live name-server statistics channel.

GETs the XML document, decodes it and emits observations. A cycle is
all-or-nothing: every document is fetched and decoded before the first
observation is built, so a failed cycle emits nothing.

Targets ending in /xml/v3 are read as the /server and /mem subset
documents and merged, the same way the daemon splits them up.
"""

from __future__ import annotations

import logging
from typing import List, Optional
from urllib.parse import urlsplit

import httpx

from bindstat.collector.base import MetricsCollector
from bindstat.collector.emitter import emit
from bindstat.collector.xml_decoder import decode
from bindstat.errors import (
    BadStatus,
    DecodeError,
    DocumentDecodeFailed,
    MalformedDocument,
    TransportFailure,
)
from bindstat.metrics import CollectionConfig, MetricObservation, NormalizedTree, RawDocument

log = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 5.0

V3_SUBSETS = ("server", "mem")


def url_tag(target: str) -> str:
    """host[:port] of the target, used as the "url" tag on everything we emit."""
    netloc = urlsplit(target).netloc
    return netloc.rsplit("@", 1)[-1]


def check_target(target: str):
    """Targets need a scheme and a host; "ns1:8053/" would otherwise tag everything url=""."""
    parts = urlsplit(target)
    if not parts.scheme or not parts.netloc:
        raise TransportFailure(target, ValueError(f"target URL needs scheme and host: {target!r}"))


def _fetch(client: httpx.Client, url: str, timeout: float, declared: Optional[str]) -> RawDocument:
    try:
        response = client.get(url, timeout=timeout)
    except (httpx.RequestError, httpx.InvalidURL) as e:
        # RequestError covers transport failures, timeouts and bad Content-Encoding bodies
        raise TransportFailure(url, e) from e

    if not response.is_success:
        raise BadStatus(response.status_code, url)

    log.debug("HTTP response content length from %s: %d", url, len(response.content))
    return RawDocument(body=response.content, declared_version=declared, source=url)


def _document_urls(target: str):
    """Return (urls, declared_version) for a target."""
    base = target.rstrip("/")
    if base.endswith("/xml/v3"):
        return [f"{base}/{subset}" for subset in V3_SUBSETS], "3"
    if base.endswith("/xml/v2"):
        return [target], "2"
    return [target], None


def fetch_tree(client: httpx.Client, target: str, timeout: float = DEFAULT_TIMEOUT) -> NormalizedTree:
    """Fetch and decode every document for a target into one tree."""
    urls, declared = _document_urls(target)
    tree: Optional[NormalizedTree] = None

    for url in urls:
        raw = _fetch(client, url, timeout, declared)
        try:
            part = decode(raw)
            tree = part if tree is None else tree.merge(part)
        except DecodeError as e:
            raise DocumentDecodeFailed(url, e) from e
        except ValueError as e:
            raise DocumentDecodeFailed(url, MalformedDocument(str(e))) from e

    return tree


def collect(
    target: str,
    config: CollectionConfig = CollectionConfig(),
    client: Optional[httpx.Client] = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> List[MetricObservation]:
    """One collection cycle against a target.

    Raises BadStatus, TransportFailure or DocumentDecodeFailed. On success
    the full list of observations is returned; on failure nothing is.
    """
    check_target(target)

    own_client = client is None
    if own_client:
        client = httpx.Client(timeout=timeout)

    try:
        tree = fetch_tree(client, target, timeout)
    finally:
        if own_client:
            client.close()

    observations = list(emit(tree, {"url": url_tag(target)}, config))
    log.debug("Collected %d observations from %s", len(observations), target)
    return observations


class BindCollector(MetricsCollector):

    def __init__(
        self,
        url: str,
        config: Optional[CollectionConfig] = None,
        timeout_seconds: float = DEFAULT_TIMEOUT,
        client: Optional[httpx.Client] = None,
    ):
        self._url = url
        self._config = config or CollectionConfig()
        self._timeout = timeout_seconds
        self._client = client or httpx.Client(timeout=self._timeout)

    @property
    def config(self) -> CollectionConfig:
        return self._config

    def collect(self) -> List[MetricObservation]:
        return collect(self._url, self._config, client=self._client, timeout=self._timeout)

    def name(self) -> str:
        return f"BIND ({self._url})"

    def close(self):
        self._client.close()
