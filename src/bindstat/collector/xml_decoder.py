"""
Decoder for the name-server statistics channel XML.

Two schema revisions are understood:

  v2  <isc><bind><statistics version="2.x">, every counter is
      <X><name>..</name><counter>..</counter></X> under fixed paths.
  v3  <statistics version="3.x">, counters are grouped as
      <counters type="..."><counter name="..">N</counter></counters> and
      the daemon can serve subsets (/xml/v3/server, /xml/v3/mem).

Both land in the same NormalizedTree. Numbers that don't parse become 0
(with a warning) so one saturated counter can't sink a whole cycle.
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, List, Optional, Tuple
from xml.etree.ElementTree import Element, ParseError

from defusedxml import DefusedXmlException
from defusedxml import ElementTree

from bindstat.errors import MalformedDocument, UnsupportedVersion
from bindstat.metrics import (
    CacheSection,
    Counter,
    MemoryContext,
    MemoryStats,
    MemorySummary,
    NormalizedTree,
    RawDocument,
    SchemaVersion,
    ServerStats,
    View,
)

log = logging.getLogger(__name__)


# v2 server groups: ServerStats attribute -> path under <server>
_V2_SERVER_PATHS = (
    ("opcodes", "requests/opcode"),
    ("query_types", "queries-in/rdtype"),
    ("ns_stats", "nsstat"),
    ("zone_stats", "zonestat"),
    ("resolver_stats", "resstat"),
    ("socket_stats", "sockstat"),
)

# v3 server groups: <counters type="..."> -> ServerStats attribute
_V3_SERVER_GROUPS = {
    "opcode": "opcodes",
    "qtype": "query_types",
    "nsstat": "ns_stats",
    "zonestat": "zone_stats",
    "resstat": "resolver_stats",
    "sockstat": "socket_stats",
}

# v3 view groups: <counters type="..."> -> View attribute
_V3_VIEW_GROUPS = {
    "resqtype": "query_types",
    "resstats": "resolver_stats",
}

_MEMORY_SUMMARY_FIELDS = (
    ("total_use", "TotalUse"),
    ("in_use", "InUse"),
    ("block_size", "BlockSize"),
    ("context_size", "ContextSize"),
    ("lost", "Lost"),
)


def parse_int(text: Optional[str], path: str) -> int:
    """Lenient integer parse. Anything unusable is logged and read as 0."""
    if text is not None:
        try:
            return int(text.strip())
        except ValueError:
            pass
    log.warning("Non-integer value %r at %s, using 0", text, path)
    return 0


def _child_int(parent: Element, tag: str, path: str) -> int:
    return parse_int(parent.findtext(tag), f"{path}/{tag}")


# -- shared sections ---------------------------------------------------------

def _decode_named_counters(parent: Element, tag: str, path: str) -> List[Counter]:
    """<tag><name>N</name><counter>V</counter></tag> repeated (v2 counters, rrsets)."""
    counters = []
    for elem in parent.findall(tag):
        name = elem.findtext("name")
        if name is None:
            raise MalformedDocument(f"<{tag}> without <name> at {path}")
        counters.append(
            Counter(name=name, value=parse_int(elem.findtext("counter"), f"{path}/{tag}[{name}]"))
        )
    return counters


def _decode_memory(stats: Element) -> MemoryStats:
    memory = stats.find("memory")
    if memory is None:
        return MemoryStats()

    result = MemoryStats(present=True)

    summary = memory.find("summary")
    if summary is not None:
        result.summary = MemorySummary(**{
            attr: _child_int(summary, tag, "memory/summary")
            for attr, tag in _MEMORY_SUMMARY_FIELDS
        })

    for ctx in memory.findall("contexts/context"):
        ctx_id = ctx.findtext("id")
        if ctx_id is None:
            raise MalformedDocument("memory context without <id>")
        path = f"memory/contexts/context[{ctx_id}]"
        result.contexts.append(MemoryContext(
            id=ctx_id,
            name=ctx.findtext("name", ""),
            total=_child_int(ctx, "total", path),
            in_use=_child_int(ctx, "inuse", path),
        ))

    return result


def _decode_caches(view: Element, path: str) -> List[CacheSection]:
    caches = []
    for cache in view.findall("cache"):
        name = cache.get("name", "")
        caches.append(CacheSection(
            name=name,
            rrsets=_decode_named_counters(cache, "rrset", f"{path}/cache[{name}]"),
        ))
    return caches


# -- v2 ------------------------------------------------------------------------

def _decode_v2(stats: Element) -> NormalizedTree:
    tree = NormalizedTree(version=SchemaVersion.V2)

    server = stats.find("server")
    if server is not None:
        for attr, rel in _V2_SERVER_PATHS:
            parent_path, _, tag = rel.rpartition("/")
            parent = server.find(parent_path) if parent_path else server
            if parent is None:
                continue
            getattr(tree.server, attr).extend(
                _decode_named_counters(parent, tag, f"server/{parent_path}".rstrip("/"))
            )

    tree.memory = _decode_memory(stats)

    for view in stats.findall("views/view"):
        name = view.findtext("name")
        if name is None:
            raise MalformedDocument("views/view without <name>")
        path = f"views/view[{name}]"
        tree.views.append(View(
            name=name,
            query_types=_decode_named_counters(view, "rdtype", path),
            resolver_stats=_decode_named_counters(view, "resstat", path),
            caches=_decode_caches(view, path),
        ))

    return tree


# -- v3 ------------------------------------------------------------------------

def _decode_counter_group(group: Element, path: str) -> List[Counter]:
    """<counters type=".."><counter name="..">V</counter>...</counters>"""
    counters = []
    for elem in group.findall("counter"):
        name = elem.get("name")
        if name is None:
            raise MalformedDocument(f"<counter> without name attribute at {path}")
        counters.append(Counter(name=name, value=parse_int(elem.text, f"{path}/counter[{name}]")))
    return counters


def _decode_v3(stats: Element) -> NormalizedTree:
    tree = NormalizedTree(version=SchemaVersion.V3)

    for group in stats.findall("server/counters"):
        group_type = group.get("type", "")
        attr = _V3_SERVER_GROUPS.get(group_type)
        if attr is None:
            log.debug("Ignoring server counter group type=%r", group_type)
            continue
        getattr(tree.server, attr).extend(
            _decode_counter_group(group, f"server/counters[{group_type}]")
        )

    tree.memory = _decode_memory(stats)

    for view in stats.findall("views/view"):
        name = view.get("name")
        if name is None:
            raise MalformedDocument("views/view without name attribute")
        path = f"views/view[{name}]"
        record = View(name=name, caches=_decode_caches(view, path))
        for group in view.findall("counters"):
            group_type = group.get("type", "")
            attr = _V3_VIEW_GROUPS.get(group_type)
            if attr is None:
                log.debug("Ignoring view %s counter group type=%r", name, group_type)
                continue
            getattr(record, attr).extend(
                _decode_counter_group(group, f"{path}/counters[{group_type}]")
            )
        tree.views.append(record)

    return tree


# -- dispatch ------------------------------------------------------------------

_DECODERS: Dict[SchemaVersion, Callable[[Element], NormalizedTree]] = {
    SchemaVersion.V2: _decode_v2,
    SchemaVersion.V3: _decode_v3,
}

if set(_DECODERS) != set(SchemaVersion):
    raise RuntimeError("Every SchemaVersion needs a decoder")


def resolve_version(marker: str) -> SchemaVersion:
    """Map a version marker like "2.2" or "3.11" to its schema. Only the major part counts."""
    major = marker.strip().split(".", 1)[0]
    try:
        return SchemaVersion(major)
    except ValueError:
        raise UnsupportedVersion(marker) from None


def _locate_statistics(root: Element) -> Tuple[str, Element]:
    """Find the <statistics> element and its version marker.

    Documents that leave out the attribute are told apart by shape:
    v2 wraps statistics in <isc><bind>, v3 has it as the root.
    """
    if root.tag == "isc":
        stats = root.find("bind/statistics")
        if stats is None:
            raise MalformedDocument("<isc> document without bind/statistics")
        return stats.get("version", SchemaVersion.V2.value), stats

    if root.tag == "statistics":
        return root.get("version", SchemaVersion.V3.value), root

    raise MalformedDocument(f"unexpected root element <{root.tag}>")


def decode(raw: RawDocument) -> NormalizedTree:
    """Parse one statistics document into a NormalizedTree.

    Raises UnsupportedVersion or MalformedDocument; never returns a
    partially decoded tree.
    """
    try:
        root = ElementTree.fromstring(raw.body)
    except (ParseError, DefusedXmlException) as e:
        raise MalformedDocument(str(e)) from e

    marker, stats = _locate_statistics(root)
    version = resolve_version(marker)

    if raw.declared_version is not None:
        declared = raw.declared_version.strip().split(".", 1)[0]
        if declared != version.value:
            log.warning(
                "%s declared schema v%s but document says %s, using v%s",
                raw.source or "document", raw.declared_version, marker, version.value,
            )

    tree = _DECODERS[version](stats)
    log.debug(
        "Decoded v%s document from %s: %d views, %d memory contexts",
        version.value, raw.source or "<bytes>", len(tree.views), len(tree.memory.contexts),
    )
    return tree
