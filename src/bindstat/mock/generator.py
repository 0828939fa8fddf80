"""
Mock statistics-channel document generator.

Produces fake but plausible v2 and v3 XML so we can develop and test
without a running name server. Counters only ever go up between ticks,
like the real daemon's.
"""

import random
from typing import Dict, List, Optional

OPCODES = ["QUERY", "IQUERY", "STATUS", "NOTIFY", "UPDATE"]
QTYPES = ["A", "NS", "SOA", "PTR", "MX", "TXT", "AAAA", "SRV", "DS", "DNSKEY"]
NSSTATS = ["Requestv4", "Requestv6", "ReqEdns0", "Response", "QrySuccess", "QryNXDOMAIN", "QryRecursion"]
ZONESTATS = ["NotifyOutv4", "XfrReqDone", "XfrSuccess", "XfrFail"]
RESSTATS = ["Queryv4", "Queryv6", "Responsev4", "NXDOMAIN", "SERVFAIL", "Lame", "Retry", "QueryTimeout"]
SOCKSTATS = ["UDP4Open", "UDP4Close", "TCP4Open", "TCP4Close", "TCP4Accept"]
RCODES = ["NOERROR", "SERVFAIL", "NXDOMAIN", "REFUSED"]  # v3 only, ignored by the decoder
CACHE_RRSETS = ["A", "AAAA", "NS", "!NXDOMAIN"]

VIEWS = ["_default", "_bind"]

# group name -> (v2 path under <server>, v3 counters type)
SERVER_GROUPS = {
    "opcode": ("requests/opcode", "opcode"),
    "qtype": ("queries-in/rdtype", "qtype"),
    "nsstat": ("nsstat", "nsstat"),
    "zonestat": ("zonestat", "zonestat"),
    "resstat": ("resstat", "resstat"),
    "sockstat": ("sockstat", "sockstat"),
}

_GROUP_NAMES = {
    "opcode": OPCODES,
    "qtype": QTYPES,
    "nsstat": NSSTATS,
    "zonestat": ZONESTATS,
    "resstat": RESSTATS,
    "sockstat": SOCKSTATS,
}


def server_counter_count() -> int:
    """How many counters one generated document carries across the six server groups."""
    return sum(len(names) for names in _GROUP_NAMES.values())


def view_counter_count() -> int:
    """Emitted counters per view (query types + resolver stats)."""
    return len(QTYPES) + len(RESSTATS)


class MockBindServer:

    def __init__(self, seed: int = 42, views: Optional[List[str]] = None, contexts: int = 3):
        self._rng = random.Random(seed)
        self._tick = 0
        self.views = list(VIEWS if views is None else views)
        self._server: Dict[str, Dict[str, int]] = {
            group: {name: 0 for name in names} for group, names in _GROUP_NAMES.items()
        }
        self._rcodes = {name: 0 for name in RCODES}
        self._view_qtypes = {v: {n: 0 for n in QTYPES} for v in self.views}
        self._view_resstats = {v: {n: 0 for n in RESSTATS} for v in self.views}
        self._view_cache = {v: {n: 0 for n in CACHE_RRSETS} for v in self.views}
        self._contexts = [
            {"id": f"0x7f{0x1000 + i:x}", "name": name, "total": 0, "inuse": 0}
            for i, name in enumerate(["main", "client", "res0", "cache", "zonemgr"][:contexts])
        ]

    def tick(self):
        """Advance the simulation by one scrape interval."""
        self._tick += 1
        load = 50 + self._rng.randint(0, 200)

        for counters in self._server.values():
            for name in counters:
                counters[name] += self._rng.randint(0, load)
        for name in self._rcodes:
            self._rcodes[name] += self._rng.randint(0, load)

        for view in self.views:
            for counters in (self._view_qtypes[view], self._view_resstats[view]):
                for name in counters:
                    counters[name] += self._rng.randint(0, load // 2)
            for name in self._view_cache[view]:
                self._view_cache[view][name] = self._rng.randint(0, 5000)

        for ctx in self._contexts:
            ctx["total"] += self._rng.randint(1024, 65536)
            ctx["inuse"] = int(ctx["total"] * self._rng.uniform(0.2, 0.9))

    def _memory_xml(self) -> str:
        total_use = sum(c["total"] for c in self._contexts)
        in_use = sum(c["inuse"] for c in self._contexts)
        contexts = "".join(
            f"<context><id>{c['id']}</id><name>{c['name']}</name>"
            f"<references>1</references><total>{c['total']}</total>"
            f"<inuse>{c['inuse']}</inuse><maxinuse>{c['inuse']}</maxinuse></context>"
            for c in self._contexts
        )
        return (
            f"<memory><contexts>{contexts}</contexts>"
            f"<summary><TotalUse>{total_use}</TotalUse><InUse>{in_use}</InUse>"
            f"<BlockSize>{total_use // 2}</BlockSize><ContextSize>{len(self._contexts) * 1184}</ContextSize>"
            f"<Lost>0</Lost></summary></memory>"
        )

    # -- v2 ------------------------------------------------------------------

    def v2_document(self) -> bytes:
        self.tick()

        def counters(tag: str, values: Dict[str, int]) -> str:
            return "".join(
                f"<{tag}><name>{name}</name><counter>{value}</counter></{tag}>"
                for name, value in values.items()
            )

        server = []
        for group, (path, _) in SERVER_GROUPS.items():
            parent, _, tag = path.rpartition("/")
            body = counters(tag, self._server[group])
            server.append(f"<{parent}>{body}</{parent}>" if parent else body)

        views = "".join(
            f"<view><name>{v}</name>"
            f"{counters('rdtype', self._view_qtypes[v])}"
            f"{counters('resstat', self._view_resstats[v])}"
            f"<cache name=\"{v}\">{counters('rrset', self._view_cache[v])}</cache></view>"
            for v in self.views
        )

        return (
            '<?xml version="1.0" encoding="UTF-8"?>'
            '<isc version="1.0"><bind><statistics version="2.2">'
            f"<views>{views}</views>"
            f"<server>{''.join(server)}</server>"
            f"{self._memory_xml()}"
            "</statistics></bind></isc>"
        ).encode()

    # -- v3 ------------------------------------------------------------------

    def v3_document(self, subset: Optional[str] = None) -> bytes:
        """Full v3 document, or only the "server" or "mem" subset."""
        if subset not in (None, "server", "mem"):
            raise ValueError(f"Unknown v3 subset: {subset!r}")
        if subset != "mem":
            self.tick()

        def group(group_type: str, values: Dict[str, int]) -> str:
            body = "".join(f'<counter name="{name}">{value}</counter>' for name, value in values.items())
            return f'<counters type="{group_type}">{body}</counters>'

        parts = []
        if subset in (None, "server"):
            server = "".join(group(SERVER_GROUPS[g][1], self._server[g]) for g in SERVER_GROUPS)
            server += group("rcode", self._rcodes)
            parts.append(f"<server>{server}</server>")

            views = "".join(
                f'<view name="{v}">'
                f"{group('resqtype', self._view_qtypes[v])}"
                f"{group('resstats', self._view_resstats[v])}"
                f"{group('adbstat', {'NumBuckets': 1021})}"
                f'<cache name="{v}">'
                + "".join(
                    f"<rrset><name>{n}</name><counter>{c}</counter></rrset>"
                    for n, c in self._view_cache[v].items()
                )
                + "</cache></view>"
                for v in self.views
            )
            parts.append(f"<views>{views}</views>")

        if subset in (None, "mem"):
            parts.append(self._memory_xml())

        return (
            '<?xml version="1.0" encoding="UTF-8"?>'
            '<statistics version="3.11">'
            f"{''.join(parts)}"
            "</statistics>"
        ).encode()
