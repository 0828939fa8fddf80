"""Tests for the statistics XML decoder (v2 and v3 schemas)."""

import logging

import pytest

from bindstat.collector import xml_decoder
from bindstat.collector.xml_decoder import decode, resolve_version
from bindstat.errors import MalformedDocument, UnsupportedVersion
from bindstat.metrics import Counter, RawDocument, SchemaVersion

SAMPLE_V2 = b"""\
<?xml version="1.0" encoding="UTF-8"?>
<isc version="1.0">
  <bind>
    <statistics version="2.2">
      <views>
        <view>
          <name>_default</name>
          <rdtype><name>A</name><counter>10</counter></rdtype>
          <rdtype><name>AAAA</name><counter>4</counter></rdtype>
          <resstat><name>Queryv4</name><counter>7</counter></resstat>
          <cache name="_default">
            <rrset><name>A</name><counter>3</counter></rrset>
            <rrset><name>!NXDOMAIN</name><counter>1</counter></rrset>
          </cache>
        </view>
      </views>
      <server>
        <requests>
          <opcode><name>QUERY</name><counter>42</counter></opcode>
        </requests>
        <queries-in>
          <rdtype><name>A</name><counter>30</counter></rdtype>
          <rdtype><name>A</name><counter>2</counter></rdtype>
        </queries-in>
        <nsstat><name>Requestv4</name><counter>40</counter></nsstat>
        <zonestat><name>XfrSuccess</name><counter>1</counter></zonestat>
        <resstat><name>Lame</name><counter>0</counter></resstat>
        <sockstat><name>UDP4Open</name><counter>12</counter></sockstat>
      </server>
      <memory>
        <contexts>
          <context><id>0x1</id><name>main</name><total>100</total><inuse>60</inuse></context>
        </contexts>
        <summary>
          <TotalUse>1000</TotalUse><InUse>600</InUse><BlockSize>512</BlockSize>
          <ContextSize>64</ContextSize><Lost>0</Lost>
        </summary>
      </memory>
    </statistics>
  </bind>
</isc>
"""

SAMPLE_V3 = b"""\
<?xml version="1.0" encoding="UTF-8"?>
<statistics version="3.11">
  <server>
    <counters type="opcode"><counter name="QUERY">42</counter><counter name="NOTIFY">3</counter></counters>
    <counters type="rcode"><counter name="NOERROR">40</counter></counters>
    <counters type="qtype"><counter name="A">30</counter></counters>
    <counters type="nsstat"><counter name="Requestv4">40</counter></counters>
    <counters type="zonestat"><counter name="XfrSuccess">1</counter></counters>
    <counters type="resstat"><counter name="Lame">0</counter></counters>
    <counters type="sockstat"><counter name="UDP4Open">12</counter></counters>
  </server>
  <views>
    <view name="_default">
      <counters type="resqtype"><counter name="A">10</counter></counters>
      <counters type="resstats"><counter name="Queryv4">7</counter><counter name="Retry">2</counter></counters>
      <counters type="adbstat"><counter name="NumBuckets">1021</counter></counters>
      <cache name="_default"><rrset><name>A</name><counter>3</counter></rrset></cache>
    </view>
  </views>
  <memory>
    <summary><TotalUse>2000</TotalUse><InUse>900</InUse><BlockSize>0</BlockSize><ContextSize>128</ContextSize><Lost>0</Lost></summary>
  </memory>
</statistics>
"""


def _raw(body: bytes, **kwargs) -> RawDocument:
    return RawDocument(body=body, source="test", **kwargs)


def test_decode_v2_server_groups():
    tree = decode(_raw(SAMPLE_V2))

    assert tree.version is SchemaVersion.V2
    assert tree.server.opcodes == [Counter("QUERY", 42)]
    assert tree.server.ns_stats == [Counter("Requestv4", 40)]
    assert tree.server.zone_stats == [Counter("XfrSuccess", 1)]
    assert tree.server.resolver_stats == [Counter("Lame", 0)]
    assert tree.server.socket_stats == [Counter("UDP4Open", 12)]


def test_decode_v2_keeps_duplicate_names():
    tree = decode(_raw(SAMPLE_V2))
    assert tree.server.query_types == [Counter("A", 30), Counter("A", 2)]


def test_decode_v2_views_and_caches():
    tree = decode(_raw(SAMPLE_V2))

    assert len(tree.views) == 1
    view = tree.views[0]
    assert view.name == "_default"
    assert view.query_types == [Counter("A", 10), Counter("AAAA", 4)]
    assert view.resolver_stats == [Counter("Queryv4", 7)]
    assert view.caches[0].name == "_default"
    assert view.caches[0].rrsets == [Counter("A", 3), Counter("!NXDOMAIN", 1)]


def test_decode_v2_memory():
    tree = decode(_raw(SAMPLE_V2))

    assert tree.memory.present
    assert tree.memory.summary.total_use == 1000
    assert tree.memory.summary.in_use == 600
    assert tree.memory.summary.block_size == 512
    assert tree.memory.summary.context_size == 64
    assert tree.memory.summary.lost == 0
    ctx = tree.memory.contexts[0]
    assert (ctx.id, ctx.name, ctx.total, ctx.in_use) == ("0x1", "main", 100, 60)


def test_decode_v3():
    tree = decode(_raw(SAMPLE_V3))

    assert tree.version is SchemaVersion.V3
    assert tree.server.opcodes == [Counter("QUERY", 42), Counter("NOTIFY", 3)]
    assert tree.server.query_types == [Counter("A", 30)]
    assert tree.server.socket_stats == [Counter("UDP4Open", 12)]

    view = tree.views[0]
    assert view.name == "_default"
    assert view.query_types == [Counter("A", 10)]
    assert view.resolver_stats == [Counter("Queryv4", 7), Counter("Retry", 2)]
    assert view.caches[0].rrsets == [Counter("A", 3)]

    assert tree.memory.summary.total_use == 2000
    assert tree.memory.contexts == []


def test_decode_v3_ignores_unknown_groups():
    tree = decode(_raw(SAMPLE_V3))
    all_server = (
        tree.server.opcodes + tree.server.query_types + tree.server.ns_stats
        + tree.server.zone_stats + tree.server.resolver_stats + tree.server.socket_stats
    )
    assert "NOERROR" not in [c.name for c in all_server]
    assert "NumBuckets" not in [c.name for c in tree.views[0].resolver_stats]


def test_absent_sections_decode_empty():
    tree = decode(_raw(b'<isc><bind><statistics version="2.0"/></bind></isc>'))

    assert tree.server.opcodes == []
    assert tree.views == []
    assert tree.memory.contexts == []
    assert tree.memory.present is False
    assert tree.memory.summary.total_use == 0


def test_v3_subset_has_only_memory():
    body = b'<statistics version="3.5"><memory><summary><TotalUse>5</TotalUse></summary></memory></statistics>'
    tree = decode(_raw(body))

    assert tree.server.opcodes == []
    assert tree.views == []
    assert tree.memory.summary.total_use == 5


def test_version_inferred_from_shape():
    assert decode(_raw(b"<isc><bind><statistics/></bind></isc>")).version is SchemaVersion.V2
    assert decode(_raw(b"<statistics/>")).version is SchemaVersion.V3


def test_unsupported_version():
    with pytest.raises(UnsupportedVersion) as exc:
        decode(_raw(b'<statistics version="v9"/>'))
    assert exc.value.found == "v9"

    with pytest.raises(UnsupportedVersion):
        decode(_raw(b'<isc><bind><statistics version="9.1"/></bind></isc>'))


def test_resolve_version_uses_major_only():
    assert resolve_version("2.2") is SchemaVersion.V2
    assert resolve_version("3.11") is SchemaVersion.V3
    assert resolve_version("3") is SchemaVersion.V3


def test_every_version_has_a_decoder():
    assert set(xml_decoder._DECODERS) == set(SchemaVersion)


@pytest.mark.parametrize("body", [
    b"",
    b"<isc><bind>",
    b"<html><body>not stats</body></html>",
    b"<isc><other/></isc>",
    b'<statistics version="3.0"><server><counters type="opcode"><counter>1</counter></counters></server></statistics>',
    b'<isc><bind><statistics version="2.0"><views><view><rdtype/></view></views></statistics></bind></isc>',
])
def test_malformed_documents(body):
    with pytest.raises(MalformedDocument):
        decode(_raw(body))


def test_entity_declarations_rejected():
    body = b'<?xml version="1.0"?><!DOCTYPE isc [<!ENTITY a "aaaa">]><isc>&a;</isc>'
    with pytest.raises(MalformedDocument):
        decode(_raw(body))


def test_bad_counter_value_defaults_to_zero(caplog):
    body = b"""<isc><bind><statistics version="2.2"><server>
        <nsstat><name>Requestv4</name><counter>18446744073709551616x</counter></nsstat>
        <nsstat><name>Response</name><counter>7</counter></nsstat>
        <nsstat><name>ReqEdns0</name></nsstat>
    </server></statistics></bind></isc>"""

    with caplog.at_level(logging.WARNING, logger="bindstat.collector.xml_decoder"):
        tree = decode(_raw(body))

    assert tree.server.ns_stats == [
        Counter("Requestv4", 0),
        Counter("Response", 7),
        Counter("ReqEdns0", 0),
    ]
    assert "server/nsstat[Requestv4]" in caplog.text
    assert "server/nsstat[ReqEdns0]" in caplog.text


def test_bad_v3_counter_value_defaults_to_zero(caplog):
    body = b'<statistics version="3.11"><server><counters type="opcode"><counter name="QUERY">n/a</counter></counters></server></statistics>'

    with caplog.at_level(logging.WARNING, logger="bindstat.collector.xml_decoder"):
        tree = decode(_raw(body))

    assert tree.server.opcodes == [Counter("QUERY", 0)]
    assert "Non-integer value 'n/a'" in caplog.text


def test_declared_version_mismatch_trusts_document(caplog):
    with caplog.at_level(logging.WARNING, logger="bindstat.collector.xml_decoder"):
        tree = decode(_raw(SAMPLE_V2, declared_version="3"))

    assert tree.version is SchemaVersion.V2
    assert "declared schema v3" in caplog.text


def test_merge_subsets():
    server_part = decode(_raw(SAMPLE_V3))
    mem_part = decode(_raw(
        b'<statistics version="3.11"><memory><summary><TotalUse>77</TotalUse></summary></memory></statistics>'
    ))

    merged = server_part.merge(mem_part)
    assert merged.memory.summary.total_use == 77
    assert merged.server.opcodes == [Counter("QUERY", 42), Counter("NOTIFY", 3)]


def test_merge_rejects_mixed_versions():
    with pytest.raises(ValueError):
        decode(_raw(SAMPLE_V3)).merge(decode(_raw(SAMPLE_V2)))
