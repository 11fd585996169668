import logging

import pytest

from conftest import FakeEventSource, raw_event
from eventrec_core.errors import EventSourceUnavailable
from eventrec_retrieval.fanout import dedup_by_id, fan_out_regions

pytestmark = pytest.mark.anyio


def test_dedup_first_wins_and_drops_idless():
    out = dedup_by_id(
        [
            [raw_event("a", "US", title="first"), raw_event("b", "US")],
            [raw_event("a", "GB", title="second"), {"title": "no id"}],
        ]
    )
    assert [r["id"] for r in out] == ["a", "b"]
    assert out[0]["title"] == "first"


async def test_overlapping_regions_never_duplicate():
    shared = raw_event("shared", "US")
    src = FakeEventSource(
        {
            "US": [shared, raw_event("us1", "US")],
            "GB": [shared, raw_event("gb1", "GB")],
            "AU": [raw_event("au1", "AU"), shared],
        }
    )
    out = await fan_out_regions(src, regions=("US", "GB", "AU"), category="Music")

    ids = [r["id"] for r in out]
    assert ids == ["shared", "us1", "gb1", "au1"]
    assert len(ids) == len(set(ids))
    assert {c["category"] for c in src.calls} == {"Music"}


async def test_preferred_country_gets_its_own_query():
    src = FakeEventSource({"US": [raw_event("us1")], "NZ": [raw_event("nz1", "NZ")]})
    out = await fan_out_regions(src, regions=("US",), preferred_country="NZ")
    assert [c["country_code"] for c in src.calls] == ["US", "NZ"]
    assert [r["id"] for r in out] == ["us1", "nz1"]


async def test_failing_and_slow_regions_are_isolated(caplog):
    src = FakeEventSource(
        {"US": [raw_event("us1")], "AU": [raw_event("au1", "AU")]},
        fail={"GB"},
        slow={"AU"},
    )
    with caplog.at_level(logging.WARNING):
        out = await fan_out_regions(src, regions=("US", "GB", "AU"), timeout_s=0.05)

    assert [r["id"] for r in out] == ["us1"]
    messages = " ".join(r.getMessage() for r in caplog.records)
    assert "GB" in messages and "AU" in messages


async def test_global_fallback_when_regions_are_empty():
    src = FakeEventSource({None: [raw_event("g1", None), raw_event("g1", None)]}, fail={"US"})
    out = await fan_out_regions(src, regions=("US", "GB"))
    assert [r["id"] for r in out] == ["g1"]
    assert src.calls[-1]["country_code"] is None and src.calls[-1]["category"] is None


async def test_all_failing_with_ordinary_errors_yields_empty():
    src = FakeEventSource(fail={"US", "GB"}, fallback_error=RuntimeError("still down"))
    assert await fan_out_regions(src, regions=("US", "GB")) == []


async def test_total_outage_propagates():
    src = FakeEventSource(fail={"US"}, fallback_error=EventSourceUnavailable("down"))
    with pytest.raises(EventSourceUnavailable):
        await fan_out_regions(src, regions=("US",))
