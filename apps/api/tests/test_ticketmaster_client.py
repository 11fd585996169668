import httpx
import pytest

from eventrec_core.errors import EventSourceError, EventSourceUnavailable
from eventrec_sources.ticketmaster_client import TicketmasterClient, to_raw_event

pytestmark = pytest.mark.anyio

TM_EVENT = {
    "id": "Z7r9",
    "name": "Arctic Monkeys",
    "url": "https://tm.example/e/Z7r9",
    "dates": {"start": {"localDate": "2025-07-01", "localTime": "19:30:00"}},
    "classifications": [{"segment": {"name": "Music"}}],
    "priceRanges": [{"min": 45.0, "max": 120.0}],
    "_embedded": {
        "venues": [
            {
                "name": "O2 Arena",
                "city": {"name": "London"},
                "country": {"name": "Great Britain", "countryCode": "GB"},
                "location": {"latitude": "51.503", "longitude": "0.003"},
            }
        ]
    },
}


def _client(handler, api_key="k", **kwargs) -> TicketmasterClient:
    return TicketmasterClient(
        api_key, client=httpx.AsyncClient(transport=httpx.MockTransport(handler)), **kwargs
    )


def test_to_raw_event_flattens_discovery_payload():
    raw = to_raw_event(TM_EVENT)
    assert raw["id"] == "tm_Z7r9"
    assert raw["title"] == "Arctic Monkeys"
    assert raw["countryCode"] == "GB" and raw["country"] == "Great Britain"
    assert raw["category"] == "Music"
    assert (raw["priceMin"], raw["priceMax"]) == (45.0, 120.0)
    assert (raw["lat"], raw["lon"]) == (51.503, 0.003)
    assert (raw["date"], raw["time"]) == ("2025-07-01", "19:30:00")


def test_to_raw_event_tolerates_sparse_payload():
    raw = to_raw_event({"id": "x"})
    assert raw["id"] == "tm_x"
    assert raw["category"] == "Event"
    assert raw["priceMin"] is None and raw["lat"] is None


async def test_search_sends_filters_and_maps_results():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen.update(dict(request.url.params))
        return httpx.Response(200, json={"_embedded": {"events": [TM_EVENT]}})

    client = _client(handler)
    out = await client.search(category="Music", country_code="GB", page_size=20)
    await client.aclose()

    assert seen == {"apikey": "k", "size": "20", "classificationName": "Music", "countryCode": "GB"}
    assert [r["id"] for r in out] == ["tm_Z7r9"]


async def test_empty_page_is_empty_list():
    client = _client(lambda request: httpx.Response(200, json={"page": {"totalElements": 0}}))
    assert await client.search(country_code="NZ") == []
    await client.aclose()


async def test_missing_api_key_is_unavailable():
    client = _client(lambda request: httpx.Response(200, json={}), api_key=None)
    with pytest.raises(EventSourceUnavailable):
        await client.search()
    await client.aclose()


async def test_upstream_5xx_is_request_error_after_retry():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(503)

    client = _client(handler)
    with pytest.raises(EventSourceError):
        await client.get_with_retry({"apikey": "k"}, retries=1, delay=0)
    assert len(calls) == 2
    await client.aclose()


async def test_client_error_raises_http_status_error():
    client = _client(lambda request: httpx.Response(401, json={"fault": "bad key"}))
    with pytest.raises(httpx.HTTPStatusError):
        await client.search(country_code="US")
    await client.aclose()


async def test_connection_error_is_request_error_not_outage():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    client = _client(handler, retry_delay=0)
    with pytest.raises(EventSourceError) as exc:
        await client.search(country_code="US")
    assert not isinstance(exc.value, EventSourceUnavailable)
    await client.aclose()
