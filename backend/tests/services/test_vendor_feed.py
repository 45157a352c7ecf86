import httpx
import pytest

from backend.app.services.http_transport import HttpxTransport
from backend.app.services.vendor_feed import FeedError, VendorFeedClient
from backend.app.services.vendors import VendorConfig

LAMBERT = VendorConfig("lambert", "Lambert Auto", "LAMBERT", scraper_url="https://scraper.test/api/lambert/scrape-with-images")
NANI = VendorConfig(
    "naniauto",
    "NaniAuto",
    "GENERIC_DEALER",
    scraper_url="https://scraper.test/api/scrape",
    dealer_url="https://naniauto.com",
)


def _client(handler) -> VendorFeedClient:
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return VendorFeedClient(transport=HttpxTransport(client=http), backoff_base=0)


@pytest.mark.asyncio
async def test_fetch_returns_entries_unfiltered():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"success": True, "vehicles": [{"make": "Kia"}, "junk"]})

    vehicles = await _client(handler).fetch(LAMBERT)
    assert vehicles == [{"make": "Kia"}, "junk"]


@pytest.mark.asyncio
async def test_generic_dealer_fetch_sends_dealer_details():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.read())
        return httpx.Response(200, json={"success": True, "vehicles": []})

    assert await _client(handler).fetch(NANI) == []
    assert b'"dealerUrl":"https://naniauto.com"' in seen[0].replace(b" ", b"")


@pytest.mark.asyncio
async def test_fetch_retries_retryable_status():
    responses = [httpx.Response(503, json={}), httpx.Response(200, json={"vehicles": [{"make": "Kia"}]})]

    def handler(request: httpx.Request) -> httpx.Response:
        return responses.pop(0)

    assert await _client(handler).fetch(LAMBERT) == [{"make": "Kia"}]


@pytest.mark.asyncio
async def test_fetch_raises_when_scraper_reports_failure():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"success": False, "error": "blocked by vendor"})

    with pytest.raises(FeedError, match="blocked by vendor"):
        await _client(handler).fetch(LAMBERT)


@pytest.mark.asyncio
async def test_fetch_requires_scraper_url():
    vendor = VendorConfig("lambert", "Lambert Auto", "LAMBERT")
    with pytest.raises(FeedError):
        await VendorFeedClient().fetch(vendor)


@pytest.mark.asyncio
async def test_fetch_raises_when_vehicles_key_is_missing():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"success": True})

    with pytest.raises(FeedError, match="no vehicles payload"):
        await _client(handler).fetch(LAMBERT)


@pytest.mark.asyncio
async def test_fetch_rejects_non_list_vehicles():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"success": True, "vehicles": {"make": "Kia"}})

    with pytest.raises(FeedError, match="malformed"):
        await _client(handler).fetch(LAMBERT)
