import asyncio
import json

import httpx
import pytest

from diesel_leads.config import FirecrawlSettings
from diesel_leads.exceptions import ConfigurationError, SearchError
from diesel_leads.search import FirecrawlSearch


SETTINGS = FirecrawlSettings(api_key="fc-test", base_url="https://firecrawl.test/v1")


def _run(handler, query="kilang sawit"):
    async def go():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            return await FirecrawlSearch(SETTINGS, client=client).search(query)

    return asyncio.run(go())


def test_search_posts_query_and_parses_flat_list():
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"success": True, "data": [{"title": "ABC Sdn Bhd", "url": "https://abc.my"}]})

    results = _run(handler)
    assert [r.title for r in results] == ["ABC Sdn Bhd"]
    assert seen["url"] == "https://firecrawl.test/v1/search"
    assert seen["auth"] == "Bearer fc-test"
    assert seen["body"]["query"] == "kilang sawit"
    assert seen["body"]["country"] == "MY"
    assert seen["body"]["scrapeOptions"] == {"formats": ["markdown"]}


def test_search_accepts_nested_data():
    def handler(request):
        return httpx.Response(200, json={"data": {"data": [{"title": "A"}, "junk", {"description": "B"}]}})

    results = _run(handler)
    assert [(r.title, r.description) for r in results] == [("A", None), (None, "B")]


def test_http_error_raises_search_error():
    with pytest.raises(SearchError):
        _run(lambda request: httpx.Response(500, json={"error": "boom"}))


def test_unsuccessful_payload_raises_search_error():
    with pytest.raises(SearchError):
        _run(lambda request: httpx.Response(200, json={"success": False, "error": "quota"}))


def test_missing_key_is_a_configuration_error():
    with pytest.raises(ConfigurationError):
        FirecrawlSearch(FirecrawlSettings(api_key=""))
