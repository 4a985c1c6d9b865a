import asyncio

import httpx
import pytest

from diesel_leads.config import MapsSettings
from diesel_leads.exceptions import GeocodingError
from diesel_leads.geocode import GeocodeCache, GoogleGeocoder, parse_geocode_payload
from diesel_leads.models import GeocodeResult


KUANTAN_PAYLOAD = {
    "status": "OK",
    "results": [
        {
            "formatted_address": "Jalan Gebeng, 26080 Kuantan, Pahang, Malaysia",
            "geometry": {"location": {"lat": 3.97, "lng": 103.38}},
            "address_components": [
                {"long_name": "Kuantan", "types": ["locality", "political"]},
                {"long_name": "Pahang", "types": ["administrative_area_level_1", "political"]},
            ],
        }
    ],
}


def test_parse_payload():
    geo = parse_geocode_payload(KUANTAN_PAYLOAD)
    assert (geo.latitude, geo.longitude) == (3.97, 103.38)
    assert geo.state == "Pahang"
    assert geo.city == "Kuantan"


def test_parse_payload_without_results():
    assert parse_geocode_payload({"status": "ZERO_RESULTS", "results": []}) is None
    assert parse_geocode_payload({"status": "OK", "results": [{"geometry": {}}]}) is None


def test_geocoder_sends_malaysia_bias():
    seen = {}

    def handler(request):
        seen.update(request.url.params)
        return httpx.Response(200, json=KUANTAN_PAYLOAD)

    async def go():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            return await GoogleGeocoder(MapsSettings(api_key="maps"), client=client).geocode("ABC Sdn Bhd Kuantan")

    geo = asyncio.run(go())
    assert geo.state == "Pahang"
    assert seen["components"] == "country:MY"
    assert seen["address"] == "ABC Sdn Bhd Kuantan"


def test_geocoder_http_failure():
    async def go():
        transport = httpx.MockTransport(lambda request: httpx.Response(503))
        async with httpx.AsyncClient(transport=transport) as client:
            await GoogleGeocoder(MapsSettings(api_key="maps"), client=client).geocode("x")

    with pytest.raises(GeocodingError):
        asyncio.run(go())


def test_cache_calls_lookup_once_per_query():
    calls = []

    async def lookup(query):
        calls.append(query)
        await asyncio.sleep(0)
        return GeocodeResult(latitude=1.0, longitude=2.0, state="Pahang")

    async def go():
        cache = GeocodeCache(lookup)
        results = await asyncio.gather(cache.get("a"), cache.get("a"), cache.get("b"), cache.get("a"))
        return cache, results

    cache, results = asyncio.run(go())
    assert calls == ["a", "b"]
    assert cache.calls == 2
    assert len(cache) == 2
    assert results[0] is results[1]


def test_parse_payload_with_malformed_entries():
    assert parse_geocode_payload({"status": "OK", "results": [None]}) is None
    assert parse_geocode_payload({"status": "OK", "results": [{"geometry": "x"}]}) is None
    assert parse_geocode_payload({"status": "OK", "results": [{"geometry": {"location": [3.9, 103.3]}}]}) is None
    geo = parse_geocode_payload(
        {"status": "OK", "results": [{"geometry": {"location": {"lat": 3.9, "lng": 103.3}}, "address_components": ["x"]}]}
    )
    assert geo.state is None
