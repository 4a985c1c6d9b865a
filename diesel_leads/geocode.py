"""Google geocoding with a per-run cache of identical queries."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional

import httpx

from .config import MapsSettings, maps_settings
from .exceptions import ConfigurationError, GeocodingError
from .models import GeocodeResult


logger = logging.getLogger(__name__)


def _component(components: List[Dict[str, Any]], kind: str) -> Optional[str]:
    for component in components:
        if isinstance(component, dict) and kind in (component.get("types") or []):
            name = component.get("long_name")
            return name if isinstance(name, str) else None
    return None


def parse_geocode_payload(payload: Any) -> Optional[GeocodeResult]:
    """Return the first result of a Geocoding API response, or ``None``."""

    if not isinstance(payload, dict) or payload.get("status") != "OK":
        return None
    results = payload.get("results")
    if not isinstance(results, list) or not results:
        return None

    first = results[0]
    if not isinstance(first, dict):
        return None
    geometry = first.get("geometry")
    location = geometry.get("location") if isinstance(geometry, dict) else None
    if not isinstance(location, dict):
        return None
    lat, lng = location.get("lat"), location.get("lng")
    if not isinstance(lat, (int, float)) or not isinstance(lng, (int, float)):
        return None

    components = first.get("address_components")
    components = components if isinstance(components, list) else []
    formatted = first.get("formatted_address")
    return GeocodeResult(
        latitude=float(lat),
        longitude=float(lng),
        formatted_address=formatted if isinstance(formatted, str) else None,
        state=_component(components, "administrative_area_level_1"),
        city=_component(components, "locality") or _component(components, "administrative_area_level_2"),
    )


class GoogleGeocoder:
    """Resolve free-text queries to Malaysian coordinates."""

    def __init__(self, settings: MapsSettings = maps_settings, client: Optional[httpx.AsyncClient] = None) -> None:
        if not settings.api_key:
            raise ConfigurationError("Geocoding is not configured. Set GOOGLE_MAPS_API_KEY.")
        self.settings = settings
        self._client = client

    async def geocode(self, query: str) -> Optional[GeocodeResult]:
        params = {"address": query, "key": self.settings.api_key, "region": "my", "components": "country:MY"}
        try:
            if self._client is not None:
                response = await self._client.get(self.settings.geocode_url, params=params, timeout=self.settings.timeout)
            else:
                async with httpx.AsyncClient(timeout=self.settings.timeout) as client:
                    response = await client.get(self.settings.geocode_url, params=params)
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPError as exc:
            raise GeocodingError(f"Geocoding failed for {query!r}: {exc}") from exc
        except ValueError as exc:
            raise GeocodingError(f"Geocoding returned invalid JSON for {query!r}") from exc
        try:
            return parse_geocode_payload(payload)
        except (AttributeError, TypeError, ValueError) as exc:
            raise GeocodingError(f"Geocoding returned an unexpected payload for {query!r}") from exc


class GeocodeCache:
    """Per-run memo keyed by the exact query string.

    Lookups in flight are shared, so concurrent requests for the same query
    reach the geocoder once.
    """

    def __init__(self, lookup: Callable[[str], Awaitable[Optional[GeocodeResult]]]) -> None:
        self._lookup = lookup
        self._entries: Dict[str, "asyncio.Future[Optional[GeocodeResult]]"] = {}
        self.calls = 0

    async def get(self, query: str) -> Optional[GeocodeResult]:
        entry = self._entries.get(query)
        if entry is None:
            self.calls += 1
            entry = asyncio.ensure_future(self._lookup(query))
            self._entries[query] = entry
        return await asyncio.shield(entry)

    def __len__(self) -> int:
        return len(self._entries)
