"""Firecrawl web search client."""

from __future__ import annotations

import logging
from typing import Any, List, Optional

import httpx

from .config import FirecrawlSettings, firecrawl_settings
from .exceptions import ConfigurationError, SearchError
from .models import SearchResult


logger = logging.getLogger(__name__)


def _result_entries(payload: Any) -> List[dict]:
    """Firecrawl returns ``data`` either as a list or nested as ``data.data``."""

    if not isinstance(payload, dict):
        return []
    data = payload.get("data")
    if isinstance(data, dict):
        data = data.get("data")
    if not isinstance(data, list):
        return []
    return [entry for entry in data if isinstance(entry, dict)]


class FirecrawlSearch:
    """Issue one search query at a time against the Firecrawl API."""

    def __init__(
        self,
        settings: FirecrawlSettings = firecrawl_settings,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        if not settings.api_key:
            raise ConfigurationError("Firecrawl search is not configured. Set FIRECRAWL_API_KEY.")
        self.settings = settings
        self._client = client

    async def search(self, query: str) -> List[SearchResult]:
        body = {
            "query": query,
            "limit": self.settings.result_limit,
            "lang": self.settings.lang,
            "country": self.settings.country,
            "scrapeOptions": {"formats": ["markdown"]},
        }
        headers = {"Authorization": f"Bearer {self.settings.api_key}"}
        url = f"{self.settings.base_url.rstrip('/')}/search"

        try:
            if self._client is not None:
                response = await self._client.post(url, json=body, headers=headers, timeout=self.settings.timeout)
            else:
                async with httpx.AsyncClient(timeout=self.settings.timeout) as client:
                    response = await client.post(url, json=body, headers=headers)
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPError as exc:
            raise SearchError(f"Search failed for {query!r}: {exc}") from exc
        except ValueError as exc:
            raise SearchError(f"Search returned invalid JSON for {query!r}") from exc

        if isinstance(payload, dict) and payload.get("success") is False:
            raise SearchError(f"Search failed for {query!r}: {payload.get('error', 'unknown error')}")

        results: List[SearchResult] = []
        for entry in _result_entries(payload):
            try:
                results.append(SearchResult.model_validate(entry))
            except ValueError:
                continue
        logger.info("Found %d results for %r", len(results), query)
        return results
