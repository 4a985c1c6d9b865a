"""High-level orchestration for one lead discovery run."""

from __future__ import annotations

import asyncio
import logging
import random
from typing import Awaitable, Callable, List, Optional, Protocol, Sequence, Tuple

from .analysis import ClassificationOutcome, LeadClassifier, LlmLeadClassifier, RuleBasedClassifier
from .classify import has_business_indicator, is_business_result
from .config import DiscoverySettings, discovery_settings, llm_settings, maps_settings
from .dedupe import dedupe_against_existing_then_batch
from .exceptions import LeadDiscoveryError, SearchError
from .geocode import GeocodeCache, GoogleGeocoder
from .geography import canonical_state, in_target_region, region_for_state, validate_location
from .models import DiscoveryRequest, DiscoveryRun, GeocodeResult, LeadCandidate, RunStatus, SearchResult
from .queries import QueryHistory, generate_queries
from .scoring import is_qualified
from .search import FirecrawlSearch


logger = logging.getLogger(__name__)

NO_RESULTS_MESSAGE = "No results found. Try a different search query or region."
NO_QUALIFIED_MESSAGE = (
    "No new qualified leads found. Try different search parameters or the leads may already be in your database."
)


class SearchClient(Protocol):
    async def search(self, query: str) -> List[SearchResult]:
        ...


class Geocoder(Protocol):
    async def geocode(self, query: str) -> Optional[GeocodeResult]:
        ...


def location_text(candidate: LeadCandidate) -> str:
    parts = [candidate.company_name, candidate.location, candidate.state, candidate.address]
    return " ".join(part for part in parts if part)


def geocode_query(candidate: LeadCandidate) -> str:
    parts = [candidate.company_name, candidate.address, candidate.location, candidate.state, "Malaysia"]
    return " ".join(part for part in parts if part)


def apply_location(candidate: LeadCandidate) -> LeadCandidate:
    """Correct the classifier's state from the place names the candidate mentions."""

    match = validate_location(location_text(candidate), candidate.state)
    return candidate.model_copy(
        update={
            "state": match.state,
            "region": match.region,
            "location": match.city or candidate.location or match.state,
        }
    )


def apply_geocode(candidate: LeadCandidate, geo: GeocodeResult) -> LeadCandidate:
    state = canonical_state(geo.state) or candidate.state
    return candidate.model_copy(
        update={
            "state": state,
            "region": region_for_state(state),
            "location": geo.city or candidate.location,
            "address": geo.formatted_address or candidate.address,
            "latitude": geo.latitude,
            "longitude": geo.longitude,
            "geocoded": True,
        }
    )


class LeadDiscoveryPipeline:
    """Coordinate search, classification, deduplication, location checks and ranking."""

    def __init__(
        self,
        search: SearchClient,
        classifiers: Optional[Sequence[LeadClassifier]] = None,
        geocoder: Optional[Geocoder] = None,
        settings: DiscoverySettings = discovery_settings,
        history: Optional[QueryHistory] = None,
        classifier_timeout: Optional[float] = llm_settings.timeout,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.search = search
        chain = list(classifiers) if classifiers is not None else [LlmLeadClassifier(), RuleBasedClassifier()]
        if not any(isinstance(classifier, RuleBasedClassifier) for classifier in chain):
            chain.append(RuleBasedClassifier())
        self.classifiers = chain
        self.geocoder = geocoder
        self.settings = settings
        self.history = history if history is not None else QueryHistory(settings.history_size)
        self.classifier_timeout = classifier_timeout
        self._sleep = sleep
        self._rng = rng

    def select_queries(self, request: DiscoveryRequest) -> List[str]:
        if request.queries:
            queries = list(request.queries)
        else:
            queries = generate_queries(
                request.region, self.history, limit=self.settings.max_queries, rng=self._rng
            )
        queries = queries[: self.settings.max_queries]
        self.history.remember(request.region, queries)
        return queries

    async def collect_results(self, queries: Sequence[str]) -> Tuple[List[SearchResult], List[str]]:
        """Run queries one after another; a failing query is logged and skipped."""

        results: List[SearchResult] = []
        failed: List[str] = []
        for index, query in enumerate(queries):
            try:
                results.extend(await self.search.search(query))
            except SearchError as exc:
                logger.warning("Search query %d failed: %s", index + 1, exc)
                failed.append(query)
            if index < len(queries) - 1 and self.settings.query_delay > 0:
                await self._sleep(self.settings.query_delay)
        logger.info("Total search results collected: %d", len(results))
        return results, failed

    def _classifier_chain(self, request: DiscoveryRequest) -> List[LeadClassifier]:
        if request.use_ai:
            return list(self.classifiers)
        return [classifier for classifier in self.classifiers if isinstance(classifier, RuleBasedClassifier)]

    async def classify(self, results: Sequence[SearchResult], request: DiscoveryRequest) -> ClassificationOutcome:
        """Try each classifier in order; the keyword rules are the last resort."""

        chain = self._classifier_chain(request)
        for classifier in chain[:-1]:
            if not results:
                break
            try:
                outcome = await asyncio.wait_for(classifier.classify(results, request), timeout=self.classifier_timeout)
            except asyncio.TimeoutError:
                logger.warning("%s classifier timed out; falling back", classifier.name)
                continue
            except LeadDiscoveryError as exc:
                logger.warning("%s classifier unavailable (%s); falling back", classifier.name, exc)
                continue
            except Exception:  # the LLM stack raises provider-specific errors
                logger.warning("%s classifier failed; falling back", classifier.name, exc_info=True)
                continue
            if outcome.candidates:
                return outcome
            logger.warning("%s classifier returned no usable leads; falling back", classifier.name)
        return await chain[-1].classify(results, request)

    async def validate_locations(self, candidates: Sequence[LeadCandidate]) -> List[LeadCandidate]:
        located = [apply_location(candidate) for candidate in candidates]
        if self.geocoder is None or not located:
            return located

        cache = GeocodeCache(self.geocoder.geocode)

        async def _refine(candidate: LeadCandidate) -> LeadCandidate:
            query = geocode_query(candidate)
            try:
                geo = await cache.get(query)
            except LeadDiscoveryError as exc:
                logger.warning("Geocoding skipped for %s: %s", candidate.company_name, exc)
                return candidate
            except Exception:  # keep the text-derived location
                logger.warning("Geocoding failed for %s", candidate.company_name, exc_info=True)
                return candidate
            if geo is None:
                return candidate
            return apply_geocode(candidate, geo)

        refined = await asyncio.gather(*(_refine(candidate) for candidate in located))
        logger.info("Geocoded %d candidates with %d lookups", len(refined), cache.calls)
        return list(refined)

    async def run(self, request: DiscoveryRequest) -> DiscoveryRun:
        """Execute the full workflow for a single discovery request."""

        queries = self.select_queries(request)
        logger.info("Using search queries: %s", queries)
        raw_results, failed = await self.collect_results(queries)

        if not raw_results:
            return DiscoveryRun(
                status=RunStatus.NO_RESULTS,
                message=NO_RESULTS_MESSAGE,
                region=request.region,
                queries=queries,
                failed_queries=failed,
            )

        business_results = [result for result in raw_results if is_business_result(result)]
        logger.info("%d of %d results look like diesel-using businesses", len(business_results), len(raw_results))

        outcome = await self.classify(business_results, request)
        eligible = [c for c in outcome.candidates if has_business_indicator(c.company_name)]

        unique = dedupe_against_existing_then_batch(eligible, request.existing_companies)
        located = await self.validate_locations(unique)
        if request.strict_region:
            located = [c for c in located if in_target_region(c.state, c.region, request.region)]

        qualified = [
            candidate
            for candidate in located
            if is_qualified(candidate.estimated_usage, candidate.quality_score, outcome.threshold, request.min_usage)
        ]
        qualified.sort(key=lambda candidate: candidate.quality_score, reverse=True)
        qualified = qualified[: self.settings.max_leads]

        if qualified:
            status, message = RunStatus.OK, f"Found {len(qualified)} qualified leads in {request.region}"
        else:
            status, message = RunStatus.NO_QUALIFIED, NO_QUALIFIED_MESSAGE

        return DiscoveryRun(
            status=status,
            message=message,
            region=request.region,
            queries=queries,
            failed_queries=failed,
            raw_result_count=len(raw_results),
            classifier=outcome.classifier,
            summary=outcome.summary,
            active_searchers=outcome.active_searchers,
            candidates=qualified,
        )


def build_pipeline(history: Optional[QueryHistory] = None) -> LeadDiscoveryPipeline:
    """Wire the pipeline from environment configuration."""

    geocoder = GoogleGeocoder() if maps_settings.api_key else None
    classifiers: List[LeadClassifier] = [RuleBasedClassifier()]
    if llm_settings.api_key:
        classifiers.insert(0, LlmLeadClassifier(result_limit=discovery_settings.ai_result_limit))
    return LeadDiscoveryPipeline(
        search=FirecrawlSearch(),
        classifiers=classifiers,
        geocoder=geocoder,
        history=history,
    )


async def run_discovery(request: DiscoveryRequest, history: Optional[QueryHistory] = None) -> DiscoveryRun:
    """Convenience entry point."""

    pipeline = build_pipeline(history)
    return await pipeline.run(request)
