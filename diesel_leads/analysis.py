"""Interchangeable classify-and-score strategies: keyword rules and LLM analysis."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, Sequence

from crawl4ai import AsyncWebCrawler, CacheMode, CrawlerRunConfig, LLMConfig, LLMExtractionStrategy

from .classify import detect_industry, extract_company_name, extract_email, extract_phone, quality_factors
from .config import LLMSettings, llm_settings
from .exceptions import ClassificationError, ConfigurationError
from .geography import detect_state, region_for_state
from .models import AnalyzedLead, DiscoveryRequest, LeadAnalysis, LeadCandidate, LeadSource, SearchResult
from .scoring import AI_CONFIDENCE_THRESHOLD, RULE_QUALITY_THRESHOLD, clamp_score, estimate_usage, quality_score


logger = logging.getLogger(__name__)


@dataclass
class ClassificationOutcome:
    """Candidates from one classifier plus the score threshold they must clear."""

    classifier: str
    candidates: List[LeadCandidate]
    threshold: int
    summary: Optional[str] = None
    active_searchers: int = 0
    extra: Dict[str, Any] = field(default_factory=dict)


class LeadClassifier(Protocol):
    name: str

    async def classify(self, results: Sequence[SearchResult], request: DiscoveryRequest) -> ClassificationOutcome:
        ...


def classify_result(result: SearchResult) -> Optional[LeadCandidate]:
    """Rule-based classification of one search hit; ``None`` when no company name is found."""

    company_name = extract_company_name(result.title or "")
    if not company_name:
        return None

    content = result.content
    industry = detect_industry(content)
    state = detect_state(content)
    return LeadCandidate(
        company_name=company_name,
        industry=industry,
        state=state,
        region=region_for_state(state),
        contact_phone=extract_phone(content),
        contact_email=extract_email(content),
        estimated_usage=estimate_usage(industry),
        quality_score=quality_score(content, industry=industry, state=state),
        quality_factors=quality_factors(content),
        source_url=result.url,
        snippet=(result.description or "")[:250],
        source=LeadSource.RULES,
    )


class RuleBasedClassifier:
    """Deterministic keyword classification; always available."""

    name = "rules"

    async def classify(self, results: Sequence[SearchResult], request: DiscoveryRequest) -> ClassificationOutcome:
        candidates = [candidate for candidate in map(classify_result, results) if candidate is not None]
        return ClassificationOutcome(
            classifier=self.name,
            candidates=candidates,
            threshold=RULE_QUALITY_THRESHOLD,
            summary=f"Keyword rules classified {len(candidates)} of {len(results)} results",
        )


SYSTEM_PROMPT = """
You are an expert lead analyst specializing in identifying diesel fuel consumers in Malaysia.
Analyze the web search results below and identify REAL, HIGH-QUALITY businesses that need bulk diesel.

Requirements:
1. Only registered Malaysian businesses: the name must carry "Sdn Bhd", "Berhad", "Enterprise",
   "Industries" or a similar registration marker. Return the exact registered name.
2. Verify the location against Malaysian states and cities (e.g. Kuantan, Kemaman, Kota Bharu).
3. Focus on heavy diesel users: palm oil mills and plantations (18,000+ L/month), construction with
   heavy machinery (12,000+), mining and quarrying (22,000+), transport and logistics fleets (10,000+),
   manufacturing with generators (15,000+), marine and port operations (20,000+), timber and logging
   (14,000+), oil and gas services (25,000+).
4. Exclude directory listings, news articles, job postings, social media pages, blogs, forums,
   retail fuel stations and government agencies without diesel needs.
5. Look for diesel need signals: generators or gensets, heavy machinery, truck or lorry fleets,
   industrial backup power, construction sites, mining equipment.
6. Detect buyer intent such as "cari diesel", "pembekal diesel", "diesel supplier", bulk purchase or tender.

Be conservative: quality over quantity. Do not fabricate or guess information.
"""


def build_analysis_prompt(results: Sequence[SearchResult], request: DiscoveryRequest, limit: int = 20) -> str:
    """User prompt listing the search results and the existing companies to leave out."""

    lines = [
        f"Identify qualified diesel leads for the {request.region or 'Malaysia'} region.",
        f"Minimum estimated usage: {request.min_usage} liters/month.",
    ]
    if request.existing_companies:
        lines.append(
            "EXCLUDE these companies (already in database): " + ", ".join(request.existing_companies[:50])
        )
    lines.append("")
    lines.append("Search Results to Analyze:")
    for index, result in enumerate(results[:limit], start=1):
        lines.append(
            f"[{index}] Title: {result.title or 'N/A'}\n"
            f"URL: {result.url or 'N/A'}\n"
            f"Description: {result.description or 'N/A'}\n"
            f"Content: {(result.markdown or '')[:500]}\n"
            "---"
        )
    lines.append(
        f"Return only leads with confidence >= {AI_CONFIDENCE_THRESHOLD}, estimated usage >= "
        f"{request.min_usage}L, a registered business name and a valid Malaysian location."
    )
    return "\n".join(lines)


def parse_analysis(extracted_content: Optional[str]) -> LeadAnalysis:
    """Parse the extraction output; chunked runs return a list of partial analyses."""

    if not extracted_content:
        raise ClassificationError("No valid response from the LLM")
    try:
        raw = json.loads(extracted_content)
    except json.JSONDecodeError as exc:
        raise ClassificationError("LLM response was not valid JSON") from exc

    blocks = raw if isinstance(raw, list) else [raw]
    usable = [block for block in blocks if isinstance(block, dict) and not block.get("error")]
    if not usable:
        raise ClassificationError("LLM response contained no usable analysis")

    leads: List[AnalyzedLead] = []
    summaries: List[str] = []
    active_searchers = 0
    for block in usable:
        entries = block.get("leads")
        if entries is None and "company_name" in block:
            entries = [block]
        for entry in entries or []:
            try:
                leads.append(AnalyzedLead.model_validate(entry))
            except ValueError:
                continue
        if isinstance(block.get("summary"), str) and block["summary"]:
            summaries.append(block["summary"])
        if isinstance(block.get("active_searchers"), int):
            active_searchers += block["active_searchers"]

    return LeadAnalysis(
        leads=leads,
        summary=" ".join(summaries),
        total_qualified=len(leads),
        active_searchers=active_searchers,
    )


def candidate_from_analysis(lead: AnalyzedLead, request: DiscoveryRequest) -> LeadCandidate:
    contact = lead.contact_info
    state = lead.state or "Malaysia"
    return LeadCandidate(
        company_name=lead.company_name.strip(),
        industry=lead.industry or "Industrial",
        state=state,
        region=lead.region or region_for_state(state),
        location=lead.location,
        contact_phone=(contact.phone if contact else None) or None,
        contact_email=(contact.email if contact else None) or None,
        address=(contact.address if contact else None) or None,
        estimated_usage=int(round(lead.estimated_usage)),
        quality_score=clamp_score(lead.confidence),
        quality_factors=list(lead.diesel_need_indicators),
        source_url=lead.source_url,
        snippet=(lead.reasoning or "")[:250],
        source=LeadSource.AI,
        reasoning=lead.reasoning,
        search_intent=lead.search_intent or None,
    )


def _analysis_strategy(settings: LLMSettings, instruction: str) -> LLMExtractionStrategy:
    """Configure an LLM extraction strategy that fills the lead analysis schema."""

    llm_cfg = LLMConfig(
        provider=settings.provider,
        api_token=settings.api_key,
        base_url=settings.base_url,
        temperature=settings.temperature,
        max_tokens=settings.max_tokens,
    )
    return LLMExtractionStrategy(
        llm_config=llm_cfg,
        schema=LeadAnalysis.model_json_schema(),
        extraction_type="schema",
        instruction=instruction,
        input_format="markdown",
        apply_chunking=False,
    )


class LlmLeadClassifier:
    """Ask the LLM gateway to analyze the aggregated search results."""

    name = "ai"

    def __init__(self, settings: LLMSettings = llm_settings, result_limit: int = 20) -> None:
        self.settings = settings
        self.result_limit = result_limit

    async def classify(self, results: Sequence[SearchResult], request: DiscoveryRequest) -> ClassificationOutcome:
        if not self.settings.api_key:
            raise ConfigurationError("LLM analysis is not configured. Set LLM_API_KEY.")

        payload = build_analysis_prompt(results, request, limit=self.result_limit)
        config = CrawlerRunConfig(
            cache_mode=CacheMode.BYPASS,
            extraction_strategy=_analysis_strategy(self.settings, SYSTEM_PROMPT),
        )

        async with AsyncWebCrawler() as crawler:
            result = await crawler.arun(f"raw://{payload}", config=config)
        if not result.success:
            raise ClassificationError(f"LLM analysis failed: {result.error_message or 'unknown error'}")

        analysis = parse_analysis(result.extracted_content)
        logger.info("LLM analyzed %d leads, %d active searchers", len(analysis.leads), analysis.active_searchers)
        return ClassificationOutcome(
            classifier=self.name,
            candidates=[candidate_from_analysis(lead, request) for lead in analysis.leads],
            threshold=AI_CONFIDENCE_THRESHOLD,
            summary=analysis.summary or None,
            active_searchers=analysis.active_searchers,
        )
