"""Structured data models shared across the discovery workflow."""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from .normalize import build_company_token_key


class Priority(str, Enum):
    """Follow-up priority assigned from a quality score."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class LeadSource(str, Enum):
    """Which classifier produced a lead candidate."""

    RULES = "rules"
    AI = "ai"


class RunStatus(str, Enum):
    """Terminal outcome of a discovery run."""

    OK = "ok"
    NO_RESULTS = "no_results"
    NO_QUALIFIED = "no_qualified"


def priority_for_score(score: int) -> Priority:
    if score >= 70:
        return Priority.HIGH
    if score >= 50:
        return Priority.MEDIUM
    return Priority.LOW


class SearchResult(BaseModel):
    """A single hit returned by the web search capability."""

    title: Optional[str] = None
    description: Optional[str] = None
    url: Optional[str] = None
    markdown: Optional[str] = None

    @property
    def has_content(self) -> bool:
        return bool(self.title or self.description or self.markdown)

    @property
    def content(self) -> str:
        """Lower-cased text used by the rule-based stages."""

        parts = [self.title or "", self.description or "", (self.markdown or "")[:500]]
        return " ".join(part for part in parts if part).lower()


class LeadCandidate(BaseModel):
    """Transient prospect produced by a discovery run; never persisted until imported."""

    company_name: str = Field(description="Registered company name")
    industry: str = Field(default="Industrial", description="Industry label from the classification table")
    state: str = Field(default="Malaysia", description="Malaysian state or the neutral marker")
    region: str = Field(default="Unknown", description="Region derived from the state")
    location: Optional[str] = Field(default=None, description="City or area when one was recognized")
    contact_phone: Optional[str] = None
    contact_email: Optional[str] = None
    address: Optional[str] = None
    estimated_usage: int = Field(default=0, description="Estimated diesel usage in liters per month")
    quality_score: int = Field(default=0, ge=0, le=100, description="Admission score (confidence for AI leads)")
    quality_factors: List[str] = Field(default_factory=list)
    source_url: Optional[str] = None
    snippet: str = ""
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    geocoded: bool = False
    source: LeadSource = LeadSource.RULES
    reasoning: Optional[str] = None
    search_intent: Optional[str] = None

    @property
    def identity_key(self) -> str:
        return build_company_token_key(self.company_name)

    @property
    def priority(self) -> Priority:
        return priority_for_score(self.quality_score)


class ContactInfo(BaseModel):
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None


class AnalyzedLead(BaseModel):
    """A lead as returned by the LLM analysis."""

    company_name: str = Field(description="Exact registered company name, including Sdn Bhd / Berhad")
    industry: Optional[str] = Field(default=None, description="Industry category")
    location: Optional[str] = Field(default=None, description="City or area name")
    state: Optional[str] = Field(default=None, description="Malaysian state")
    region: Optional[str] = Field(default=None, description="Malaysian region")
    estimated_usage: float = Field(default=0, description="Monthly diesel usage in liters")
    confidence: float = Field(default=0, description="Confidence score 0-100")
    diesel_need_indicators: List[str] = Field(default_factory=list)
    contact_info: Optional[ContactInfo] = None
    reasoning: Optional[str] = Field(default=None, description="Why this business qualifies")
    priority: Optional[str] = Field(default=None, description="high, medium or low")
    search_intent: Optional[str] = Field(default=None, description="Detected buyer intent if any")
    source_url: Optional[str] = Field(default=None, description="URL of the search result the lead came from")


class LeadAnalysis(BaseModel):
    """Schema the LLM must fill for a batch of search results."""

    leads: List[AnalyzedLead] = Field(default_factory=list, description="Qualified diesel leads")
    summary: str = Field(default="", description="Brief summary of the analysis")
    total_qualified: int = Field(default=0)
    active_searchers: int = Field(default=0, description="Number of leads with buyer intent")


class GeocodeResult(BaseModel):
    latitude: float
    longitude: float
    formatted_address: Optional[str] = None
    state: Optional[str] = None
    city: Optional[str] = None


class ClientRecord(BaseModel):
    """A row of the persisted client table."""

    id: Optional[str] = None
    user_id: Optional[str] = None
    company_name: str
    contact_person: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    state: str = "Malaysia"
    region: str = "Unknown"
    industry: Optional[str] = None
    estimated_usage: int = 0
    status: str = "new"
    priority: Priority = Priority.MEDIUM
    notes: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    archived_at: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @field_validator("priority", mode="before")
    @classmethod
    def _known_priority(cls, value: Any) -> Any:
        if isinstance(value, Priority):
            return value
        if isinstance(value, str) and value.strip().lower() in {p.value for p in Priority}:
            return value.strip().lower()
        return Priority.MEDIUM


class ImportSummary(BaseModel):
    imported: int = 0
    duplicates: int = 0
    failed: int = 0
    imported_names: List[str] = Field(default_factory=list)

    @property
    def message(self) -> str:
        if self.imported and self.duplicates:
            return f"{self.imported} imported, {self.duplicates} duplicates skipped"
        if self.imported:
            return f"{self.imported} imported"
        if self.duplicates:
            return f"All {self.duplicates} selected leads already exist"
        return "Nothing imported"


class DiscoveryRequest(BaseModel):
    """Inputs for one discovery run."""

    region: str = Field(default="Pantai Timur", description="Target region; selects the query bank")
    queries: List[str] = Field(default_factory=list, description="Custom queries; the region bank is used when empty")
    min_usage: int = Field(default=5460, description="Minimum estimated liters per month")
    existing_companies: List[str] = Field(default_factory=list, description="Stored company names to exclude")
    use_ai: bool = True
    strict_region: bool = Field(default=False, description="Drop leads resolved outside the target region")


class DiscoveryRun(BaseModel):
    """Everything a caller needs to present the outcome of one run."""

    status: RunStatus
    message: str
    region: str
    queries: List[str] = Field(default_factory=list)
    failed_queries: List[str] = Field(default_factory=list)
    raw_result_count: int = 0
    classifier: Optional[str] = None
    summary: Optional[str] = None
    active_searchers: int = 0
    candidates: List[LeadCandidate] = Field(default_factory=list)
    metadata: Dict[str, Any] = Field(default_factory=dict)
