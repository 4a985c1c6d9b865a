"""Diesel lead discovery building blocks."""

from .models import DiscoveryRequest, DiscoveryRun, LeadCandidate, RunStatus, SearchResult
from .normalize import build_company_token_key
from .pipeline import LeadDiscoveryPipeline

__all__ = [
    "DiscoveryRequest",
    "DiscoveryRun",
    "LeadCandidate",
    "RunStatus",
    "SearchResult",
    "build_company_token_key",
    "LeadDiscoveryPipeline",
]
