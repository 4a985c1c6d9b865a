"""Configuration helpers for the diesel lead discovery workflow."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv


load_dotenv()


@dataclass(frozen=True)
class FirecrawlSettings:
    """Web search settings."""

    api_key: str = os.getenv("FIRECRAWL_API_KEY", "")
    base_url: str = os.getenv("FIRECRAWL_BASE_URL", "https://api.firecrawl.dev/v1")
    result_limit: int = int(os.getenv("FIRECRAWL_RESULT_LIMIT", "15"))
    lang: str = os.getenv("FIRECRAWL_LANG", "ms")
    country: str = os.getenv("FIRECRAWL_COUNTRY", "MY")
    timeout: float = float(os.getenv("FIRECRAWL_TIMEOUT", "60"))


@dataclass(frozen=True)
class LLMSettings:
    """Settings for LLM-powered lead analysis."""

    provider: str = os.getenv("LLM_PROVIDER", "openai/gpt-4o-mini")
    api_key: str = os.getenv("LLM_API_KEY") or os.getenv("OPENAI_API_KEY", "")
    base_url: Optional[str] = os.getenv("LLM_BASE_URL") or None
    temperature: float = float(os.getenv("LLM_TEMPERATURE", "0.0"))
    max_tokens: int = int(os.getenv("LLM_MAX_TOKENS", "4000"))
    timeout: float = float(os.getenv("LLM_TIMEOUT", "90"))


@dataclass(frozen=True)
class MapsSettings:
    """Google geocoding details."""

    api_key: str = os.getenv("GOOGLE_MAPS_API_KEY", "")
    geocode_url: str = os.getenv("GOOGLE_GEOCODE_URL", "https://maps.googleapis.com/maps/api/geocode/json")
    timeout: float = float(os.getenv("GOOGLE_GEOCODE_TIMEOUT", "15"))


@dataclass(frozen=True)
class SupabaseSettings:
    """Supabase connection details."""

    url: Optional[str] = os.getenv("SUPABASE_URL")
    key: Optional[str] = os.getenv("SUPABASE_SERVICE_ROLE_KEY") or os.getenv("SUPABASE_ANON_KEY")
    client_table: str = os.getenv("SUPABASE_CLIENT_TABLE", "diesel_clients")


@dataclass(frozen=True)
class ResendSettings:
    """Transactional email settings."""

    api_key: str = os.getenv("RESEND_API_KEY", "")
    sender: str = os.getenv("RESEND_FROM", "Diesel Lead Discovery <onboarding@resend.dev>")
    recipient: Optional[str] = os.getenv("LEAD_ALERT_RECIPIENT") or None
    api_url: str = os.getenv("RESEND_API_URL", "https://api.resend.com/emails")


@dataclass(frozen=True)
class SheetsSettings:
    """Google Sheets export settings."""

    service_account_key: str = os.getenv("GOOGLE_SERVICE_ACCOUNT_KEY", "")
    worksheet: str = os.getenv("GOOGLE_SHEETS_WORKSHEET", "Sheet1")


@dataclass(frozen=True)
class DiscoverySettings:
    """Knobs for a single discovery run."""

    max_queries: int = int(os.getenv("DISCOVERY_MAX_QUERIES", "6"))
    query_delay: float = float(os.getenv("DISCOVERY_QUERY_DELAY", "1.0"))
    history_size: int = int(os.getenv("DISCOVERY_HISTORY_SIZE", "30"))
    max_leads: int = int(os.getenv("DISCOVERY_MAX_LEADS", "20"))
    ai_result_limit: int = int(os.getenv("DISCOVERY_AI_RESULT_LIMIT", "20"))
    rule_quality_threshold: int = 40
    ai_confidence_threshold: int = 60


firecrawl_settings = FirecrawlSettings()
llm_settings = LLMSettings()
maps_settings = MapsSettings()
supabase_settings = SupabaseSettings()
resend_settings = ResendSettings()
sheets_settings = SheetsSettings()
discovery_settings = DiscoverySettings()
