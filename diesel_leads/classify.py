"""Keyword rules that turn a search snippet into a classified lead."""

from __future__ import annotations

import re
from typing import Dict, List, Optional, Pattern, Tuple
from urllib.parse import urlparse

from .models import SearchResult


DEFAULT_INDUSTRY = "Industrial"

# Ordered: the first industry with a matching keyword wins, so the more specific
# heavy users sit above the catch-all generator bucket.
INDUSTRY_KEYWORDS: Dict[str, List[str]] = {
    "Oil & Gas": ["oil and gas", "oil & gas", "petroleum", "petrokimia", "petrochemical", "offshore", "upstream"],
    "Palm Oil": ["sawit", "palm", "cpo", "mill"],
    "Mining": ["lombong", "perlombongan", "mining", "quarry", "kuari"],
    "Marine": ["marine", "pelabuhan", "port", "bunker", "shipping", "vessel"],
    "Timber": ["timber", "logging", "balak", "kayu", "sawmill"],
    "Construction": ["pembinaan", "construction", "kontraktor", "contractor", "excavator"],
    "Manufacturing": ["kilang", "manufacturing", "factory", "pembuatan"],
    "Transportation": ["pengangkutan", "transport", "logistics", "logistik", "lori", "lorry", "trucking", "fleet"],
    "Agriculture": ["ladang", "plantation", "pertanian", "farm", "tractor"],
    "Aquaculture": ["aquaculture", "perikanan", "ikan", "fish farm", "hatchery"],
    "Power Generation": ["generator", "genset", "janakuasa", "power plant", "backup power"],
}

BUSINESS_MARKER = re.compile(r"sdn\.?\s*bhd|berhad|enterprise|industries", re.IGNORECASE)
REGISTERED_MARKER = re.compile(r"sdn\.?\s*bhd|berhad", re.IGNORECASE)
DIESEL_NEED_MARKER = re.compile(r"diesel|generator|genset|machinery|kilang|mill|fleet|truck|lori", re.IGNORECASE)
DIESEL_SIGNAL = re.compile(r"diesel|generator|genset", re.IGNORECASE)
PHONE_PATTERN = re.compile(r"(\+?6?0\d{1,2}[-\s]?\d{3,4}[-\s]?\d{4})")
EMAIL_PATTERN = re.compile(r"([a-zA-Z0-9._-]+@[a-zA-Z0-9._-]+\.[a-zA-Z0-9._-]+)")
TITLE_SEPARATOR = re.compile(r"\s+[-|–]\s+")
COMPANY_NAME = re.compile(r"([A-Za-z0-9\s&'.-]+?(?:sdn\.?\s*bhd\.?|berhad|enterprise|industries))", re.IGNORECASE)

NOISE_HOSTS = ("facebook.com", "instagram.com", "linkedin.com", "tiktok.com", "twitter.com", "x.com")
NOISE_TITLE_WORDS = ("directory", "jawatan kosong", "job vacancy", "vacancies")

QUALITY_FACTORS: List[Tuple[str, Pattern[str]]] = [
    ("Registered business", REGISTERED_MARKER),
    ("Diesel mentioned", re.compile(r"diesel", re.IGNORECASE)),
    ("Generator usage", re.compile(r"generator|genset", re.IGNORECASE)),
    ("Industrial facility", re.compile(r"kilang|factory", re.IGNORECASE)),
    ("Heavy machinery", re.compile(r"machinery|excavator|jentera", re.IGNORECASE)),
    ("Fleet operations", re.compile(r"fleet|lori|lorry|truck", re.IGNORECASE)),
]

_INDUSTRY_PATTERNS: List[Tuple[str, Pattern[str]]] = [
    (industry, re.compile(r"\b(?:" + "|".join(re.escape(k) for k in keywords) + r")s?\b"))
    for industry, keywords in INDUSTRY_KEYWORDS.items()
]


def detect_industry(content: str) -> str:
    lowered = (content or "").lower()
    for industry, pattern in _INDUSTRY_PATTERNS:
        if pattern.search(lowered):
            return industry
    return DEFAULT_INDUSTRY


def extract_phone(content: str) -> Optional[str]:
    match = PHONE_PATTERN.search(content or "")
    return match.group(1).strip() if match else None


def extract_email(content: str) -> Optional[str]:
    match = EMAIL_PATTERN.search(content or "")
    return match.group(1).lower() if match else None


def has_business_indicator(content: str) -> bool:
    return bool(BUSINESS_MARKER.search(content or ""))


def has_diesel_indicator(content: str) -> bool:
    return bool(DIESEL_NEED_MARKER.search(content or ""))


def is_listing_noise(result: SearchResult) -> bool:
    """Social profiles, directories and job boards rather than a business's own page."""

    host = urlparse(result.url or "").netloc.lower()
    if any(host == noise or host.endswith("." + noise) for noise in NOISE_HOSTS):
        return True
    title = (result.title or "").lower()
    return any(word in title for word in NOISE_TITLE_WORDS)


def is_business_result(result: SearchResult) -> bool:
    """Content filter applied before any classification."""

    if not result.has_content or is_listing_noise(result):
        return False
    content = result.content
    return has_business_indicator(content) and has_diesel_indicator(content)


def extract_company_name(title: str) -> Optional[str]:
    """Pull the registered company name out of a result title.

    Only names ending in a registration marker are returned; titles such as
    "ABC Resort Kuantan" yield ``None``.
    """

    for segment in TITLE_SEPARATOR.split(" ".join((title or "").split())):
        match = COMPANY_NAME.search(segment)
        if match:
            name = match.group(1).strip(" -|")
            return name[:100] if len(name) >= 5 else None
    return None


def quality_factors(content: str) -> List[str]:
    return [label for label, pattern in QUALITY_FACTORS if pattern.search(content or "")]
