"""Usage estimates, quality scores and the qualification gate."""

from __future__ import annotations

from typing import Dict, Optional

from .classify import DEFAULT_INDUSTRY, DIESEL_SIGNAL, REGISTERED_MARKER, extract_email, extract_phone
from .geography import DEFAULT_STATE


MIN_ORDER_LITERS = 5460
RULE_QUALITY_THRESHOLD = 40
AI_CONFIDENCE_THRESHOLD = 60

# Liters per month. One table serves every discovery path.
USAGE_BY_INDUSTRY: Dict[str, int] = {
    "Oil & Gas": 25000,
    "Mining": 22000,
    "Marine": 20000,
    "Palm Oil": 18000,
    "Manufacturing": 15000,
    "Power Generation": 15000,
    "Timber": 14000,
    "Construction": 12000,
    "Transportation": 10000,
    "Agriculture": 8000,
    "Aquaculture": 6000,
    DEFAULT_INDUSTRY: 7000,
}

BASE_SCORE = 30
SCORE_WEIGHTS: Dict[str, int] = {
    "registered_business": 25,
    "diesel_signal": 20,
    "phone": 15,
    "email": 10,
    "known_industry": 15,
    "known_state": 10,
}


def estimate_usage(industry: Optional[str]) -> int:
    return USAGE_BY_INDUSTRY.get(industry or DEFAULT_INDUSTRY, USAGE_BY_INDUSTRY[DEFAULT_INDUSTRY])


def clamp_score(score: float) -> int:
    return int(max(0, min(100, round(score))))


def quality_score(content: str, industry: str = DEFAULT_INDUSTRY, state: str = DEFAULT_STATE) -> int:
    """Pure function of the content features; identical input yields an identical score."""

    score = BASE_SCORE
    if REGISTERED_MARKER.search(content or ""):
        score += SCORE_WEIGHTS["registered_business"]
    if DIESEL_SIGNAL.search(content or ""):
        score += SCORE_WEIGHTS["diesel_signal"]
    if extract_phone(content):
        score += SCORE_WEIGHTS["phone"]
    if extract_email(content):
        score += SCORE_WEIGHTS["email"]
    if industry and industry != DEFAULT_INDUSTRY:
        score += SCORE_WEIGHTS["known_industry"]
    if state and state != DEFAULT_STATE:
        score += SCORE_WEIGHTS["known_state"]
    return clamp_score(score)


def is_qualified(estimated_usage: int, score: int, threshold: int = RULE_QUALITY_THRESHOLD, min_usage: int = MIN_ORDER_LITERS) -> bool:
    return estimated_usage >= max(min_usage, MIN_ORDER_LITERS) and score >= threshold
