"""Conversion scoring for clients already in the database."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Sequence, Tuple

from .models import ClientRecord, Priority
from .scoring import MIN_ORDER_LITERS, clamp_score


HIGH_VALUE_INDUSTRIES = ("Palm Oil", "Mining", "Manufacturing", "Transportation", "Oil & Gas", "Marine")
TARGET_REGION = "Pantai Timur"


@dataclass
class ClientScore:
    client: ClientRecord
    score: int
    conversion_probability: int
    priority: Priority
    recommendation: str
    factors: List[Tuple[str, int]] = field(default_factory=list)


def _usage_factor(usage: int) -> Tuple[str, int]:
    if usage >= 20000:
        return "High Usage Volume", 25
    if usage >= 10000:
        return "Medium Usage Volume", 15
    if usage >= MIN_ORDER_LITERS:
        return "Meets Minimum Order", 8
    return "Below Minimum Order", 0


def _contact_factor(client: ClientRecord) -> Tuple[str, int]:
    if client.phone and client.email:
        return "Complete Contact Info", 10
    if client.phone or client.email:
        return "Partial Contact Info", 5
    return "Missing Contact Info", -5


def score_client(client: ClientRecord) -> ClientScore:
    factors = [_usage_factor(client.estimated_usage), _contact_factor(client)]
    if client.industry in HIGH_VALUE_INDUSTRIES:
        factors.append(("High-Value Industry", 15))
    if client.region == TARGET_REGION:
        factors.append((f"Target Region ({TARGET_REGION})", 10))
    if client.priority is Priority.HIGH:
        factors.append(("High Priority Status", 5))
    if client.status == "new":
        factors.append(("New Lead", 5))

    score = clamp_score(40 + sum(points for _, points in factors))
    if score >= 75:
        priority, recommendation = Priority.HIGH, "Immediate outreach recommended. High conversion potential."
    elif score >= 55:
        priority, recommendation = Priority.MEDIUM, "Schedule follow-up within 1-2 days. Good potential."
    else:
        priority, recommendation = Priority.LOW, "Add to nurturing campaign. Needs more qualification."

    return ClientScore(
        client=client,
        score=score,
        conversion_probability=round(score * 0.7),
        priority=priority,
        recommendation=recommendation,
        factors=[factor for factor in factors if factor[1] != 0],
    )


def rank_clients(clients: Sequence[ClientRecord]) -> List[ClientScore]:
    return sorted((score_client(client) for client in clients), key=lambda s: s.score, reverse=True)
