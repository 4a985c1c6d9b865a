"""Unattended discovery: one random query, keyword rules, email the best leads."""

from __future__ import annotations

import logging
import random
from typing import Any, Dict, List, Optional

from .exceptions import LeadDiscoveryError
from .models import DiscoveryRequest
from .notify import ResendNotifier
from .pipeline import LeadDiscoveryPipeline
from .queries import SCHEDULED_QUERIES


logger = logging.getLogger(__name__)

ALERT_SCORE = 60
DISCOVERY_TYPE = "Scheduled Auto-Discovery (Hourly)"


async def run_scheduled_discovery(
    pipeline: LeadDiscoveryPipeline,
    notifier: Optional[ResendNotifier] = None,
    recipient: Optional[str] = None,
    existing_companies: Optional[List[str]] = None,
    rng: Optional[random.Random] = None,
) -> Dict[str, Any]:
    """Run one scheduled pass and return a summary of what was found and sent."""

    query = (rng or random.Random()).choice(SCHEDULED_QUERIES)
    logger.info("Running scheduled search: %s", query)
    request = DiscoveryRequest(
        region="all",
        queries=[query],
        existing_companies=existing_companies or [],
        use_ai=False,
    )
    run = await pipeline.run(request)
    high_priority = [lead for lead in run.candidates if lead.quality_score >= ALERT_SCORE]

    email_id: Optional[str] = None
    if high_priority and notifier is not None and recipient:
        try:
            email_id = await notifier.send(recipient, high_priority, DISCOVERY_TYPE)
        except LeadDiscoveryError as exc:
            logger.warning("Email notification failed: %s", exc)

    return {
        "query": query,
        "status": run.status.value,
        "leads_found": len(run.candidates),
        "high_priority_leads": len(high_priority),
        "email_id": email_id,
        "leads": [lead.model_dump(mode="json") for lead in run.candidates],
    }
