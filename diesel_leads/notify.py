"""Lead alert emails sent through Resend."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from html import escape
from typing import List, Optional, Sequence, Tuple

import httpx

from .config import ResendSettings, resend_settings
from .exceptions import ConfigurationError, NotificationError
from .models import LeadCandidate


logger = logging.getLogger(__name__)

MALAYSIA_TZ = timezone(timedelta(hours=8), "MYT")
_TABLE_HEADER = (
    "<tr style=\"background: #f3f4f6;\">"
    + "".join(
        f'<th style="padding: 12px; text-align: left;">{label}</th>'
        for label in ("Company", "Industry", "Location", "Est. Usage", "Score", "Contact")
    )
    + "</tr>"
)


def split_by_priority(leads: Sequence[LeadCandidate]) -> Tuple[List[LeadCandidate], List[LeadCandidate]]:
    high = [lead for lead in leads if lead.quality_score >= 70]
    medium = [lead for lead in leads if 50 <= lead.quality_score < 70]
    return high, medium


def _score_colour(score: int) -> str:
    if score >= 70:
        return "#10b981"
    if score >= 50:
        return "#f59e0b"
    return "#6b7280"


def _lead_row(lead: LeadCandidate) -> str:
    return (
        '<tr style="border-bottom: 1px solid #e5e7eb;">'
        f'<td style="padding: 12px; font-weight: 600;">{escape(lead.company_name)}</td>'
        f'<td style="padding: 12px;">{escape(lead.industry)}</td>'
        f'<td style="padding: 12px;">{escape(lead.state)}</td>'
        f'<td style="padding: 12px;">{lead.estimated_usage:,}L/month</td>'
        f'<td style="padding: 12px;"><span style="background-color: {_score_colour(lead.quality_score)}; '
        f'color: white; padding: 4px 8px; border-radius: 4px;">{lead.quality_score}/100</span></td>'
        f'<td style="padding: 12px;">{escape(lead.contact_phone or "")}<br/>'
        f"<small>{escape(lead.contact_email or '')}</small></td>"
        "</tr>"
    )


def _section(title: str, colour: str, leads: Sequence[LeadCandidate]) -> str:
    if not leads:
        return ""
    rows = "".join(_lead_row(lead) for lead in leads)
    return (
        f'<h2 style="color: {colour};">{title}</h2>'
        '<table style="width: 100%; border-collapse: collapse; margin-bottom: 30px;">'
        f"<thead>{_TABLE_HEADER}</thead><tbody>{rows}</tbody></table>"
    )


def build_lead_email(
    leads: Sequence[LeadCandidate],
    discovery_type: str,
    now: Optional[datetime] = None,
) -> Tuple[str, str]:
    """Return ``(subject, html)`` for a batch of discovered leads."""

    high, medium = split_by_priority(leads)
    sent_at = (now or datetime.now(MALAYSIA_TZ)).astimezone(MALAYSIA_TZ)
    subject = f"{len(high)} High-Priority Diesel Leads Discovered!"
    html = (
        "<!DOCTYPE html><html><head><meta charset=\"utf-8\"><title>New Diesel Leads Discovered</title></head>"
        '<body style="font-family: sans-serif; max-width: 800px; margin: 0 auto; padding: 20px;">'
        "<h1>New High-Priority Diesel Leads Discovered</h1>"
        f"<p>Discovery Type: {escape(discovery_type)}</p>"
        f"<p><strong>{len(high)}</strong> high priority, <strong>{len(medium)}</strong> medium priority, "
        f"<strong>{len(leads)}</strong> total leads</p>"
        + _section("High Priority Leads (Score 70+)", "#166534", high)
        + _section("Medium Priority Leads (Score 50-69)", "#92400e", medium)
        + '<p style="color: #6b7280; font-size: 12px;">'
        "This email was sent automatically by your Diesel Lead Discovery System.<br/>"
        f"Discovered at {sent_at:%d/%m/%Y %H:%M} (Malaysia Time)</p>"
        "</body></html>"
    )
    return subject, html


class ResendNotifier:
    """Send lead alert emails through the Resend HTTP API."""

    def __init__(self, settings: ResendSettings = resend_settings, client: Optional[httpx.AsyncClient] = None) -> None:
        if not settings.api_key:
            raise ConfigurationError("Email service not configured. Set RESEND_API_KEY.")
        self.settings = settings
        self._client = client

    async def send(self, recipient: str, leads: Sequence[LeadCandidate], discovery_type: str) -> str:
        """Send the alert and return the provider's email id."""

        subject, html = build_lead_email(leads, discovery_type)
        body = {"from": self.settings.sender, "to": [recipient], "subject": subject, "html": html}
        headers = {"Authorization": f"Bearer {self.settings.api_key}"}

        try:
            if self._client is not None:
                response = await self._client.post(self.settings.api_url, json=body, headers=headers)
            else:
                async with httpx.AsyncClient(timeout=30.0) as client:
                    response = await client.post(self.settings.api_url, json=body, headers=headers)
            payload = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise NotificationError(f"Failed to send email: {exc}") from exc

        if response.status_code >= 400:
            message = payload.get("message") if isinstance(payload, dict) else None
            raise NotificationError(message or f"Failed to send email ({response.status_code})")

        email_id = payload.get("id", "") if isinstance(payload, dict) else ""
        logger.info("Email sent to %s for %d leads (%s)", recipient, len(leads), email_id)
        return email_id
