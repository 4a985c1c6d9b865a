"""Supabase persistence for imported clients."""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Sequence, Set

from postgrest.exceptions import APIError
from supabase import Client, create_client

from .config import SupabaseSettings, supabase_settings
from .dedupe import build_identity_set
from .exceptions import ConfigurationError
from .models import ClientRecord, ImportSummary, LeadCandidate, LeadSource
from .normalize import identity_key


logger = logging.getLogger(__name__)

UNIQUE_VIOLATION = "23505"
_MISSING_COORDINATES = re.compile(r"column .*(latitude|longitude)|(latitude|longitude).* column", re.IGNORECASE)


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def build_import_notes(candidate: LeadCandidate) -> str:
    lines = []
    if candidate.source is LeadSource.AI:
        lines.append("AI Analyzed")
    lines.append(f"Quality Score: {candidate.quality_score}/100")
    lines.append(f"Factors: {', '.join(candidate.quality_factors)}")
    if candidate.search_intent:
        lines.append(f"\nSearch Intent: {candidate.search_intent}")
    if candidate.reasoning:
        lines.append(f"\nReasoning: {candidate.reasoning}")
    if candidate.source_url:
        lines.append(f"\nSource: {candidate.source_url}")
    if candidate.snippet:
        lines.append(f"\n{candidate.snippet}")
    return "\n".join(lines)


def candidate_to_row(candidate: LeadCandidate, user_id: str) -> Dict[str, Any]:
    row: Dict[str, Any] = {
        "user_id": user_id,
        "company_name": candidate.company_name,
        "contact_person": "To be contacted",
        "phone": candidate.contact_phone or "",
        "email": candidate.contact_email or "",
        "address": candidate.address or "",
        "state": candidate.state,
        "region": candidate.region,
        "industry": candidate.industry,
        "estimated_usage": candidate.estimated_usage,
        "status": "new",
        "priority": candidate.priority.value,
        "notes": build_import_notes(candidate),
    }
    if candidate.latitude is not None and candidate.longitude is not None:
        row["latitude"] = candidate.latitude
        row["longitude"] = candidate.longitude
    return row


class ClientStore:
    """Thin wrapper around the Supabase client table."""

    def __init__(self, client: Optional[Client] = None, settings: SupabaseSettings = supabase_settings) -> None:
        self.settings = settings
        self._client = client
        if self._client is None and settings.url and settings.key:
            self._client = create_client(settings.url, settings.key)

    @property
    def enabled(self) -> bool:
        return self._client is not None

    def _table(self):
        if self._client is None:
            raise ConfigurationError(
                "Supabase client is not configured. Check SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY."
            )
        return self._client.table(self.settings.client_table)

    def list_active(self, user_id: str) -> List[ClientRecord]:
        response = self._table().select("*").eq("user_id", user_id).is_("archived_at", "null").execute()
        return [ClientRecord.model_validate(row) for row in response.data or []]

    def list_archived(self, user_id: str) -> List[ClientRecord]:
        response = (
            self._table()
            .select("*")
            .eq("user_id", user_id)
            .not_.is_("archived_at", "null")
            .order("archived_at", desc=True)
            .execute()
        )
        return [ClientRecord.model_validate(row) for row in response.data or []]

    def existing_company_names(self, user_id: str) -> List[str]:
        response = (
            self._table().select("company_name").eq("user_id", user_id).is_("archived_at", "null").execute()
        )
        return [row["company_name"] for row in response.data or [] if row.get("company_name")]

    def _existing_identities(self, user_id: str) -> Set[str]:
        try:
            response = (
                self._table()
                .select("company_name, state")
                .eq("user_id", user_id)
                .is_("archived_at", "null")
                .execute()
            )
        except APIError as exc:
            # The unique constraint still guards the inserts below.
            logger.warning("Could not load existing clients before import: %s", exc.message)
            return set()
        pairs = [(row.get("company_name"), row.get("state") or "") for row in response.data or []]
        return build_identity_set(pairs, with_state=True)

    def import_candidates(self, user_id: str, candidates: Iterable[LeadCandidate]) -> ImportSummary:
        """Insert the selected candidates; duplicates are counted, not raised."""

        summary = ImportSummary()
        seen = self._existing_identities(user_id)

        for candidate in candidates:
            key = identity_key(candidate.company_name, candidate.state)
            if key in seen:
                summary.duplicates += 1
                continue

            row = candidate_to_row(candidate, user_id)
            try:
                self._insert(row)
            except APIError as exc:
                if exc.code == UNIQUE_VIOLATION:
                    summary.duplicates += 1
                    seen.add(key)
                else:
                    logger.error("Import error for lead %s: %s", candidate.company_name, exc.message)
                    summary.failed += 1
                continue

            summary.imported += 1
            summary.imported_names.append(candidate.company_name)
            seen.add(key)

        logger.info(summary.message)
        return summary

    def _insert(self, row: Dict[str, Any]) -> None:
        try:
            self._table().insert(row).execute()
        except APIError as exc:
            if "latitude" in row and _MISSING_COORDINATES.search(exc.message or ""):
                stripped = {k: v for k, v in row.items() if k not in ("latitude", "longitude")}
                self._table().insert(stripped).execute()
                return
            raise

    def archive(self, ids: Sequence[str]) -> int:
        if not ids:
            return 0
        self._table().update({"archived_at": utc_now_iso()}).in_("id", list(ids)).execute()
        return len(ids)

    def restore(self, ids: Sequence[str]) -> int:
        if not ids:
            return 0
        self._table().update({"archived_at": None}).in_("id", list(ids)).execute()
        return len(ids)

    def delete(self, ids: Sequence[str]) -> int:
        """Permanently remove archived or active records."""

        if not ids:
            return 0
        self._table().delete().in_("id", list(ids)).execute()
        return len(ids)
