"""Google Sheets export of the client table."""

from __future__ import annotations

import json
import logging
from typing import Any, List, Optional, Sequence

import gspread
from google.auth.exceptions import GoogleAuthError
from google.oauth2.service_account import Credentials

from .config import SheetsSettings, sheets_settings
from .exceptions import ConfigurationError, ExportError
from .models import ClientRecord


logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]
HEADERS = [
    "ID", "Company Name", "Contact Person", "Phone", "Email",
    "Industry", "State", "Region", "Address", "Estimated Usage (L)",
    "Priority", "Status", "Notes", "Created At", "Updated At",
]
LAST_COLUMN = "O"


def build_sheet_rows(clients: Sequence[ClientRecord]) -> List[List[Any]]:
    """Header plus one row per client in the fixed 15-column layout."""

    rows: List[List[Any]] = [list(HEADERS)]
    for client in clients:
        rows.append([
            client.id or "",
            client.company_name,
            client.contact_person or "",
            # Leading apostrophe keeps Sheets from eating the leading zero.
            f"'{client.phone}" if client.phone else "",
            client.email or "",
            client.industry or "",
            client.state,
            client.region,
            client.address or "",
            client.estimated_usage,
            client.priority.value if client.priority else "medium",
            client.status or "new",
            client.notes or "",
            client.created_at or "",
            client.updated_at or "",
        ])
    return rows


def _client(settings: SheetsSettings) -> gspread.Client:
    if not settings.service_account_key:
        raise ConfigurationError("Google Sheets not configured. Set GOOGLE_SERVICE_ACCOUNT_KEY.")
    try:
        info = json.loads(settings.service_account_key)
    except json.JSONDecodeError as exc:
        raise ConfigurationError("Invalid GOOGLE_SERVICE_ACCOUNT_KEY format. Must be valid JSON.") from exc
    if not isinstance(info, dict):
        raise ConfigurationError("Invalid GOOGLE_SERVICE_ACCOUNT_KEY format. Must be a JSON object.")
    try:
        creds = Credentials.from_service_account_info(info, scopes=SCOPES)
    except (ValueError, GoogleAuthError) as exc:
        raise ConfigurationError(f"Invalid GOOGLE_SERVICE_ACCOUNT_KEY: {exc}") from exc
    return gspread.authorize(creds)


class SheetsExporter:
    """Clear a worksheet and rewrite it with the current client list.

    The spreadsheet must be shared with the service account's email.
    """

    def __init__(self, settings: SheetsSettings = sheets_settings, client: Optional[gspread.Client] = None) -> None:
        self.settings = settings
        self._gc = client

    def _worksheet(self, spreadsheet_id: str):
        gc = self._gc or _client(self.settings)
        return gc.open_by_key(spreadsheet_id).worksheet(self.settings.worksheet)

    def sync(self, spreadsheet_id: str, clients: Sequence[ClientRecord]) -> int:
        """Return the number of rows written, header included."""

        data = build_sheet_rows(clients)
        try:
            ws = self._worksheet(spreadsheet_id)
            ws.clear()
            ws.update(
                values=data,
                range_name=f"A1:{LAST_COLUMN}{len(data)}",
                value_input_option="USER_ENTERED",
            )
        except GoogleAuthError as exc:
            raise ConfigurationError(f"Google rejected the service account credentials: {exc}") from exc
        except gspread.exceptions.GSpreadException as exc:
            raise ExportError(
                "Failed to update sheet. Ensure the spreadsheet is shared with the service account email."
            ) from exc
        logger.info("Synced %d rows to spreadsheet %s", len(data), spreadsheet_id)
        return len(data)
