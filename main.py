"""Command-line entry point for the diesel lead discovery workflow."""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from argparse import ArgumentParser, Namespace
from pathlib import Path
from typing import Any, Dict

from diesel_leads.client_scoring import rank_clients
from diesel_leads.config import resend_settings
from diesel_leads.exceptions import LeadDiscoveryError
from diesel_leads.models import DiscoveryRequest, DiscoveryRun
from diesel_leads.notify import ResendNotifier
from diesel_leads.pipeline import build_pipeline
from diesel_leads.scheduled import run_scheduled_discovery
from diesel_leads.sheets import SheetsExporter
from diesel_leads.storage import ClientStore


def _serialize(run: DiscoveryRun) -> Dict[str, Any]:
    """Convert pydantic objects to plain dictionaries for reporting."""

    return run.model_dump(mode="json")


def build_parser() -> ArgumentParser:
    parser = ArgumentParser(description="Diesel lead discovery for Malaysian businesses")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    commands = parser.add_subparsers(dest="command", required=True)

    discover = commands.add_parser("discover", help="Search, classify and rank new leads")
    discover.add_argument("--region", default="Pantai Timur", help='Target region (e.g. "Pantai Timur", "Utara")')
    discover.add_argument("--query", action="append", default=[], help="Custom search query (repeatable)")
    discover.add_argument("--min-usage", type=int, default=5460, help="Minimum liters per month")
    discover.add_argument("--no-ai", action="store_true", help="Use keyword rules only")
    discover.add_argument("--strict-region", action="store_true", help="Drop leads outside the target region")
    discover.add_argument("--user-id", help="Exclude this user's stored clients and allow --import")
    discover.add_argument("--import", dest="do_import", action="store_true", help="Import qualified leads")
    discover.add_argument("--output", help="Optional JSON file path for exporting results")

    scheduled = commands.add_parser("scheduled", help="Run one unattended discovery pass")
    scheduled.add_argument("--user-id", help="Exclude this user's stored clients")
    scheduled.add_argument("--recipient", default=resend_settings.recipient, help="Alert email recipient")

    sync = commands.add_parser("sync-sheets", help="Export active clients to Google Sheets")
    sync.add_argument("spreadsheet_id")
    sync.add_argument("--user-id", required=True)

    score = commands.add_parser("score-clients", help="Rank stored clients by conversion potential")
    score.add_argument("--user-id", required=True)
    score.add_argument("--limit", type=int, default=50)
    return parser


def _discover(args: Namespace) -> None:
    store = ClientStore()
    existing = store.existing_company_names(args.user_id) if args.user_id and store.enabled else []
    request = DiscoveryRequest(
        region=args.region,
        queries=args.query,
        min_usage=args.min_usage,
        existing_companies=existing,
        use_ai=not args.no_ai,
        strict_region=args.strict_region,
    )
    run = asyncio.run(build_pipeline().run(request))
    serialized = _serialize(run)

    if args.output:
        output_path = Path(args.output)
        output_path.write_text(json.dumps(serialized, indent=2))
        print(f"Saved {len(run.candidates)} leads to {output_path}")
    else:
        print(json.dumps(serialized, indent=2))
    print(run.message, file=sys.stderr)

    if args.do_import:
        if not args.user_id:
            raise LeadDiscoveryError("--import requires --user-id")
        summary = store.import_candidates(args.user_id, run.candidates)
        print(summary.message)


def _scheduled(args: Namespace) -> None:
    store = ClientStore()
    existing = store.existing_company_names(args.user_id) if args.user_id and store.enabled else []
    notifier = ResendNotifier() if resend_settings.api_key else None
    summary = asyncio.run(
        run_scheduled_discovery(build_pipeline(), notifier, args.recipient, existing_companies=existing)
    )
    print(json.dumps(summary, indent=2))


def _sync_sheets(args: Namespace) -> None:
    clients = ClientStore().list_active(args.user_id)
    rows = SheetsExporter().sync(args.spreadsheet_id, clients)
    print(f"Wrote {rows} rows ({len(clients)} clients) to {args.spreadsheet_id}")


def _score_clients(args: Namespace) -> None:
    clients = sorted(ClientStore().list_active(args.user_id), key=lambda c: c.estimated_usage, reverse=True)
    for scored in rank_clients(clients[: args.limit]):
        print(f"{scored.score:>3}  {scored.priority.value:<6}  {scored.client.company_name}  - {scored.recommendation}")


COMMANDS = {
    "discover": _discover,
    "scheduled": _scheduled,
    "sync-sheets": _sync_sheets,
    "score-clients": _score_clients,
}


def main() -> None:
    parser = build_parser()
    args: Namespace = parser.parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        COMMANDS[args.command](args)
    except LeadDiscoveryError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
