"""Utility script to import leads from a saved discovery JSON file into Supabase."""

from __future__ import annotations

import argparse
import json
from pathlib import Path
from typing import List

from diesel_leads.models import LeadCandidate
from diesel_leads.storage import ClientStore


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Import discovered leads into the client table from a JSON export.")
    parser.add_argument(
        "--input",
        required=True,
        help="Path to leads JSON (output of main.py discover --output).",
    )
    parser.add_argument("--user-id", required=True, help="Owner of the imported client records.")
    parser.add_argument(
        "--min-score",
        type=int,
        default=0,
        help="Only import leads with at least this quality score.",
    )
    return parser


def load_candidates(path: Path) -> List[LeadCandidate]:
    data = json.loads(path.read_text())
    if isinstance(data, dict):
        data = data.get("candidates", [])
    if not isinstance(data, list):
        raise ValueError("Leads JSON must be a discovery run object or a list of leads.")
    return [LeadCandidate.model_validate(entry) for entry in data]


def main() -> None:
    parser = build_parser()
    args = parser.parse_args()

    store = ClientStore()
    if not store.enabled:
        raise RuntimeError("Supabase client is not configured. Check SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY.")

    candidates = [c for c in load_candidates(Path(args.input)) if c.quality_score >= args.min_score]
    summary = store.import_candidates(args.user_id, candidates)

    print(f"{summary.message} ({summary.failed} failed).")


if __name__ == "__main__":
    main()
