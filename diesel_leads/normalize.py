"""Company-name identity keys used for deduplication."""

from __future__ import annotations

import re
from typing import Optional


_MALAYSIA_MARKER = re.compile(r"\(m\)")
_CORPORATE_SUFFIXES = re.compile(
    r"\b(sdn\.?\s*bhd\.?|sendirian\s+berhad|berhad|bhd\.?|enterprise|industries|industry|trading"
    r"|resources|holdings|group|services|service|sdn)(?![a-z0-9])"
)
_NON_ALNUM = re.compile(r"[^a-z0-9\s]")
_WHITESPACE = re.compile(r"\s+")


def normalize_company_key(name: Optional[str]) -> str:
    """Lower-case a company name and strip registration suffixes and punctuation."""

    if not name:
        return ""
    lowered = name.lower()
    lowered = _MALAYSIA_MARKER.sub(" malaysia ", lowered)
    lowered = _CORPORATE_SUFFIXES.sub(" ", lowered)
    lowered = _NON_ALNUM.sub(" ", lowered)
    return _WHITESPACE.sub(" ", lowered).strip()


def build_company_token_key(name: Optional[str]) -> str:
    """Token-sorted key: words of three or more characters, sorted and space-joined."""

    tokens = [token for token in normalize_company_key(name).split(" ") if len(token) > 2]
    tokens.sort()
    return " ".join(tokens)


def identity_key(name: Optional[str], state: Optional[str] = None) -> str:
    """Identity for dedup; adding a state makes the match stricter."""

    key = build_company_token_key(name) or normalize_company_key(name)
    if state is None:
        return key
    return f"{key}|{state.lower().strip()}"
