"""Deduplication of lead candidates against stored clients and within a batch."""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Set, Tuple, Union

from .models import LeadCandidate
from .normalize import identity_key


logger = logging.getLogger(__name__)

ExistingIdentity = Union[str, Tuple[str, Optional[str]]]


def build_identity_set(existing: Iterable[ExistingIdentity], with_state: bool = False) -> Set[str]:
    """Turn stored company names (or ``(name, state)`` pairs) into identity keys."""

    keys: Set[str] = set()
    for item in existing:
        if isinstance(item, tuple):
            name, state = item
        else:
            name, state = item, None
        if not name:
            continue
        keys.add(identity_key(name, (state or "") if with_state else None))
    return keys


def candidate_key(candidate: LeadCandidate, with_state: bool = False) -> str:
    return identity_key(candidate.company_name, candidate.state if with_state else None)


def dedupe_candidates(
    candidates: Iterable[LeadCandidate],
    existing: Iterable[ExistingIdentity] = (),
    with_state: bool = False,
) -> List[LeadCandidate]:
    """Drop candidates already seen; the first occurrence in input order wins."""

    seen = build_identity_set(existing, with_state=with_state)
    kept: List[LeadCandidate] = []
    for candidate in candidates:
        key = candidate_key(candidate, with_state=with_state)
        if key in seen:
            logger.debug("Filtered duplicate: %s", candidate.company_name)
            continue
        seen.add(key)
        kept.append(candidate)
    return kept


def dedupe_against_existing_then_batch(
    candidates: Iterable[LeadCandidate],
    existing: Iterable[ExistingIdentity],
    with_state: bool = False,
) -> List[LeadCandidate]:
    """Remove stored clients first, then duplicates inside the batch."""

    existing_keys = build_identity_set(existing, with_state=with_state)
    fresh = [c for c in candidates if candidate_key(c, with_state=with_state) not in existing_keys]
    unique = dedupe_candidates(fresh, with_state=with_state)
    if len(unique) < len(fresh):
        logger.info("Dropped %d in-batch duplicates", len(fresh) - len(unique))
    return unique
