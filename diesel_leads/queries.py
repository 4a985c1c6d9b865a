"""Search query banks and the bounded history that keeps runs from repeating themselves."""

from __future__ import annotations

import random
from collections import deque
from typing import Deque, Dict, Iterable, List, Optional


DEFAULT_REGION = "Pantai Timur"

REGION_QUERIES: Dict[str, List[str]] = {
    "Pantai Timur": [
        'kilang kelapa sawit Terengganu "Sdn Bhd" diesel generator',
        "syarikat pembinaan Pahang excavator heavy machinery diesel",
        "kontraktor perlombongan Kelantan diesel fuel supply",
        "syarikat pengangkutan lori Kuantan fleet management diesel",
        "kilang pembuatan industri Kemaman genset backup power",
        "ladang sawit Dungun mill diesel consumption",
        "syarikat kayu Gua Musang logging diesel equipment",
        "pelabuhan Kuantan bunker marine diesel supply",
        "projek infrastruktur Terengganu diesel heavy machinery",
        '"pembekal diesel" Terengganu Kelantan Pahang bulk',
        "kilang petrokimia Kerteh diesel industrial fuel",
        "contractor marine vessel Terengganu diesel bunker",
        "palm oil mill Pahang diesel generator power",
        "construction company Kelantan heavy equipment fuel",
        "mining quarry Pahang diesel consumption tender",
        "logistics company Pantai Timur diesel fleet",
        "power plant Terengganu backup diesel generator",
        "factory manufacturing Kuantan industrial diesel",
    ],
    "Utara": [
        "kilang industri Penang manufacturing diesel generator",
        "syarikat pembinaan Perak heavy machinery diesel",
        "ladang sawit Kedah palm oil mill diesel",
        "logistik pengangkutan Butterworth fleet diesel",
        "power station Perak diesel generator backup",
        "port Penang marine bunker diesel supply",
    ],
    "Tengah": [
        "kilang Shah Alam industrial diesel consumption",
        "port Klang marine bunker diesel supply",
        "syarikat pembinaan Selangor heavy equipment diesel",
        "kilang Nilai manufacturing diesel generator",
        "logistics hub Selangor fleet diesel fuel",
        "factory industrial Klang diesel power backup",
    ],
    "Selatan": [
        "pelabuhan Johor Bahru bunker diesel marine",
        "kilang Pasir Gudang industrial diesel fuel",
        "ladang sawit Johor palm oil mill diesel",
        "syarikat pembinaan Melaka diesel machinery",
        "logistics port Johor diesel fleet management",
        "manufacturing factory Johor diesel generator",
    ],
}

SCHEDULED_QUERIES: List[str] = [
    "kilang sawit Malaysia diesel generator",
    "construction company Malaysia diesel fuel",
    "logistics trucking company Malaysia diesel",
    "plantation company Terengganu Kelantan Pahang diesel",
    "mining company Malaysia diesel equipment",
    "factory manufacturing Malaysia diesel backup generator",
    "shipping company Malaysia diesel fuel supplier",
    "quarry company Malaysia diesel machinery",
    "timber logging company Malaysia diesel",
    "agricultural farm Malaysia diesel tractor",
    "cold storage warehouse Malaysia diesel generator",
    "aquaculture fish farm Malaysia diesel pump",
    "oil palm mill Pantai Timur diesel",
    "rubber factory Malaysia diesel power",
    "cement factory Malaysia diesel truck fleet",
]


def queries_for_region(region: Optional[str]) -> List[str]:
    return REGION_QUERIES.get(region or DEFAULT_REGION, REGION_QUERIES[DEFAULT_REGION])


class QueryHistory:
    """Recently used queries per region, capped at ``size`` entries each.

    Passed into each run instead of living in module state so runs stay
    independent; two overlapping runs may both read before either writes.
    """

    def __init__(self, size: int = 30) -> None:
        self.size = size
        self._recent: Dict[str, Deque[str]] = {}

    def recent(self, region: str) -> List[str]:
        return list(self._recent.get(region, ()))

    def remember(self, region: str, queries: Iterable[str]) -> None:
        bucket = self._recent.setdefault(region, deque(maxlen=self.size))
        bucket.extend(queries)


def generate_queries(
    region: str,
    history: Optional[QueryHistory] = None,
    limit: int = 6,
    rng: Optional[random.Random] = None,
) -> List[str]:
    """Pick up to ``limit`` queries for ``region`` that were not used recently."""

    rng = rng or random.Random()
    bank = queries_for_region(region)
    used = set(history.recent(region)) if history else set()
    available = [query for query in bank if query not in used]
    if not available:
        available = list(bank)
    rng.shuffle(available)
    return available[:limit]
