"""Malaysian state, city and region tables plus text-based location validation."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Pattern, Tuple


DEFAULT_STATE = "Malaysia"
UNKNOWN_REGION = "Unknown"

# Ordered: the first state whose fragment appears in the text wins.
MALAYSIA_LOCATIONS: Dict[str, List[str]] = {
    "Terengganu": ["kuala terengganu", "kemaman", "dungun", "kerteh", "marang", "besut", "setiu", "hulu terengganu"],
    "Kelantan": ["kota bharu", "gua musang", "tanah merah", "machang", "pasir mas", "tumpat", "bachok", "kuala krai"],
    "Pahang": ["kuantan", "temerloh", "bentong", "pekan", "gebeng", "jerantut", "rompin", "raub", "cameron highlands"],
    "Johor": ["johor bahru", "pasir gudang", "iskandar", "batu pahat", "muar", "segamat", "kluang", "pontian"],
    "Perak": ["ipoh", "taiping", "lumut", "manjung", "sitiawan", "teluk intan", "kampar"],
    "Selangor": ["shah alam", "klang", "petaling jaya", "subang", "puchong", "rawang", "sepang"],
    "Penang": ["georgetown", "george town", "butterworth", "bayan lepas", "seberang perai", "nibong tebal", "pulau pinang"],
    "Kedah": ["alor setar", "sungai petani", "kulim", "langkawi", "jitra"],
    "Sabah": ["kota kinabalu", "sandakan", "tawau", "lahad datu", "keningau"],
    "Sarawak": ["kuching", "miri", "sibu", "bintulu", "mukah"],
    "Negeri Sembilan": ["seremban", "nilai", "port dickson", "senawang"],
    "Melaka": ["ayer keroh", "alor gajah", "malacca"],
    "Perlis": ["kangar", "arau", "padang besar"],
    "Kuala Lumpur": ["cheras", "kepong", "setapak", "bangsar", "wangsa maju"],
    "Putrajaya": [],
    "Labuan": [],
}

STATE_TO_REGION: Dict[str, str] = {
    "Terengganu": "Pantai Timur",
    "Kelantan": "Pantai Timur",
    "Pahang": "Pantai Timur",
    "Perlis": "Pantai Barat",
    "Kedah": "Pantai Barat",
    "Penang": "Pantai Barat",
    "Perak": "Pantai Barat",
    "Selangor": "Pantai Barat",
    "Negeri Sembilan": "Pantai Barat",
    "Melaka": "Pantai Barat",
    "Johor": "Pantai Barat",
    "Sabah": "Borneo",
    "Sarawak": "Borneo",
    "Kuala Lumpur": "Federal",
    "Putrajaya": "Federal",
    "Labuan": "Federal",
}

# Spellings used by geocoders and directories for the canonical state names above.
STATE_ALIASES: Dict[str, str] = {
    "pulau pinang": "Penang",
    "malacca": "Melaka",
    "negri sembilan": "Negeri Sembilan",
    "federal territory of kuala lumpur": "Kuala Lumpur",
    "wilayah persekutuan kuala lumpur": "Kuala Lumpur",
    "wilayah persekutuan": "Kuala Lumpur",
    "federal territory of putrajaya": "Putrajaya",
    "wilayah persekutuan putrajaya": "Putrajaya",
    "federal territory of labuan": "Labuan",
    "wilayah persekutuan labuan": "Labuan",
}


def _fragment_pattern(fragment: str) -> Pattern[str]:
    return re.compile(r"\b" + re.escape(fragment) + r"\b")


_CITY_PATTERNS: List[Tuple[str, str, Pattern[str]]] = [
    (state, city, _fragment_pattern(city)) for state, cities in MALAYSIA_LOCATIONS.items() for city in cities
]
_STATE_PATTERNS: List[Tuple[str, Pattern[str]]] = [
    (state, _fragment_pattern(state.lower())) for state in STATE_TO_REGION
]


def canonical_state(name: Optional[str]) -> Optional[str]:
    """Map a state name or alias onto the canonical table key, or ``None``."""

    if not name:
        return None
    cleaned = " ".join(name.split())
    for state in STATE_TO_REGION:
        if state.lower() == cleaned.lower():
            return state
    return STATE_ALIASES.get(cleaned.lower())


def region_for_state(state: Optional[str]) -> str:
    """Total state -> region function; anything unrecognized maps to ``Unknown``."""

    canonical = canonical_state(state)
    if canonical is None:
        return UNKNOWN_REGION
    return STATE_TO_REGION[canonical]


def find_city(text: str) -> Optional[Tuple[str, str]]:
    lowered = text.lower()
    for state, city, pattern in _CITY_PATTERNS:
        if pattern.search(lowered):
            return state, city
    return None


def find_state_name(text: str) -> Optional[str]:
    lowered = text.lower()
    for state, pattern in _STATE_PATTERNS:
        if pattern.search(lowered):
            return state
    for alias, state in STATE_ALIASES.items():
        if _fragment_pattern(alias).search(lowered):
            return state
    return None


def detect_state(text: str) -> str:
    """Classification-stage state guess from free text."""

    city_match = find_city(text)
    if city_match:
        return city_match[0]
    return find_state_name(text) or DEFAULT_STATE


@dataclass(frozen=True)
class LocationMatch:
    state: str
    region: str
    city: Optional[str] = None


def validate_location(text: str, suggested_state: Optional[str] = None) -> LocationMatch:
    """Reconcile a suggested state with the place names found in ``text``.

    Precedence: a known city or area, then a state name, then the suggested
    state when it is in the table, then the neutral default.
    """

    city_match = find_city(text or "")
    if city_match:
        state, city = city_match
        return LocationMatch(state=state, region=STATE_TO_REGION[state], city=city.title())

    named_state = find_state_name(text or "")
    if named_state:
        return LocationMatch(state=named_state, region=STATE_TO_REGION[named_state])

    suggested = canonical_state(suggested_state)
    if suggested:
        return LocationMatch(state=suggested, region=STATE_TO_REGION[suggested])

    return LocationMatch(state=DEFAULT_STATE, region=UNKNOWN_REGION)


# Sales territories used when choosing query banks and filtering by target region.
REGION_GROUPS: Dict[str, List[str]] = {
    "Pantai Timur": ["Terengganu", "Kelantan", "Pahang"],
    "Utara": ["Penang", "Perak", "Kedah", "Perlis"],
    "Tengah": ["Selangor", "Kuala Lumpur", "Negeri Sembilan", "Putrajaya"],
    "Selatan": ["Johor", "Melaka"],
    "Sabah": ["Sabah", "Labuan"],
    "Sarawak": ["Sarawak"],
}


def in_target_region(state: str, region: str, target: Optional[str]) -> bool:
    if not target or target.lower() == "all":
        return True
    if target in (state, region):
        return True
    return state in REGION_GROUPS.get(target, [])
