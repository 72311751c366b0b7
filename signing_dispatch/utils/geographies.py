from __future__ import annotations

import math
from typing import Dict, Iterable, List, Optional

# Canonical jurisdiction list (50 states + DC)
US_STATE_NAMES: Dict[str, str] = {
    "AL": "Alabama",
    "AK": "Alaska",
    "AZ": "Arizona",
    "AR": "Arkansas",
    "CA": "California",
    "CO": "Colorado",
    "CT": "Connecticut",
    "DE": "Delaware",
    "FL": "Florida",
    "GA": "Georgia",
    "HI": "Hawaii",
    "ID": "Idaho",
    "IL": "Illinois",
    "IN": "Indiana",
    "IA": "Iowa",
    "KS": "Kansas",
    "KY": "Kentucky",
    "LA": "Louisiana",
    "ME": "Maine",
    "MD": "Maryland",
    "MA": "Massachusetts",
    "MI": "Michigan",
    "MN": "Minnesota",
    "MS": "Mississippi",
    "MO": "Missouri",
    "MT": "Montana",
    "NE": "Nebraska",
    "NV": "Nevada",
    "NH": "New Hampshire",
    "NJ": "New Jersey",
    "NM": "New Mexico",
    "NY": "New York",
    "NC": "North Carolina",
    "ND": "North Dakota",
    "OH": "Ohio",
    "OK": "Oklahoma",
    "OR": "Oregon",
    "PA": "Pennsylvania",
    "RI": "Rhode Island",
    "SC": "South Carolina",
    "SD": "South Dakota",
    "TN": "Tennessee",
    "TX": "Texas",
    "UT": "Utah",
    "VT": "Vermont",
    "VA": "Virginia",
    "WA": "Washington",
    "WV": "West Virginia",
    "WI": "Wisconsin",
    "WY": "Wyoming",
    "DC": "District of Columbia",
}

# Full names and common abbreviations → postal code
_STATE_NORMALIZATION_MAP: Dict[str, str] = {
    name.upper(): code for code, name in US_STATE_NAMES.items()
}
_STATE_NORMALIZATION_MAP.update({
    "WASHINGTON DC": "DC",
    "WASHINGTON D C": "DC",
    "DISTRICT OF COLUMBIA": "DC",
    "PENN": "PA",
    "PENNA": "PA",
    "CALIF": "CA",
    "MASS": "MA",
})

EARTH_RADIUS_MILES = 3958.8


def normalize_state_code(code: Optional[str]) -> str:
    """
    Trim and upper-case a state code; map full names to postal codes.

    Never raises: unknown input comes back cleaned so that lookups fail
    closed instead of crashing.
    """
    if code is None:
        return ""
    cleaned = " ".join(str(code).replace(".", " ").split()).upper()
    if not cleaned:
        return ""
    return _STATE_NORMALIZATION_MAP.get(cleaned, cleaned)


def normalize_state_list(codes: Optional[Iterable[str]]) -> List[str]:
    """Normalize and de-duplicate a list of state codes, keeping order."""
    if not codes:
        return []
    seen = set()
    result = []
    for code in codes:
        normalized = normalize_state_code(code)
        if not normalized or normalized in seen:
            continue
        result.append(normalized)
        seen.add(normalized)
    return result


def state_name(code: Optional[str]) -> Optional[str]:
    """Return the full name for a state code, or None when unknown."""
    return US_STATE_NAMES.get(normalize_state_code(code))


def haversine_miles(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance between two points in statute miles."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    return 2 * EARTH_RADIUS_MILES * math.asin(min(1.0, math.sqrt(a)))
