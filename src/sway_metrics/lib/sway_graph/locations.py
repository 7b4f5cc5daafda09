"""Free-text location parsing for the graph backend.

The graph API has no formal jurisdiction registration, so a supporter's
state is inferred from the profile's location string.
"""

import re

STATE_ABBREVIATIONS: dict[str, str] = {
    "alabama": "AL",
    "alaska": "AK",
    "arizona": "AZ",
    "arkansas": "AR",
    "california": "CA",
    "colorado": "CO",
    "connecticut": "CT",
    "delaware": "DE",
    "florida": "FL",
    "georgia": "GA",
    "hawaii": "HI",
    "idaho": "ID",
    "illinois": "IL",
    "indiana": "IN",
    "iowa": "IA",
    "kansas": "KS",
    "kentucky": "KY",
    "louisiana": "LA",
    "maine": "ME",
    "maryland": "MD",
    "massachusetts": "MA",
    "michigan": "MI",
    "minnesota": "MN",
    "mississippi": "MS",
    "missouri": "MO",
    "montana": "MT",
    "nebraska": "NE",
    "nevada": "NV",
    "new hampshire": "NH",
    "new jersey": "NJ",
    "new mexico": "NM",
    "new york": "NY",
    "north carolina": "NC",
    "north dakota": "ND",
    "ohio": "OH",
    "oklahoma": "OK",
    "oregon": "OR",
    "pennsylvania": "PA",
    "rhode island": "RI",
    "south carolina": "SC",
    "south dakota": "SD",
    "tennessee": "TN",
    "texas": "TX",
    "utah": "UT",
    "vermont": "VT",
    "virginia": "VA",
    "washington": "WA",
    "west virginia": "WV",
    "wisconsin": "WI",
    "wyoming": "WY",
    "district of columbia": "DC",
}

_VALID_CODES = frozenset(STATE_ABBREVIATIONS.values())

# Longest names first so "West Virginia" is not read as "Virginia".
_NAME_RE = re.compile(
    r"\b("
    + "|".join(
        r"\s+".join(re.escape(word) for word in name.split())
        for name in sorted(STATE_ABBREVIATIONS, key=len, reverse=True)
    )
    + r")\b",
    re.IGNORECASE,
)
_CODE_RE = re.compile(r"\b(" + "|".join(sorted(_VALID_CODES)) + r")\b")
_SEGMENT_CODE_RE = re.compile(r"(?:^|,)\s*([A-Za-z]{2})\s*(?=,|$)")


def extract_state(location: str | None) -> str | None:
    """Return a two-letter state code for a location string.

    Recognizes full state names anywhere in the string as whole words
    ("Born in Ohio", "Charleston West Virginia"), upper-case codes
    ("Portland OR 97201"), and a code standing alone as a comma segment
    in any case ("seattle, wa").  Lower-case words inside running text
    ("living in", "hi from") are never read as codes.  When several
    states are mentioned the last one wins, so "Washington, DC" is DC.
    Returns None when no state can be recognized.
    """
    if not location or not location.strip():
        return None

    found: list[tuple[int, str]] = []
    for match in _NAME_RE.finditer(location):
        found.append((match.start(), STATE_ABBREVIATIONS[" ".join(match.group(1).lower().split())]))
    for match in _CODE_RE.finditer(location):
        found.append((match.start(), match.group(1)))
    for match in _SEGMENT_CODE_RE.finditer(location):
        code = match.group(1).upper()
        if code in _VALID_CODES:
            found.append((match.start(1), code))

    if not found:
        return None
    return max(found, key=lambda item: item[0])[1]
