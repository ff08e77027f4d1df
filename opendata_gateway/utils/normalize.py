"""
Identifier and address normalization.

Pure functions converting free-form property identifiers into canonical
forms and sanitizing free-text addresses for query use. None of these
functions raise on bad input; validity is the caller's concern.
"""

import re
from typing import Optional, Tuple


BOROUGHS = {
    1: "MANHATTAN",
    2: "BRONX",
    3: "BROOKLYN",
    4: "QUEENS",
    5: "STATEN ISLAND",
}

STREET_SUFFIXES = {
    "st": "Street",
    "str": "Street",
    "ave": "Avenue",
    "av": "Avenue",
    "blvd": "Boulevard",
    "rd": "Road",
    "pl": "Place",
    "dr": "Drive",
    "ln": "Lane",
    "ct": "Court",
    "pkwy": "Parkway",
    "sq": "Square",
    "ter": "Terrace",
    "hwy": "Highway",
    "plz": "Plaza",
}

DIRECTIONS = {
    "w": "West",
    "e": "East",
    "n": "North",
    "s": "South",
}

NON_BUILDING_TERMS = (
    "park",
    "plaza",
    "pier",
    "greenway",
    "playground",
    "garden",
    "esplanade",
    "cove",
)

# "Park Ave" and "Plaza Street" are streets, not open spaces
_STREET_WORDS = r"(ave|avenue|st|street|pl|place|row|dr|drive|rd|road|blvd|boulevard|ter|terrace|way|north|south|east|west)"
_NON_BUILDING_RE = re.compile(
    r"\b(" + "|".join(NON_BUILDING_TERMS) + r")s?\b(?!\.?\s+" + _STREET_WORDS + r"\b)",
    re.IGNORECASE,
)
_STREET_SEGMENT_RE = re.compile(r"^\d+[A-Za-z]?(-\d+)?\s+\S+")
_HOUSE_NUMBER_RE = re.compile(r"^\d+[A-Za-z]?(-\d+)?$")


def _format_key(borough: int, block: int, lot: int) -> str:
    return f"{borough}{block:05d}{lot:04d}"


def normalize_property_key(raw) -> str:
    """
    Normalize a property key to borough (1) + block (5) + lot (4) digits.

    Accepts a raw 10-digit string, a dash-separated triple ("1-849-17") or a
    loosely-digited string ("108490017"). Unparseable input yields its
    digits (possibly empty).

    Args:
        raw: Free-form property key

    Returns:
        Canonical 10-digit key, or best-effort digits
    """
    if raw is None:
        return ""
    text = str(raw)
    digits = re.sub(r"\D", "", text)
    if len(digits) == 10:
        return digits

    parts = re.sub(r"\s", "", text).split("-")
    if len(parts) == 3 and all(p.isdigit() for p in parts):
        borough, block, lot = (int(p) for p in parts)
        if borough in BOROUGHS and block <= 99999 and lot <= 9999:
            return _format_key(borough, block, lot)

    if len(digits) >= 7:
        borough = int(digits[0])
        rest = digits[1:]
        lot_part = rest[-4:]
        block_part = rest[:-4] or "0"
        if borough in BOROUGHS and len(block_part) <= 5:
            return _format_key(borough, int(block_part), int(lot_part))

    return digits


def is_valid_property_key(key: str) -> bool:
    """Check a key is a canonical 10-digit property key with a known borough."""
    return bool(key) and len(key) == 10 and key.isdigit() and int(key[0]) in BOROUGHS


def split_property_key(key: str) -> Optional[Tuple[int, str, str]]:
    """
    Split a property key into (borough, block, lot).

    Block and lot keep their zero padding. Returns None when the key does
    not normalize to a valid canonical key.
    """
    canonical = normalize_property_key(key)
    if not is_valid_property_key(canonical):
        return None
    return int(canonical[0]), canonical[1:6], canonical[6:]


def borough_name(borough: int) -> str:
    """Upper-case borough name for a borough digit, or "" if unknown."""
    return BOROUGHS.get(borough, "")


def normalize_bin(raw) -> str:
    """Strip a building identification number down to its digits."""
    if raw is None:
        return ""
    return re.sub(r"\D", "", str(raw))


def is_valid_bin(bin_number: str) -> bool:
    """A BIN is seven digits led by a borough digit."""
    return len(bin_number) == 7 and bin_number.isdigit() and int(bin_number[0]) in BOROUGHS


def _collapse(text: str) -> str:
    return re.sub(r"\s+", " ", text).strip()


def _expand_segment(segment: str) -> str:
    tokens = segment.split(" ")
    expanded = []
    for i, token in enumerate(tokens):
        bare = token.rstrip(".").lower()
        is_last = i == len(tokens) - 1
        follows_number = i > 0 and bool(_HOUSE_NUMBER_RE.match(tokens[i - 1]))
        if is_last and i > 0 and bare in STREET_SUFFIXES:
            expanded.append(STREET_SUFFIXES[bare])
        elif follows_number and not is_last and bare in DIRECTIONS:
            expanded.append(DIRECTIONS[bare])
        else:
            expanded.append(token)
    return " ".join(expanded)


def _street_component(address: str) -> Optional[str]:
    for segment in address.split(","):
        segment = segment.strip()
        if _STREET_SEGMENT_RE.match(segment) and not _NON_BUILDING_RE.search(segment):
            return segment
    return None


def normalize_address(raw) -> str:
    """
    Sanitize a free-text address for use in queries.

    Trims and collapses whitespace and expands street-suffix abbreviations
    ("142 W 17th St" -> "142 West 17th Street"). Addresses naming parks,
    piers and similar non-building places are reduced to their first
    street-like comma segment, or returned trimmed if none qualifies.

    Args:
        raw: Free-text address

    Returns:
        Normalized address
    """
    if raw is None:
        return ""
    address = _collapse(str(raw))
    if not address:
        return ""

    if _NON_BUILDING_RE.search(address):
        street = _street_component(address)
        if street is None:
            return address
        return _expand_segment(street)

    segments = [_collapse(s) for s in address.split(",")]
    return ", ".join(_expand_segment(s) for s in segments if s)


def is_non_building_location(name: str = "", address: str = "") -> bool:
    """Check whether a named location is a park, pier or similar open space."""
    return bool(_NON_BUILDING_RE.search(name or "")) or bool(_NON_BUILDING_RE.search(address or ""))
