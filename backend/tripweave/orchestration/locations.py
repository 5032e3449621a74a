"""Location normalizer and matcher.

Canonicalizes free-text place names so inspiration buckets group by place
and the same saved item is not filed under two spellings of one place.
"""

import re
from collections.abc import Iterable
from typing import TypeVar

# Generic place descriptors stripped from the primary part of a location
LOCATION_DESCRIPTORS: tuple[str, ...] = (
    "island",
    "isl",
    "city",
    "town",
    "village",
    "vill",
    "province",
    "prov",
    "region",
    "reg",
    "municipality",
    "mun",
    "district",
    "dist",
    "area",
    "zone",
    "capital",
    "isle",
    "archipelago",
    "peninsula",
    "coast",
    "bay",
    "harbor",
    "harbour",
    "mount",
    "mountain",
    "lake",
    "river",
    "barangay",
    "brgy",
    "poblacion",
    "sitio",
    "compound",
    "state",
    "county",
    "prefecture",
    "pref",
    "governorate",
    "territory",
    "metropolitan",
    "metro",
)

_DESCRIPTOR_PATTERN = re.compile(
    r"\b(?:" + "|".join(re.escape(d) for d in LOCATION_DESCRIPTORS) + r")\b",
    re.IGNORECASE,
)
_WHITESPACE = re.compile(r"\s+")

# Shorter strings are too ambiguous for containment matching
MIN_CONTAINMENT_LENGTH = 3

B = TypeVar("B")


def _clean(part: str) -> str:
    return _WHITESPACE.sub(" ", _DESCRIPTOR_PATTERN.sub("", part)).strip()


def normalize_location(location: str | None) -> str:
    """Canonical matching form of a place name.

    Lower-cases, splits on the first comma into primary part and region
    suffix, strips descriptor words from the primary part and collapses
    whitespace. The region suffix is reattached unchanged.

    Examples:
        "Siargao Island" -> "siargao"
        "Lake Como, Italy" -> "como, italy"
    """
    if not location:
        return ""

    normalized = location.lower().strip()
    primary, sep, suffix = normalized.partition(",")
    cleaned = _clean(primary)
    if not sep:
        return cleaned

    region = ", ".join(p.strip() for p in suffix.split(","))
    return f"{cleaned}, {region}"


def locations_match(a: str | None, b: str | None) -> bool:
    """Decide whether two place strings name the same place."""
    if not (a and a.strip()) or not (b and b.strip()):
        return False
    left, right = normalize_location(a), normalize_location(b)
    # Descriptor-only names normalize to nothing; compare them as written
    if not left or not right:
        return a.strip().casefold() == b.strip().casefold()
    if left == right:
        return True

    longer, shorter = (left, right) if len(left) > len(right) else (right, left)
    return shorter in longer and len(shorter) > MIN_CONTAINMENT_LENGTH


def is_duplicate_location(candidate: str, existing: Iterable[str]) -> bool:
    """True when ``candidate`` matches any of the ``existing`` locations."""
    return any(locations_match(candidate, loc) for loc in existing)


def title_case_location(location: str) -> str:
    """Storage form of a location: each space-separated word capitalized."""
    return " ".join(word[:1].upper() + word[1:].lower() for word in location.strip().split(" "))


def find_matching_bucket(location: str, buckets: Iterable[B], key=lambda b: b.location) -> B | None:
    """Find the bucket a location belongs to.

    Exact title-cased match wins; otherwise the first bucket whose location
    matches under ``locations_match``.
    """
    candidates = list(buckets)
    stored = title_case_location(location)
    for bucket in candidates:
        if key(bucket) == stored:
            return bucket
    for bucket in candidates:
        if locations_match(key(bucket), stored):
            return bucket
    return None
