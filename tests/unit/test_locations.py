"""Tests for location normalization and matching."""

from dataclasses import dataclass

import pytest

from backend.tripweave.orchestration.locations import (
    find_matching_bucket,
    is_duplicate_location,
    locations_match,
    normalize_location,
    title_case_location,
)


@dataclass
class _Bucket:
    location: str


class TestNormalizeLocation:
    """Test normalize_location."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("Siargao Island", "siargao"),
            ("  Cebu   City ", "cebu"),
            ("Lake Como", "como"),
            ("Lake Como, Italy", "como, italy"),
            ("Barangay General Luna, Siargao, Philippines", "general luna, siargao, philippines"),
            ("Bali", "bali"),
            ("", ""),
        ],
    )
    def test_normalize(self, raw: str, expected: str) -> None:
        """Descriptors are stripped from the primary part only."""
        assert normalize_location(raw) == expected

    def test_descriptor_inside_word_kept(self) -> None:
        """Word-boundary removal leaves 'Baybay' alone."""
        assert normalize_location("Baybay") == "baybay"

    def test_region_suffix_not_stripped(self) -> None:
        """Descriptors after the first comma stay."""
        assert normalize_location("Kyoto, Kyoto Prefecture") == "kyoto, kyoto prefecture"


class TestLocationsMatch:
    """Test locations_match."""

    def test_place_matches_place_with_country(self) -> None:
        """'Siargao' names the same place as 'Siargao, Philippines'."""
        assert locations_match("Siargao", "Siargao, Philippines") is True

    def test_different_places(self) -> None:
        """'Bali' and 'Manila' are different places."""
        assert locations_match("Bali", "Manila") is False

    def test_lake_como_matches_como(self) -> None:
        """'Lake Como' normalizes to 'como', equal to 'Como'."""
        assert locations_match("Lake Como", "Como") is True

    def test_short_fragment_does_not_match_by_containment(self) -> None:
        """A shorter string of length <= 3 only matches when equal."""
        assert locations_match("Rio", "Rio de Janeiro") is False
        assert locations_match("Rio", "rio") is True

    def test_four_char_fragment_matches_by_containment(self) -> None:
        """Length 4 passes the guard."""
        assert locations_match("Bali", "Bali, Indonesia") is True

    def test_blank_never_matches(self) -> None:
        """Blank strings are not places."""
        assert locations_match("", "") is False
        assert locations_match("  ", "Siargao") is False
        assert locations_match("Island", "Siargao") is False

    def test_descriptor_only_names_match_themselves(self) -> None:
        """Names made only of descriptor words still match when equal."""
        assert locations_match("Metro", "Metro") is True
        assert is_duplicate_location("Lake", ["Bali", "Lake"]) is True
        assert locations_match("Metro", "Lake") is False

    def test_symmetric(self) -> None:
        """Argument order does not matter."""
        assert locations_match("Siargao, Philippines", "Siargao") is True

    def test_is_duplicate_location(self) -> None:
        """Any match among existing locations counts."""
        assert is_duplicate_location("Siargao Island", ["Bali", "Siargao, Philippines"]) is True
        assert is_duplicate_location("Palawan", ["Bali", "Manila"]) is False


class TestBuckets:
    """Test title_case_location and find_matching_bucket."""

    def test_title_case(self) -> None:
        """Each word capitalized, rest lower-cased."""
        assert title_case_location("lAKE como") == "Lake Como"

    def test_exact_match_preferred(self) -> None:
        """An exact title-cased match wins over an earlier fuzzy one."""
        fuzzy = _Bucket("Siargao, Philippines")
        exact = _Bucket("Siargao")
        assert find_matching_bucket("siargao", [fuzzy, exact]) is exact

    def test_fuzzy_match(self) -> None:
        """Without an exact match, the matcher is used."""
        bucket = _Bucket("Siargao, Philippines")
        assert find_matching_bucket("Siargao Island", [_Bucket("Bali"), bucket]) is bucket

    def test_no_match(self) -> None:
        """Unrelated locations yield None."""
        assert find_matching_bucket("Palawan", [_Bucket("Bali")]) is None
