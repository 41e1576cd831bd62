"""
cardscan/tests/test_matcher.py: Unit tests for catalog matching

Tests:
- Levenshtein distance properties
- Exact pass (unique, shared number + name hint)
- Fuzzy pass (auto-correct, ambiguity, name-informed correction)
- Resolution explanations
"""

import itertools
import logging

import pytest

from cardscan.catalog.loader import Catalog
from cardscan.catalog.records import CatalogRecord
from cardscan.recognition.matcher import (
    CatalogMatcher,
    levenshtein_distance,
    METHOD_EXACT,
    METHOD_EXACT_NAME,
    METHOD_FUZZY_AUTO,
    METHOD_FUZZY_NAME,
    STATUS_AMBIGUOUS,
    STATUS_CATALOG_UNAVAILABLE,
    STATUS_MATCHED,
    STATUS_NOT_FOUND,
)

WORDS = ["", "A", "AB-12", "ABC-123", "ABD-123", "SC-045", "SC-46", "BLBF-84", "KITTEN", "SITTING"]


def _catalog(*pairs):
    return Catalog([CatalogRecord(identifier=ident, name=name) for ident, name in pairs])


class TestLevenshtein:
    def test_known_distance(self):
        assert levenshtein_distance("ABC-123", "ABD-123") == 1
        assert levenshtein_distance("KITTEN", "SITTING") == 3
        assert levenshtein_distance("", "ABC") == 3

    @pytest.mark.parametrize("word", WORDS)
    def test_identity(self, word):
        assert levenshtein_distance(word, word) == 0

    def test_symmetry(self):
        for a, b in itertools.combinations(WORDS, 2):
            assert levenshtein_distance(a, b) == levenshtein_distance(b, a)

    def test_triangle_inequality(self):
        for a, b, c in itertools.permutations(WORDS, 3):
            assert levenshtein_distance(a, c) <= levenshtein_distance(a, b) + levenshtein_distance(b, c)


class TestExactPass:
    def test_unique_exact_match(self, sample_catalog):
        matcher = CatalogMatcher(sample_catalog)
        resolution = matcher.resolve("BF-108")

        assert resolution.status == STATUS_MATCHED
        assert resolution.method == METHOD_EXACT
        assert resolution.record.name == "Bo Jackson"

    def test_exact_match_is_case_and_space_insensitive(self, sample_catalog):
        matcher = CatalogMatcher(sample_catalog)
        assert matcher.match("  bf-108 ").identifier == "BF-108"

    def test_shared_number_without_hint_is_ambiguous(self, shared_number_catalog):
        matcher = CatalogMatcher(shared_number_catalog)
        resolution = matcher.resolve("SC-045")

        assert resolution.record is None
        assert resolution.status == STATUS_AMBIGUOUS
        assert len(resolution.candidates) == 2

    def test_shared_number_with_exact_name(self, shared_number_catalog):
        matcher = CatalogMatcher(shared_number_catalog)

        assert matcher.match("SC-045", "Bo").record_id == "1"
        assert matcher.match("SC-045", "  ken ").record_id == "2"
        assert matcher.resolve("SC-045", "Bo").method == METHOD_EXACT_NAME

    def test_shared_number_with_substring_name(self):
        catalog = _catalog(("SC-045", "Bo Jackson"), ("SC-045", "Ken Griffey"))
        matcher = CatalogMatcher(catalog)

        # Hint contains the record name, and the other way round
        assert matcher.match("SC-045", "KEN GRIFFEY JR").name == "Ken Griffey"
        assert matcher.match("SC-045", "Jackson").name == "Bo Jackson"

    def test_exact_name_preferred_over_substring(self):
        catalog = _catalog(("SC-045", "Bo Jackson"), ("SC-045", "Bo"))
        matcher = CatalogMatcher(catalog)
        assert matcher.match("SC-045", "BO").name == "Bo"

    def test_unmatched_hint_stays_ambiguous(self, shared_number_catalog):
        matcher = CatalogMatcher(shared_number_catalog)
        assert matcher.match("SC-045", "Striker") is None

    def test_ambiguous_exact_does_not_fall_back_to_fuzzy(self):
        catalog = _catalog(("SC-045", "Bo"), ("SC-045", "Ken"), ("SC-046", "Striker"))
        matcher = CatalogMatcher(catalog)
        assert matcher.match("SC-045", "Striker") is None

    def test_short_name_containment_is_logged(self, caplog):
        catalog = _catalog(("SC-045", "Bo Jackson"), ("SC-045", "Ken"))
        matcher = CatalogMatcher(catalog)

        with caplog.at_level(logging.WARNING, logger="cardscan.recognition.matcher"):
            record = matcher.match("SC-045", "Bo")

        assert record.name == "Bo Jackson"
        assert "Short-name containment" in caplog.text

    def test_empty_record_name_never_matches_hint(self):
        catalog = _catalog(("SC-045", ""), ("SC-045", "Ken"))
        matcher = CatalogMatcher(catalog)
        assert matcher.match("SC-045", "Bo") is None


class TestFuzzyPass:
    def test_single_near_miss_auto_corrects(self):
        matcher = CatalogMatcher(_catalog(("SC-045", "Bo")))
        resolution = matcher.resolve("SC-046")

        assert resolution.record.identifier == "SC-045"
        assert resolution.method == METHOD_FUZZY_AUTO
        assert resolution.candidates[0].distance == 1

    def test_several_near_misses_are_ambiguous(self):
        matcher = CatalogMatcher(_catalog(("SC-045", "Bo"), ("SC-046", "Ken")))
        resolution = matcher.resolve("SC-047")

        assert resolution.record is None
        assert resolution.status == STATUS_AMBIGUOUS
        assert [c.record.identifier for c in resolution.candidates] == ["SC-045", "SC-046"]

    def test_name_hint_breaks_fuzzy_tie(self):
        matcher = CatalogMatcher(_catalog(("SC-045", "Bo"), ("SC-046", "Ken")))
        resolution = matcher.resolve("SC-047", "Ken")

        assert resolution.record.identifier == "SC-046"
        assert resolution.method == METHOD_FUZZY_NAME

    def test_name_hint_prefers_lowest_distance(self):
        catalog = _catalog(("SC-145", "Bo"), ("SC-046", "Bo"))
        matcher = CatalogMatcher(catalog)
        # SC-046 is distance 1 from SC-047, SC-145 is distance 2
        assert matcher.match("SC-047", "Bo").identifier == "SC-046"

    def test_unmatched_hint_still_allows_auto_correct(self):
        matcher = CatalogMatcher(_catalog(("SC-045", "Bo")))
        assert matcher.match("SC-046", "Nobody").identifier == "SC-045"

    def test_distance_two_is_not_auto_accepted(self):
        matcher = CatalogMatcher(_catalog(("SC-045", "Bo")))
        resolution = matcher.resolve("SC-147")

        assert resolution.record is None
        assert resolution.candidates[0].distance == 2

    def test_distance_two_accepted_with_name(self):
        matcher = CatalogMatcher(_catalog(("SC-045", "Bo")))
        assert matcher.match("SC-147", "Bo").identifier == "SC-045"

    def test_near_miss_with_farther_candidate_is_ambiguous(self):
        """A distance-2 neighbour is still a plausible correction, so nothing is auto-accepted"""
        matcher = CatalogMatcher(_catalog(("SC-045", "Bo"), ("SC-147", "Ken")))
        resolution = matcher.resolve("SC-046")

        assert resolution.record is None
        assert resolution.status == STATUS_AMBIGUOUS
        assert [(c.record.identifier, c.distance) for c in resolution.candidates] == [("SC-045", 1), ("SC-147", 2)]

    def test_hint_resolves_near_miss_with_farther_candidate(self):
        matcher = CatalogMatcher(_catalog(("SC-045", "Bo"), ("SC-147", "Ken")))
        assert matcher.match("SC-046", "Ken").identifier == "SC-147"

    def test_nothing_within_tolerance(self, sample_catalog):
        resolution = CatalogMatcher(sample_catalog).resolve("ZZZ-999")
        assert resolution.record is None
        assert resolution.status == STATUS_NOT_FOUND
        assert resolution.candidates == ()

    def test_auto_accept_distance_is_tunable(self):
        matcher = CatalogMatcher(_catalog(("SC-045", "Bo")), auto_accept_distance=2)
        assert matcher.match("SC-147").identifier == "SC-045"
        assert matcher.match("SC-046") is None

    def test_find_similar_is_stable_sorted(self):
        catalog = _catalog(("SC-147", "A"), ("SC-046", "B"), ("SC-044", "C"), ("XX-999", "D"))
        candidates = CatalogMatcher(catalog).find_similar("SC-045")

        assert [c.record.name for c in candidates] == ["B", "C", "A"]
        assert [c.distance for c in candidates] == [1, 1, 2]

    def test_candidate_score(self):
        candidates = CatalogMatcher(_catalog(("SC-045", "Bo"))).find_similar("SC-046")
        assert candidates[0].score == pytest.approx(1 - 1 / 6)


def test_unavailable_catalog_never_matches():
    resolution = CatalogMatcher(Catalog.unavailable()).resolve("SC-045")
    assert resolution.record is None
    assert resolution.status == STATUS_CATALOG_UNAVAILABLE


def test_empty_identifier_not_found(sample_catalog):
    assert CatalogMatcher(sample_catalog).resolve("   ").status == STATUS_NOT_FOUND


def test_resolution_to_dict(shared_number_catalog):
    data = CatalogMatcher(shared_number_catalog).resolve("SC-045", "Bo").to_dict()

    assert data['status'] == STATUS_MATCHED
    assert data['record']['name'] == "Bo"
    assert len(data['candidates']) == 2
