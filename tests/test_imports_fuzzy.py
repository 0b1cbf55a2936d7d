"""Tests for normalization and fuzzy string matching."""

import pytest

from stratimport.imports.fuzzy import (
    composite_match,
    contains_all_words,
    expand_abbreviations,
    extract_words,
    find_all_matches,
    find_best_match,
    fuzzy_match,
    fuzzy_match_with_abbreviations,
    levenshtein_distance,
    levenshtein_similarity,
    normalize,
    normalize_with_spaces,
    round_score,
    word_overlap_score,
)


class TestNormalize:
    def test_separators_and_case_collapse(self):
        assert normalize("Project_Name") == "projectname"
        assert normalize("  Start-Date ") == "startdate"
        assert normalize("PROJECT NAME") == normalize("project-name")

    def test_symbols_removed(self):
        assert normalize("% Complete") == "complete"
        assert normalize("$") == ""

    def test_with_spaces_keeps_word_boundaries(self):
        assert normalize_with_spaces("Project_Name  (Main)") == "project name main"

    def test_extract_words(self):
        assert extract_words("Est. Hours") == ["est", "hours"]
        assert extract_words("") == []

    def test_idempotent(self):
        for text in ("Project_Name", "  % Complete ", "Est. Hours (Total)", "KPI-2025", ""):
            once = normalize(text)
            assert normalize(once) == once


class TestLevenshtein:
    def test_distance(self):
        assert levenshtein_distance("kitten", "sitting") == 3
        assert levenshtein_distance("", "abc") == 3
        assert levenshtein_distance("same", "same") == 0

    def test_similarity_bounds(self):
        assert levenshtein_similarity("abc", "abc") == 1.0
        assert levenshtein_similarity("", "") == 1.0
        assert levenshtein_similarity("abc", "xyz") == 0.0

    def test_similarity_scales_by_longer_string(self):
        assert levenshtein_similarity("kitten", "sitting") == pytest.approx(4 / 7)
        assert levenshtein_similarity("", "abcd") == 0.0


class TestFuzzyMatch:
    def test_identical_after_normalization(self):
        assert fuzzy_match("Project Name", "project_name") == 100

    def test_empty_strings_score_zero(self):
        assert fuzzy_match("", "") == 0
        assert fuzzy_match("name", "") == 0

    def test_containment_scores_between_85_and_95(self):
        score = fuzzy_match("name", "project name")
        assert 85 < score < 95

    def test_unrelated_strings_score_low(self):
        assert fuzzy_match("budget", "xyz") == 0

    def test_typo_scores_by_edit_distance(self):
        # one edit in eight characters: 0.875 * 80
        assert fuzzy_match("Custmer", "Customer") == 70

    def test_round_score_is_half_up(self):
        assert round_score(8.5) == 9
        assert round_score(2.5) == 3
        assert round_score(2.4) == 2


class TestWordOverlap:
    def test_same_words_any_order(self):
        assert word_overlap_score("start date", "date start") == 100

    def test_partial_overlap(self):
        assert word_overlap_score("project start", "start date") == 33

    def test_contains_all_words(self):
        assert contains_all_words("Project Start Date", ["start", "date"])
        assert not contains_all_words("Project Start", ["start", "date"])


class TestAbbreviations:
    def test_expansions_added(self):
        variants = expand_abbreviations("Est Hrs")
        assert variants[0] == "Est Hrs"
        assert "Est hours" in variants
        assert "estimated Hrs" in variants

    def test_abbreviation_matches_full_word(self):
        assert fuzzy_match_with_abbreviations("Dept", "Department") == 100


class TestCompositeMatch:
    def test_empty_header(self):
        result = composite_match("", "name")
        assert result.score == 0
        assert result.reason == "Empty header"

    def test_exact(self):
        result = composite_match("Name", "name")
        assert result.score == 100
        assert result.reason == "Exact match"

    def test_alias_exact(self):
        result = composite_match("PM", "manager_id", ["project manager", "pm"])
        assert result.score == 98
        assert result.reason == 'Alias match: "pm"'

    def test_low_confidence(self):
        result = composite_match("Zebra", "budget", ["cost"])
        assert result.reason == "Low confidence"
        assert result.score < 60


class TestFindBestMatch:
    def test_best_target_and_index(self):
        match = find_best_match("Custmer", ["Financial", "Customer"])
        assert match.target == "Customer"
        assert match.index == 1
        assert match.score == 70

    def test_earlier_target_wins_ties(self):
        match = find_best_match("ab", ["ab", "AB"])
        assert match.index == 0

    def test_below_threshold_returns_none(self):
        assert find_best_match("zzz", ["abc"]) is None

    def test_find_all_sorted_descending(self):
        matches = find_all_matches("project", ["project name", "project", "zzz"])
        assert [m.target for m in matches] == ["project", "project name"]
