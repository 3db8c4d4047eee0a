"""텍스트 유사도 함수 테스트.

Similarity scorer tests — normalization, edit distance, n-grams and the
combined score used by duplicate detection.
"""

import pytest

from app.utils.similarity import (
    combined_similarity,
    jaccard,
    levenshtein,
    levenshtein_similarity,
    ngram_similarity,
    ngrams,
    normalize,
)

SAMPLES = [
    "",
    "a",
    "Broken Air-Conditioner!!! Unit #123",
    "The projector in room 204 does not turn on",
    "projector room 204 not turning on",
    "Water leaking from the pipe under the sink",
    "   spaced    out   ",
    "Ünïcode façade lamp",
]


class TestNormalize:
    """정규화 테스트."""

    def test_strips_punctuation_and_case(self):
        assert normalize("Broken Air-Conditioner!!! Unit #123") == "broken air conditioner unit 123"

    def test_collapses_whitespace(self):
        assert normalize("  too   many\t\nspaces  ") == "too many spaces"

    def test_underscore_is_punctuation(self):
        assert normalize("socket_box") == "socket box"

    def test_none_is_empty(self):
        assert normalize(None) == ""


class TestLevenshtein:
    """편집 거리 테스트."""

    def test_textbook_value(self):
        assert levenshtein("kitten", "sitting") == 3

    @pytest.mark.parametrize("text", SAMPLES)
    def test_identity_is_zero(self, text):
        assert levenshtein(text, text) == 0

    def test_against_empty(self):
        assert levenshtein("", "abc") == 3
        assert levenshtein("abc", "") == 3

    def test_symmetric(self):
        assert levenshtein("flaw", "lawn") == levenshtein("lawn", "flaw") == 2

    def test_similarity_of_two_empty_strings(self):
        assert levenshtein_similarity("", None) == 1.0


class TestJaccard:
    """Jaccard 유사도 테스트."""

    def test_identical(self):
        assert jaccard("broken door handle", "Broken door, handle!") == 1.0

    def test_one_side_empty(self):
        assert jaccard("broken door", "") == 0.0

    def test_both_empty_does_not_divide_by_zero(self):
        assert jaccard("", "") == 0.0
        assert jaccard(None, None) == 0.0

    def test_partial_overlap(self):
        # {broken, door} vs {broken, window} -> 1/3
        assert jaccard("broken door", "broken window") == pytest.approx(1 / 3)


class TestNgrams:
    """n-gram 테스트."""

    def test_bigrams_of_test(self):
        assert ngrams("test", 2) == {"te", "es", "st"}

    def test_set_semantics(self):
        assert ngrams("aaaa", 2) == {"aa"}

    def test_empty_and_short_input(self):
        assert ngrams("", 2) == set()
        assert ngrams("a", 2) == set()

    def test_whitespace_removed(self):
        assert ngrams("a b", 2) == {"ab"}

    def test_invalid_size(self):
        with pytest.raises(ValueError):
            ngrams("test", 0)

    def test_similarity_identical(self):
        assert ngram_similarity("light", "light") == 1.0


class TestCombinedSimilarity:
    """결합 유사도 테스트."""

    @pytest.mark.parametrize("text", SAMPLES)
    def test_reflexive(self, text):
        assert combined_similarity(text, text) == 1.0

    @pytest.mark.parametrize("a", SAMPLES)
    @pytest.mark.parametrize("b", SAMPLES)
    def test_symmetric_and_bounded(self, a, b):
        score = combined_similarity(a, b)
        assert score == combined_similarity(b, a)
        assert 0.0 <= score <= 1.0

    def test_none_is_coerced(self):
        assert combined_similarity(None, None) == 1.0
        assert combined_similarity(None, "something") == combined_similarity("", "something")

    def test_punctuation_only_difference_scores_one(self):
        assert combined_similarity("Broken Air-Conditioner!!!", "broken air conditioner") == 1.0

    def test_unrelated_text_scores_low(self):
        assert combined_similarity(
            "projector does not turn on", "water leaking from pipe"
        ) < 0.5

    def test_near_identical_text_scores_high(self):
        assert combined_similarity(
            "Ceiling light flickering and turning off in the corridor",
            "Ceiling light flickering and turning off in corridor",
        ) >= 0.8
