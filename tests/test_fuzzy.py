"""Tests for fuzzy string matching."""

import pytest

from notesearch.fuzzy import FuzzyConfig, FuzzyMatcher, tokenize


@pytest.fixture
def matcher():
    return FuzzyMatcher()


class TestFuzzyConfig:
    """Test fuzzy matching configuration."""

    def test_defaults(self):
        """Default configuration values."""
        config = FuzzyConfig()

        assert config.max_edit_distance == 2
        assert config.include_transpositions is True
        assert config.min_similarity == 0.7
        assert config.prefix_weight == 1.5

    def test_prefix_weight_below_one_rejected(self):
        """A prefix weight below 1 would lower prefix similarity."""
        with pytest.raises(ValueError, match="prefix_weight"):
            FuzzyConfig(prefix_weight=0.5)

    def test_min_similarity_out_of_range_rejected(self):
        """Minimum similarity must be a fraction."""
        with pytest.raises(ValueError, match="min_similarity"):
            FuzzyConfig(min_similarity=1.5)


class TestEditDistance:
    """Test Damerau-Levenshtein distance."""

    def test_classic_example(self, matcher):
        """kitten -> sitting takes three edits."""
        assert matcher.edit_distance("kitten", "sitting") == 3

    def test_empty_strings(self, matcher):
        """Distance to an empty string is the other length."""
        assert matcher.edit_distance("", "abc") == 3
        assert matcher.edit_distance("abc", "") == 3
        assert matcher.edit_distance("", "") == 0

    def test_transposition_counts_once(self, matcher):
        """Adjacent swaps are a single edit."""
        assert matcher.edit_distance("ab", "ba") == 1
        assert matcher.edit_distance("python", "pyhton") == 1

    def test_cutoff(self, matcher):
        """Distances above the cutoff are reported as cutoff plus one."""
        assert matcher.edit_distance("cat", "elephant", cutoff=2) == 3
        assert matcher.edit_distance("color", "colour", cutoff=2) == 1

    def test_transpositions_disabled(self):
        """Without transpositions a swap costs two substitutions."""
        matcher = FuzzyMatcher(FuzzyConfig(include_transpositions=False))
        assert matcher.edit_distance("ab", "ba") == 2


class TestSimilarity:
    """Test normalized similarity."""

    @pytest.mark.parametrize("text", ["a", "hello", "Machine Learning", "x" * 50])
    def test_identical_strings(self, matcher, text):
        """A string is fully similar to itself."""
        assert matcher.calculate_similarity(text, text) == 1.0

    @pytest.mark.parametrize("text", ["a", "hello", "Machine Learning"])
    def test_empty_string(self, matcher, text):
        """Nothing is similar to the empty string."""
        assert matcher.calculate_similarity(text, "") == 0.0
        assert matcher.calculate_similarity("", text) == 0.0

    @pytest.mark.parametrize("text", ["hello", "Machine Learning", "abc123"])
    def test_case_insensitive(self, matcher, text):
        """Case is ignored."""
        assert matcher.calculate_similarity(text, text.upper()) == 1.0

    def test_surrounding_whitespace_ignored(self, matcher):
        """Surrounding whitespace is trimmed."""
        assert matcher.calculate_similarity("  notes ", "notes") == 1.0

    def test_prefix_bonus(self, matcher):
        """A prefix match is boosted above plain edit similarity."""
        # distance 1 over length 5 is 0.8, half the gap is closed by the bonus
        assert matcher.calculate_similarity("test", "tests") == pytest.approx(0.9)

    def test_completely_different(self, matcher):
        """Strings with no alignment score zero."""
        assert matcher.calculate_similarity("abc", "xyz") == 0.0

    def test_range(self, matcher):
        """Similarity stays within [0, 1]."""
        pairs = [("note", "notes"), ("react", "redux"), ("a", "abcdefgh")]
        for a, b in pairs:
            assert 0.0 <= matcher.calculate_similarity(a, b) <= 1.0

    def test_long_inputs(self, matcher):
        """Hundred character strings are handled."""
        a = "abcdefghij" * 10
        b = "abcdefghik" * 10
        assert 0.0 < matcher.calculate_similarity(a, b) < 1.0


class TestMatches:
    """Test tolerance-based matching."""

    def test_typo_within_tolerance(self, matcher):
        """A swapped pair of letters is a match."""
        assert matcher.matches("python", "pyhton", 0.3)

    def test_unrelated_words(self, matcher):
        """Unrelated words do not match."""
        assert not matcher.matches("python", "java", 0.3)

    def test_zero_tolerance_requires_equality(self, matcher):
        """Tolerance 0 accepts only case-insensitive equality."""
        assert matcher.matches("Python", "python", 0.0)
        assert not matcher.matches("python", "pythons", 0.0)

    def test_full_tolerance_accepts_anything(self, matcher):
        """Tolerance 1 accepts any pair."""
        assert matcher.matches("abc", "xyz", 1.0)

    def test_default_tolerance_from_config(self, matcher):
        """Without a tolerance the configured minimum similarity applies."""
        assert matcher.default_tolerance == pytest.approx(0.3)
        assert matcher.matches("notes", "notse")


class TestFindBestMatches:
    """Test candidate ranking."""

    def test_ranked_by_similarity(self, matcher):
        """Best candidates come first and weak ones are dropped."""
        matches = matcher.find_best_matches("pyton", ["python", "pylon", "java", "pyton"])

        assert [m.value for m in matches] == ["pyton", "python", "pylon"]
        assert matches[0].similarity == 1.0

    def test_sorted_non_increasing(self, matcher):
        """Results never increase in similarity."""
        candidates = ["search", "serach", "research", "sear", "starch", "seated", "march"]
        matches = matcher.find_best_matches("search", candidates, min_similarity=0.0)

        similarities = [m.similarity for m in matches]
        assert similarities == sorted(similarities, reverse=True)

    def test_max_results(self, matcher):
        """Result count is capped."""
        matches = matcher.find_best_matches(
            "note", ["note", "notes", "noted", "nose"], max_results=2
        )
        assert len(matches) == 2

    def test_no_candidates(self, matcher):
        """Empty candidate list gives no matches."""
        assert matcher.find_best_matches("note", []) == []


class TestTokenMatching:
    """Test multi-word matching."""

    def test_tokenize(self):
        """Tokens are lowercase words."""
        assert tokenize("Hello, World! foo_bar") == ["hello", "world", "foo_bar"]

    def test_every_token_must_match(self, matcher):
        """All query tokens need a partner in the target."""
        assert matcher.match_tokens("machine learning", "learning about machines", 0.3)
        assert not matcher.match_tokens("machine cooking", "learning about machines", 0.3)

    def test_empty_query_matches(self, matcher):
        """An empty query matches any target."""
        assert matcher.match_tokens("", "anything")

    def test_empty_target_never_matches(self, matcher):
        """A non-empty query never matches an empty target."""
        assert not matcher.match_tokens("x", "")

    def test_token_lists(self, matcher):
        """Token iterables are accepted as well as strings."""
        assert matcher.match_tokens(["Notes"], ["notes", "draft"], 0.0)

    def test_token_similarity_identical(self, matcher):
        """Identical token sets are fully similar."""
        assert matcher.calculate_token_similarity(
            "python testing", "python testing"
        ) == pytest.approx(1.0)

    def test_token_similarity_partial(self, matcher):
        """Half the tokens matching scales the score by one half."""
        assert matcher.calculate_token_similarity(
            "python java", "python ruby"
        ) == pytest.approx(0.5)

    def test_token_similarity_too_few_matches(self, matcher):
        """Fewer than half the tokens matching scores zero."""
        assert matcher.calculate_token_similarity("python java ruby", "python") == 0.0


class TestAlternatives:
    """Test spelling alternative generation."""

    def test_deletions_then_transpositions(self, matcher):
        """Deletions are listed before swaps."""
        assert matcher.generate_alternatives("abc") == ["bc", "ac", "ab", "bac", "acb"]

    def test_never_contains_word(self, matcher):
        """The word itself and duplicates are removed."""
        assert matcher.generate_alternatives("aa") == ["a"]

    def test_max_alternatives(self, matcher):
        """Alternative count is capped."""
        assert len(matcher.generate_alternatives("testing", max_alternatives=3)) == 3

    def test_within_edit_distance(self, matcher):
        """Edit distance bound uses the configured maximum."""
        assert matcher.within_edit_distance("color", "colour")
        assert not matcher.within_edit_distance("cat", "elephant")
