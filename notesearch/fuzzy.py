"""Edit-distance based fuzzy string matching.

Similarity is the optimal string alignment variant of Damerau-Levenshtein
distance normalized by the longer string, with a bonus when one string
is a prefix of the other. The matcher is used for fuzzy query clauses,
spelling corrections and title similarity between documents.
"""

import re
from collections.abc import Iterable
from dataclasses import dataclass

from rapidfuzz.distance import Levenshtein, OSA

TOKEN_PATTERN = re.compile(r"\W+")


@dataclass
class FuzzyConfig:
    """Fuzzy matching configuration."""

    max_edit_distance: int = 2
    include_transpositions: bool = True
    min_similarity: float = 0.7
    prefix_weight: float = 1.5

    def __post_init__(self):
        if self.prefix_weight < 1:
            raise ValueError(f"prefix_weight must be >= 1, got {self.prefix_weight}")
        if not 0.0 <= self.min_similarity <= 1.0:
            raise ValueError(
                f"min_similarity must be within [0, 1], got {self.min_similarity}"
            )
        if self.max_edit_distance < 0:
            raise ValueError("max_edit_distance must be non-negative")


@dataclass(frozen=True)
class FuzzyMatch:
    """A candidate string with its similarity to the query."""

    value: str
    similarity: float


def tokenize(text: str) -> list[str]:
    """Lowercase word tokens of ``text``."""
    return [token for token in TOKEN_PATTERN.split(text.lower()) if token]


class FuzzyMatcher:
    """Normalized string similarity and candidate ranking."""

    def __init__(self, config: FuzzyConfig | None = None):
        self.config = config or FuzzyConfig()

    @property
    def default_tolerance(self) -> float:
        return 1.0 - self.config.min_similarity

    def edit_distance(self, a: str, b: str, cutoff: int | None = None) -> int:
        """Damerau-Levenshtein distance (optimal string alignment).

        Plain Levenshtein distance when transpositions are disabled. With
        ``cutoff``, distances above it are reported as ``cutoff + 1``.
        """
        metric = OSA if self.config.include_transpositions else Levenshtein
        return metric.distance(a, b, score_cutoff=cutoff)

    def calculate_similarity(self, a: str, b: str) -> float:
        """Similarity between two strings in [0, 1].

        Comparison is case-insensitive and ignores surrounding whitespace.

        Args:
            a: First string
            b: Second string

        Returns:
            1.0 for identical strings, 0.0 if either is empty
        """
        a = a.strip().lower()
        b = b.strip().lower()

        if a == b:
            return 1.0
        if not a or not b:
            return 0.0

        distance = self.edit_distance(a, b)
        similarity = 1.0 - distance / max(len(a), len(b))

        if a.startswith(b) or b.startswith(a):
            bonus = min(1.0, self.config.prefix_weight - 1.0)
            similarity += (1.0 - similarity) * bonus

        return min(1.0, max(0.0, similarity))

    def matches(self, a: str, b: str, tolerance: float | None = None) -> bool:
        """Check whether two strings are within ``tolerance`` of each other.

        Tolerance 0 demands an exact (case-insensitive) match, tolerance 1
        accepts anything.
        """
        if tolerance is None:
            tolerance = self.default_tolerance
        threshold = 1.0 - tolerance

        if self._similarity_bound(a, b) < threshold:
            return False
        return self.calculate_similarity(a, b) >= threshold

    def best_similarity(
        self, query: str, candidates: Iterable[str], threshold: float
    ) -> float:
        """Highest similarity of ``query`` to any candidate reaching ``threshold``.

        Returns 0.0 when no candidate qualifies.
        """
        best = 0.0
        for candidate in candidates:
            if self._similarity_bound(query, candidate) < max(threshold, best):
                continue
            similarity = self.calculate_similarity(query, candidate)
            if similarity >= threshold and similarity > best:
                best = similarity
                if best >= 1.0:
                    break
        return best

    def find_best_matches(
        self,
        query: str,
        candidates: Iterable[str],
        max_results: int | None = None,
        min_similarity: float | None = None,
    ) -> list[FuzzyMatch]:
        """Rank candidates by similarity to ``query``.

        Ties prefer an exact match, then the shorter candidate.

        Args:
            query: String to match
            candidates: Strings to rank
            max_results: Maximum number of matches returned
            min_similarity: Minimum similarity, defaults to config

        Returns:
            Matches sorted by descending similarity
        """
        threshold = self.config.min_similarity if min_similarity is None else min_similarity
        normalized_query = query.strip().lower()

        matches = []
        for candidate in candidates:
            similarity = self.calculate_similarity(query, candidate)
            if similarity >= threshold:
                matches.append(FuzzyMatch(candidate, similarity))

        matches.sort(
            key=lambda m: (
                -m.similarity,
                m.value.strip().lower() != normalized_query,
                len(m.value),
            )
        )

        if max_results is not None:
            return matches[:max_results]
        return matches

    def match_tokens(
        self,
        query_tokens: str | Iterable[str],
        target_tokens: str | Iterable[str],
        tolerance: float | None = None,
    ) -> bool:
        """Check that every query token fuzzy-matches some target token.

        Strings are split into word tokens. An empty query matches
        anything; an empty target never matches a non-empty query.
        """
        query = self._as_tokens(query_tokens)
        target = self._as_tokens(target_tokens)

        if not query:
            return True
        if not target:
            return False

        return all(any(self.matches(q, t, tolerance) for t in target) for q in query)

    def calculate_token_similarity(
        self, a: str | Iterable[str], b: str | Iterable[str]
    ) -> float:
        """Token-level similarity in [0, 1].

        Each token of ``a`` is paired with its most similar token of
        ``b``. Pairs below the configured minimum similarity do not
        count, and the result is 0 unless at least half of the tokens
        of ``a`` found a partner. The average similarity of the pairs is
        scaled by the fraction of tokens that matched.
        """
        query = self._as_tokens(a)
        target = self._as_tokens(b)

        if not query or not target:
            return 0.0

        threshold = self.config.min_similarity
        total = 0.0
        matched = 0
        for token in query:
            best = self.best_similarity(token, target, threshold)
            if best > 0.0:
                total += best
                matched += 1

        if matched == 0 or matched < len(query) * 0.5:
            return 0.0

        return (matched / len(query)) * (total / matched)

    def generate_alternatives(self, word: str, max_alternatives: int = 5) -> list[str]:
        """Spelling alternatives for ``word``.

        Single-character deletions come first, then swaps of adjacent
        characters. The list is deduplicated and never contains ``word``.
        """
        candidates = []
        for i in range(len(word)):
            candidates.append(word[:i] + word[i + 1 :])
        for i in range(len(word) - 1):
            candidates.append(word[:i] + word[i + 1] + word[i] + word[i + 2 :])

        alternatives: list[str] = []
        for candidate in candidates:
            if candidate and candidate != word and candidate not in alternatives:
                alternatives.append(candidate)
            if len(alternatives) >= max_alternatives:
                break
        return alternatives

    def within_edit_distance(self, a: str, b: str) -> bool:
        """Check that two strings differ by at most ``max_edit_distance`` edits."""
        a = a.strip().lower()
        b = b.strip().lower()
        limit = self.config.max_edit_distance
        return self.edit_distance(a, b, cutoff=limit) <= limit

    def _similarity_bound(self, a: str, b: str) -> float:
        """Upper bound of similarity from string lengths alone."""
        a = a.strip().lower()
        b = b.strip().lower()
        longest = max(len(a), len(b))
        if longest == 0 or a.startswith(b) or b.startswith(a):
            return 1.0
        return 1.0 - abs(len(a) - len(b)) / longest

    @staticmethod
    def _as_tokens(value: str | Iterable[str]) -> list[str]:
        if isinstance(value, str):
            return tokenize(value)
        return [token.lower() for token in value if token]
