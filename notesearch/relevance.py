"""Relevance scoring for note search results.

This module provides two scorers. The simple scorer ranks documents
against the flat criteria of a SearchQuery (tags, title, content) with
an additive weighted model. The advanced scorer evaluates a ParsedQuery
clause by clause with must/should/must_not semantics. Both return
scores in [0, 100].
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from functools import lru_cache

from .errors import InvalidPatternError
from .fuzzy import FuzzyMatcher, tokenize
from .models import (
    Clause,
    ExactClause,
    Field,
    FuzzyClause,
    IndexedDocument,
    ParsedQuery,
    PhraseClause,
    RegexClause,
    SearchQuery,
    WildcardClause,
    as_utc,
)

logger = logging.getLogger(__name__)

MAX_SCORE = 100.0
# Score of a document that passes a query without required clauses.
MIN_MATCH_SCORE = 1.0
# Recency boost decays with e^(-days/90): ~14% at 180 days, ~2% at a year.
RECENCY_DECAY_DAYS = 90.0
RECENCY_POINTS = 10.0

STOP_WORDS = frozenset(
    """
    a an and are as at be been but by can could did do does for from had has
    have he her his i in is it its may might must of on or our she should so
    than that the their them these they this those to us was we were what
    when which who will with would you your
    """.split()
)

SEARCHED_FIELDS = (Field.TITLE, Field.CONTENT, Field.TAGS)


@dataclass
class ScoringWeights:
    """Weights of the simple scoring model."""

    exact_tag_match: float = 30.0
    partial_tag_match: float = 15.0
    title_match: float = 25.0
    content_match: float = 10.0
    max_content_score: float = 50.0
    recency_boost: float = 1.0


@dataclass
class AdvancedScoringConfig:
    """Weights of the clause-based scoring model."""

    exact_match: float = 40.0
    phrase_match: float = 36.0
    wildcard_match: float = 32.0
    fuzzy_match: float = 28.0
    regex_factor: float = 0.9

    title_boost: float = 1.5
    content_boost: float = 1.2
    tags_boost: float = 1.0

    should_weight: float = 0.7
    all_terms_boost: float = 1.2
    phrase_position_boost: float = 0.2
    phrase_position_window: int = 200

    def field_boost(self, field: Field) -> float:
        field = field.canonical
        if field is Field.TITLE:
            return self.title_boost
        if field is Field.CONTENT:
            return self.content_boost
        return self.tags_boost


def words(text: str) -> list[str]:
    """Lowercase words longer than two characters."""
    return [word for word in tokenize(text) if len(word) > 2]


@lru_cache(maxsize=4096)
def token_set(text: str) -> frozenset[str]:
    """Distinct lowercase tokens of ``text``."""
    return frozenset(tokenize(text))


def compile_pattern(pattern: str) -> re.Pattern:
    """Compile a user pattern case-insensitively.

    Raises:
        InvalidPatternError: If the pattern does not compile
    """
    try:
        return re.compile(pattern, re.IGNORECASE)
    except re.error as e:
        raise InvalidPatternError(pattern, str(e)) from e


@lru_cache(maxsize=256)
def _clause_pattern(pattern: str) -> re.Pattern | None:
    try:
        return compile_pattern(pattern)
    except InvalidPatternError as e:
        logger.debug(f"Regex clause scores 0: {e}")
        return None


@lru_cache(maxsize=256)
def wildcard_to_regex(pattern: str) -> re.Pattern:
    """Translate a glob to an anchored case-insensitive regex."""
    translated = re.escape(pattern).replace(r"\*", ".*").replace(r"\?", ".")
    return re.compile(f"^{translated}$", re.IGNORECASE | re.DOTALL)


class RelevanceScorer:
    """Additive weighted scorer for flat search criteria."""

    def __init__(self, weights: ScoringWeights | None = None):
        self.weights = weights or ScoringWeights()

    def calculate_score(
        self,
        document: IndexedDocument,
        query: SearchQuery,
        now: datetime | None = None,
    ) -> float:
        """Score ``document`` against ``query``.

        Args:
            document: Document to score
            query: Search criteria
            now: Reference time for the recency boost

        Returns:
            Score in [0, 100]
        """
        score = 0.0

        if query.tags:
            score += self.score_tags(document.tags, query.tags)
        if query.title:
            score += self.score_title(document.title, query.title)
        if query.content:
            score += self.score_content(document.content, query.content)
        if document.modified is not None:
            score += self.recency_boost(document.modified, now)

        return round(min(MAX_SCORE, max(0.0, score)), 2)

    def score_tags(self, document_tags: list[str], query_tags: list[str]) -> float:
        """Exact tag matches earn full weight, containment earns partial weight."""
        doc_tags = [tag.lower() for tag in document_tags]
        score = 0.0

        for query_tag in query_tags:
            wanted = query_tag.strip().lower()
            if not wanted:
                continue
            if wanted in doc_tags:
                score += self.weights.exact_tag_match
            elif any(wanted in tag or tag in wanted for tag in doc_tags if tag):
                score += self.weights.partial_tag_match

        return score

    def score_title(self, document_title: str, query_title: str) -> float:
        title = document_title.lower()
        wanted = query_title.strip().lower()
        if not wanted:
            return 0.0

        if title == wanted:
            return self.weights.title_match * 2
        if wanted in title:
            return self.weights.title_match

        query_words = words(wanted)
        if not query_words:
            return 0.0
        title_words = set(words(title))
        matching = [word for word in query_words if word in title_words]
        return self.weights.title_match * len(matching) / len(query_words)

    def score_content(self, document_content: str, query_content: str) -> float:
        content = document_content.lower()
        wanted = query_content.strip().lower()
        if not wanted:
            return 0.0

        occurrences = content.count(wanted)
        if occurrences == 0:
            content_words = words(content)
            for word in words(wanted):
                occurrences += content_words.count(word)

        return min(occurrences * self.weights.content_match, self.weights.max_content_score)

    def recency_boost(self, modified: datetime, now: datetime | None = None) -> float:
        """Exponentially decaying boost for recently modified documents."""
        now = as_utc(now or datetime.now(timezone.utc))
        days = (now - as_utc(modified)).total_seconds() / 86400
        full = RECENCY_POINTS * self.weights.recency_boost
        if days <= 0:
            return full
        return full * math.exp(-days / RECENCY_DECAY_DAYS)


class AdvancedRelevanceScorer(RelevanceScorer):
    """Clause-based scorer for parsed boolean queries.

    Rules, in order:

    1. any matching must_not clause scores 0
    2. any failing must clause scores 0
    3. matching must clauses add their weight, matching should clauses
       add ``should_weight`` times theirs
    4. when every must and should clause matched the total is multiplied
       by ``all_terms_boost``
    5. a query without must clauses gives every document it does not
       exclude at least ``MIN_MATCH_SCORE``
    6. the result is clamped to 100

    A clause without a field is scored against title, content and tags
    and keeps its best field.
    """

    def __init__(
        self,
        config: AdvancedScoringConfig | None = None,
        weights: ScoringWeights | None = None,
        fuzzy_matcher: FuzzyMatcher | None = None,
    ):
        super().__init__(weights)
        self.config = config or AdvancedScoringConfig()
        self.fuzzy = fuzzy_matcher or FuzzyMatcher()

    def calculate_advanced_score(
        self, document: IndexedDocument, query: ParsedQuery
    ) -> float:
        """Score ``document`` against a parsed query.

        Args:
            document: Document to score
            query: Parsed boolean query

        Returns:
            Score in [0, 100]; 0 when excluded or a required clause fails
        """
        for clause in query.must_not:
            if self.score_clause(document, clause) > 0:
                return 0.0

        score = 0.0
        matched = 0

        for clause in query.must:
            clause_score = self.score_clause(document, clause)
            if clause_score <= 0:
                return 0.0
            score += clause_score
            matched += 1

        for clause in query.should:
            clause_score = self.score_clause(document, clause)
            if clause_score > 0:
                score += clause_score * self.config.should_weight
                matched += 1

        total = len(query.must) + len(query.should)
        if total and matched == total:
            score *= self.config.all_terms_boost

        if not query.must:
            score = max(score, MIN_MATCH_SCORE)

        return round(min(MAX_SCORE, max(0.0, score)), 2)

    def score_clause(self, document: IndexedDocument, clause: Clause) -> float:
        """Best boosted score of ``clause`` over the fields it applies to."""
        fields = SEARCHED_FIELDS if clause.field is None else (clause.field.canonical,)
        best = 0.0
        for field in fields:
            field_score = self._score_field(document, field, clause)
            if field_score > 0:
                best = max(best, field_score * self.config.field_boost(field))
        return best

    def clause_matches(self, document: IndexedDocument, clause: Clause) -> bool:
        return self.score_clause(document, clause) > 0

    def _score_field(
        self, document: IndexedDocument, field: Field, clause: Clause
    ) -> float:
        if field is Field.TAGS:
            texts = [tag for tag in document.tags if tag]
            if not texts:
                return 0.0
        else:
            text = document.title if field is Field.TITLE else document.content
            if not text:
                return 0.0
            texts = [text]

        if isinstance(clause, ExactClause):
            return max(self._score_exact(text, clause.value) for text in texts)
        if isinstance(clause, PhraseClause):
            return max(self._score_phrase(text, clause.value) for text in texts)
        if isinstance(clause, WildcardClause):
            return self._score_wildcard(texts, clause.value)
        if isinstance(clause, RegexClause):
            return self._score_regex(texts, clause.value)
        if isinstance(clause, FuzzyClause):
            return self._score_fuzzy(texts, clause.value, clause.tolerance)
        return 0.0

    def _score_exact(self, text: str, value: str) -> float:
        text = text.lower()
        value = value.strip().lower()
        if not value:
            return 0.0
        if text == value:
            return self.config.exact_match
        if value in text:
            return self.config.exact_match * 0.8
        return 0.0

    def _score_phrase(self, text: str, phrase: str) -> float:
        phrase = phrase.strip().lower()
        if not phrase:
            return 0.0
        offset = text.lower().find(phrase)
        if offset < 0:
            return 0.0
        closeness = max(0.0, 1.0 - offset / self.config.phrase_position_window)
        return self.config.phrase_match * (1.0 + self.config.phrase_position_boost * closeness)

    def _score_wildcard(self, texts: list[str], pattern: str) -> float:
        regex = wildcard_to_regex(pattern.strip())
        for text in texts:
            if regex.match(text) or any(regex.match(token) for token in token_set(text)):
                return self.config.wildcard_match
        return 0.0

    def _score_regex(self, texts: list[str], pattern: str) -> float:
        regex = _clause_pattern(pattern)
        if regex is None:
            return 0.0
        if any(regex.search(text) for text in texts):
            return self.config.exact_match * self.config.regex_factor
        return 0.0

    def _score_fuzzy(self, texts: list[str], value: str, tolerance: float) -> float:
        wanted = value.strip().lower()
        if not wanted:
            return 0.0
        if any(wanted in text.lower() for text in texts):
            return self.config.fuzzy_match

        query_tokens = tokenize(wanted)
        if not query_tokens:
            return 0.0

        candidates: set[str] = set()
        for text in texts:
            candidates.add(text.strip().lower())
            candidates.update(token_set(text))

        threshold = 1.0 - tolerance
        similarities = []
        for token in query_tokens:
            best = self.fuzzy.best_similarity(token, candidates, threshold)
            if best <= 0.0 and threshold > 0.0:
                return 0.0
            similarities.append(best)

        average = sum(similarities) / len(similarities)
        # Half the weight for matching at all, half scaled by closeness.
        return self.config.fuzzy_match * (0.5 + 0.5 * average)

    def calculate_document_similarity(
        self, first: IndexedDocument, second: IndexedDocument
    ) -> float:
        """Similarity of two documents in [0, 1].

        Blends title similarity, tag overlap and shared significant words
        in content, weighted by the field boosts. Tags and content are
        skipped when neither document has any.
        """
        total = 0.0
        factors = 0.0

        title_similarity = self.fuzzy.calculate_similarity(first.title, second.title)
        total += title_similarity * self.config.title_boost
        factors += self.config.title_boost

        if first.tags or second.tags:
            tags_a = {tag.lower() for tag in first.tags}
            tags_b = {tag.lower() for tag in second.tags}
            total += _jaccard(tags_a, tags_b) * self.config.tags_boost
            factors += self.config.tags_boost

        if first.content.strip() or second.content.strip():
            total += self._content_similarity(first.content, second.content) * (
                self.config.content_boost
            )
            factors += self.config.content_boost

        return total / factors if factors else 0.0

    @staticmethod
    def _content_similarity(first: str, second: str) -> float:
        first = first.strip().lower()
        second = second.strip().lower()
        if first and first == second:
            return 1.0
        return _jaccard(significant_words(first), significant_words(second))


def significant_words(text: str) -> set[str]:
    """Words of ``text`` that are not stop words and longer than two characters."""
    return {word for word in words(text) if word not in STOP_WORDS}


def _jaccard(a: set[str], b: set[str]) -> float:
    union = a | b
    if not union:
        return 0.0
    return len(a & b) / len(union)


def generate_snippet(
    content: str, term: str, max_length: int = 200, context_words: int = 10
) -> str:
    """Excerpt of ``content`` around the first match of ``term``.

    The match is wrapped in ``**`` and the excerpt is trimmed to
    ``max_length`` characters around it, with ``...`` marking cut edges.
    Without a match the start of the content is returned.

    Args:
        content: Full document text
        term: Search term to locate
        max_length: Maximum excerpt length, excluding markers
        context_words: Words kept on each side of the match

    Returns:
        Snippet text, empty for empty content
    """
    if not content:
        return ""

    term = (term or "").strip()
    match = re.search(re.escape(term), content, re.IGNORECASE) if term else None

    if match is None:
        if len(content) <= max_length:
            return content
        return content[:max_length].rstrip() + "..."

    position, match_end = match.span()
    match_length = match_end - position

    # Expand to whole words, then take context_words on each side.
    spans = [(m.start(), m.end()) for m in re.finditer(r"\S+", content)]
    first = next(i for i, (s, e) in enumerate(spans) if e > position)
    last = next(
        (i for i, (s, e) in enumerate(spans) if e >= match_end),
        len(spans) - 1,
    )
    start = spans[max(0, first - context_words)][0]
    end = spans[min(len(spans) - 1, last + context_words)][1]

    # Trim to max_length keeping the match centered.
    if end - start > max_length:
        slack = max(0, max_length - match_length)
        start = max(start, position - slack // 2)
        end = min(end, start + max(max_length, match_length))
        start = max(spans[max(0, first - context_words)][0], end - max(max_length, match_length))

    excerpt = (
        content[start:position]
        + f"**{content[position:match_end]}**"
        + content[match_end:end]
    )
    excerpt = " ".join(excerpt.split())

    prefix = "..." if start > 0 else ""
    suffix = "..." if end < len(content) else ""
    return f"{prefix}{excerpt}{suffix}"
