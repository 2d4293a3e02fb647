"""Tests for relevance scoring and snippets."""

from datetime import datetime, timedelta, timezone

import pytest

from notesearch.models import (
    ExactClause,
    Field,
    FuzzyClause,
    IndexedDocument,
    ParsedQuery,
    PhraseClause,
    RegexClause,
    SearchQuery,
    WildcardClause,
)
from notesearch.query import QueryParser
from notesearch.relevance import (
    AdvancedRelevanceScorer,
    RelevanceScorer,
    ScoringWeights,
    generate_snippet,
    wildcard_to_regex,
)


def doc(title="Untitled", content="", tags=None, **kwargs):
    return IndexedDocument(
        path=kwargs.pop("path", "note.md"),
        title=title,
        content=content,
        tags=tags or [],
        **kwargs,
    )


@pytest.fixture
def scorer():
    return RelevanceScorer()


@pytest.fixture
def advanced():
    return AdvancedRelevanceScorer()


class TestRelevanceScorer:
    """Test the additive scorer."""

    def test_exact_tags(self, scorer):
        """Each exact tag match adds its weight."""
        document = doc(tags=["javascript", "typescript", "testing"])
        query = SearchQuery(tags=["javascript", "testing"])

        assert scorer.calculate_score(document, query) == 60

    def test_tags_case_insensitive(self, scorer):
        """Tag comparison ignores case."""
        assert scorer.score_tags(["Python"], ["PYTHON"]) == 30

    def test_partial_tag(self, scorer):
        """Containment in either direction earns partial weight."""
        assert scorer.score_tags(["javascript"], ["java"]) == 15
        assert scorer.score_tags(["js"], ["jsx"]) == 15

    def test_title_equality(self, scorer):
        """An equal title scores double."""
        assert scorer.score_title("Python Tips", "python tips") == 50

    def test_title_substring(self, scorer):
        """A contained query scores the title weight."""
        assert scorer.score_title("Python Tips and Tricks", "tips") == 25

    def test_title_word_overlap(self, scorer):
        """Otherwise the word overlap ratio scales the weight."""
        assert scorer.score_title("Python Tips", "python web tips") == pytest.approx(
            25 * 2 / 3
        )

    def test_content_phrase_occurrences(self, scorer):
        """Each phrase occurrence adds the content weight."""
        assert scorer.score_content("python and more python", "python") == 20

    def test_content_word_fallback(self, scorer):
        """Absent phrases fall back to word occurrences."""
        assert scorer.score_content("learn python and java", "python java") == 20

    def test_content_cap(self, scorer):
        """Content score is capped."""
        assert scorer.score_content("note " * 20, "note") == 50

    def test_recency_decay(self, scorer):
        """Recency boost decays smoothly over a year."""
        now = datetime(2024, 6, 15, tzinfo=timezone.utc)
        fresh = scorer.recency_boost(now, now)
        half_year = scorer.recency_boost(now - timedelta(days=180), now)
        year = scorer.recency_boost(now - timedelta(days=365), now)

        assert fresh == 10
        assert 0 < half_year < fresh
        assert year < half_year
        assert year < 0.5

    def test_recency_weight(self):
        """The recency weight scales the boost."""
        scorer = RelevanceScorer(ScoringWeights(recency_boost=2.0))
        now = datetime(2024, 6, 15, tzinfo=timezone.utc)
        assert scorer.recency_boost(now, now) == 20

    def test_score_clamped(self, scorer):
        """Total never exceeds 100."""
        tags = ["a1", "b2", "c3", "d4", "e5"]
        assert scorer.calculate_score(doc(tags=tags), SearchQuery(tags=tags)) == 100


class TestAdvancedScorer:
    """Test clause-based scoring."""

    def test_failing_must(self, advanced):
        """A required term that is absent scores zero."""
        document = doc(title="JavaScript", content="JavaScript")
        query = ParsedQuery(must=[ExactClause(value="Python")])

        assert advanced.calculate_advanced_score(document, query) == 0

    def test_must_not_excludes(self, advanced):
        """A matching excluded term scores zero."""
        document = doc(title="Python", content="draft notes")
        query = ParsedQuery(
            must=[ExactClause(value="python")], must_not=[ExactClause(value="draft")]
        )

        assert advanced.calculate_advanced_score(document, query) == 0

    def test_exclusion_only_keeps_other_documents(self, advanced):
        """Documents an exclusion-only query does not exclude score above zero."""
        query = QueryParser().parse("-rust")
        kept = doc(title="Python Tips", content="generators")
        excluded = doc(title="Rust Notes", content="ownership")

        assert advanced.calculate_advanced_score(kept, query) == 1.0
        assert advanced.calculate_advanced_score(excluded, query) == 0

    def test_all_terms_boost(self, advanced):
        """Matching every clause multiplies the total."""
        document = doc(title="Python")
        query = ParsedQuery(must=[ExactClause(value="python")])

        # 40 for equality, 1.5 title boost, 1.2 all-terms boost
        assert advanced.calculate_advanced_score(document, query) == 72

    def test_missed_should_loses_boost(self, advanced):
        """An unmatched should clause forfeits the all-terms boost."""
        document = doc(title="Python")
        query = ParsedQuery(
            must=[ExactClause(value="python")], should=[ExactClause(value="flask")]
        )

        assert advanced.calculate_advanced_score(document, query) == 60

    def test_should_adds_partial_credit(self, advanced):
        """Matching should clauses raise the score."""
        document = doc(title="Python", content="a small flask service")
        without = ParsedQuery(must=[ExactClause(value="python")])
        with_should = ParsedQuery(
            must=[ExactClause(value="python")], should=[ExactClause(value="flask")]
        )

        assert advanced.calculate_advanced_score(
            document, with_should
        ) > advanced.calculate_advanced_score(document, without)

    def test_field_boost_order(self, advanced):
        """Identical literal matches rank title over content over tags."""
        title = advanced.score_clause(doc(title="rust"), ExactClause(value="rust"))
        content = advanced.score_clause(doc(content="rust"), ExactClause(value="rust"))
        tags = advanced.score_clause(doc(tags=["rust"]), ExactClause(value="rust"))

        assert title > content > tags > 0

    def test_field_restriction(self, advanced):
        """A field clause only looks at that field."""
        document = doc(title="Notes", content="python")

        assert advanced.score_clause(document, ExactClause(value="python", field=Field.TITLE)) == 0
        assert advanced.score_clause(document, ExactClause(value="python", field=Field.CONTENT)) > 0

    def test_tag_alias_field(self, advanced):
        """tag: scopes to the tags."""
        document = doc(tags=["work"])
        assert advanced.score_clause(document, ExactClause(value="work", field=Field.TAG)) > 0

    def test_phrase_position(self, advanced):
        """Phrases near the start score higher."""
        early = doc(content="machine learning basics " + "filler " * 30)
        late = doc(content="filler " * 30 + "machine learning basics")
        clause = PhraseClause(value="machine learning")

        assert advanced.score_clause(early, clause) > advanced.score_clause(late, clause) > 0

    def test_phrase_absent(self, advanced):
        """An absent phrase scores zero."""
        clause = PhraseClause(value="deep learning")
        assert advanced.score_clause(doc(content="machine learning"), clause) == 0

    def test_wildcard(self, advanced):
        """Globs match whole tokens."""
        document = doc(content="Notes on python packaging")

        assert advanced.score_clause(document, WildcardClause(value="pyth*")) > 0
        assert advanced.score_clause(document, WildcardClause(value="py?hon")) > 0
        assert advanced.score_clause(document, WildcardClause(value="yth*")) == 0

    def test_wildcard_regex_anchored(self):
        """Translated globs match the full string."""
        regex = wildcard_to_regex("te?t*")

        assert regex.match("TESTING")
        assert not regex.match("contest")

    def test_regex(self, advanced):
        """Regex clauses search case-insensitively."""
        document = doc(content="Version 2.0 released")
        assert advanced.score_clause(document, RegexClause(value=r"version \d")) > 0

    def test_invalid_regex_scores_zero(self, advanced):
        """A pattern that does not compile scores zero without raising."""
        document = doc(content="anything")
        assert advanced.score_clause(document, RegexClause(value="([")) == 0

    def test_fuzzy_typo(self, advanced):
        """Fuzzy clauses tolerate typos."""
        document = doc(content="python packaging")
        clause = FuzzyClause(value="pyhton", tolerance=0.3)

        assert advanced.score_clause(document, clause) > 0

    def test_fuzzy_strict(self, advanced):
        """Zero tolerance demands the exact word."""
        document = doc(content="python packaging")
        clause = FuzzyClause(value="pyhton", tolerance=0.0)

        assert advanced.score_clause(document, clause) == 0

    def test_score_positive_iff_clauses_satisfied(self, advanced):
        """Positive scores exactly when musts match and must-nots do not."""
        documents = [
            doc(title="Python Tips", content="generators and decorators", tags=["python"]),
            doc(title="Rust Notes", content="ownership and borrowing", tags=["rust"]),
            doc(title="Draft", content="python draft about rust", tags=["draft"]),
        ]
        queries = [
            ParsedQuery(must=[ExactClause(value="python")]),
            ParsedQuery(must=[ExactClause(value="python")], must_not=[ExactClause(value="draft")]),
            ParsedQuery(must=[ExactClause(value="rust"), PhraseClause(value="ownership")]),
            ParsedQuery(must_not=[ExactClause(value="rust")], should=[ExactClause(value="tips")]),
            ParsedQuery(must_not=[ExactClause(value="rust")]),
            QueryParser().parse("-draft"),
        ]

        for document in documents:
            for query in queries:
                expected = all(
                    advanced.clause_matches(document, c) for c in query.must
                ) and not any(advanced.clause_matches(document, c) for c in query.must_not)
                score = advanced.calculate_advanced_score(document, query)
                assert (score > 0) == expected


class TestDocumentSimilarity:
    """Test document similarity."""

    def test_identical(self, advanced):
        """Identical documents are fully similar."""
        document = doc(title="Python Tips", content="Generators and context managers", tags=["python"])
        assert advanced.calculate_document_similarity(document, document) == pytest.approx(1.0)

    def test_disjoint(self, advanced):
        """Unrelated documents are barely similar."""
        first = doc(title="Gardening", content="tomatoes compost seedlings", tags=["garden"])
        second = doc(title="Quantum", content="qubits entanglement superposition", tags=["physics"])

        assert advanced.calculate_document_similarity(first, second) < 0.2

    def test_disjoint_without_content(self, advanced):
        """Missing content on both sides does not count as shared content."""
        first = doc(title="Gardening", tags=["garden"])
        second = doc(title="Quantum", tags=["physics"])

        assert advanced.calculate_document_similarity(first, second) < 0.2

    def test_identical_without_content(self, advanced):
        """Identical notes without content are still fully similar."""
        document = doc(title="Reading List", tags=["books"])
        assert advanced.calculate_document_similarity(document, document) == pytest.approx(1.0)

    def test_shared_tags_raise_similarity(self, advanced):
        """Tag overlap counts towards similarity."""
        base = doc(title="Alpha", content="first", tags=["python", "web"])
        shared = doc(title="Omega", content="second", tags=["python", "web"])
        other = doc(title="Omega", content="second", tags=["cooking"])

        assert advanced.calculate_document_similarity(
            base, shared
        ) > advanced.calculate_document_similarity(base, other)


class TestSnippets:
    """Test snippet generation."""

    def test_empty_content(self):
        """Empty content gives an empty snippet."""
        assert generate_snippet("", "test", 100, 5) == ""

    def test_match_highlighted_with_context(self):
        """The match is wrapped and surrounded by context words."""
        content = "The quick brown fox jumps over the lazy dog"

        snippet = generate_snippet(content, "fox", 200, 2)

        assert snippet == "...quick brown **fox** jumps over..."

    def test_match_at_start(self):
        """No leading ellipsis when the excerpt starts the content."""
        assert generate_snippet("fox runs", "fox", 200, 10) == "**fox** runs"

    def test_case_insensitive_match_keeps_case(self):
        """Original casing is kept inside the markers."""
        assert generate_snippet("Python rocks", "python") == "**Python** rocks"

    def test_non_ascii_before_match(self):
        """Offsets stay aligned when lowercasing changes the text length."""
        assert generate_snippet("İ x", "x", 100, 5) == "İ **x**"

    def test_no_match_short(self):
        """Short content without a match is returned whole."""
        assert generate_snippet("short note", "missing") == "short note"

    def test_no_match_truncated(self):
        """Long content without a match is cut with an ellipsis."""
        snippet = generate_snippet("word " * 100, "missing", 20)

        assert snippet.endswith("...")
        assert len(snippet) <= 23

    def test_max_length(self):
        """Long excerpts are trimmed around the match."""
        content = " ".join(f"word{i}" for i in range(200)) + " target " + "tail " * 200

        snippet = generate_snippet(content, "target", 60, 50)

        assert "**target**" in snippet
        assert snippet.startswith("...")
        assert snippet.endswith("...")
        assert len(snippet) <= 60 + 4 + 6
