"""Search engine orchestrating indexing, scoring, facets and suggestions."""

from __future__ import annotations

import logging
import threading
import time
from pathlib import Path
from typing import Any

from .config import section_to_dataclass
from .errors import IndexingError, ValidationError
from .facets import FacetGenerator
from .fuzzy import FuzzyConfig, FuzzyMatcher
from .models import (
    Category,
    IndexedDocument,
    Operator,
    ParsedQuery,
    SearchQuery,
    SearchResponse,
    SearchResult,
    SortField,
    SortOrder,
    Suggestion,
    as_utc,
)
from .query import QueryParser
from .relevance import (
    AdvancedRelevanceScorer,
    AdvancedScoringConfig,
    RelevanceScorer,
    ScoringWeights,
    generate_snippet,
)
from .store import DocumentStore, FileSystemDocumentStore
from .suggest import SearchSuggester

logger = logging.getLogger(__name__)

SIMILARITY_THRESHOLD = 0.3


class SearchEngine:
    """Search engine over an in-memory index of notes.

    The index maps document paths to immutable documents. Rebuilds
    construct a fresh index and swap it in; incremental updates replace
    one entry. Searches work on a snapshot taken under the lock, so they
    never observe a half-built index.
    """

    def __init__(
        self,
        store: DocumentStore,
        weights: ScoringWeights | None = None,
        advanced_config: AdvancedScoringConfig | None = None,
        fuzzy_config: FuzzyConfig | None = None,
        snippet_length: int = 200,
        snippet_context: int = 10,
    ):
        """Initialize search engine.

        Args:
            store: Source of documents
            weights: Simple scoring weights
            advanced_config: Clause scoring weights
            fuzzy_config: Fuzzy matching configuration
            snippet_length: Maximum snippet length in characters
            snippet_context: Words of context on each side of a match
        """
        self.store = store
        self.fuzzy = FuzzyMatcher(fuzzy_config)
        self.scorer = RelevanceScorer(weights)
        self.advanced_scorer = AdvancedRelevanceScorer(
            advanced_config, weights, self.fuzzy
        )
        self.parser = QueryParser(fuzzy_tolerance=self.fuzzy.default_tolerance)
        self.snippet_length = snippet_length
        self.snippet_context = snippet_context

        self._index: dict[str, IndexedDocument] = {}
        self._lock = threading.RLock()
        self._suggester = SearchSuggester(self.fuzzy)
        self._suggester_stale = False
        self._initialized = False
        self._last_query_time = 0.0

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    def initialize(self) -> int:
        """Build the index from the document store.

        Documents that fail to read or parse are logged and skipped.

        Returns:
            Number of indexed documents
        """
        index: dict[str, IndexedDocument] = {}
        skipped = 0

        for path in self.store.list():
            try:
                document = self.store.read(path)
            except (IndexingError, OSError) as e:
                logger.warning(f"Skipping {path}: {e}")
                skipped += 1
                continue
            if document is not None:
                index[path] = document

        suggester = SearchSuggester(self.fuzzy)
        suggester.build_index(index.values())

        with self._lock:
            self._index = index
            self._suggester = suggester
            self._suggester_stale = False
            self._initialized = True

        logger.info(f"Indexed {len(index)} documents ({skipped} skipped)")
        return len(index)

    def update_document(self, path: str) -> IndexedDocument | None:
        """Re-read one document from the store.

        A document that no longer exists is removed from the index.

        Raises:
            IndexingError: If the document cannot be read or parsed
        """
        document = self.store.read(path)

        with self._lock:
            if document is None:
                self._index.pop(path, None)
            else:
                self._index[path] = document
            self._suggester_stale = True

        logger.debug(f"Updated index entry: {path}")
        return document

    def remove_document(self, path: str) -> bool:
        """Remove one document from the index."""
        with self._lock:
            removed = self._index.pop(path, None) is not None
            if removed:
                self._suggester_stale = True
        return removed

    def get_document(self, path: str) -> IndexedDocument | None:
        with self._lock:
            return self._index.get(path)

    def get_index_stats(self) -> dict[str, Any]:
        """Document count and documents per category."""
        documents = self._snapshot()
        categories = {category.value: 0 for category in Category}
        for document in documents:
            categories[document.category.value] += 1
        return {"document_count": len(documents), "categories": categories}

    def get_statistics(self) -> dict[str, Any]:
        """Index statistics plus engine state."""
        return {
            **self.get_index_stats(),
            "initialized": self._initialized,
            "last_query_time_ms": self._last_query_time,
        }

    def validate_query(self, query: SearchQuery) -> None:
        """Reject malformed search requests.

        Raises:
            ValidationError: With kind ``empty_query``, ``invalid_date_range``,
                ``invalid_limit`` or ``invalid_offset``
        """
        if not self._has_criteria(query):
            raise ValidationError(
                "empty_query", "At least one search criterion must be provided"
            )

        date_range = query.date_range
        if date_range and date_range.start and date_range.end:
            if as_utc(date_range.start) >= as_utc(date_range.end):
                raise ValidationError(
                    "invalid_date_range",
                    "Invalid date range: start date must be before end date",
                    start=date_range.start.isoformat(),
                    end=date_range.end.isoformat(),
                )

        if query.limit <= 0:
            raise ValidationError(
                "invalid_limit", "Limit must be greater than 0", limit=query.limit
            )

        if query.offset < 0:
            raise ValidationError(
                "invalid_offset", "Offset must be non-negative", offset=query.offset
            )

    def search(self, query: SearchQuery) -> SearchResponse:
        """Execute a search.

        Args:
            query: Search request

        Returns:
            Ranked, paginated results with optional facets and suggestions

        Raises:
            ValidationError: If the request is malformed
            QuerySyntaxError: If ``raw_query`` cannot be parsed
        """
        start_time = time.time()
        self.validate_query(query)

        parsed = self._parse(query)
        if parsed is not None and parsed.is_empty and not self._has_criteria(
            query, include_raw=False
        ):
            raise ValidationError("empty_query", "Query contains no search terms")

        documents = self._snapshot()
        reference = None
        if query.similar_to:
            reference = next((d for d in documents if d.path == query.similar_to), None)
            if reference is None:
                raise ValidationError(
                    "unknown_document",
                    f"Document not found: {query.similar_to}",
                    path=query.similar_to,
                )

        candidates = []
        for document in documents:
            score = self._score(document, query, parsed, reference)
            if score is not None:
                candidates.append((document, score))

        candidates = self._sort(candidates, query)
        page = candidates[query.offset : query.offset + query.limit]
        results = [self._to_result(doc, score, query, parsed) for doc, score in page]

        facets = None
        if query.facets:
            facets = FacetGenerator.generate_facets(
                [doc for doc, _ in candidates], query.facets
            )

        suggestions = None
        if query.include_suggestions:
            text = query.search_text
            suggestions = self.suggest(text) if text else []

        execution_time = (time.time() - start_time) * 1000
        self._last_query_time = execution_time
        logger.debug(
            f"Search matched {len(candidates)} of {len(documents)} documents "
            f"in {execution_time:.1f}ms"
        )

        return SearchResponse(
            results=results,
            total_count=len(candidates),
            execution_time=execution_time,
            facets=facets,
            suggestions=suggestions,
            parsed_query=parsed,
        )

    def find_similar(self, path: str, limit: int = 10) -> list[SearchResult]:
        """Documents similar to the one at ``path``."""
        response = self.search(
            SearchQuery(similar_to=path, limit=limit, include_snippets=False)
        )
        return response.results

    def suggest(self, prefix: str, limit: int = 10) -> list[Suggestion]:
        """Completions and corrections for a partial query."""
        with self._lock:
            if self._suggester_stale:
                suggester = SearchSuggester(self.fuzzy)
                suggester.build_index(self._index.values())
                self._suggester = suggester
                self._suggester_stale = False
            suggester = self._suggester
        return suggester.get_suggestions(prefix, limit)

    def _snapshot(self) -> list[IndexedDocument]:
        with self._lock:
            return list(self._index.values())

    def _parse(self, query: SearchQuery) -> ParsedQuery | None:
        if not query.raw_query or not query.raw_query.strip():
            return None
        if query.fuzzy_tolerance is None:
            return self.parser.parse(query.raw_query)
        return QueryParser(fuzzy_tolerance=query.fuzzy_tolerance).parse(query.raw_query)

    @staticmethod
    def _has_criteria(query: SearchQuery, include_raw: bool = True) -> bool:
        date_range = query.date_range
        return any(
            [
                query.tags and any(tag.strip() for tag in query.tags),
                query.content and query.content.strip(),
                query.title and query.title.strip(),
                query.category is not None,
                date_range is not None and (date_range.start or date_range.end),
                query.similar_to,
                include_raw and query.raw_query and query.raw_query.strip(),
            ]
        )

    def _matches_criteria(self, document: IndexedDocument, query: SearchQuery) -> bool:
        """Combine the flat criteria of ``query`` with its operator."""
        checks = []

        if query.tags and any(tag.strip() for tag in query.tags):
            checks.append(self.scorer.score_tags(document.tags, query.tags) > 0)
        if query.title and query.title.strip():
            checks.append(self.scorer.score_title(document.title, query.title) > 0)
        if query.content and query.content.strip():
            checks.append(self.scorer.score_content(document.content, query.content) > 0)
        if query.category is not None:
            checks.append(document.category == query.category)

        date_range = query.date_range
        if date_range is not None and (date_range.start or date_range.end):
            date = document.date
            in_range = date is not None
            if in_range and date_range.start:
                in_range = as_utc(date) >= as_utc(date_range.start)
            if in_range and date_range.end:
                in_range = as_utc(date) <= as_utc(date_range.end)
            checks.append(in_range)

        if not checks:
            return True
        if query.operator is Operator.OR:
            return any(checks)
        return all(checks)

    def _score(
        self,
        document: IndexedDocument,
        query: SearchQuery,
        parsed: ParsedQuery | None,
        reference: IndexedDocument | None,
    ) -> float | None:
        """Score of a candidate, or None if the document is not a candidate."""
        if not self._matches_criteria(document, query):
            return None

        if reference is not None:
            if document.path == reference.path:
                return None
            similarity = self.advanced_scorer.calculate_document_similarity(
                reference, document
            )
            if similarity < SIMILARITY_THRESHOLD:
                return None

        if parsed is not None and (parsed.must or parsed.should):
            score = self.advanced_scorer.calculate_advanced_score(document, parsed)
            return score if score > 0 else None

        if parsed is not None and any(
            self.advanced_scorer.clause_matches(document, clause)
            for clause in parsed.must_not
        ):
            return None

        if reference is not None:
            return round(similarity * 100, 2)

        return self.scorer.calculate_score(document, query)

    @staticmethod
    def _sort(
        candidates: list[tuple[IndexedDocument, float]], query: SearchQuery
    ) -> list[tuple[IndexedDocument, float]]:
        """Order candidates; ties keep index order."""
        descending = query.sort_order is SortOrder.DESC

        if query.sort_by is SortField.RELEVANCE:
            return sorted(candidates, key=lambda item: item[1], reverse=descending)

        if query.sort_by is SortField.TITLE:
            return sorted(
                candidates, key=lambda item: item[0].title.lower(), reverse=descending
            )

        attribute = query.sort_by.value
        dated = [item for item in candidates if getattr(item[0], attribute) is not None]
        undated = [item for item in candidates if getattr(item[0], attribute) is None]
        dated.sort(key=lambda item: as_utc(getattr(item[0], attribute)), reverse=descending)
        return dated + undated

    def _to_result(
        self,
        document: IndexedDocument,
        score: float,
        query: SearchQuery,
        parsed: ParsedQuery | None,
    ) -> SearchResult:
        metadata: dict[str, Any] = {}
        if document.created is not None:
            metadata["created"] = document.created.isoformat()
        if document.modified is not None:
            metadata["modified"] = document.modified.isoformat()

        snippet = None
        if query.include_snippets:
            term = self._snippet_term(document, query, parsed)
            if term:
                snippet = generate_snippet(
                    document.content, term, self.snippet_length, self.snippet_context
                )

        return SearchResult(
            path=document.path,
            title=document.title,
            relevance_score=score,
            tags=list(document.tags),
            category=document.category,
            snippet=snippet,
            metadata=metadata,
        )

    @staticmethod
    def _snippet_term(
        document: IndexedDocument, query: SearchQuery, parsed: ParsedQuery | None
    ) -> str | None:
        if query.content and query.content.strip():
            return query.content.strip()
        if parsed is None:
            return None

        terms = parsed.get_terms()
        content = document.content.lower()
        for term in terms:
            if term.lower() in content:
                return term
        return terms[0] if terms else None


class SearchEngineBuilder:
    """Builder for constructing SearchEngine instances."""

    def __init__(self):
        self.store: DocumentStore | None = None
        self.weights: ScoringWeights | None = None
        self.advanced_config: AdvancedScoringConfig | None = None
        self.fuzzy_config: FuzzyConfig | None = None
        self.snippet_length = 200
        self.snippet_context = 10

    def with_store(self, store: DocumentStore) -> SearchEngineBuilder:
        """Set the document store."""
        self.store = store
        return self

    def with_root(self, root: Path) -> SearchEngineBuilder:
        """Read notes from a directory."""
        self.store = FileSystemDocumentStore(root)
        return self

    def with_weights(self, weights: ScoringWeights) -> SearchEngineBuilder:
        self.weights = weights
        return self

    def with_advanced_config(self, config: AdvancedScoringConfig) -> SearchEngineBuilder:
        self.advanced_config = config
        return self

    def with_fuzzy_config(self, config: FuzzyConfig) -> SearchEngineBuilder:
        self.fuzzy_config = config
        return self

    def with_snippets(self, length: int, context: int) -> SearchEngineBuilder:
        """Set snippet length and context words."""
        self.snippet_length = length
        self.snippet_context = context
        return self

    def with_config(self, config: dict[str, Any]) -> SearchEngineBuilder:
        """Apply a loaded configuration dictionary."""
        if config.get("root"):
            self.with_root(Path(config["root"]).expanduser())
        if config.get("weights"):
            self.weights = section_to_dataclass(ScoringWeights, config["weights"], "weights")
        if config.get("advanced"):
            self.advanced_config = section_to_dataclass(
                AdvancedScoringConfig, config["advanced"], "advanced"
            )
        if config.get("fuzzy"):
            self.fuzzy_config = section_to_dataclass(FuzzyConfig, config["fuzzy"], "fuzzy")

        search = config.get("search") or {}
        self.snippet_length = search.get("snippet_length", self.snippet_length)
        self.snippet_context = search.get("snippet_context", self.snippet_context)
        return self

    def build(self) -> SearchEngine:
        """Build the SearchEngine instance."""
        if self.store is None:
            raise ValueError("A document store or root directory is required")
        return SearchEngine(
            self.store,
            weights=self.weights,
            advanced_config=self.advanced_config,
            fuzzy_config=self.fuzzy_config,
            snippet_length=self.snippet_length,
            snippet_context=self.snippet_context,
        )


def create_engine(root: Path, config: dict[str, Any] | None = None) -> SearchEngine:
    """Create and initialize an engine over the notes under ``root``."""
    engine = SearchEngineBuilder().with_config(config or {}).with_root(root).build()
    engine.initialize()
    return engine
