"""Search for PARA-organized markdown knowledge bases.

This package indexes markdown notes and answers structured and
free-text queries against them.

Main components:
- SearchEngine: Index orchestrator and query executor
- QueryParser: Boolean query language with phrases, fields and wildcards
- RelevanceScorer / AdvancedRelevanceScorer: 0-100 relevance scores
- FuzzyMatcher: Edit-distance similarity
- FacetGenerator: Category, tag and date facets
- SearchSuggester: Prefix completions and spelling corrections
"""

from .engine import SearchEngine, SearchEngineBuilder, create_engine
from .errors import (
    IndexingError,
    InvalidPatternError,
    QuerySyntaxError,
    SearchError,
    ValidationError,
)
from .facets import FacetGenerator
from .fuzzy import FuzzyConfig, FuzzyMatcher
from .models import (
    Category,
    DateRange,
    ExactClause,
    Facet,
    FacetType,
    FacetValue,
    Field,
    FuzzyClause,
    IndexedDocument,
    Operator,
    ParsedQuery,
    PhraseClause,
    RegexClause,
    SearchQuery,
    SearchResponse,
    SearchResult,
    SortField,
    SortOrder,
    Suggestion,
    SuggestionType,
    WildcardClause,
)
from .query import QueryParser, parse_query
from .relevance import (
    AdvancedRelevanceScorer,
    AdvancedScoringConfig,
    RelevanceScorer,
    ScoringWeights,
    generate_snippet,
)
from .store import DocumentStore, FileSystemDocumentStore, MemoryDocumentStore
from .suggest import SearchSuggester

__all__ = [
    # Engine
    "SearchEngine",
    "SearchEngineBuilder",
    "create_engine",
    # Errors
    "SearchError",
    "QuerySyntaxError",
    "ValidationError",
    "IndexingError",
    "InvalidPatternError",
    # Models
    "Category",
    "DateRange",
    "ExactClause",
    "Facet",
    "FacetType",
    "FacetValue",
    "Field",
    "FuzzyClause",
    "IndexedDocument",
    "Operator",
    "ParsedQuery",
    "PhraseClause",
    "RegexClause",
    "SearchQuery",
    "SearchResponse",
    "SearchResult",
    "SortField",
    "SortOrder",
    "Suggestion",
    "SuggestionType",
    "WildcardClause",
    # Query parsing
    "QueryParser",
    "parse_query",
    # Scoring
    "RelevanceScorer",
    "AdvancedRelevanceScorer",
    "ScoringWeights",
    "AdvancedScoringConfig",
    "generate_snippet",
    # Fuzzy matching
    "FuzzyConfig",
    "FuzzyMatcher",
    # Facets and suggestions
    "FacetGenerator",
    "SearchSuggester",
    # Document stores
    "DocumentStore",
    "MemoryDocumentStore",
    "FileSystemDocumentStore",
]

__version__ = "1.0.0"
