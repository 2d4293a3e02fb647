"""Data models for note search using msgspec for performance."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Union

import msgspec


def as_utc(value: datetime) -> datetime:
    """Normalize a datetime to UTC, treating naive values as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class Category(str, Enum):
    """PARA categories every note belongs to."""

    PROJECTS = "projects"
    AREAS = "areas"
    RESOURCES = "resources"
    ARCHIVES = "archives"

    @property
    def label(self) -> str:
        """Human readable name."""
        return self.value.capitalize()


class Field(str, Enum):
    """Document attributes a clause can be restricted to."""

    TITLE = "title"
    CONTENT = "content"
    TAGS = "tags"
    TAG = "tag"

    @property
    def canonical(self) -> Field:
        """Resolve the ``tag`` alias to ``tags``."""
        return Field.TAGS if self is Field.TAG else self


class Operator(str, Enum):
    """How simple search criteria are combined."""

    AND = "AND"
    OR = "OR"


class FacetType(str, Enum):
    """Aggregation dimensions."""

    CATEGORY = "category"
    TAGS = "tags"
    DATE_RANGE = "dateRange"
    YEAR = "year"
    MONTH = "month"


class SortField(str, Enum):
    """Result ordering keys."""

    RELEVANCE = "relevance"
    MODIFIED = "modified"
    CREATED = "created"
    TITLE = "title"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


class SuggestionType(str, Enum):
    TITLE = "title"
    TAG = "tag"
    PHRASE = "phrase"
    CORRECTION = "correction"


class IndexedDocument(msgspec.Struct, frozen=True, kw_only=True):
    """A note as held by the search index.

    Uses msgspec.Struct for fast construction and serialization.
    Instances are immutable; index updates replace whole documents.
    """

    path: str
    title: str
    content: str = ""
    tags: list[str] = msgspec.field(default_factory=list)
    category: Category = Category.RESOURCES
    created: datetime | None = None
    modified: datetime | None = None

    @property
    def date(self) -> datetime | None:
        """Date used for recency and date facets."""
        return self.modified or self.created


# Clauses form a tagged union keyed on ``type``.


class Clause(msgspec.Struct, frozen=True, kw_only=True, tag_field="type"):
    """One atomic query term, optionally restricted to a field."""

    value: str
    field: Field | None = None

    @property
    def kind(self) -> str:
        return type(self).__struct_config__.tag

    def to_string(self) -> str:
        """Render the clause in query syntax."""
        text = self._render_value()
        if self.field is not None:
            return f"{self.field.value}:{text}"
        return text

    def _render_value(self) -> str:
        return self.value


class ExactClause(Clause, tag="exact"):
    """Case-insensitive equality or substring match."""


class FuzzyClause(Clause, tag="fuzzy"):
    """Similarity match within ``tolerance``."""

    tolerance: float = 0.8


class PhraseClause(Clause, tag="phrase"):
    """Literal multi-word match."""

    def _render_value(self) -> str:
        escaped = self.value.replace('"', '\\"')
        return f'"{escaped}"'


class WildcardClause(Clause, tag="wildcard"):
    """Glob match with ``*`` and ``?``."""


class RegexClause(Clause, tag="regex"):
    """Case-insensitive regular expression match."""


AnyClause = Union[ExactClause, FuzzyClause, PhraseClause, WildcardClause, RegexClause]


class ParsedQuery(msgspec.Struct, kw_only=True):
    """Structured boolean query.

    ``must`` clauses are all required, ``should`` clauses add partial
    credit and ``must_not`` clauses exclude a document outright.
    """

    must: list[AnyClause] = msgspec.field(default_factory=list)
    should: list[AnyClause] = msgspec.field(default_factory=list)
    must_not: list[AnyClause] = msgspec.field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.must or self.should or self.must_not)

    def get_terms(self) -> list[str]:
        """Values of all positive clauses."""
        return [clause.value for clause in [*self.must, *self.should]]


class DateRange(msgspec.Struct, kw_only=True):
    start: datetime | None = None
    end: datetime | None = None


class SearchQuery(msgspec.Struct, kw_only=True):
    """A search request.

    The flat criteria (tags, content, title, category, date_range) are
    scored by the simple scorer. ``raw_query`` is parsed into a
    ParsedQuery and scored by the advanced scorer.
    """

    tags: list[str] | None = None
    content: str | None = None
    title: str | None = None
    category: Category | None = None
    date_range: DateRange | None = None
    operator: Operator = Operator.AND
    limit: int = 20
    offset: int = 0

    raw_query: str | None = None
    fuzzy_tolerance: float | None = None
    similar_to: str | None = None
    sort_by: SortField = SortField.RELEVANCE
    sort_order: SortOrder = SortOrder.DESC
    facets: list[FacetType] | None = None
    include_snippets: bool = True
    include_suggestions: bool = False

    @property
    def search_text(self) -> str | None:
        """Text used to build snippets and suggestions."""
        for text in (self.content, self.raw_query, self.title):
            if text and text.strip():
                return text.strip()
        return None


class SearchResult(msgspec.Struct, kw_only=True):
    """A single ranked search hit."""

    path: str
    title: str
    relevance_score: float
    tags: list[str] = msgspec.field(default_factory=list)
    category: Category = Category.RESOURCES
    snippet: str | None = None
    metadata: dict[str, Any] = msgspec.field(default_factory=dict)

    def __post_init__(self):
        """Clamp score to [0, 100]."""
        self.relevance_score = max(0.0, min(100.0, self.relevance_score))


class FacetValue(msgspec.Struct, frozen=True):
    value: str
    label: str
    count: int


class Facet(msgspec.Struct, kw_only=True):
    """A named aggregation over a result set."""

    field: FacetType
    values: list[FacetValue] = msgspec.field(default_factory=list)
    total_count: int = 0

    def get_value(self, value: str) -> FacetValue | None:
        for facet_value in self.values:
            if facet_value.value == value:
                return facet_value
        return None


class Suggestion(msgspec.Struct, frozen=True, kw_only=True):
    text: str
    type: SuggestionType
    score: int
    document_count: int | None = None


class SearchResponse(msgspec.Struct, kw_only=True):
    """Results of one search call."""

    results: list[SearchResult]
    total_count: int
    execution_time: float
    facets: list[Facet] | None = None
    suggestions: list[Suggestion] | None = None
    parsed_query: ParsedQuery | None = None


def to_json(obj: Any) -> bytes:
    """Serialize any model to JSON."""
    return msgspec.json.encode(obj)
