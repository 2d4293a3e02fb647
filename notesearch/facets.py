"""Faceted aggregation over search results.

Facets count documents per category, tag, relative date bucket, year
and month. Date facets use ``modified`` when present and fall back to
``created``; documents with neither are left out of date facets.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable
from datetime import datetime, timezone

from .models import Category, Facet, FacetType, FacetValue, IndexedDocument, as_utc

MAX_TAG_VALUES = 20
MAX_MONTH_VALUES = 12

# (key, label, upper bound in days); buckets are half-open [previous, bound)
DATE_BUCKETS = (
    ("today", "Today", 1),
    ("last-7-days", "Last 7 days", 7),
    ("last-30-days", "Last 30 days", 30),
    ("last-year", "Last year", 365),
)
OLDER_BUCKET = ("older", "Older")
DATE_BUCKET_LABELS = dict(
    [(key, label) for key, label, _ in DATE_BUCKETS] + [OLDER_BUCKET]
)

MONTH_NAMES = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)  # fmt: skip


def date_bucket(date: datetime, now: datetime | None = None) -> str:
    """Relative date bucket key of ``date``; future dates count as today."""
    now = as_utc(now or datetime.now(timezone.utc))
    days = (now - as_utc(date)).total_seconds() / 86400
    for key, _, bound in DATE_BUCKETS:
        if days < bound:
            return key
    return OLDER_BUCKET[0]


def month_key(date: datetime) -> str:
    date = as_utc(date)
    return f"{date.year}-{date.month:02d}"


def month_label(key: str) -> str:
    """Label ``YYYY-MM`` as ``Mon YYYY``."""
    year, month = key.split("-")
    return f"{MONTH_NAMES[int(month) - 1]} {year}"


def _sorted_by_count(counts: Counter, order: dict[str, int] | None = None) -> list[str]:
    """Keys by descending count, ties broken by ``order`` then by key."""
    order = order or {}
    return sorted(counts, key=lambda key: (-counts[key], order.get(key, len(order)), key))


def _make_facet(field: FacetType, values: list[FacetValue]) -> Facet | None:
    if not values:
        return None
    return Facet(
        field=field,
        values=values,
        total_count=sum(value.count for value in values),
    )


class FacetGenerator:
    """Builds facets from document sets and filters documents by facet value."""

    @staticmethod
    def generate_facets(
        documents: Iterable[IndexedDocument],
        facet_types: Iterable[FacetType | str],
        now: datetime | None = None,
    ) -> list[Facet]:
        """Generate one facet per requested type.

        Args:
            documents: Documents to aggregate
            facet_types: Facet types, in output order
            now: Reference time for relative date buckets

        Returns:
            Facets with at least one value; empty facets are omitted
        """
        documents = list(documents)
        facets = []

        for facet_type in facet_types:
            facet_type = FacetType(facet_type)
            if facet_type is FacetType.CATEGORY:
                facet = FacetGenerator._category_facet(documents)
            elif facet_type is FacetType.TAGS:
                facet = FacetGenerator._tags_facet(documents)
            elif facet_type is FacetType.DATE_RANGE:
                facet = FacetGenerator._date_range_facet(documents, now)
            elif facet_type is FacetType.YEAR:
                facet = FacetGenerator._year_facet(documents)
            else:
                facet = FacetGenerator._month_facet(documents)

            if facet is not None:
                facets.append(facet)

        return facets

    @staticmethod
    def apply_facet_filter(
        documents: Iterable[IndexedDocument],
        facet_type: FacetType | str,
        value: str,
        now: datetime | None = None,
    ) -> list[IndexedDocument]:
        """Keep documents whose facet value equals ``value``.

        Bucket boundaries are the same as in generate_facets. An
        unrecognized facet type returns the documents unchanged.
        """
        documents = list(documents)
        try:
            facet_type = FacetType(facet_type)
        except ValueError:
            return documents

        if facet_type is FacetType.CATEGORY:
            wanted = value.lower()
            return [doc for doc in documents if doc.category.value == wanted]

        if facet_type is FacetType.TAGS:
            wanted = value.lower()
            return [
                doc for doc in documents if any(tag.lower() == wanted for tag in doc.tags)
            ]

        def key(date: datetime) -> str:
            if facet_type is FacetType.DATE_RANGE:
                return date_bucket(date, now)
            if facet_type is FacetType.YEAR:
                return str(as_utc(date).year)
            return month_key(date)

        return [doc for doc in documents if doc.date is not None and key(doc.date) == value]

    @staticmethod
    def _category_facet(documents: list[IndexedDocument]) -> Facet | None:
        counts = Counter(doc.category.value for doc in documents)
        order = {category.value: i for i, category in enumerate(Category)}
        values = [
            FacetValue(key, Category(key).label, counts[key])
            for key in _sorted_by_count(counts, order)
        ]
        return _make_facet(FacetType.CATEGORY, values)

    @staticmethod
    def _tags_facet(documents: list[IndexedDocument]) -> Facet | None:
        counts: Counter = Counter()
        for doc in documents:
            # A document counts once per distinct tag.
            counts.update({tag for tag in doc.tags if tag})
        values = [
            FacetValue(tag, tag, counts[tag])
            for tag in _sorted_by_count(counts)[:MAX_TAG_VALUES]
        ]
        return _make_facet(FacetType.TAGS, values)

    @staticmethod
    def _date_range_facet(
        documents: list[IndexedDocument], now: datetime | None
    ) -> Facet | None:
        counts = Counter(
            date_bucket(doc.date, now) for doc in documents if doc.date is not None
        )
        order = {key: i for i, key in enumerate(DATE_BUCKET_LABELS)}
        values = [
            FacetValue(key, DATE_BUCKET_LABELS[key], counts[key])
            for key in _sorted_by_count(counts, order)
        ]
        return _make_facet(FacetType.DATE_RANGE, values)

    @staticmethod
    def _year_facet(documents: list[IndexedDocument]) -> Facet | None:
        counts = Counter(
            str(as_utc(doc.date).year) for doc in documents if doc.date is not None
        )
        values = [
            FacetValue(year, year, counts[year])
            for year in sorted(counts, key=int, reverse=True)
        ]
        return _make_facet(FacetType.YEAR, values)

    @staticmethod
    def _month_facet(documents: list[IndexedDocument]) -> Facet | None:
        counts = Counter(month_key(doc.date) for doc in documents if doc.date is not None)
        recent = sorted(counts, reverse=True)[:MAX_MONTH_VALUES]
        values = [FacetValue(key, month_label(key), counts[key]) for key in recent]
        return _make_facet(FacetType.MONTH, values)
