"""Search suggestions and spelling corrections.

Suggestions come from three prefix tries built over the index: title
words, tags, and short phrases taken from note content. When too few
completions exist, fuzzy matches against indexed words are offered as
spelling corrections.
"""

import math
import re
from collections.abc import Iterable

from .fuzzy import FuzzyMatcher
from .models import IndexedDocument, Suggestion, SuggestionType

SENTENCE_PATTERN = re.compile(r"[.!?]+")
CORRECTION_MIN_SIMILARITY = 0.7


class TrieNode:
    """Node of a prefix tree."""

    __slots__ = ("children", "frequency", "value", "_max_frequency")

    def __init__(self):
        self.children: dict[str, TrieNode] = {}
        self.frequency = 0
        self.value: str | None = None
        self._max_frequency: int | None = None

    @property
    def is_word(self) -> bool:
        return self.value is not None

    def insert(self, word: str) -> None:
        node = self
        node._max_frequency = None
        for char in word:
            node = node.children.setdefault(char, TrieNode())
            node._max_frequency = None
        node.frequency += 1
        node.value = word

    def find(self, prefix: str) -> "TrieNode | None":
        node = self
        for char in prefix:
            node = node.children.get(char)
            if node is None:
                return None
        return node

    def max_frequency(self) -> int:
        """Highest word frequency in this subtree."""
        if self._max_frequency is None:
            self._max_frequency = max(
                [self.frequency] + [child.max_frequency() for child in self.children.values()]
            )
        return self._max_frequency

    def collect(self, limit: int) -> list["TrieNode"]:
        """Word nodes of this subtree, most frequent branches first."""
        results: list[TrieNode] = []
        self._collect(results, limit)
        return results

    def _collect(self, results: list["TrieNode"], limit: int) -> None:
        if len(results) >= limit:
            return
        if self.is_word:
            results.append(self)
        children = sorted(
            self.children.values(), key=lambda child: child.max_frequency(), reverse=True
        )
        for child in children:
            if len(results) >= limit:
                break
            child._collect(results, limit)

    def words(self) -> Iterable[str]:
        if self.value is not None:
            yield self.value
        for child in self.children.values():
            yield from child.words()


class SearchSuggester:
    """Prefix completions over titles, tags and content phrases."""

    def __init__(self, fuzzy_matcher: FuzzyMatcher | None = None):
        self.fuzzy = fuzzy_matcher or FuzzyMatcher()
        self.title_trie = TrieNode()
        self.tag_trie = TrieNode()
        self.phrase_trie = TrieNode()

    def build_index(self, documents: Iterable[IndexedDocument]) -> None:
        """Rebuild all tries from ``documents``."""
        title_trie, tag_trie, phrase_trie = TrieNode(), TrieNode(), TrieNode()

        for doc in documents:
            title = doc.title.lower()
            title_words = title.split()
            for word in title_words:
                if len(word) > 2:
                    title_trie.insert(word)
            if len(title_words) > 1:
                title_trie.insert(" ".join(title_words))

            for tag in doc.tags:
                if tag:
                    tag_trie.insert(tag.lower())

            for phrase in self._phrases(doc.content):
                phrase_trie.insert(phrase)

        self.title_trie, self.tag_trie, self.phrase_trie = title_trie, tag_trie, phrase_trie

    def get_suggestions(
        self,
        prefix: str,
        max_suggestions: int = 10,
        include_corrections: bool = True,
    ) -> list[Suggestion]:
        """Suggest completions for ``prefix``.

        Args:
            prefix: Partial query text
            max_suggestions: Maximum number of suggestions
            include_corrections: Add spelling corrections when completions
                are scarce

        Returns:
            Suggestions sorted by descending score
        """
        prefix = prefix.strip().lower()
        if not prefix or max_suggestions <= 0:
            return []

        per_source = math.ceil(max_suggestions / 3)
        suggestions = [
            *self._complete(self.title_trie, prefix, SuggestionType.TITLE, per_source),
            *self._complete(self.tag_trie, prefix, SuggestionType.TAG, per_source),
            *self._complete(self.phrase_trie, prefix, SuggestionType.PHRASE, per_source),
        ]

        if include_corrections and len(suggestions) < max_suggestions / 2:
            suggestions.extend(
                self.get_corrections(prefix, max_suggestions - len(suggestions))
            )

        suggestions.sort(key=lambda s: s.score, reverse=True)
        return suggestions[:max_suggestions]

    def get_corrections(self, word: str, max_corrections: int = 5) -> list[Suggestion]:
        """Indexed title words and tags that ``word`` may be a misspelling of.

        Candidates more than ``max_edit_distance`` edits away are never offered.
        """
        vocabulary = {
            candidate
            for candidate in set(self.title_trie.words()) | set(self.tag_trie.words())
            if self.fuzzy.within_edit_distance(word, candidate)
        }
        matches = self.fuzzy.find_best_matches(
            word, sorted(vocabulary), max_corrections, CORRECTION_MIN_SIMILARITY
        )
        return [
            Suggestion(
                text=match.value,
                type=SuggestionType.CORRECTION,
                score=round(match.similarity * 100),
            )
            for match in matches
            if match.value != word.strip().lower()
        ]

    def get_popular_searches(self, limit: int = 10) -> list[Suggestion]:
        """Most frequent titles and tags; tags weigh more."""
        suggestions = [
            Suggestion(
                text=node.value,
                type=SuggestionType.TITLE,
                score=node.frequency * 10,
                document_count=node.frequency,
            )
            for node in self.title_trie.collect(limit * 2)
        ]
        suggestions.extend(
            Suggestion(
                text=node.value,
                type=SuggestionType.TAG,
                score=node.frequency * 15,
                document_count=node.frequency,
            )
            for node in self.tag_trie.collect(limit)
        )
        suggestions.sort(key=lambda s: s.score, reverse=True)
        return suggestions[:limit]

    def _complete(
        self, trie: TrieNode, prefix: str, kind: SuggestionType, limit: int
    ) -> list[Suggestion]:
        node = trie.find(prefix)
        if node is None:
            return []
        return [
            Suggestion(
                text=word_node.value,
                type=kind,
                score=self._score(word_node.value, prefix, word_node.frequency),
                document_count=word_node.frequency,
            )
            for word_node in node.collect(limit * 2)[:limit]
        ]

    @staticmethod
    def _score(suggestion: str, prefix: str, frequency: int) -> int:
        """Frequency, length proximity and prefix quality, up to 100."""
        score = min(40, frequency * 10)
        score += max(0, 30 - abs(len(suggestion) - len(prefix)) * 2)
        if suggestion.startswith(prefix):
            score += 30
        return round(score)

    @staticmethod
    def _phrases(content: str) -> Iterable[str]:
        """Two to four word phrases of each sentence."""
        for sentence in SENTENCE_PATTERN.split(content.lower()):
            sentence_words = [word for word in sentence.split() if len(word) > 2]
            for size in range(2, min(4, len(sentence_words)) + 1):
                for start in range(len(sentence_words) - size + 1):
                    phrase = " ".join(sentence_words[start : start + size])
                    if 5 < len(phrase) < 50:
                        yield phrase
