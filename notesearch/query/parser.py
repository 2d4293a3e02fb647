"""Query parser for boolean note search queries."""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum

from ..errors import QuerySyntaxError
from ..models import (
    Clause,
    ExactClause,
    Field,
    FuzzyClause,
    ParsedQuery,
    PhraseClause,
    WildcardClause,
)

FIELD_NAMES = {field.value for field in Field}
KEYWORDS = {"AND", "OR", "NOT"}


class TokenType(Enum):
    """Lexical token types."""

    WORD = "word"
    PHRASE = "phrase"
    FIELD = "field"
    AND = "AND"
    OR = "OR"
    NOT = "NOT"
    LPAREN = "("
    RPAREN = ")"
    EOF = "eof"


@dataclass
class Token:
    """A lexical token with its offset in the query string."""

    type: TokenType
    value: str
    position: int
    field: str | None = None
    quoted: bool = False


@dataclass
class _Item:
    """A clause with its boolean role, before it is placed in a ParsedQuery."""

    clause: Clause
    negated: bool = False
    optional: bool = False


class QueryParser:
    """Parser for search query strings.

    Grammar, loosest binding first::

        query   := or_expr
        or_expr := and_expr ("OR" and_expr)*
        and_expr:= term ("AND"? term)*
        term    := ("NOT" | "-")* (group | phrase | field | word)
        group   := "(" or_expr ")"

    Plain juxtaposition is an implicit AND. Both sides of an OR become
    ``should`` clauses. Keywords are only recognized in uppercase.
    """

    def __init__(self, fuzzy_tolerance: float = 0.8, exact_terms: bool = False):
        """Initialize parser.

        Args:
            fuzzy_tolerance: Tolerance given to fuzzy clauses
            exact_terms: Produce exact clauses instead of fuzzy ones for
                plain terms
        """
        self.fuzzy_tolerance = fuzzy_tolerance
        self.exact_terms = exact_terms
        self._tokens: list[Token] = []
        self._pos = 0

    def parse(self, query_string: str) -> ParsedQuery:
        """Parse a query string into a structured query.

        Args:
            query_string: Raw query string from user

        Returns:
            ParsedQuery with must, should and must_not clauses

        Raises:
            QuerySyntaxError: If an opening parenthesis is never closed
        """
        if not query_string or not query_string.strip():
            return ParsedQuery()

        self._tokens = self.tokenize(query_string)
        self._pos = 0
        items = self._parse_or(depth=0)

        parsed = ParsedQuery()
        for item in items:
            if item.negated:
                parsed.must_not.append(item.clause)
            elif item.optional:
                parsed.should.append(item.clause)
            else:
                parsed.must.append(item.clause)

        # A bare disjunction still requires one of its terms.
        if not parsed.must and parsed.should:
            parsed.must.append(parsed.should[0])

        return parsed

    def tokenize(self, query_string: str) -> list[Token]:
        """Split a query string into tokens, respecting quoted phrases."""
        tokens: list[Token] = []
        text = query_string
        i = 0
        n = len(text)

        while i < n:
            char = text[i]

            if char.isspace():
                i += 1
            elif char == "(":
                tokens.append(Token(TokenType.LPAREN, char, i))
                i += 1
            elif char == ")":
                tokens.append(Token(TokenType.RPAREN, char, i))
                i += 1
            elif char == '"':
                value, end = self._read_quoted(text, i)
                tokens.append(Token(TokenType.PHRASE, value, i, quoted=True))
                i = end
            elif char == "-":
                tokens.append(Token(TokenType.NOT, char, i))
                i += 1
            else:
                start = i
                while i < n and not text[i].isspace() and text[i] not in '"()':
                    i += 1
                word = text[start:i]

                prefix = word[:-1].lower()
                if word.endswith(":") and prefix in FIELD_NAMES and text[i : i + 1] == '"':
                    value, i = self._read_quoted(text, i)
                    tokens.append(
                        Token(TokenType.FIELD, value, start, field=prefix, quoted=True)
                    )
                    continue

                tokens.append(self._classify_word(word, start))

        tokens.append(Token(TokenType.EOF, "", n))
        return tokens

    def normalize(self, parsed: ParsedQuery) -> str:
        """Convert a parsed query back to query syntax.

        Must clauses are joined with AND, should clauses with OR and
        each must_not clause is prefixed with NOT. A must clause that
        repeats a should clause is the promoted member of a bare
        disjunction and is not rendered twice.
        """
        parts = []

        must = [clause for clause in parsed.must if clause not in parsed.should]
        if must:
            parts.append(" AND ".join(clause.to_string() for clause in must))

        if parsed.should:
            should = " OR ".join(clause.to_string() for clause in parsed.should)
            parts.append(f"AND ({should})" if parts else should)

        if parsed.must_not:
            negated = " AND ".join(f"NOT {clause.to_string()}" for clause in parsed.must_not)
            parts.append(f"AND {negated}" if parts else negated)

        return " ".join(parts)

    def _classify_word(self, word: str, position: int) -> Token:
        if word in KEYWORDS:
            return Token(TokenType(word), word, position)

        if ":" in word:
            field, _, value = word.partition(":")
            # Extra colons or unknown prefixes keep the whole token literal.
            if field.lower() in FIELD_NAMES and value and ":" not in value:
                return Token(TokenType.FIELD, value, position, field=field.lower())

        return Token(TokenType.WORD, word, position)

    @staticmethod
    def _read_quoted(text: str, start: int) -> tuple[str, int]:
        """Read a double-quoted string starting at ``start``.

        Returns the unescaped value and the index after the closing quote.
        An unterminated quote runs to the end of the input.
        """
        chars = []
        i = start + 1
        while i < len(text):
            char = text[i]
            if char == "\\" and text[i + 1 : i + 2] == '"':
                chars.append('"')
                i += 2
                continue
            if char == '"':
                return "".join(chars), i + 1
            chars.append(char)
            i += 1
        return "".join(chars), i

    def _parse_or(self, depth: int) -> list[_Item]:
        items = self._parse_and(depth)

        while True:
            if self._match(TokenType.OR):
                right = self._parse_and(depth)
                items = [replace(item, optional=True) for item in items + right]
            elif depth == 0 and self._check(TokenType.RPAREN):
                # Stray closing parenthesis
                self._advance()
                items.extend(self._parse_and(depth))
            else:
                break

        return items

    def _parse_and(self, depth: int) -> list[_Item]:
        items: list[_Item] = []
        while not self._at_end() and not self._check(TokenType.OR, TokenType.RPAREN):
            items.extend(self._parse_term(depth))
            self._match(TokenType.AND)
        return items

    def _parse_term(self, depth: int) -> list[_Item]:
        negated = False
        while self._match(TokenType.NOT):
            negated = not negated

        token = self._peek()

        if token.type is TokenType.LPAREN:
            self._advance()
            inner = self._parse_or(depth + 1)
            if not self._match(TokenType.RPAREN):
                raise QuerySyntaxError(
                    f"Expected closing parenthesis for group opened at position "
                    f"{token.position}",
                    position=token.position,
                )
            if negated:
                # NOT over a group negates each of its clauses
                return [
                    replace(item, negated=not item.negated, optional=False)
                    for item in inner
                ]
            return inner

        if token.type is TokenType.PHRASE:
            self._advance()
            return [_Item(PhraseClause(value=token.value), negated=negated)]

        if token.type is TokenType.FIELD:
            self._advance()
            field = Field(token.field)
            if token.quoted:
                clause: Clause = PhraseClause(value=token.value, field=field)
            else:
                clause = self._term_clause(token.value, field)
            return [_Item(clause, negated=negated)]

        if token.type is TokenType.WORD:
            self._advance()
            return [_Item(self._term_clause(token.value), negated=negated)]

        if token.type is TokenType.AND:
            self._advance()

        return []

    def _term_clause(self, value: str, field: Field | None = None) -> Clause:
        if "*" in value or "?" in value:
            return WildcardClause(value=value, field=field)
        if self.exact_terms:
            return ExactClause(value=value, field=field)
        return FuzzyClause(value=value, field=field, tolerance=self.fuzzy_tolerance)

    def _peek(self) -> Token:
        return self._tokens[self._pos]

    def _advance(self) -> Token:
        token = self._tokens[self._pos]
        if token.type is not TokenType.EOF:
            self._pos += 1
        return token

    def _at_end(self) -> bool:
        return self._peek().type is TokenType.EOF

    def _check(self, *types: TokenType) -> bool:
        return self._peek().type in types

    def _match(self, token_type: TokenType) -> bool:
        if self._check(token_type):
            self._advance()
            return True
        return False


def parse_query(query_string: str, fuzzy_tolerance: float = 0.8) -> ParsedQuery:
    """Parse ``query_string`` with a default parser."""
    return QueryParser(fuzzy_tolerance=fuzzy_tolerance).parse(query_string)
