"""Query parsing subsystem."""

from .parser import QueryParser, Token, TokenType, parse_query

__all__ = [
    "QueryParser",
    "Token",
    "TokenType",
    "parse_query",
]
