"""CLI commands module."""

from . import index, search

__all__ = ["index", "search"]
