"""Note search command line interface.

Built with Click and Rich.
"""

from notesearch.cli.main import cli

__all__ = ["cli"]
