"""Document sources the search index is built from."""

from __future__ import annotations

import logging
import re
import threading
from abc import ABC, abstractmethod
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any

import yaml

from .errors import IndexingError
from .models import Category, IndexedDocument

logger = logging.getLogger(__name__)

FRONTMATTER_PATTERN = re.compile(r"\A---[ \t]*\r?\n(.*?)\r?\n---[ \t]*(?:\r?\n|\Z)", re.DOTALL)
HEADING_PATTERN = re.compile(r"^#[ \t]+(.+?)[ \t]*#*[ \t]*$", re.MULTILINE)
CATEGORY_PREFIX_PATTERN = re.compile(r"^\d+[\s._-]*")


class DocumentStore(ABC):
    """Abstract source of indexable documents."""

    @abstractmethod
    def list(self) -> list[str]:
        """Paths of all documents."""
        pass

    @abstractmethod
    def read(self, path: str) -> IndexedDocument | None:
        """Read one document.

        Returns:
            The document, or None if it does not exist

        Raises:
            IndexingError: If the document exists but cannot be parsed
        """
        pass


class MemoryDocumentStore(DocumentStore):
    """In-memory document store for testing purposes."""

    def __init__(self, documents: list[IndexedDocument] | None = None):
        self._documents: dict[str, IndexedDocument] = {}
        self._lock = threading.RLock()
        for document in documents or []:
            self.add(document)

    def add(self, document: IndexedDocument) -> None:
        with self._lock:
            self._documents[document.path] = document

    def remove(self, path: str) -> bool:
        with self._lock:
            return self._documents.pop(path, None) is not None

    def list(self) -> list[str]:
        with self._lock:
            return list(self._documents)

    def read(self, path: str) -> IndexedDocument | None:
        with self._lock:
            return self._documents.get(path)


class FileSystemDocumentStore(DocumentStore):
    """Markdown notes with YAML frontmatter under a root directory.

    The category of a note comes from its frontmatter, else from its
    top-level directory (``Projects/``, ``2-Areas/`` ...), else it is
    filed under resources.
    """

    def __init__(self, root: Path, extensions: tuple[str, ...] = (".md", ".markdown")):
        self.root = Path(root)
        self.extensions = extensions

    def list(self) -> list[str]:
        if not self.root.is_dir():
            logger.warning(f"Document root does not exist: {self.root}")
            return []

        paths = []
        for file_path in self.root.rglob("*"):
            relative = file_path.relative_to(self.root)
            if any(part.startswith(".") for part in relative.parts):
                continue
            if file_path.suffix.lower() in self.extensions and file_path.is_file():
                paths.append(relative.as_posix())
        return sorted(paths)

    def read(self, path: str) -> IndexedDocument | None:
        file_path = self.root / path
        if not file_path.is_file():
            return None

        try:
            text = file_path.read_text(encoding="utf-8")
            mtime = datetime.fromtimestamp(file_path.stat().st_mtime, tz=timezone.utc)
        except (OSError, UnicodeDecodeError) as e:
            raise IndexingError(path, str(e)) from e

        metadata, body = parse_frontmatter(text, path)
        return build_document(path, metadata, body, mtime)


def parse_frontmatter(text: str, path: str = "<string>") -> tuple[dict[str, Any], str]:
    """Split a note into its YAML frontmatter and body.

    Raises:
        IndexingError: If the frontmatter is not a valid YAML mapping
    """
    match = FRONTMATTER_PATTERN.match(text)
    if not match:
        return {}, text

    try:
        metadata = yaml.safe_load(match.group(1))
    except yaml.YAMLError as e:
        raise IndexingError(path, f"Invalid frontmatter: {e}") from e

    if metadata is None:
        metadata = {}
    if not isinstance(metadata, dict):
        raise IndexingError(path, "Frontmatter must be a mapping")

    return metadata, text[match.end() :]


def build_document(
    path: str,
    metadata: dict[str, Any],
    body: str,
    mtime: datetime | None = None,
) -> IndexedDocument:
    """Assemble an IndexedDocument from parsed note parts."""
    return IndexedDocument(
        path=path,
        title=_title(metadata, body, path),
        content=body.strip(),
        tags=_tags(metadata.get("tags", metadata.get("tag"))),
        category=category_for(path, metadata.get("category")),
        created=_datetime(metadata.get("created")),
        modified=_datetime(metadata.get("modified")) or mtime,
    )


def category_for(path: str, declared: Any = None) -> Category:
    """Resolve the PARA category of a note."""
    candidates = []
    if isinstance(declared, str):
        candidates.append(declared)
    parts = Path(path).parts
    if len(parts) > 1:
        candidates.append(parts[0])

    for candidate in candidates:
        name = CATEGORY_PREFIX_PATTERN.sub("", candidate.strip()).lower()
        try:
            return Category(name)
        except ValueError:
            continue

    return Category.RESOURCES


def _title(metadata: dict[str, Any], body: str, path: str) -> str:
    title = metadata.get("title")
    if title is not None and str(title).strip():
        return str(title).strip()

    heading = HEADING_PATTERN.search(body)
    if heading:
        return heading.group(1)

    return Path(path).stem


def _tags(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        value = value.split(",")
    elif not isinstance(value, (list, tuple, set)):
        value = [value]

    tags = []
    for tag in value:
        tag = str(tag).strip().lstrip("#")
        if tag and tag not in tags:
            tags.append(tag)
    return tags


def _datetime(value: Any) -> datetime | None:
    """Coerce frontmatter dates to aware datetimes."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    if isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            logger.debug(f"Ignoring unparseable date: {value!r}")
            return None
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    return None
