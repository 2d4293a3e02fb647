"""Pytest configuration and fixtures."""

from datetime import datetime, timezone
from pathlib import Path

import pytest

from notesearch.engine import SearchEngine
from notesearch.models import Category, IndexedDocument
from notesearch.store import MemoryDocumentStore


@pytest.fixture(autouse=True)
def isolate_environment(monkeypatch, tmp_path):
    """Keep user and project configuration out of tests.

    Config files are looked up in XDG_CONFIG_HOME and the working
    directory, so both point at an empty temporary directory.
    """
    config_home = tmp_path / "xdg"
    config_home.mkdir()
    monkeypatch.setenv("XDG_CONFIG_HOME", str(config_home))
    monkeypatch.delenv("NOTESEARCH_ROOT", raising=False)
    monkeypatch.chdir(tmp_path)
    yield


@pytest.fixture
def fixed_now() -> datetime:
    """Reference time for date-dependent tests."""
    return datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def sample_documents() -> list[IndexedDocument]:
    """Small PARA corpus with overlapping tags and topics."""
    return [
        IndexedDocument(
            path="projects/website-redesign.md",
            title="Website Redesign",
            content=(
                "Plan the new JavaScript frontend with React. "
                "Testing strategy uses Jest."
            ),
            tags=["javascript", "react", "testing"],
            category=Category.PROJECTS,
            created=datetime(2024, 1, 10, tzinfo=timezone.utc),
            modified=datetime(2024, 3, 1, tzinfo=timezone.utc),
        ),
        IndexedDocument(
            path="projects/api-migration.md",
            title="API Migration",
            content="Migrate the Python backend to FastAPI. Write integration tests.",
            tags=["python", "backend"],
            category=Category.PROJECTS,
            modified=datetime(2024, 2, 15, tzinfo=timezone.utc),
        ),
        IndexedDocument(
            path="areas/health.md",
            title="Health Routines",
            content="Morning exercise and sleep tracking notes.",
            tags=["health", "habits"],
            category=Category.AREAS,
            modified=datetime(2023, 11, 20, tzinfo=timezone.utc),
        ),
        IndexedDocument(
            path="resources/python-tips.md",
            title="Python Tips",
            content=(
                "Useful Python idioms: list comprehensions, generators "
                "and context managers."
            ),
            tags=["python", "reference"],
            category=Category.RESOURCES,
            created=datetime(2023, 6, 1, tzinfo=timezone.utc),
        ),
        IndexedDocument(
            path="resources/python-idioms.md",
            title="Python Idioms",
            content="Python idioms with generators and context managers.",
            tags=["python", "reference"],
            category=Category.RESOURCES,
        ),
        IndexedDocument(
            path="archives/old-blog.md",
            title="Old Blog Setup",
            content="Notes about the retired JavaScript blog built with TypeScript.",
            tags=["javascript", "typescript"],
            category=Category.ARCHIVES,
        ),
    ]


@pytest.fixture
def memory_store(sample_documents) -> MemoryDocumentStore:
    """In-memory store holding the sample corpus."""
    return MemoryDocumentStore(sample_documents)


@pytest.fixture
def engine(memory_store) -> SearchEngine:
    """Initialized engine over the sample corpus."""
    search_engine = SearchEngine(memory_store)
    search_engine.initialize()
    return search_engine


@pytest.fixture
def notes_dir(tmp_path) -> Path:
    """Knowledge base directory with markdown notes on disk."""
    root = tmp_path / "notes"

    files = {
        "1-Projects/roadmap.md": (
            "---\n"
            "title: Product Roadmap\n"
            "tags: [planning, python]\n"
            "created: 2024-01-05\n"
            "---\n"
            "# Roadmap\n\n"
            "Quarterly goals for the Python service rewrite.\n"
        ),
        "Areas/fitness.md": (
            "# Fitness Log\n\nRunning three times a week.\n"
        ),
        "Resources/python-cheatsheet.md": (
            "---\n"
            'tags: "python, #reference"\n'
            "---\n"
            "Python cheatsheet with comprehensions and generators.\n"
        ),
        "inbox.md": "Loose thoughts about python packaging.\n",
        ".obsidian/workspace.md": "Editor state, never indexed.\n",
        "Resources/diagram.png": "not a note",
    }

    for relative, text in files.items():
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")

    return root
