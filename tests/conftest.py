"""Shared pytest fixtures for edge-hard-tools tests.

Everything runs against temporary directories; no fixture touches the
working tree.
"""

from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from hard_tools.pattern_system import (
    InMemoryPatternRepository,
    KnowledgeDocument,
    PatternTracker,
)
from hard_tools.scanner import ScanEngine

# =============================================================================
# Path Fixtures
# =============================================================================


@pytest.fixture
def write_file(tmp_path: Path) -> Callable[[str, str], Path]:
    """Write a file under tmp_path, creating parent directories.

    Usage:
        path = write_file("src/index.ts", "const x = 1;")
    """

    def _write(relative: str, content: str) -> Path:
        path = tmp_path / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return path

    return _write


@pytest.fixture
def worker_project(tmp_path: Path, write_file) -> Path:
    """A small Workers project with a mix of clean and broken files."""
    write_file(
        "src/index.ts",
        "import { Hono } from 'hono';\n"
        "const app = new Hono();\n"
        "export default app;\n",
    )
    write_file(
        "src/legacy.js",
        "const fs = require('fs');\n"
        "import path from 'path';\n"
        "const url = process.env.API_URL;\n",
    )
    write_file(
        "src/cache.ts",
        "export async function remember(env, key, value) {\n"
        "  await env.CACHE.put(key, value);\n"
        "}\n",
    )
    write_file("node_modules/pkg/index.js", "const fs = require('fs');\n")
    write_file("README.md", "# project\n")
    return tmp_path


@pytest.fixture
def engine() -> ScanEngine:
    return ScanEngine()


# =============================================================================
# Pattern Tracker Fixtures
# =============================================================================


class FrozenClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def repository() -> InMemoryPatternRepository:
    return InMemoryPatternRepository()


@pytest.fixture
def document(tmp_path: Path) -> KnowledgeDocument:
    return KnowledgeDocument(tmp_path / "knowledge" / "patterns.md")


@pytest.fixture
def tracker(repository, document, clock) -> PatternTracker:
    return PatternTracker(repository, document, clock=clock)
