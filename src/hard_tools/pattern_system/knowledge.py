"""
Pattern System Knowledge Document - Human-readable patterns.md.

Each pattern gets one markdown entry whose `**ID**` line carries the same id
as its counter store record.
"""

import logging
import re
from pathlib import Path

from .models import CATEGORIES, Pattern

logger = logging.getLogger(__name__)

DOCUMENT_HEADER = """# Cloudflare Patterns Knowledge Base

This file contains validated patterns for Cloudflare Workers development.
Patterns are validated against official documentation before being added.

---

"""

ENTRY_ID_RE = re.compile(r"^\*\*ID\*\*: `([^`]+)`", re.MULTILINE)

_TITLE_LENGTH = 50


def format_entry(pattern: Pattern) -> str:
    """Render one pattern as a markdown entry."""
    day = pattern.created_at[:10]
    title = pattern.text[:_TITLE_LENGTH]
    if len(pattern.text) > _TITLE_LENGTH:
        title += "..."
    category = CATEGORIES.get(pattern.category, pattern.category)

    return f"""
## Pattern: {title}

**ID**: `{pattern.id}`
**Category**: {category}
**Maturity**: {pattern.maturity.value}
**Added**: {day}
**Source**: {pattern.source or "User feedback"}

### Description
{pattern.text}

### Validation
- Status: Pending documentation review

---
"""


class KnowledgeDocument:
    """Append-only markdown document of patterns."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def ensure(self) -> None:
        """Create the document with its header if it does not exist."""
        if self.path.exists():
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(DOCUMENT_HEADER, encoding="utf-8")
        logger.info(f"Created knowledge document: {self.path}")

    def append(self, pattern: Pattern) -> None:
        self.ensure()
        with open(self.path, "a", encoding="utf-8") as f:
            f.write(format_entry(pattern))

    def entry_ids(self) -> list[str]:
        """Ids of every entry, in document order."""
        if not self.path.exists():
            return []
        content = self.path.read_text(encoding="utf-8")
        return ENTRY_ID_RE.findall(content)
