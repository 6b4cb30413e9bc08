"""Pattern System - Best-practice patterns with outcome tracking

Records free-text patterns, validates them against a rejection list and known
anti-patterns, and tracks how often each one works.

Architecture:
- JSON counter store (.pattern-tracking.json) behind a repository interface
- Markdown document (patterns.md) with one human-readable entry per pattern
- Maturity and confidence recomputed from counters on every read
- Chronically failing patterns are inverted into anti-patterns

Usage:
    from hard_tools.pattern_system import JsonPatternRepository, PatternTracker

    tracker = PatternTracker(JsonPatternRepository(path))
    tracker.add("Use Durable Objects for rate limiting", category="resource")
    tracker.track("use-durable-objects-for-rate-limiting", "success")

    stale = tracker.list_stale()
    failing = tracker.list_failing()
"""

from .knowledge import KnowledgeDocument
from .models import (
    AntiPattern,
    Maturity,
    Outcome,
    Pattern,
    PatternInverted,
    TrackingState,
    calculate_confidence,
    calculate_maturity,
    confidence_label,
    should_invert,
    slugify,
)
from .operations import PatternTracker, ValidationResult
from .store import InMemoryPatternRepository, JsonPatternRepository, PatternRepository

PATTERNS_FILENAME = "patterns.md"
TRACKING_FILENAME = ".pattern-tracking.json"

__all__ = [
    "AntiPattern",
    "InMemoryPatternRepository",
    "JsonPatternRepository",
    "KnowledgeDocument",
    "Maturity",
    "Outcome",
    "PATTERNS_FILENAME",
    "Pattern",
    "PatternInverted",
    "PatternRepository",
    "PatternTracker",
    "TRACKING_FILENAME",
    "TrackingState",
    "ValidationResult",
    "calculate_confidence",
    "calculate_maturity",
    "confidence_label",
    "should_invert",
    "slugify",
]
