"""
Pattern System Models - Data classes and lifecycle functions for patterns.

Lifecycle rules are pure functions of (success, failure, last_validated, now):

    maturity     candidate -> established -> proven, or deprecated on a failure burst
    confidence   90-day half-life decay since the last successful validation
    inversion    total >= 5 and failure rate > 60% turns a pattern into an anti-pattern
"""

import math
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

HALF_LIFE_DAYS = 90
DECAY_CONSTANT = math.log(2) / HALF_LIFE_DAYS

MAX_RECENT_FAILURES = 5
MAX_ID_LENGTH = 50
INVERSION_MIN_USES = 5
INVERSION_FAILURE_RATE = 0.6
STALE_CONFIDENCE = 50

CATEGORIES = {
    "runtime": "Runtime Compatibility",
    "resource": "Resource Selection",
    "binding": "Binding Patterns",
    "edge": "Edge Optimization",
    "security": "Security",
    "ui": "UI/Component Patterns",
}


class Maturity(str, Enum):
    """Confidence-in-correctness classification of a pattern."""

    CANDIDATE = "candidate"  # New pattern, fewer than 5 uses
    ESTABLISHED = "established"  # 5+ uses, 70%+ success
    PROVEN = "proven"  # 20+ uses, 85%+ success
    DEPRECATED = "deprecated"  # Under 50% success, or inverted


class Outcome(str, Enum):
    """Result reported by a `track` call."""

    SUCCESS = "success"
    FAILURE = "failure"


# =========================================================================
# Lifecycle functions
# =========================================================================


def calculate_maturity(success: int, failure: int) -> Maturity:
    """
    Classify a pattern from its counters.

    Recomputed on every read, so a pattern can drop from proven straight to
    deprecated after a burst of failures.
    """
    total = success + failure
    rate = success / total if total > 0 else 0

    if total >= 5 and rate < 0.5:
        return Maturity.DEPRECATED
    if total >= 20 and rate >= 0.85:
        return Maturity.PROVEN
    if total >= 5 and rate >= 0.7:
        return Maturity.ESTABLISHED
    return Maturity.CANDIDATE


def calculate_confidence(last_validated: datetime | None, now: datetime) -> int:
    """Confidence percentage after exponential decay; 0 if never validated."""
    if last_validated is None:
        return 0
    days = max((now - last_validated).total_seconds() / 86400, 0.0)
    return round(100 * math.exp(-DECAY_CONSTANT * days))


def confidence_label(confidence: int) -> str:
    if confidence >= 80:
        return "High"
    if confidence >= 50:
        return "Medium"
    if confidence >= 25:
        return "Low"
    return "Stale"


def should_invert(success: int, failure: int) -> bool:
    """Inversion condition: never fires below INVERSION_MIN_USES uses."""
    total = success + failure
    if total < INVERSION_MIN_USES:
        return False
    return failure / total > INVERSION_FAILURE_RATE


def slugify(text: str) -> str:
    """Derive a pattern id: lowercase, non-alphanumeric runs to '-', max 50 chars."""
    slug = re.sub(r"[^a-z0-9]+", "-", text.lower()).strip("-")
    return slug[:MAX_ID_LENGTH].rstrip("-")


def parse_timestamp(value: str | None) -> datetime | None:
    """Parse an ISO timestamp; naive values are taken as UTC."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


# =========================================================================
# Records
# =========================================================================


@dataclass
class FailureRecord:
    date: str
    reason: str

    def to_dict(self) -> dict:
        return {"date": self.date, "reason": self.reason}

    @classmethod
    def from_dict(cls, data: dict) -> "FailureRecord":
        return cls(date=data.get("date", ""), reason=data.get("reason", ""))


@dataclass
class Pattern:
    """A recorded best-practice pattern and its usage counters."""

    id: str  # Slug derived from text
    text: str
    category: str
    created_at: str
    last_validated_at: str | None = None
    success: int = 0
    failure: int = 0
    recent_failures: list[FailureRecord] = field(default_factory=list)
    source: str | None = None
    inverted_to: str | None = None  # AntiPattern id once inverted

    @property
    def total(self) -> int:
        return self.success + self.failure

    @property
    def success_rate(self) -> float:
        return self.success / self.total if self.total else 0.0

    @property
    def failure_rate(self) -> float:
        return self.failure / self.total if self.total else 0.0

    @property
    def maturity(self) -> Maturity:
        # Inversion is one-way
        if self.inverted_to:
            return Maturity.DEPRECATED
        return calculate_maturity(self.success, self.failure)

    def record_failure(self, date: str, reason: str | None) -> None:
        self.failure += 1
        self.recent_failures.append(
            FailureRecord(date=date, reason=reason or "No reason provided")
        )
        del self.recent_failures[:-MAX_RECENT_FAILURES]

    def to_dict(self) -> dict:
        """Convert to the counter store record (keyed by id in the store)."""
        return {
            "text": self.text,
            "category": self.category,
            "source": self.source,
            "successCount": self.success,
            "failureCount": self.failure,
            "createdAt": self.created_at,
            "lastValidatedAt": self.last_validated_at,
            "maturity": self.maturity.value,  # Snapshot; recomputed on read
            "recentFailures": [f.to_dict() for f in self.recent_failures],
            "invertedTo": self.inverted_to,
        }

    @classmethod
    def from_dict(cls, pattern_id: str, data: dict) -> "Pattern":
        """Create from a store record (also reads the short legacy key names)."""
        return cls(
            id=pattern_id,
            text=data.get("text") or pattern_id,
            category=data.get("category") or "runtime",
            source=data.get("source"),
            success=int(data.get("successCount", data.get("success", 0)) or 0),
            failure=int(data.get("failureCount", data.get("failure", 0)) or 0),
            created_at=data.get("createdAt", data.get("created")) or "",
            last_validated_at=data.get("lastValidatedAt", data.get("lastValidated")),
            recent_failures=[
                FailureRecord.from_dict(f) for f in data.get("recentFailures") or []
            ],
            inverted_to=data.get("invertedTo"),
        )


@dataclass
class AntiPattern:
    """A pattern that failed often enough to become a rejection rule."""

    id: str
    pattern_id: str
    original_text: str
    reason: str
    inverted_at: str

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "patternId": self.pattern_id,
            "originalPattern": self.original_text,
            "reason": self.reason,
            "invertedAt": self.inverted_at,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "AntiPattern":
        anti_id = data.get("id", "")
        return cls(
            id=anti_id,
            pattern_id=data.get("patternId") or anti_id.removeprefix("anti-"),
            original_text=data.get("originalPattern", ""),
            reason=data.get("reason", ""),
            inverted_at=data.get("invertedAt", ""),
        )


@dataclass
class PatternInverted:
    """Event emitted by `track` when a pattern is inverted."""

    pattern_id: str
    anti_pattern_id: str
    reason: str
    failure_rate: int  # Percent
    total_uses: int

    def to_dict(self) -> dict:
        return {
            "patternId": self.pattern_id,
            "antiPatternId": self.anti_pattern_id,
            "reason": self.reason,
            "failureRate": self.failure_rate,
            "totalUses": self.total_uses,
        }


@dataclass
class TrackingState:
    """Everything in the counter store, loaded and saved as a whole."""

    patterns: dict[str, Pattern] = field(default_factory=dict)
    anti_patterns: list[AntiPattern] = field(default_factory=list)
    version: int = 0  # Bumped on every save

    def to_dict(self) -> dict:
        return {
            "version": self.version,
            "patterns": {pid: p.to_dict() for pid, p in self.patterns.items()},
            "antiPatterns": [a.to_dict() for a in self.anti_patterns],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "TrackingState":
        return cls(
            patterns={
                pid: Pattern.from_dict(pid, record)
                for pid, record in (data.get("patterns") or {}).items()
            },
            anti_patterns=[
                AntiPattern.from_dict(a) for a in data.get("antiPatterns") or []
            ],
            version=int(data.get("version", 0) or 0),
        )
