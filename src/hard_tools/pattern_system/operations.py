"""
Pattern System Operations - Validation, tracking and lifecycle queries.
"""

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable

from ..errors import PatternNotFoundError
from .knowledge import KnowledgeDocument
from .models import (
    CATEGORIES,
    STALE_CONFIDENCE,
    AntiPattern,
    Outcome,
    Pattern,
    PatternInverted,
    TrackingState,
    calculate_confidence,
    confidence_label,
    parse_timestamp,
    should_invert,
    slugify,
)
from .store import PatternRepository

logger = logging.getLogger(__name__)

# Technology choices that are never codified for this stack
REJECTION_PATTERNS = (
    (re.compile(r"next\.?js", re.IGNORECASE), "Use Tanstack Start instead"),
    (re.compile(r"express|fastify|koa|nestjs", re.IGNORECASE), "Use Hono instead"),
    (re.compile(r"langchain", re.IGNORECASE), "Use Vercel AI SDK instead"),
    (re.compile(r"cloudflare pages", re.IGNORECASE), "Use Workers with static assets"),
    (re.compile(r"process\.env", re.IGNORECASE), "Use env parameter"),
    (re.compile(r"require\s*\(", re.IGNORECASE), "Use ES modules import"),
    (
        re.compile(r"wrangler\.toml.*(?:add|modify|edit)", re.IGNORECASE),
        "Do not codify config modifications",
    ),
)

# Topics that should be cross-checked against documentation by a human
REVIEW_WARNINGS = (
    (
        re.compile(r"kv|r2|d1|durable", re.IGNORECASE),
        "Validate resource selection against Cloudflare docs",
    ),
    (re.compile(r"shadcn|tailwind", re.IGNORECASE), "Validate against shadcn component docs"),
    (
        re.compile(r"security|secret|auth", re.IGNORECASE),
        "Review security implications carefully",
    ),
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class ValidationResult:
    valid: bool
    rejection_reason: str | None = None
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "valid": self.valid,
            "rejectionReason": self.rejection_reason,
            "warnings": self.warnings,
        }


class PatternTracker:
    """
    Main interface for pattern lifecycle operations.

    Every mutating operation loads the full state from the repository,
    applies its change and saves the state back.
    """

    def __init__(
        self,
        repository: PatternRepository,
        document: KnowledgeDocument | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        """
        Initialize the tracker.

        Args:
            repository: Counter store
            document: Markdown document receiving one entry per added pattern
            clock: Returns the current aware datetime (injectable for tests)
        """
        self.repository = repository
        self.document = document
        self.clock = clock
        self._subscribers: list[Callable[[PatternInverted], None]] = []

    def subscribe(self, callback: Callable[[PatternInverted], None]) -> None:
        """Register a callback for PatternInverted events."""
        self._subscribers.append(callback)

    # =========================================================================
    # Validation and creation
    # =========================================================================

    def validate(self, text: str, state: TrackingState | None = None) -> ValidationResult:
        """
        Check candidate pattern text against the rejection list and anti-patterns.

        Rejections are results, not exceptions. Warnings never reject.
        """
        for pattern, reason in REJECTION_PATTERNS:
            if pattern.search(text):
                return ValidationResult(valid=False, rejection_reason=reason)

        if state is None:
            state = self.repository.load()
        lowered = text.lower()
        for anti in state.anti_patterns:
            if anti.original_text and anti.original_text.lower() in lowered:
                return ValidationResult(
                    valid=False, rejection_reason=f"Known anti-pattern: {anti.reason}"
                )

        warnings = [note for pattern, note in REVIEW_WARNINGS if pattern.search(text)]
        return ValidationResult(valid=True, warnings=warnings)

    def add(self, text: str, category: str = "runtime", source: str = "feedback") -> dict:
        """
        Validate and record a new pattern.

        Returns:
            {success, action, patternId, maturity, warnings, ...} where action
            is "added", "exists" (identical text already recorded) or "rejected"
        """
        text = text.strip()
        if not text:
            return _rejected(text, "Pattern text is empty")

        base_id = slugify(text)
        if not base_id:
            return _rejected(text, "Pattern text has no letters or digits to derive an id")

        state = self.repository.load()
        validation = self.validate(text, state)
        if not validation.valid:
            logger.info(f"Rejected pattern: {validation.rejection_reason}")
            return _rejected(text, validation.rejection_reason)

        # Same slug, different text: suffix -2, -3, ...
        pattern_id = base_id
        suffix = 1
        while pattern_id in state.patterns:
            existing = state.patterns[pattern_id]
            if existing.text == text:
                return {
                    "success": True,
                    "action": "exists",
                    "patternId": pattern_id,
                    "maturity": existing.maturity.value,
                    "warnings": validation.warnings,
                }
            suffix += 1
            pattern_id = f"{base_id}-{suffix}"

        now = self.clock().isoformat()
        pattern = Pattern(
            id=pattern_id,
            text=text,
            category=category,
            source=source,
            created_at=now,
            last_validated_at=now,
        )
        state.patterns[pattern_id] = pattern
        self.repository.save(state)
        if self.document is not None:
            self.document.append(pattern)
        logger.info(f"Added pattern {pattern_id}")

        return {
            "success": True,
            "action": "added",
            "patternId": pattern_id,
            "category": CATEGORIES.get(category, category),
            "maturity": pattern.maturity.value,
            "warnings": validation.warnings,
        }

    # =========================================================================
    # Tracking
    # =========================================================================

    def track(self, pattern_id: str, outcome: Outcome | str, reason: str | None = None) -> dict:
        """
        Record one use of a pattern.

        Evaluates the inversion condition on every call; the first time it
        holds, an AntiPattern is appended and a PatternInverted event is sent
        to subscribers and returned under "inversion".

        Raises:
            PatternNotFoundError: If pattern_id is not in the store
            ValueError: If outcome is not success or failure
        """
        outcome = Outcome(outcome)
        state = self.repository.load()
        pattern = _get(state, pattern_id)
        now = self.clock()

        if outcome is Outcome.SUCCESS:
            pattern.success += 1
            pattern.last_validated_at = now.isoformat()
        else:
            pattern.record_failure(now.isoformat(), reason)

        event = None
        if should_invert(pattern.success, pattern.failure) and not pattern.inverted_to:
            event = self._invert(state, pattern, now)

        self.repository.save(state)

        if event is not None:
            logger.warning(
                f"Pattern {pattern_id} inverted to {event.anti_pattern_id}: {event.reason}"
            )
            for callback in self._subscribers:
                callback(event)

        stats = self._project(pattern, now)
        warning = None
        if should_invert(pattern.success, pattern.failure):
            warning = {
                "message": (
                    f"Pattern has {stats['failureRate']}% failure rate - "
                    "inverted to anti-pattern"
                ),
                "antiPatternId": pattern.inverted_to,
                "recentFailures": stats["recentFailures"],
            }

        return {
            "patternId": pattern_id,
            "result": outcome.value,
            "stats": stats,
            "antiPatternWarning": warning,
            "inversion": event.to_dict() if event else None,
        }

    def _invert(self, state: TrackingState, pattern: Pattern, now: datetime) -> PatternInverted:
        failure_rate = round(pattern.failure_rate * 100)
        reason = f"{failure_rate}% failure rate over {pattern.total} uses"
        anti = AntiPattern(
            id=f"anti-{pattern.id}",
            pattern_id=pattern.id,
            original_text=pattern.text,
            reason=reason,
            inverted_at=now.isoformat(),
        )
        state.anti_patterns.append(anti)
        pattern.inverted_to = anti.id
        return PatternInverted(
            pattern_id=pattern.id,
            anti_pattern_id=anti.id,
            reason=reason,
            failure_rate=failure_rate,
            total_uses=pattern.total,
        )

    # =========================================================================
    # Queries
    # =========================================================================

    def stats(self, pattern_id: str) -> dict:
        """
        Full computed projection of one pattern.

        Raises:
            PatternNotFoundError: If pattern_id is not in the store
        """
        state = self.repository.load()
        return self._project(_get(state, pattern_id), self.clock())

    def list_patterns(self) -> list[dict]:
        """All patterns in insertion order."""
        now = self.clock()
        state = self.repository.load()
        return [self._project(p, now) for p in state.patterns.values()]

    def anti_patterns(self) -> list[dict]:
        return [a.to_dict() for a in self.repository.load().anti_patterns]

    def list_stale(self) -> list[dict]:
        """Patterns with confidence below 50, least confident first."""
        now = self.clock()
        stale = []
        for projection in self.list_patterns():
            if projection["confidence"] >= STALE_CONFIDENCE:
                continue
            validated = parse_timestamp(projection["lastValidated"])
            projection["daysSinceValidation"] = (
                round((now - validated).total_seconds() / 86400) if validated else None
            )
            stale.append(projection)
        return sorted(stale, key=lambda p: p["confidence"])

    def list_failing(self) -> list[dict]:
        """Patterns meeting the inversion condition, highest failure rate first."""
        state = self.repository.load()
        now = self.clock()
        failing = []
        for pattern in state.patterns.values():
            if not should_invert(pattern.success, pattern.failure):
                continue
            projection = self._project(pattern, now)
            if pattern.inverted_to:
                projection["recommendation"] = f"INVERTED: replaced by {pattern.inverted_to}"
            elif pattern.failure_rate > 0.8:
                projection["recommendation"] = "INVERT: Convert to anti-pattern immediately"
            else:
                projection["recommendation"] = "REVIEW: Consider deprecation or refinement"
            failing.append(projection)
        return sorted(failing, key=lambda p: -p["failureRate"])

    def check(self) -> dict:
        """Compare document entries with counter store records."""
        stored = set(self.repository.load().patterns)
        documented = set(self.document.entry_ids()) if self.document else stored
        missing_from_document = sorted(stored - documented)
        missing_from_store = sorted(documented - stored)
        return {
            "consistent": not (missing_from_document or missing_from_store),
            "patterns": len(stored),
            "missingFromDocument": missing_from_document,
            "missingFromStore": missing_from_store,
        }

    def _project(self, pattern: Pattern, now: datetime) -> dict:
        confidence = calculate_confidence(parse_timestamp(pattern.last_validated_at), now)
        success_rate = round(pattern.success_rate * 100)
        return {
            "patternId": pattern.id,
            "text": pattern.text,
            "category": pattern.category,
            "success": pattern.success,
            "failure": pattern.failure,
            "totalUses": pattern.total,
            "successRate": success_rate,
            "failureRate": round(pattern.failure_rate * 100),
            "maturity": pattern.maturity.value,
            "confidence": confidence,
            "confidenceLabel": confidence_label(confidence),
            "lastValidated": pattern.last_validated_at,
            "created": pattern.created_at,
            "recentFailures": [f.to_dict() for f in pattern.recent_failures],
            "needsRefresh": confidence < STALE_CONFIDENCE,
            "atRiskOfDeprecation": success_rate < 60 and pattern.total >= 3,
            "invertedTo": pattern.inverted_to,
        }


def _get(state: TrackingState, pattern_id: str) -> Pattern:
    try:
        return state.patterns[pattern_id]
    except KeyError:
        raise PatternNotFoundError(f"Pattern '{pattern_id}' not found in tracking") from None


def _rejected(text: str, reason: str | None) -> dict:
    return {
        "success": False,
        "action": "rejected",
        "reason": reason,
        "pattern": text,
    }
