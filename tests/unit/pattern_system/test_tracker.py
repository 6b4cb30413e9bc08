"""
Unit tests for PatternTracker.

Covers validation, id derivation, outcome tracking, inversion into
anti-patterns and the stale/failing queries.
"""

import pytest

from hard_tools.errors import PatternNotFoundError
from hard_tools.pattern_system import (
    InMemoryPatternRepository,
    Pattern,
    PatternTracker,
    TrackingState,
)

TEXT = "Cache responses in module scope"
PATTERN_ID = "cache-responses-in-module-scope"


def _track_sequence(tracker, pattern_id: str, sequence: str) -> list[dict]:
    outcomes = {"S": "success", "F": "failure"}
    return [tracker.track(pattern_id, outcomes[c], reason="broke") for c in sequence]


class TestValidate:
    """Tests for candidate text validation."""

    @pytest.mark.parametrize(
        "text,reason",
        [
            ("Use NEXT.JS for server rendering", "Use Tanstack Start instead"),
            ("Route requests with Express", "Use Hono instead"),
            ("Read config from process.env", "Use env parameter"),
            ("Load helpers with require('x')", "Use ES modules import"),
            ("Deploy static sites to Cloudflare Pages", "Use Workers with static assets"),
        ],
    )
    def test_rejection_list(self, tracker, text, reason):
        """Rejected technologies are results, not exceptions."""
        result = tracker.validate(text)

        assert result.valid is False
        assert result.rejection_reason == reason

    def test_review_warnings(self, tracker):
        """Resource and security topics get review warnings but stay valid."""
        result = tracker.validate("Store auth sessions in KV")

        assert result.valid is True
        assert result.warnings == [
            "Validate resource selection against Cloudflare docs",
            "Review security implications carefully",
        ]

    def test_plain_text_valid(self, tracker):
        """Unremarkable text passes with no warnings."""
        assert tracker.validate("Return JSON with c.json()").to_dict() == {
            "valid": True,
            "rejectionReason": None,
            "warnings": [],
        }


class TestAdd:
    """Tests for adding patterns."""

    def test_add_records_pattern(self, tracker, document):
        """A new pattern is stored and appended to the document."""
        result = tracker.add(TEXT, category="edge", source="code review")

        assert result["success"] is True
        assert result["action"] == "added"
        assert result["patternId"] == PATTERN_ID
        assert result["category"] == "Edge Optimization"
        assert result["maturity"] == "candidate"
        assert document.entry_ids() == [PATTERN_ID]

        stats = tracker.stats(PATTERN_ID)
        assert stats["confidence"] == 100
        assert stats["totalUses"] == 0

    def test_rejected_text_not_stored(self, tracker, repository):
        """Rejected text leaves the store untouched."""
        result = tracker.add("Use Next.js app router")

        assert result["action"] == "rejected"
        assert result["reason"] == "Use Tanstack Start instead"
        assert repository.load().patterns == {}

    @pytest.mark.parametrize("text", ["", "   ", "!!! ???"])
    def test_text_without_id_rejected(self, tracker, text):
        """Empty text or text with no usable id is rejected."""
        result = tracker.add(text)

        assert result["success"] is False
        assert result["action"] == "rejected"

    def test_identical_text_exists(self, tracker, document):
        """Adding the same text twice is idempotent."""
        tracker.add(TEXT)
        result = tracker.add(TEXT)

        assert result["action"] == "exists"
        assert result["patternId"] == PATTERN_ID
        assert document.entry_ids() == [PATTERN_ID]

    def test_slug_collisions_get_suffixes(self, tracker):
        """Different text with the same slug gets -2, -3."""
        ids = [tracker.add(t)["patternId"] for t in ("Use Hono!", "use hono", "USE  HONO")]

        assert ids == ["use-hono", "use-hono-2", "use-hono-3"]
        assert tracker.add("use hono")["action"] == "exists"

    def test_anti_pattern_overlap_rejected(self, tracker):
        """Text containing an inverted pattern is rejected."""
        tracker.add(TEXT)
        _track_sequence(tracker, PATTERN_ID, "FFFFF")

        result = tracker.add("Always cache responses in module scope for speed")

        assert result["action"] == "rejected"
        assert result["reason"] == "Known anti-pattern: 100% failure rate over 5 uses"


class TestTrack:
    """Tests for outcome tracking and inversion."""

    @pytest.mark.parametrize("sequence", ["FFFFS", "SFFFF", "FFSFF", "FSFFF"])
    def test_four_failures_one_success_inverts(self, tracker, sequence):
        """Any order of 4 failures and 1 success deprecates on the fifth call."""
        tracker.add(TEXT)

        results = _track_sequence(tracker, PATTERN_ID, sequence)

        assert [r["inversion"] is not None for r in results] == [False] * 4 + [True]
        final = results[-1]
        assert final["stats"]["maturity"] == "deprecated"
        assert final["stats"]["failureRate"] == 80
        assert final["inversion"]["antiPatternId"] == f"anti-{PATTERN_ID}"
        assert final["inversion"]["reason"] == "80% failure rate over 5 uses"
        assert final["antiPatternWarning"]["antiPatternId"] == f"anti-{PATTERN_ID}"

    def test_three_failures_never_invert(self, tracker):
        """Fewer than five uses never trigger inversion."""
        tracker.add(TEXT)

        results = _track_sequence(tracker, PATTERN_ID, "FFF")

        assert all(r["inversion"] is None for r in results)
        assert results[-1]["antiPatternWarning"] is None
        assert tracker.anti_patterns() == []

    def test_inversion_is_one_way(self, tracker):
        """Later successes neither restore maturity nor invert twice."""
        tracker.add(TEXT)
        _track_sequence(tracker, PATTERN_ID, "FFFFF")

        results = _track_sequence(tracker, PATTERN_ID, "S" * 20)

        assert all(r["inversion"] is None for r in results)
        assert results[-1]["stats"]["maturity"] == "deprecated"
        assert len(tracker.anti_patterns()) == 1

    def test_subscribers_notified(self, tracker):
        """PatternInverted is delivered once to each subscriber."""
        events = []
        tracker.subscribe(events.append)
        tracker.add(TEXT)

        _track_sequence(tracker, PATTERN_ID, "SFFFFF")

        assert len(events) == 1
        event = events[0]
        assert event.pattern_id == PATTERN_ID
        assert event.anti_pattern_id == f"anti-{PATTERN_ID}"
        assert event.failure_rate == 80
        assert event.total_uses == 5

    def test_success_refreshes_confidence(self, tracker, clock):
        """A success resets the decay clock; a failure does not."""
        tracker.add(TEXT)
        clock.advance(days=90)

        failed = tracker.track(PATTERN_ID, "failure")
        assert failed["stats"]["confidence"] == 50

        succeeded = tracker.track(PATTERN_ID, "success")
        assert succeeded["stats"]["confidence"] == 100

    def test_failure_reason_recorded(self, tracker, clock):
        """Failures keep their reason and timestamp."""
        tracker.add(TEXT)

        result = tracker.track(PATTERN_ID, "failure", reason="state lost between requests")

        assert result["stats"]["recentFailures"] == [
            {"date": clock.now.isoformat(), "reason": "state lost between requests"}
        ]

    def test_unknown_pattern(self, tracker):
        """Tracking an unknown id raises."""
        with pytest.raises(PatternNotFoundError):
            tracker.track("nope", "success")

    def test_invalid_outcome(self, tracker):
        """Only success and failure are accepted."""
        tracker.add(TEXT)

        with pytest.raises(ValueError):
            tracker.track(PATTERN_ID, "maybe")

    def test_at_risk_flag(self, tracker):
        """Three uses under 60% success is flagged at risk."""
        tracker.add(TEXT)

        result = _track_sequence(tracker, PATTERN_ID, "SFF")[-1]

        assert result["stats"]["atRiskOfDeprecation"] is True
        assert result["stats"]["maturity"] == "candidate"


class TestQueries:
    """Tests for stats, list, stale, failing and check."""

    def test_stats_unknown(self, tracker):
        """stats on an unknown id raises."""
        with pytest.raises(PatternNotFoundError):
            tracker.stats("missing")

    def test_list_in_insertion_order(self, tracker):
        """list_patterns keeps the order patterns were added."""
        tracker.add("Use Hono for routing")
        tracker.add("Bind assets with the ASSETS binding")

        assert [p["patternId"] for p in tracker.list_patterns()] == [
            "use-hono-for-routing",
            "bind-assets-with-the-assets-binding",
        ]

    def test_stale(self, tracker, clock):
        """Patterns under 50% confidence are stale, least confident first."""
        tracker.add("Use Hono for routing")
        clock.advance(days=200)
        tracker.add("Bind assets with the ASSETS binding")
        clock.advance(days=30)

        stale = tracker.list_stale()

        assert [p["patternId"] for p in stale] == ["use-hono-for-routing"]
        assert stale[0]["daysSinceValidation"] == 230
        assert stale[0]["needsRefresh"] is True
        assert stale[0]["confidenceLabel"] == "Stale"

    def test_failing_recommendations(self, clock, document):
        """Failing patterns are ordered by failure rate with a recommendation."""
        created = clock.now.isoformat()
        state = TrackingState(
            patterns={
                "review-me": Pattern(
                    id="review-me", text="review me", category="runtime",
                    created_at=created, success=3, failure=7,
                ),
                "healthy": Pattern(
                    id="healthy", text="healthy", category="runtime",
                    created_at=created, success=9, failure=1,
                ),
                "invert-me": Pattern(
                    id="invert-me", text="invert me", category="runtime",
                    created_at=created, success=0, failure=5,
                ),
            }
        )
        tracker = PatternTracker(InMemoryPatternRepository(state), document, clock=clock)

        failing = tracker.list_failing()

        assert [p["patternId"] for p in failing] == ["invert-me", "review-me"]
        assert failing[0]["recommendation"].startswith("INVERT:")
        assert failing[1]["recommendation"].startswith("REVIEW:")

    def test_failing_after_inversion(self, tracker):
        """Inverted patterns point at their anti-pattern."""
        tracker.add(TEXT)
        _track_sequence(tracker, PATTERN_ID, "FFFFF")

        failing = tracker.list_failing()

        assert failing[0]["recommendation"] == f"INVERTED: replaced by anti-{PATTERN_ID}"

    def test_check_consistent(self, tracker):
        """Document and store agree after normal adds."""
        tracker.add("Use Hono for routing")

        assert tracker.check() == {
            "consistent": True,
            "patterns": 1,
            "missingFromDocument": [],
            "missingFromStore": [],
        }

    def test_check_reports_drift(self, tracker, repository, clock):
        """A pattern added without the document shows up as drift."""
        tracker.add("Use Hono for routing")
        PatternTracker(repository, None, clock=clock).add("Bind assets with the ASSETS binding")

        result = tracker.check()

        assert result["consistent"] is False
        assert result["missingFromDocument"] == ["bind-assets-with-the-assets-binding"]
        assert result["missingFromStore"] == []
