"""Unit tests for pattern lifecycle functions and records."""

from datetime import datetime, timedelta, timezone

import pytest

from hard_tools.pattern_system import (
    Maturity,
    Pattern,
    TrackingState,
    calculate_confidence,
    calculate_maturity,
    confidence_label,
    should_invert,
    slugify,
)
from hard_tools.pattern_system.models import parse_timestamp

NOW = datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)


class TestMaturity:
    """Tests for calculate_maturity."""

    @pytest.mark.parametrize(
        "success,failure,expected",
        [
            (0, 0, Maturity.CANDIDATE),
            (4, 0, Maturity.CANDIDATE),
            (0, 4, Maturity.CANDIDATE),
            (4, 1, Maturity.ESTABLISHED),
            (3, 2, Maturity.CANDIDATE),
            (2, 3, Maturity.DEPRECATED),
            (17, 3, Maturity.PROVEN),
            (19, 0, Maturity.ESTABLISHED),
            (16, 4, Maturity.ESTABLISHED),
            (10, 11, Maturity.DEPRECATED),
        ],
    )
    def test_thresholds(self, success, failure, expected):
        """Maturity follows the use-count and success-rate thresholds."""
        assert calculate_maturity(success, failure) is expected

    def test_proven_can_drop_to_deprecated(self):
        """A failure burst demotes straight past established."""
        assert calculate_maturity(20, 0) is Maturity.PROVEN
        assert calculate_maturity(20, 21) is Maturity.DEPRECATED

    def test_inverted_pattern_stays_deprecated(self):
        """Once inverted, later successes never restore maturity."""
        pattern = Pattern(
            id="p", text="p", category="runtime", created_at="", success=50, failure=6,
            inverted_to="anti-p",
        )

        assert pattern.maturity is Maturity.DEPRECATED


class TestConfidence:
    """Tests for decay and labels."""

    def test_never_validated(self):
        """No validation timestamp means zero confidence."""
        assert calculate_confidence(None, NOW) == 0

    @pytest.mark.parametrize(
        "days,expected", [(0, 100), (90, 50), (180, 25), (30, 79), (365, 6)]
    )
    def test_half_life(self, days, expected):
        """Confidence halves every 90 days."""
        assert calculate_confidence(NOW - timedelta(days=days), NOW) == expected

    def test_monotonic_decay(self):
        """Confidence never increases as time passes."""
        validated = NOW - timedelta(days=1)
        values = [calculate_confidence(validated, NOW + timedelta(days=d)) for d in range(0, 400, 20)]

        assert values == sorted(values, reverse=True)

    def test_future_timestamp_clamped(self):
        """Clock skew never produces more than 100%."""
        assert calculate_confidence(NOW + timedelta(days=3), NOW) == 100

    @pytest.mark.parametrize(
        "confidence,label",
        [(100, "High"), (80, "High"), (79, "Medium"), (50, "Medium"), (49, "Low"), (25, "Low"), (24, "Stale"), (0, "Stale")],
    )
    def test_labels(self, confidence, label):
        """Labels use the 80/50/25 boundaries."""
        assert confidence_label(confidence) == label


class TestInversion:
    """Tests for should_invert."""

    @pytest.mark.parametrize(
        "success,failure,expected",
        [
            (0, 3, False),
            (0, 4, False),
            (0, 5, True),
            (1, 4, True),
            (2, 3, False),
            (4, 6, False),
            (3, 7, True),
            (100, 0, False),
        ],
    )
    def test_condition(self, success, failure, expected):
        """Needs five uses and a failure rate strictly above 60%."""
        assert should_invert(success, failure) is expected


class TestSlugify:
    """Tests for pattern id derivation."""

    def test_basic(self):
        """Non-alphanumeric runs collapse to single dashes."""
        assert slugify("Use Durable Objects for rate limiting!") == "use-durable-objects-for-rate-limiting"

    def test_truncated_without_trailing_dash(self):
        """Ids are capped at 50 characters."""
        slug = slugify("Always set expirationTtl on every KV put call that stores sessions or cache entries")

        assert len(slug) <= 50
        assert not slug.endswith("-")

    def test_punctuation_only(self):
        """Text with no letters or digits has an empty slug."""
        assert slugify("!!! ???") == ""


class TestRecords:
    """Tests for Pattern serialization and timestamps."""

    def test_parse_timestamp(self):
        """'Z' suffixes and naive values parse as UTC; garbage is None."""
        assert parse_timestamp("2026-01-15T12:00:00Z") == NOW
        assert parse_timestamp("2026-01-15T12:00:00") == NOW
        assert parse_timestamp("yesterday") is None
        assert parse_timestamp(None) is None

    def test_recent_failures_bounded(self):
        """Only the five most recent failures are kept."""
        pattern = Pattern(id="p", text="p", category="runtime", created_at="")

        for i in range(8):
            pattern.record_failure(f"2026-01-0{i + 1}", f"reason {i}")

        assert pattern.failure == 8
        assert [f.reason for f in pattern.recent_failures] == [f"reason {i}" for i in range(3, 8)]

    def test_missing_reason(self):
        """Failures without a reason get a placeholder."""
        pattern = Pattern(id="p", text="p", category="runtime", created_at="")
        pattern.record_failure("2026-01-01", None)

        assert pattern.recent_failures[0].reason == "No reason provided"

    def test_store_record_keys(self):
        """Store records use camelCase counter keys."""
        pattern = Pattern(
            id="p", text="Use Hono", category="runtime", created_at="2026-01-01T00:00:00+00:00",
            success=3,
        )

        record = pattern.to_dict()

        assert record["successCount"] == 3
        assert record["failureCount"] == 0
        assert record["maturity"] == "candidate"
        assert "id" not in record

    def test_legacy_record_keys(self):
        """Short legacy key names still load."""
        pattern = Pattern.from_dict(
            "use-hono",
            {"success": 4, "failure": 1, "created": "2025-12-01", "lastValidated": "2026-01-01"},
        )

        assert (pattern.success, pattern.failure) == (4, 1)
        assert pattern.created_at == "2025-12-01"
        assert pattern.last_validated_at == "2026-01-01"
        assert pattern.text == "use-hono"

    def test_state_from_dict(self):
        """Full state loads patterns, anti-patterns and version."""
        state = TrackingState.from_dict(
            {
                "version": 3,
                "patterns": {"a": {"text": "A", "successCount": 1}},
                "antiPatterns": [{"id": "anti-b", "originalPattern": "B", "reason": "r"}],
            }
        )

        assert state.version == 3
        assert state.patterns["a"].success == 1
        assert state.anti_patterns[0].pattern_id == "b"
