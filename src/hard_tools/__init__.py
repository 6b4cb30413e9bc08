"""Edge Hard Tools - deterministic validators and pattern lifecycle tracking.

Two independent subsystems share this package:

- scanner: walks a source tree and flags constructs that break or misbehave
  on the edge runtime (runtime APIs, KV usage, secrets, D1 migrations)
- pattern_system: records best-practice patterns, tracks their outcomes and
  inverts chronically failing ones into anti-patterns

Usage:
    from hard_tools.scanner import ScanEngine, ScanVerdict, get_ruleset

    report = ScanEngine().scan(Path("src"), get_ruleset("runtime"))
    if report.verdict is ScanVerdict.HAS_CRITICAL_FINDINGS:
        ...

    from hard_tools.pattern_system import PatternTracker, JsonPatternRepository

    tracker = PatternTracker(JsonPatternRepository(path))
    tracker.add("Use Durable Objects for rate limiting", category="resource")
"""

__version__ = "0.3.0"
