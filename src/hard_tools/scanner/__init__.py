"""
Pattern Scanner - Deterministic line and structure checks for Workers projects.

Usage:
    from hard_tools.scanner import ScanEngine, ScanVerdict, get_ruleset

    report = ScanEngine().scan(Path("src"), get_ruleset("runtime"))
    if report.verdict is ScanVerdict.HAS_CRITICAL_FINDINGS:
        ...
"""

from .engine import DEFAULT_SKIP_DIRS, ScanEngine, ScanSettings
from .models import Rule, ScannedFile, ScanReport, ScanVerdict, Severity, Violation
from .rulesets import available_rulesets, get_ruleset

__all__ = [
    "DEFAULT_SKIP_DIRS",
    "Rule",
    "ScanEngine",
    "ScanReport",
    "ScanSettings",
    "ScanVerdict",
    "ScannedFile",
    "Severity",
    "Violation",
    "available_rulesets",
    "get_ruleset",
]
