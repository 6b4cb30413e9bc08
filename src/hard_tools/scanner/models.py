"""
Scanner Models - Rules, violations and scan reports.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any

# Snippets longer than this are truncated in reports
MAX_SNIPPET_LENGTH = 200


class Severity(str, Enum):
    """Severity of a scan finding."""

    CRITICAL = "critical"  # Will break at runtime or leak data
    WARNING = "warning"  # Likely bug or operational risk
    INFO = "info"  # Better equivalent or convention not followed


class ScanVerdict(str, Enum):
    """Overall outcome of a scan."""

    CLEAN = "clean"
    HAS_WARNINGS = "has_warnings"
    HAS_CRITICAL_FINDINGS = "has_critical_findings"

    @property
    def exit_code(self) -> int:
        """Process exit code for this verdict (only critical findings fail)."""
        return 1 if self is ScanVerdict.HAS_CRITICAL_FINDINGS else 0


@dataclass(frozen=True)
class Rule:
    """A statically defined line rule.

    A line triggers the rule when `pattern` matches and `exclude` (if any)
    does not.
    """

    pattern: re.Pattern
    type: str
    severity: Severity
    message: str
    fix: str | None
    context: str | None = None
    exclude: re.Pattern | None = None

    def matches(self, line: str) -> bool:
        if not self.pattern.search(line):
            return False
        return not (self.exclude and self.exclude.search(line))


def rule(
    pattern: str,
    type: str,
    severity: Severity,
    message: str,
    fix: str | None,
    context: str | None = None,
    exclude: str | None = None,
    flags: int = 0,
) -> Rule:
    """Build a Rule from pattern source strings."""
    return Rule(
        pattern=re.compile(pattern, flags),
        type=type,
        severity=severity,
        message=message,
        fix=fix,
        context=context,
        exclude=re.compile(exclude, flags) if exclude else None,
    )


@dataclass(frozen=True)
class Violation:
    """A single finding produced by a scan."""

    file: str
    line: int  # 0 for file or tree level findings
    code: str
    type: str
    severity: Severity
    message: str
    fix: str | None
    context: str | None = None

    @classmethod
    def from_rule(cls, rule: Rule, file: str, line: int, code: str) -> "Violation":
        """Create a violation for a rule match."""
        return cls(
            file=file,
            line=line,
            code=snippet(code),
            type=rule.type,
            severity=rule.severity,
            message=rule.message,
            fix=rule.fix,
            context=rule.context,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to the report's violation shape."""
        data: dict[str, Any] = {
            "file": self.file,
            "line": self.line,
            "code": self.code,
            "type": self.type,
            "severity": self.severity.value,
            "message": self.message,
            "fix": self.fix,
        }
        if self.context:
            data["context"] = self.context
        return data


def snippet(text: str) -> str:
    """Trim a source line for display."""
    text = text.strip()
    if len(text) > MAX_SNIPPET_LENGTH:
        return text[:MAX_SNIPPET_LENGTH] + "..."
    return text


@dataclass(frozen=True)
class ScannedFile:
    """A file read by the engine, handed to rulesets."""

    path: Path
    display: str  # Path as shown in reports
    content: str

    @property
    def lines(self) -> list[str]:
        return self.content.split("\n")


@dataclass
class ScanReport:
    """Result of one scan invocation.

    Severity counts are derived from `violations` and cannot be set.
    """

    scanned: str
    files_scanned: int
    violations: list[Violation] = field(default_factory=list)
    timestamp: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )
    ruleset: str | None = None
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def total(self) -> int:
        return len(self.violations)

    @property
    def critical(self) -> int:
        return self._count(Severity.CRITICAL)

    @property
    def warnings(self) -> int:
        return self._count(Severity.WARNING)

    @property
    def info(self) -> int:
        return self._count(Severity.INFO)

    def _count(self, severity: Severity) -> int:
        return sum(1 for v in self.violations if v.severity is severity)

    @property
    def verdict(self) -> ScanVerdict:
        if self.critical:
            return ScanVerdict.HAS_CRITICAL_FINDINGS
        if self.warnings:
            return ScanVerdict.HAS_WARNINGS
        return ScanVerdict.CLEAN

    def to_dict(self) -> dict[str, Any]:
        """Convert to the machine-readable report shape."""
        data: dict[str, Any] = {
            "scanned": self.scanned,
            "timestamp": self.timestamp,
            "filesScanned": self.files_scanned,
            "total": self.total,
            "critical": self.critical,
            "warnings": self.warnings,
            "info": self.info,
            "violations": [v.to_dict() for v in self.violations],
        }
        data.update(self.details)
        return data

    def to_tasks(self) -> list[dict[str, Any]]:
        """Flatten violations for a downstream task tracker."""
        return [
            {
                "severity": v.severity.value,
                "message": v.message,
                "file": v.file,
                "line": v.line,
                "fix": v.fix,
            }
            for v in self.violations
        ]
