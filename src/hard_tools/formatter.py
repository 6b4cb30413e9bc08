"""
Report Formatter for Edge Hard Tools.

Renders scan reports and pattern tracker results either as machine-readable
JSON or as human-readable text. Both output paths take the same structured
report; nothing is computed here.
"""

import json
from typing import Any

from .scanner.models import ScanReport, Severity

MACHINE = "machine"
HUMAN = "human"
FORMATS = (MACHINE, HUMAN)

SEVERITY_ICONS = {
    Severity.CRITICAL.value: "🔴",
    Severity.WARNING.value: "🟡",
    Severity.INFO.value: "🔵",
}

RULESET_TITLES = {
    "runtime": "Workers Runtime Validation Results",
    "kv": "KV Usage Validation Results",
    "secrets": "Secret Handling Validation Results",
    "d1": "D1 Migration Validation Results",
}


def format_machine(data: Any) -> str:
    """JSON with two-space indentation, keys in insertion order."""
    return json.dumps(data, indent=2, ensure_ascii=False)


def format_scan_report(report: ScanReport, output_format: str = MACHINE) -> str:
    if output_format == MACHINE:
        return format_machine(report.to_dict())
    return format_scan_report_human(report)


def format_scan_report_human(report: ScanReport) -> str:
    """
    Render a scan report as markdown-flavoured text.

    Args:
        report: Report produced by ScanEngine.scan()

    Returns:
        Text with a summary header, optional table list and one block per violation
    """
    title = RULESET_TITLES.get(report.ruleset or "", "Validation Results")
    parts = [f"# {title}\n"]
    parts.append(f"Scanned: {report.scanned}")
    parts.append(f"Files: {report.files_scanned}")
    parts.append(
        f"Issues: {report.total} ({report.critical} critical, "
        f"{report.warnings} warnings, {report.info} info)\n"
    )

    tables = report.details.get("tables") or []
    if tables:
        parts.append("## Tables Found")
        for table in tables:
            parts.append(f"  - {table['name']}: {', '.join(table['columns'])}")
        parts.append("")

    if not report.violations:
        parts.append("✅ No issues found")
        return "\n".join(parts)

    parts.append("## Issues\n")
    for violation in report.violations:
        icon = SEVERITY_ICONS.get(violation.severity.value, "•")
        location = violation.file if not violation.line else f"{violation.file}:{violation.line}"
        parts.append(f"{icon} {violation.message}")
        parts.append(f"   File: {location}")
        if violation.code:
            parts.append(f"   Code: {violation.code}")
        if violation.fix:
            parts.append(f"   Fix: {violation.fix}")
        if violation.context:
            parts.append(f"   Note: {violation.context}")
        parts.append("")

    return "\n".join(parts).rstrip() + "\n"


# =========================================================================
# Pattern tracker results
# =========================================================================


def format_tracker_result(command: str, result: Any, output_format: str = MACHINE) -> str:
    """Render the result of a `patterns` subcommand."""
    if output_format == MACHINE:
        return format_machine(result)

    renderer = _TRACKER_RENDERERS.get(command)
    if renderer is None:
        return format_machine(result)
    return renderer(result)


def _format_stats_lines(stats: dict) -> list[str]:
    lines = [
        f"Pattern: {stats['patternId']}",
        f"  Text: {stats['text']}",
        f"  Maturity: {stats['maturity']}",
        f"  Confidence: {stats['confidence']}% ({stats['confidenceLabel']})",
        f"  Uses: {stats['totalUses']} ({stats['success']} success, "
        f"{stats['failure']} failure, {stats['successRate']}% success rate)",
        f"  Last validated: {stats['lastValidated'] or 'never'}",
    ]
    if stats.get("invertedTo"):
        lines.append(f"  Inverted to: {stats['invertedTo']}")
    if stats.get("needsRefresh"):
        lines.append("  ⚠️  Needs refresh (confidence below 50%)")
    if stats.get("atRiskOfDeprecation"):
        lines.append("  ⚠️  At risk of deprecation")
    for failure in stats.get("recentFailures") or []:
        lines.append(f"  - {failure['date'][:10]}: {failure['reason']}")
    return lines


def _format_add(result: dict) -> str:
    if not result["success"]:
        return f"❌ Rejected: {result['reason']}"
    verb = "Already recorded" if result["action"] == "exists" else "Added"
    lines = [f"✅ {verb}: {result['patternId']} ({result['maturity']})"]
    for warning in result.get("warnings") or []:
        lines.append(f"   ⚠️  {warning}")
    return "\n".join(lines)


def _format_validate(result: dict) -> str:
    if not result["valid"]:
        return f"❌ Invalid: {result['rejectionReason']}"
    lines = ["✅ Valid"]
    for warning in result.get("warnings") or []:
        lines.append(f"   ⚠️  {warning}")
    return "\n".join(lines)


def _format_track(result: dict) -> str:
    lines = [f"Recorded {result['result']} for {result['patternId']}"]
    lines.extend(_format_stats_lines(result["stats"]))
    if result.get("inversion"):
        inversion = result["inversion"]
        lines.append(
            f"🔴 Inverted to anti-pattern {inversion['antiPatternId']}: {inversion['reason']}"
        )
    elif result.get("antiPatternWarning"):
        lines.append(f"⚠️  {result['antiPatternWarning']['message']}")
    return "\n".join(lines)


def _format_stats(result: dict) -> str:
    return "\n".join(_format_stats_lines(result))


def _format_list(result: list) -> str:
    if not result:
        return "No patterns found"
    lines = [f"{len(result)} pattern(s)"]
    for stats in result:
        line = (
            f"  {stats['patternId']}  {stats['maturity']}  "
            f"{stats['confidence']}% {stats['confidenceLabel']}"
        )
        if stats.get("recommendation"):
            line += f"  {stats['recommendation']}"
        elif stats.get("daysSinceValidation") is not None:
            line += f"  {stats['daysSinceValidation']} days since validation"
        lines.append(line)
    return "\n".join(lines)


def _format_check(result: dict) -> str:
    if result["consistent"]:
        return f"✅ Knowledge document and tracking store agree ({result['patterns']} patterns)"
    lines = ["❌ Knowledge document and tracking store disagree"]
    for pattern_id in result["missingFromDocument"]:
        lines.append(f"  - {pattern_id}: tracked but has no document entry")
    for pattern_id in result["missingFromStore"]:
        lines.append(f"  - {pattern_id}: documented but not tracked")
    return "\n".join(lines)


_TRACKER_RENDERERS = {
    "add": _format_add,
    "validate": _format_validate,
    "track": _format_track,
    "stats": _format_stats,
    "list": _format_list,
    "stale": _format_list,
    "failing": _format_list,
    "check": _format_check,
}
