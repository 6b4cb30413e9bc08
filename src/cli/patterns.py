"""Pattern CLI commands for tracking best-practice patterns."""

from typing import Any

import typer

from hard_tools.config import get_knowledge_path
from hard_tools.errors import PatternNotFoundError, StoreConflictError
from hard_tools.formatter import MACHINE, format_tracker_result
from hard_tools.pattern_system import (
    PATTERNS_FILENAME,
    TRACKING_FILENAME,
    JsonPatternRepository,
    KnowledgeDocument,
    Outcome,
    PatternTracker,
)

from .console import print_error, print_output, print_warning
from .settings import check_format, load_cli_config

app = typer.Typer(
    name="patterns",
    help="Record patterns and track how well they work",
    no_args_is_help=True,
)

FORMAT_OPTION = typer.Option(
    MACHINE,
    "--format",
    "-f",
    help="Output format: machine (JSON) or human",
)


def _tracker(ctx: typer.Context) -> PatternTracker:
    config = load_cli_config(ctx)
    knowledge = get_knowledge_path(config)
    return PatternTracker(
        JsonPatternRepository(knowledge / TRACKING_FILENAME),
        KnowledgeDocument(knowledge / PATTERNS_FILENAME),
    )


def _require(value: str | None, what: str) -> str:
    if not value or not value.strip():
        print_error(f"{what} required")
        raise typer.Exit(1)
    return value


def _emit(command: str, result: Any, output_format: str) -> None:
    print_output(format_tracker_result(command, result, output_format))


@app.command(name="add")
def add_pattern(
    ctx: typer.Context,
    text: str | None = typer.Argument(None, help="Pattern text"),
    category: str = typer.Option(
        "runtime",
        "--category",
        "-c",
        help="runtime, resource, binding, edge, security or ui",
    ),
    source: str = typer.Option("CLI input", "--source", "-s", help="Where the pattern came from"),
    output_format: str = FORMAT_OPTION,
) -> None:
    """Validate and record a new pattern.

    Exits with status 1 if the pattern is rejected.
    """
    text = _require(text, "Pattern text")
    check_format(output_format)
    tracker = _tracker(ctx)

    try:
        result = tracker.add(text, category=category, source=source)
    except StoreConflictError as e:
        print_error(str(e))
        raise typer.Exit(1)

    _emit("add", result, output_format)
    if not result["success"]:
        raise typer.Exit(1)


@app.command(name="validate")
def validate_pattern(
    ctx: typer.Context,
    text: str | None = typer.Argument(None, help="Pattern text to check"),
    output_format: str = FORMAT_OPTION,
) -> None:
    """Check a pattern without recording it.

    Exits with status 1 if the pattern would be rejected.
    """
    text = _require(text, "Pattern text")
    check_format(output_format)

    result = _tracker(ctx).validate(text)
    _emit("validate", result.to_dict(), output_format)
    if not result.valid:
        raise typer.Exit(1)


@app.command(name="track")
def track_pattern(
    ctx: typer.Context,
    pattern_id: str | None = typer.Argument(None, help="Pattern ID"),
    result: str | None = typer.Option(None, "--result", "-r", help="success or failure"),
    reason: str | None = typer.Option(None, "--reason", help="Why the pattern failed"),
    output_format: str = FORMAT_OPTION,
) -> None:
    """Record a success or failure for a pattern."""
    pattern_id = _require(pattern_id, "Pattern ID")
    result = _require(result, "--result success|failure")
    if result not in (o.value for o in Outcome):
        print_error('--result must be "success" or "failure"')
        raise typer.Exit(1)
    check_format(output_format)

    try:
        tracked = _tracker(ctx).track(pattern_id, result, reason)
    except (PatternNotFoundError, StoreConflictError) as e:
        print_error(str(e))
        raise typer.Exit(1)

    _emit("track", tracked, output_format)
    if tracked["inversion"]:
        inversion = tracked["inversion"]
        print_warning(
            f"{pattern_id} inverted to anti-pattern {inversion['antiPatternId']}: "
            f"{inversion['reason']}"
        )


@app.command(name="stats")
def pattern_stats(
    ctx: typer.Context,
    pattern_id: str | None = typer.Argument(None, help="Pattern ID"),
    output_format: str = FORMAT_OPTION,
) -> None:
    """Show computed statistics for one pattern."""
    pattern_id = _require(pattern_id, "Pattern ID")
    check_format(output_format)

    try:
        stats = _tracker(ctx).stats(pattern_id)
    except PatternNotFoundError as e:
        print_error(str(e))
        raise typer.Exit(1)

    _emit("stats", stats, output_format)


@app.command(name="list")
def list_patterns(ctx: typer.Context, output_format: str = FORMAT_OPTION) -> None:
    """List all patterns with maturity and confidence."""
    check_format(output_format)
    _emit("list", _tracker(ctx).list_patterns(), output_format)


@app.command(name="stale")
def stale_patterns(ctx: typer.Context, output_format: str = FORMAT_OPTION) -> None:
    """List patterns whose confidence decayed below 50%."""
    check_format(output_format)
    _emit("stale", _tracker(ctx).list_stale(), output_format)


@app.command(name="failing")
def failing_patterns(ctx: typer.Context, output_format: str = FORMAT_OPTION) -> None:
    """List patterns failing more than 60% of the time."""
    check_format(output_format)
    _emit("failing", _tracker(ctx).list_failing(), output_format)


@app.command(name="check")
def check_patterns(ctx: typer.Context, output_format: str = FORMAT_OPTION) -> None:
    """Check that patterns.md and the tracking store agree.

    Exits with status 1 if they disagree.
    """
    check_format(output_format)
    result = _tracker(ctx).check()
    _emit("check", result, output_format)
    if not result["consistent"]:
        raise typer.Exit(1)
