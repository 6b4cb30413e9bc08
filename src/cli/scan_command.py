"""Scan commands: run a ruleset over a source tree."""

from pathlib import Path

import typer

from hard_tools.config import get_scan_settings
from hard_tools.errors import ConfigurationError, ScanTargetError, UnknownRulesetError
from hard_tools.formatter import MACHINE, format_scan_report
from hard_tools.scanner import ScanEngine, available_rulesets, get_ruleset
from hard_tools.scanner.rulesets import RULESETS

from .console import create_table, print_error, print_output, print_table
from .settings import check_format, load_cli_config


def scan_command(
    ctx: typer.Context,
    ruleset_name: str | None = typer.Argument(
        None,
        metavar="RULESET",
        help="Ruleset to apply: runtime, kv, secrets or d1",
    ),
    path: Path | None = typer.Argument(
        None,
        help="File or directory to scan (default: src, or migrations for d1)",
    ),
    output_format: str = typer.Option(
        MACHINE,
        "--format",
        "-f",
        help="Output format: machine (JSON) or human",
    ),
    workers: int | None = typer.Option(
        None,
        "--workers",
        "-w",
        help="Threads used to read and check files",
    ),
    config_path: str | None = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to hard-tools.yaml",
    ),
    no_config_check: bool = typer.Option(
        False,
        "--no-config-check",
        help="secrets: skip the wrangler.toml check",
    ),
) -> None:
    """Scan a file or directory with one ruleset.

    Exits with status 1 when critical findings exist.
    """
    if not ruleset_name:
        print_error(f"Missing ruleset. Available: {', '.join(available_rulesets())}")
        raise typer.Exit(1)
    check_format(output_format)

    config = load_cli_config(ctx, config_path)

    options = {}
    if no_config_check and ruleset_name == "secrets":
        options["check_config"] = False

    try:
        ruleset = get_ruleset(ruleset_name, **options)
        settings = get_scan_settings(config, workers=workers)
        target = path if path is not None else Path(ruleset.default_target)
        report = ScanEngine(settings).scan(target, ruleset)
    except (ConfigurationError, ScanTargetError, UnknownRulesetError) as e:
        print_error(str(e))
        raise typer.Exit(1)

    print_output(format_scan_report(report, output_format))
    raise typer.Exit(report.verdict.exit_code)


def rulesets_command() -> None:
    """List available rulesets."""
    table = create_table("Rulesets")
    table.add_column("Name", style="cyan")
    table.add_column("Checks", style="green")
    table.add_column("Default target", style="dim")

    for name, ruleset_class in RULESETS.items():
        table.add_row(name, ruleset_class.description, ruleset_class.default_target)

    print_table(table)
