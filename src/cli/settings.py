"""Configuration and logging setup shared by CLI commands."""

import logging
import sys

import typer

from hard_tools.config import get_log_level, load_config
from hard_tools.errors import ConfigurationError
from hard_tools.formatter import FORMATS

from .console import print_error

LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"


def load_cli_config(ctx: typer.Context, config_path: str | None = None) -> dict:
    """
    Load configuration and configure logging for a command.

    Uses the command's --config if given, else the global --config. Exits
    with status 1 on configuration errors.
    """
    options = ctx.find_root().obj or {}
    try:
        config = load_config(config_path or options.get("config_path"))
    except ConfigurationError as e:
        print_error(str(e))
        raise typer.Exit(1)

    level = logging.DEBUG if options.get("verbose") else get_log_level(config)
    logging.basicConfig(level=level, stream=sys.stderr, format=LOG_FORMAT)
    return config


def check_format(output_format: str) -> str:
    """Validate a --format value, exiting with status 1 if unknown."""
    if output_format not in FORMATS:
        print_error(f"Unknown format '{output_format}'. Use one of: {', '.join(FORMATS)}")
        raise typer.Exit(1)
    return output_format
