"""Edge Hard Tools CLI entry point."""

import typer
from rich.console import Console

from . import __version__
from .patterns import app as patterns_app
from .scan_command import rulesets_command, scan_command

app = typer.Typer(
    name="hard-tools",
    help="Edge Hard Tools - deterministic validators for Cloudflare Workers projects",
    no_args_is_help=True,
)
console = Console()


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:
        console.print(f"hard-tools version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    version: bool = typer.Option(
        None,
        "--version",
        "-V",
        help="Show version and exit",
        callback=version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Log debug output to stderr",
    ),
    config_path: str | None = typer.Option(
        None,
        "--config",
        help="Path to hard-tools.yaml",
    ),
) -> None:
    """Edge Hard Tools - deterministic validators for Cloudflare Workers projects."""
    ctx.obj = {"verbose": verbose, "config_path": config_path}


# Register the scan commands
app.command(name="scan")(scan_command)
app.command(name="rulesets")(rulesets_command)

# Register the patterns subcommand group
app.add_typer(patterns_app, name="patterns")


if __name__ == "__main__":
    app()
