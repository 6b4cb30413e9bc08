"""Console output utilities.

Reports go to stdout verbatim; status and error messages go to stderr so
machine-readable output can be piped.

Usage:
    from cli.console import console, print_output, print_error

    print_output(report_text)
    print_error("Path not found: src")
"""

from typing import Any

from rich.console import Console
from rich.markup import escape
from rich.table import Table

console = Console()
err_console = Console(stderr=True)


def print_output(text: str) -> None:
    """Print report text exactly as formatted (no markup, wrapping or highlighting)."""
    console.print(text, markup=False, highlight=False, emoji=False, soft_wrap=True)


def print_error(message: str) -> None:
    """Print an error message (red X)."""
    err_console.print(f"[red]✗ Error:[/red] {escape(message)}")


def print_warning(message: str) -> None:
    """Print a warning message (yellow warning sign)."""
    err_console.print(f"[yellow]⚠[/yellow] {escape(message)}")


def create_table(title: str = "") -> Table:
    return Table(title=title) if title else Table()


def print_table(table: Any) -> None:
    console.print(table)


__all__ = [
    "console",
    "err_console",
    "print_output",
    "print_error",
    "print_warning",
    "create_table",
    "print_table",
]
