"""Unit tests for CLI console helpers.

Reports must reach stdout byte-for-byte; status messages go to stderr.
"""

from rich.console import Console
from rich.table import Table

from cli.console import (
    console,
    create_table,
    err_console,
    print_error,
    print_output,
    print_warning,
)


class TestConsoles:
    """Tests for the console objects."""

    def test_consoles_are_rich(self):
        """Both consoles are rich Console instances."""
        assert isinstance(console, Console)
        assert isinstance(err_console, Console)
        assert err_console.stderr is True

    def test_create_table(self):
        """create_table returns a rich Table with the given title."""
        table = create_table("Rulesets")

        assert isinstance(table, Table)
        assert table.title == "Rulesets"


class TestPrintOutput:
    """Tests for report output."""

    def test_json_printed_verbatim(self, capsys):
        """Brackets and emoji codes in reports are not interpreted."""
        text = '{\n  "code": "[bold]x[/bold] :smile:"\n}'

        print_output(text)

        captured = capsys.readouterr()
        assert captured.out == text + "\n"
        assert captured.err == ""

    def test_long_lines_not_wrapped(self, capsys):
        """Long report lines stay on one line."""
        line = "x" * 300

        print_output(line)

        assert capsys.readouterr().out == line + "\n"


class TestStatusMessages:
    """Tests for stderr messages."""

    def test_error_to_stderr(self, capsys):
        """Errors never pollute stdout."""
        print_error("Path not found")

        captured = capsys.readouterr()
        assert captured.out == ""
        assert "Error:" in captured.err
        assert "Path not found" in captured.err

    def test_markup_in_message_escaped(self, capsys):
        """User text with brackets is shown literally."""
        print_warning("value [vars] ignored")

        assert "[vars]" in capsys.readouterr().err
