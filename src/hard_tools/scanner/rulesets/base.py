"""
Ruleset base class shared by all domain rulesets.
"""

from pathlib import Path

from ..models import Rule, ScannedFile, Violation


class Ruleset:
    """A named set of line rules plus optional tree-level checks.

    Subclasses set the class attributes and override `check_tree` (and
    occasionally `check_file`) for checks that are not line-oriented.
    """

    name: str = ""
    description: str = ""
    default_target: str = "src"
    extensions: tuple[str, ...] = ()
    skip_files: frozenset[str] = frozenset()
    rules: tuple[Rule, ...] = ()

    def accepts(self, path: Path) -> bool:
        """Whether the engine should read this file."""
        if path.name in self.skip_files:
            return False
        return path.suffix in self.extensions

    def prefilter(self, content: str) -> bool:
        """Cheap whole-file test; False means no rule can match."""
        return True

    def skip_line(self, line: str) -> bool:
        return False

    def check_file(self, scanned: ScannedFile) -> list[Violation]:
        """Line-oriented mode: evaluate every rule on every line."""
        if not self.prefilter(scanned.content):
            return []

        violations = []
        for index, line in enumerate(scanned.lines, start=1):
            if self.skip_line(line):
                continue
            for rule in self.rules:
                if rule.matches(line):
                    violations.append(
                        Violation.from_rule(rule, scanned.display, index, line)
                    )
        return violations

    def check_tree(
        self, target: Path, files: list[ScannedFile], settings
    ) -> list[Violation]:
        """Tree-level checks run once after every file has been checked."""
        return []

    def details(self) -> dict:
        """Ruleset-specific extras merged into the report."""
        return {}
