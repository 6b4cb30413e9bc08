"""
Scanner Engine - Generic rule-matching loop over a file tree.

Walks a file or directory, reads every file the ruleset accepts, runs the
ruleset's line rules on each file and its tree-level checks once at the end.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path

from ..errors import ScanTargetError
from .models import ScannedFile, ScanReport, Violation
from .rulesets.base import Ruleset

logger = logging.getLogger(__name__)

DEFAULT_SKIP_DIRS = (
    "node_modules",
    ".git",
    "dist",
    "build",
    ".wrangler",
    "coverage",
    "__pycache__",
)


@dataclass(frozen=True)
class ScanSettings:
    """Engine settings (see `hard_tools.config.get_scan_settings`)."""

    skip_dirs: tuple[str, ...] = DEFAULT_SKIP_DIRS
    max_file_size_bytes: int = 1_000_000
    workers: int = 1
    migration_file_threshold: int = 20


class ScanEngine:
    """Runs a ruleset over a target path and builds a ScanReport."""

    def __init__(self, settings: ScanSettings | None = None):
        self.settings = settings or ScanSettings()

    def scan(self, target: Path, ruleset: Ruleset) -> ScanReport:
        """
        Scan a file or directory with a ruleset.

        Args:
            target: File or directory to scan
            ruleset: Ruleset to apply

        Returns:
            ScanReport with every violation found, in walk order

        Raises:
            ScanTargetError: If target does not exist
        """
        target = Path(target)
        if not target.exists():
            raise ScanTargetError(f"Path not found: {target}")

        paths = list(self.iter_files(target, ruleset))
        logger.debug(f"{ruleset.name}: {len(paths)} candidate files under {target}")

        results = self._map(lambda path: self._scan_one(path, ruleset), paths)

        scanned: list[ScannedFile] = []
        violations: list[Violation] = []
        for result in results:
            if result is None:
                continue
            scanned_file, file_violations = result
            scanned.append(scanned_file)
            violations.extend(file_violations)

        violations.extend(ruleset.check_tree(target, scanned, self.settings))

        return ScanReport(
            scanned=str(target),
            files_scanned=len(scanned),
            violations=violations,
            ruleset=ruleset.name,
            details=ruleset.details(),
        )

    def iter_files(self, target: Path, ruleset: Ruleset):
        """Yield eligible files depth-first in sorted order."""
        if target.is_file():
            if ruleset.accepts(target):
                yield target
            return

        try:
            entries = sorted(target.iterdir(), key=lambda p: p.name)
        except OSError as e:
            logger.warning(f"Cannot list directory {target}: {e}")
            return

        for entry in entries:
            if entry.is_dir():
                # Symlinked directories are not followed; they can loop
                if entry.is_symlink() or entry.name.startswith("."):
                    continue
                if entry.name in self.settings.skip_dirs:
                    continue
                yield from self.iter_files(entry, ruleset)
            elif entry.is_file() and ruleset.accepts(entry):
                yield entry

    def _map(self, func, paths: list[Path]) -> list:
        if self.settings.workers <= 1 or len(paths) < 2:
            return [func(path) for path in paths]
        # Executor.map preserves input order, so reports stay deterministic
        with ThreadPoolExecutor(max_workers=self.settings.workers) as executor:
            return list(executor.map(func, paths))

    def _scan_one(
        self, path: Path, ruleset: Ruleset
    ) -> tuple[ScannedFile, list[Violation]] | None:
        try:
            if path.stat().st_size > self.settings.max_file_size_bytes:
                logger.info(f"Skipping oversized file: {path}")
                return None
            content = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            logger.warning(f"Skipping unreadable file {path}: {e}")
            return None

        scanned_file = ScannedFile(path=path, display=str(path), content=content)
        return scanned_file, ruleset.check_file(scanned_file)
