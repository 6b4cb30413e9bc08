"""
Pattern System Store - Repositories for the counter store.

The whole TrackingState is loaded at the start of an operation and saved in
full at the end. Saves are optimistic: a repository refuses to overwrite a
state whose version moved on since it was loaded.
"""

import copy
import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path

from ..errors import StoreConflictError
from .models import TrackingState

logger = logging.getLogger(__name__)


class PatternRepository(ABC):
    """Load/save interface for pattern tracking state."""

    @abstractmethod
    def load(self) -> TrackingState:
        """Return the current state (an empty state if nothing is stored)."""

    @abstractmethod
    def save(self, state: TrackingState) -> None:
        """
        Persist `state` and bump its version.

        Raises:
            StoreConflictError: If the stored version differs from state.version
        """


class InMemoryPatternRepository(PatternRepository):
    """Repository kept in process memory (tests and embedding)."""

    def __init__(self, state: TrackingState | None = None):
        self._state = copy.deepcopy(state) if state else TrackingState()

    def load(self) -> TrackingState:
        return copy.deepcopy(self._state)

    def save(self, state: TrackingState) -> None:
        if state.version != self._state.version:
            raise StoreConflictError(
                f"Store changed since load (loaded v{state.version}, "
                f"stored v{self._state.version})"
            )
        state.version += 1
        self._state = copy.deepcopy(state)


class JsonPatternRepository(PatternRepository):
    """Repository backed by a JSON file (.pattern-tracking.json)."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def _read(self) -> dict | None:
        if not self.path.exists():
            return None
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Unreadable pattern store {self.path} (starting empty): {e}")
            return None
        if not isinstance(data, dict):
            logger.warning(f"Pattern store {self.path} is not an object (starting empty)")
            return None
        return data

    def load(self) -> TrackingState:
        data = self._read()
        if data is None:
            logger.debug(f"No pattern store at {self.path}, starting empty")
            return TrackingState()
        try:
            return TrackingState.from_dict(data)
        except (AttributeError, TypeError, ValueError) as e:
            logger.warning(f"Corrupt pattern store {self.path} (starting empty): {e}")
            # Keep the stored version so the next save replaces the corrupt file
            return TrackingState(version=_version_of(data))

    def _stored_version(self) -> int:
        data = self._read()
        return 0 if data is None else _version_of(data)

    def save(self, state: TrackingState) -> None:
        stored = self._stored_version()
        if stored != state.version:
            raise StoreConflictError(
                f"{self.path} changed since load (loaded v{state.version}, "
                f"stored v{stored})"
            )

        state.version += 1
        self.path.parent.mkdir(parents=True, exist_ok=True)

        # Write to a sibling temp file then swap it in
        fd, tmp_name = tempfile.mkstemp(
            dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(state.to_dict(), f, indent=2)
                f.write("\n")
            os.replace(tmp_name, self.path)
        except BaseException:
            state.version -= 1
            Path(tmp_name).unlink(missing_ok=True)
            raise
        logger.debug(f"Saved pattern store v{state.version} to {self.path}")


def _version_of(data: dict) -> int:
    try:
        return int(data.get("version", 0) or 0)
    except (TypeError, ValueError):
        return 0
