"""Exception hierarchy for Edge Hard Tools.

Library code raises these; only the CLI turns them into messages and exit codes.
"""


class HardToolsError(Exception):
    """Base class for all errors raised by this package."""


class ConfigurationError(HardToolsError):
    """Raised when configuration is invalid or cannot be loaded."""


class ScanTargetError(HardToolsError):
    """Raised when a scan target does not exist."""


class UnknownRulesetError(HardToolsError):
    """Raised when a ruleset name is not registered."""


class PatternNotFoundError(HardToolsError):
    """Raised when a pattern id is not present in the store."""


class StoreConflictError(HardToolsError):
    """Raised when the store changed on disk since it was loaded."""
