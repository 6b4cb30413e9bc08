"""Edge Hard Tools Configuration

Configuration loading with environment variable support and sensible defaults.

Environment Variables:
    HARD_TOOLS_CONFIG_PATH: Path to config file (default: ./hard-tools.yaml if present)
    HARD_TOOLS_KNOWLEDGE_PATH: Override knowledge base path from config

Configuration Schema:
    scan:
        skip_dirs: list - Directory names never descended into
        max_file_size_bytes: int - Larger files are skipped (default: 1000000)
        workers: int - Threads used to read and check files (default: 1)
        migration_file_threshold: int - d1 migration count warning (default: 20)
    knowledge:
        path: str - Directory holding patterns.md and .pattern-tracking.json
    logging:
        level: str - Logging level (default: "WARNING")
"""

import copy
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .errors import ConfigurationError
from .scanner.engine import DEFAULT_SKIP_DIRS, ScanSettings

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "hard-tools.yaml"

# Default configuration values
DEFAULT_CONFIG: Dict[str, Any] = {
    "scan": {
        "skip_dirs": list(DEFAULT_SKIP_DIRS),
        "max_file_size_bytes": 1_000_000,
        "workers": 1,
        "migration_file_threshold": 20,
    },
    "knowledge": {
        "path": None,  # Use ./knowledge relative to the working directory
    },
    "logging": {
        "level": "WARNING",
    },
}


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """
    Deep merge override dict into base dict.

    Args:
        base: Base dictionary (defaults)
        override: Override dictionary (user config)

    Returns:
        Merged dictionary with override values taking precedence
    """
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _resolve_path(path: Optional[str], base_dir: Path) -> Optional[Path]:
    """Resolve a path, making relative paths absolute from base_dir."""
    if path is None:
        return None

    path_obj = Path(path)
    if path_obj.is_absolute():
        return path_obj
    return (base_dir / path_obj).resolve()


def _read_yaml(path: Path) -> Dict[str, Any]:
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise yaml.YAMLError(f"top level must be a mapping, got {type(data).__name__}")
    return data


def load_config(
    config_path: Optional[str] = None, base_dir: Optional[Path] = None
) -> Dict[str, Any]:
    """
    Load configuration from YAML file with environment variable overrides.

    Configuration Loading Order (later overrides earlier):
    1. Default values (DEFAULT_CONFIG)
    2. Config file (config_path, else HARD_TOOLS_CONFIG_PATH, else ./hard-tools.yaml)
    3. Environment variable overrides (HARD_TOOLS_KNOWLEDGE_PATH)

    Args:
        config_path: Explicit config file path (overrides HARD_TOOLS_CONFIG_PATH)
        base_dir: Directory for relative path resolution (default: cwd)

    Returns:
        Merged configuration dictionary

    Raises:
        ConfigurationError: If an explicit config file is missing or invalid
    """
    if base_dir is None:
        base_dir = Path.cwd()

    config = copy.deepcopy(DEFAULT_CONFIG)

    file_path = config_path or os.environ.get("HARD_TOOLS_CONFIG_PATH")

    if file_path:
        # Explicit config path - must exist and be valid
        resolved_path = _resolve_path(file_path, base_dir)
        if not resolved_path.exists():
            raise ConfigurationError(f"Config file not found: {file_path}")
        try:
            config = _deep_merge(config, _read_yaml(resolved_path))
            logger.info(f"Loaded configuration from: {resolved_path}")
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in config file: {e}") from e
        except OSError as e:
            raise ConfigurationError(f"Cannot read config file: {e}") from e
    else:
        default_config_path = base_dir / CONFIG_FILENAME
        if default_config_path.exists():
            try:
                config = _deep_merge(config, _read_yaml(default_config_path))
                logger.info(f"Loaded configuration from: {default_config_path}")
            except yaml.YAMLError as e:
                logger.warning(f"Invalid YAML in default config (ignoring): {e}")
            except OSError as e:
                logger.warning(f"Cannot read default config (ignoring): {e}")
        else:
            logger.debug("No config file found, using defaults")

    knowledge_path_override = os.environ.get("HARD_TOOLS_KNOWLEDGE_PATH")
    if knowledge_path_override:
        config.setdefault("knowledge", {})["path"] = knowledge_path_override
        logger.info(f"Knowledge path override from env: {knowledge_path_override}")

    if config.get("knowledge", {}).get("path"):
        resolved = _resolve_path(str(config["knowledge"]["path"]), base_dir)
        config["knowledge"]["path"] = str(resolved)

    return config


def get_knowledge_path(config: Dict[str, Any], base_dir: Optional[Path] = None) -> Path:
    """
    Get knowledge base path from config or default.

    Args:
        config: Configuration dictionary from load_config()
        base_dir: Directory for default path calculation (default: cwd)

    Returns:
        Directory holding patterns.md and .pattern-tracking.json
    """
    path_str = config.get("knowledge", {}).get("path")
    if path_str:
        return Path(path_str)
    return ((base_dir or Path.cwd()) / "knowledge").resolve()


def get_scan_settings(config: Dict[str, Any], workers: Optional[int] = None) -> ScanSettings:
    """
    Build engine settings from the `scan` section.

    Args:
        config: Configuration dictionary from load_config()
        workers: Command-line override for scan.workers

    Raises:
        ConfigurationError: If a numeric setting is not a positive integer
    """
    scan = config.get("scan", {})

    def positive_int(key: str, value: Any) -> int:
        if isinstance(value, bool) or not isinstance(value, int) or value < 1:
            raise ConfigurationError(f"scan.{key} must be a positive integer, got {value!r}")
        return value

    skip_dirs = scan.get("skip_dirs", DEFAULT_SKIP_DIRS)
    if not isinstance(skip_dirs, (list, tuple)):
        raise ConfigurationError("scan.skip_dirs must be a list of directory names")

    return ScanSettings(
        skip_dirs=tuple(str(d) for d in skip_dirs),
        max_file_size_bytes=positive_int(
            "max_file_size_bytes", scan.get("max_file_size_bytes", 1_000_000)
        ),
        workers=positive_int("workers", workers if workers is not None else scan.get("workers", 1)),
        migration_file_threshold=positive_int(
            "migration_file_threshold", scan.get("migration_file_threshold", 20)
        ),
    )


def get_log_level(config: Dict[str, Any]) -> int:
    """Logging level from the `logging` section (unknown names fall back to WARNING)."""
    name = str(config.get("logging", {}).get("level", "WARNING")).upper()
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.WARNING
