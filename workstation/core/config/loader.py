"""
Configuration loader: reads workstation.yml into a WorkstationConfig.

A config file is optional: without one, the built-in defaults describe
the standard contest workstation. With one, its sections override the
defaults field by field and unknown keys are rejected.
"""

from __future__ import annotations

import logging
from pathlib import Path

import yaml
from pydantic import ValidationError

from workstation.core.models.config import WorkstationConfig

logger = logging.getLogger(__name__)

CONFIG_FILE = "workstation.yml"

# Checked after the upward search
SYSTEM_CONFIG = Path("/etc/workstation") / CONFIG_FILE


class ConfigError(Exception):
    """Raised when workstation configuration is invalid or unreadable."""


def find_config_file(start_dir: Path | None = None) -> Path | None:
    """Search for workstation.yml from ``start_dir`` upward, then /etc.

    Returns:
        Path to the config file, or None if there is none.
    """
    start = (start_dir or Path.cwd()).resolve()
    candidates = [directory / CONFIG_FILE for directory in (start, *start.parents)]
    candidates.append(SYSTEM_CONFIG)
    return next((c for c in candidates if c.is_file()), None)


def load_config(path: Path | None = None) -> WorkstationConfig:
    """Load and validate workstation configuration.

    Args:
        path: Explicit config path. Must exist when given. If None, the
            file is searched for and the defaults are used when absent.

    Raises:
        ConfigError: If the file is missing (explicit path), unreadable,
            not YAML, or fails validation.
    """
    if path is None:
        path = find_config_file()
        if path is None:
            logger.debug("No %s found, using built-in defaults", CONFIG_FILE)
            return WorkstationConfig()
    elif not path.is_file():
        raise ConfigError(f"Config file not found: {path}")

    logger.debug("Loading workstation config from %s", path)

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    # The YAML may wrap everything under a "workstation" key or be flat
    if "workstation" in data and isinstance(data["workstation"], dict):
        data = data["workstation"]

    try:
        config = WorkstationConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid workstation configuration in {path}: {e}") from e

    logger.debug(
        "Loaded config: target %s, %d third-party repositories",
        config.target.label,
        len(config.packages.repositories),
    )
    return config
