"""
Configuration loader for loading and validating config.json.
"""

import json
import logging
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from .models import AppConfig


logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "config.json"


class ConfigurationError(Exception):
    """Raised when configuration is invalid or cannot be loaded."""
    pass


def _format_validation_error(error: ValidationError) -> str:
    errors = []
    for item in error.errors():
        field = " -> ".join(str(x) for x in item["loc"])
        errors.append(f"  - {field}: {item['msg']}")
    return "Configuration validation failed:\n" + "\n".join(errors)


def save_config(config: AppConfig, path: Optional[str] = None) -> None:
    """
    Save configuration to JSON file.

    Args:
        config: AppConfig instance to save.
        path: Path to config.json file. If None, uses "config.json" in current directory.

    Raises:
        ConfigurationError: If config file cannot be written.
    """
    config_path = Path(path or DEFAULT_CONFIG_FILE)

    try:
        with open(config_path, "w", encoding="utf-8") as f:
            json.dump(config.model_dump(), f, indent=2)
    except IOError as e:
        raise ConfigurationError(f"Failed to write {config_path}: {e}") from e

    logger.info(f"Configuration saved to {config_path}")


def load_config(path: Optional[str] = None) -> AppConfig:
    """
    Load configuration from JSON file.

    A missing file is created with default values.

    Args:
        path: Path to config.json file. If None, looks for config.json in current directory.

    Returns:
        Validated AppConfig instance.

    Raises:
        ConfigurationError: If config file is unreadable or invalid.
    """
    config_path = Path(path or DEFAULT_CONFIG_FILE)

    if not config_path.exists():
        logger.info(
            f"Config file not found: {config_path}. Creating with default configuration."
        )
        config = AppConfig()
        try:
            save_config(config, str(config_path))
        except ConfigurationError as e:
            logger.warning(f"Failed to create default config file: {e}")
        return config

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            config_dict = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Invalid JSON in {config_path}: {e}") from e
    except IOError as e:
        raise ConfigurationError(f"Failed to read {config_path}: {e}") from e

    try:
        config = AppConfig(**config_dict)
    except ValidationError as e:
        raise ConfigurationError(_format_validation_error(e)) from e

    logger.info(f"Configuration loaded from {config_path} ({len(config.devices)} devices)")
    return config
