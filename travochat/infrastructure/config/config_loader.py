"""
Configuration Loader - Bridge Between JSON Config and ChatSettings
==================================================================
Loads configuration from a JSON file and maps it onto ChatSettings.

String values of the form "${VAR}" are replaced with the value of the
environment variable VAR (empty string when unset), so deployment secrets
and URLs can stay out of the file.
"""

import json
import os
from pathlib import Path
from typing import Any, Optional

from .settings import ChatSettings

# Sections of the JSON file that map onto ChatSettings fields
_SECTIONS = ("api", "realtime", "storage", "logging")

DEFAULT_CONFIG_PATHS = (
    "config/travochat.json",
    "travochat.json",
    str(Path.home() / ".config" / "travochat" / "config.json"),
)


def resolve_env_vars(data: Any) -> Any:
    """Recursively replace "${VAR}" strings with environment values."""
    if isinstance(data, dict):
        return {k: resolve_env_vars(v) for k, v in data.items()}
    elif isinstance(data, list):
        return [resolve_env_vars(i) for i in data]
    elif isinstance(data, str) and data.startswith("${") and data.endswith("}"):
        var_name = data[2:-1]
        return os.getenv(var_name, "")
    return data


def load_settings_from_json(config_path: str) -> ChatSettings:
    """
    Load ChatSettings from a JSON configuration file.

    Unknown top-level sections are ignored. Values from the file take
    precedence over environment variables for the fields they set.

    Args:
        config_path: Path to the JSON file

    Returns:
        Configured ChatSettings instance

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the file is not valid JSON or fails validation
    """
    with open(config_path, 'r', encoding='utf-8') as f:
        config_data = json.load(f)

    if not isinstance(config_data, dict):
        raise ValueError(f"Configuration root must be a JSON object: {config_path}")

    resolved = resolve_env_vars(config_data)
    overrides = {section: resolved[section] for section in _SECTIONS if section in resolved}
    for key in ("app_name", "version"):
        if key in resolved:
            overrides[key] = resolved[key]

    return ChatSettings(**overrides)


def find_config_file(candidates=None) -> Optional[str]:
    """Return the first existing config file among the candidates, if any."""
    for config_path in candidates or DEFAULT_CONFIG_PATHS:
        if Path(config_path).exists():
            return config_path
    return None


def get_settings(config_path: Optional[str] = None) -> ChatSettings:
    """
    Resolve settings for the widget.

    An explicit path must exist. Without one, the default locations are
    searched and plain environment-derived settings are used when none exist.
    """
    if config_path:
        return load_settings_from_json(config_path)

    found = find_config_file()
    if found:
        return load_settings_from_json(found)
    return ChatSettings()
