#!/usr/bin/env python3
"""
Configuration management for cellcoach.
Handles engine settings with local storage and environment overrides.
"""

import os
import json
from pathlib import Path
from typing import Dict, Any, Tuple


DEFAULTS: Dict[str, Any] = {
    'step_limit': 10000,
    'max_suggested_hints': 2,
    'output_preview_chars': 200,
    'log_level': 'WARNING',
}

ENV_OVERRIDES = {
    'step_limit': 'CELLCOACH_STEP_LIMIT',
    'log_level': 'CELLCOACH_LOG_LEVEL',
}


def get_config_dir() -> Path:
    """Get the cellcoach config directory (~/.cellcoach)"""
    config_dir = Path.home() / '.cellcoach'
    config_dir.mkdir(parents=True, exist_ok=True)
    return config_dir


def get_config_path() -> Path:
    """Get the config file path"""
    return get_config_dir() / 'config.json'


def load_config() -> Dict[str, Any]:
    """Load configuration from file"""
    config_path = get_config_path()
    if config_path.exists():
        try:
            with open(config_path, 'r') as f:
                return json.load(f)
        except (json.JSONDecodeError, IOError):
            return {}
    return {}


def save_config(config: Dict[str, Any]) -> None:
    """Save configuration to file"""
    config_path = get_config_path()
    with open(config_path, 'w') as f:
        json.dump(config, f, indent=2)
    # Secure the file (read/write only for owner)
    config_path.chmod(0o600)


def get_config_value(key: str, default: Any = None) -> Any:
    """Get a specific config value from the file"""
    config = load_config()
    return config.get(key, default)


def set_config_value(key: str, value: Any) -> None:
    """Set a specific config value"""
    config = load_config()
    config[key] = value
    save_config(config)


def coerce_value(key: str, value: Any) -> Any:
    """Convert value to the type of key's default (ints stay ints)"""
    default = DEFAULTS.get(key)
    if isinstance(default, int) and not isinstance(value, int):
        try:
            return int(value)
        except (TypeError, ValueError):
            raise ValueError(f"{key} must be an integer, got {value!r}")
    if isinstance(default, str):
        return str(value)
    return value


def get_setting(key: str) -> Any:
    """
    Resolve one setting.

    Priority:
    1. Environment variable (CELLCOACH_STEP_LIMIT, CELLCOACH_LOG_LEVEL)
    2. ~/.cellcoach/config.json
    3. Built-in default
    """
    env_name = ENV_OVERRIDES.get(key)
    if env_name and os.environ.get(env_name):
        return coerce_value(key, os.environ[env_name])

    config = load_config()
    if key in config:
        return coerce_value(key, config[key])
    return DEFAULTS.get(key)


def get_settings() -> Dict[str, Any]:
    """All known settings, resolved"""
    return {key: get_setting(key) for key in DEFAULTS}


def parse_assignment(text: str) -> Tuple[str, Any]:
    """Parse 'key=value' from the command line"""
    if '=' not in text:
        raise ValueError(f"Expected KEY=VALUE, got {text!r}")
    key, value = text.split('=', 1)
    key = key.strip()
    if key not in DEFAULTS:
        raise ValueError(f"Unknown setting {key!r}. Known: {', '.join(DEFAULTS)}")
    return key, coerce_value(key, value.strip())
