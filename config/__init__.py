"""Configuration module for loading and managing application settings"""
from typing import Dict, Any
from .lib.load_settings_conf import (
    load_settings_conf, validate_settings, SettingsError, DEFAULTS
)

__all__ = ['settings_conf', 'load_settings_conf', 'validate_settings', 'SettingsError', 'DEFAULTS']

try:
    settings_conf: Dict[str, Any] = load_settings_conf()
except SettingsError as e:
    # Re-raise the error but provide more context
    raise SettingsError(
        f"Configuration Error\n"
        "=================\n\n"
        f"{str(e)}\n\n"
        "Please ensure settings.conf is properly configured.\n"
        "Run `python -m config` to print the effective settings and write an example file."
    )
