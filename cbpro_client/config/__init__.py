"""Configuration loading and validation."""

from .manager import ConfigManager, ConfigValidationError, DEFAULT_CONFIG

__all__ = [
    'ConfigManager',
    'ConfigValidationError',
    'DEFAULT_CONFIG',
]
