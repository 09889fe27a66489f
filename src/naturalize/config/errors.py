"""Configuration error definitions."""

from __future__ import annotations


class ConfigurationError(RuntimeError):
    """Raised when configuration values are invalid."""


class MissingConfigurationError(ConfigurationError):
    """A required setting (API key, webhook URL) is absent or blank."""


class InvalidSettingError(ConfigurationError):
    """A numeric pipeline setting could not be parsed or is out of range."""
