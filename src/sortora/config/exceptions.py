"""Custom exceptions for configuration management."""


class ConfigError(Exception):
    """Raised when configuration data or rule definitions cannot be processed."""
