"""State management errors."""


class StateError(Exception):
    """Base exception for operation log and pattern store failures."""


class MissingStateError(StateError):
    """Raised when a requested operation record does not exist."""
