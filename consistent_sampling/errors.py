"""Consistent sampling error hierarchy and exceptions."""

from __future__ import annotations


class ConsistentSamplingError(Exception):
    """Base exception for all consistent sampling errors."""

    def __init__(self, message: str, details: dict = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message


class ConfigError(ConsistentSamplingError):
    """Raised when configuration is invalid or conflicting."""
    pass


class ValidationError(ConsistentSamplingError, ValueError):
    """Raised when a call violates a precondition (programming error)."""
    pass


class InvariantViolationError(ConsistentSamplingError):
    """Raised when an internal data structure invariant does not hold."""
    pass
