"""
Exception hierarchy for nxclean.
"""

from typing import Optional


class NxCleanError(Exception):
    """Base class for all nxclean errors."""


class ConfigurationError(NxCleanError, ValueError):
    """Raised for invalid configuration detected before any network call."""


class RuleValidationError(ConfigurationError):
    """Raised when a cleanup rule set is invalid."""


class InvalidExpression(RuleValidationError):
    """Raised when an age expression cannot be resolved."""

    def __init__(self, expression: Optional[str]):
        self.expression = expression
        super().__init__(f"Invalid date format: '{expression}'")


class CatalogError(NxCleanError):
    """Raised when the repository manager cannot fulfil a request."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ReportWriteError(NxCleanError):
    """Raised when a report cannot be written."""
