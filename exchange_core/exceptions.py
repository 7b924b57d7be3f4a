"""
Custom exceptions for the exchange core.

Business-data absence (unknown currency, no rate path, degenerate quotes) is
reported through sentinels and status codes, never through these exceptions.
They cover configuration, store infrastructure and caller input problems.
"""

from typing import Any, Dict, Optional


class ExchangeCoreError(Exception):
    """Base exception for exchange core errors."""

    error_code: str = "INTERNAL_ERROR"

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging or JSON output."""
        return {
            "error": self.error_code,
            "message": self.message,
            "details": self.details,
        }


class ConfigError(ExchangeCoreError):
    """Raised when configuration values are missing or invalid."""

    error_code = "CONFIGURATION_ERROR"

    def __init__(self, message: str, key: Optional[str] = None):
        details = {"key": key} if key else {}
        super().__init__(message, details)


class RateStoreError(ExchangeCoreError):
    """Raised when the currency/rate store cannot be read."""

    error_code = "RATE_STORE_ERROR"

    def __init__(self, message: str, path: Optional[str] = None, row: Optional[int] = None):
        details: Dict[str, Any] = {}
        if path:
            details["path"] = path
        if row is not None:
            details["row"] = row
        super().__init__(message, details)


class ValidationError(ExchangeCoreError):
    """Raised when caller input validation fails."""

    error_code = "VALIDATION_ERROR"
