"""
Infrastructure exceptions for the Teleconsult backend.

Business rule violations live in ``teleconsult.domain.errors``; the classes
here are raised by adapters when the infrastructure itself misbehaves.
"""

from typing import Any, Dict, Optional


class TeleconsultException(Exception):
    """Base exception class for infrastructure failures."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)


class CacheError(TeleconsultException):
    """Raised when the key-value cache cannot be reached or decoded."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message, "CACHE_ERROR", details)
