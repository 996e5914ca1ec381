"""
Exception hierarchy for the spread checker.

Provides specific exception types for the failure categories of a run:
configuration problems at startup, quote failures from the venues, and
persistence failures from the observation store.
"""

from typing import Any, Dict, Optional, Sequence


class SpreadArbitrageError(Exception):
    """Base exception for all spread checker errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.details = details or {}


class ConfigurationError(SpreadArbitrageError):
    """Raised when there are configuration-related issues."""

    pass


class ValidationError(SpreadArbitrageError):
    """Raised when inputs to an evaluation are inconsistent."""

    pass


class QuoteError(SpreadArbitrageError):
    """Raised when a venue cannot produce a usable quote."""

    def __init__(
        self,
        message: str,
        venue: Optional[str] = None,
        path: Optional[Sequence[str]] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details)
        self.venue = venue
        self.path = list(path) if path is not None else None


class StoreError(SpreadArbitrageError):
    """Raised when the observation store cannot complete a write."""

    def __init__(
        self,
        message: str,
        table: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details)
        self.table = table


class StoreUnavailable(StoreError):
    """The store could not be reached or the connection failed mid-write."""

    pass


class StoreWriteRejected(StoreError):
    """The store was reachable but refused the row."""

    pass
