"""Custom exceptions for AquaWatch system."""

from typing import Any, Dict, Optional


class AquaWatchError(Exception):
    """Base exception for all AquaWatch errors."""

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.cause = cause


class InvalidInputError(AquaWatchError):
    """Raised when numeric input is malformed (mismatched lengths, non-finite values)."""
    pass


class ConfigurationError(AquaWatchError):
    """Raised when configuration is invalid or missing."""
    pass


class StorageError(AquaWatchError):
    """Raised when data storage operations fail."""
    pass


class MeasurementFetchError(StorageError):
    """Raised when the measurement store cannot return a unit's history."""
    pass


class UnitNotFoundError(StorageError):
    """Raised when the unit registry has no record for a unit."""
    pass


class PersistenceError(StorageError):
    """Raised when a downstream store rejects an alert or prediction write."""
    pass
