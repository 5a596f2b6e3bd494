"""
Custom exception classes for the canvas-sync engine.
"""

from typing import Any, Dict, Optional


class CanvasSyncException(Exception):
    """Base exception for the sync engine."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        """
        Initialize the exception.

        Args:
            message: Error message
            error_code: Application-specific error code
            details: Additional error details
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}


class RemoteUnavailableError(CanvasSyncException):
    """The remote store cannot be reached or has no account configured."""

    def __init__(self, message: str = "Remote store is not available"):
        super().__init__(message=message, error_code="REMOTE_UNAVAILABLE")


class RemoteStoreError(CanvasSyncException):
    """A pull or push call against the remote store failed."""

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        record_names: Optional[list] = None,
    ):
        """
        Initialize remote store error.

        Args:
            message: Error message
            operation: Remote operation that failed (fetch, save, delete)
            record_names: Names of the records involved, if any
        """
        details: Dict[str, Any] = {}
        if operation:
            details["operation"] = operation
        if record_names:
            details["record_names"] = list(record_names)

        super().__init__(
            message=message,
            error_code="REMOTE_STORE_ERROR",
            details=details,
        )


class RecordDecodeError(CanvasSyncException):
    """A remote record or tombstone could not be turned into an entity."""

    def __init__(
        self,
        message: str,
        record_type: Optional[str] = None,
        record_name: Optional[str] = None,
    ):
        details = {}
        if record_type:
            details["record_type"] = record_type
        if record_name:
            details["record_name"] = record_name

        super().__init__(
            message=message,
            error_code="RECORD_DECODE_ERROR",
            details=details,
        )


class ConfigurationError(CanvasSyncException):
    """Configuration error."""

    def __init__(self, message: str, config_key: Optional[str] = None):
        """
        Initialize configuration error.

        Args:
            message: Error message
            config_key: Configuration key that has issue
        """
        details = {}
        if config_key:
            details["config_key"] = config_key

        super().__init__(
            message=message,
            error_code="CONFIGURATION_ERROR",
            details=details,
        )
