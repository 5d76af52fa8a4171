# =============================================================================
# dokan_core/errors/exceptions.py
# Custom Exception Hierarchy for Dokan Hisab
# =============================================================================

from typing import Optional, Dict, Any


class DokanHisabError(Exception):
    """
    Base exception for all Dokan Hisab errors.

    Attributes:
        message: Human-readable error description
        code: Machine-readable error code (e.g., "DATA_001")
        details: Additional context as a dictionary
        recoverable: Whether the error can be recovered from
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        recoverable: bool = True,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or "DH_000"
        self.details = details or {}
        self.recoverable = recoverable

    def __str__(self) -> str:
        base = f"[{self.code}] {self.message}"
        if self.details:
            base += f" | Details: {self.details}"
        return base

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization"""
        return {
            "error_type": self.__class__.__name__,
            "code": self.code,
            "message": self.message,
            "details": self.details,
            "recoverable": self.recoverable,
        }


# =============================================================================
# SESSION EXCEPTIONS
# =============================================================================

class AuthenticationError(DokanHisabError):
    """Raised when a write is attempted without a resolved owner id"""

    def __init__(self, message: str = "User not authenticated", **kwargs):
        super().__init__(message=message, code="AUTH_001", **kwargs)


# =============================================================================
# DATA LAYER EXCEPTIONS
# =============================================================================

class DataValidationError(DokanHisabError):
    """Raised when an entity payload fails validation checks"""

    def __init__(
        self,
        message: str,
        entity: Optional[str] = None,
        field: Optional[str] = None,
        expected: Optional[str] = None,
        actual: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if entity:
            details["entity"] = entity
        if field:
            details["field"] = field
        if expected:
            details["expected"] = expected
        if actual is not None:
            details["actual"] = actual

        super().__init__(
            message=message,
            code="DATA_001",
            details=details,
            **kwargs,
        )


class LocalStorageError(DokanHisabError):
    """Raised when the on-device store cannot read or persist a record"""

    def __init__(
        self,
        message: str,
        collection: Optional[str] = None,
        record_id: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if collection:
            details["collection"] = collection
        if record_id:
            details["record_id"] = record_id

        super().__init__(
            message=message,
            code="STORE_001",
            details=details,
            **kwargs,
        )


# =============================================================================
# REMOTE SERVICE EXCEPTIONS
# =============================================================================

class RemoteServiceError(DokanHisabError):
    """Raised when the remote backend is unreachable or fails a request"""

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        status_code: Optional[int] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        code = kwargs.pop("code", "REMOTE_001")
        if operation:
            details["operation"] = operation
        if status_code is not None:
            details["status_code"] = status_code

        super().__init__(
            message=message,
            code=code,
            details=details,
            **kwargs,
        )
        self.status_code = status_code


class RemoteValidationError(RemoteServiceError):
    """Raised when the remote backend rejects a payload (HTTP 400)"""

    def __init__(self, message: str, operation: Optional[str] = None, **kwargs):
        kwargs.setdefault("status_code", 400)
        super().__init__(
            message=message,
            operation=operation,
            code="REMOTE_400",
            **kwargs,
        )


class SyncError(DokanHisabError):
    """Raised when an explicit reconciliation pass cannot push a record"""

    def __init__(
        self,
        message: str,
        collection: Optional[str] = None,
        record_id: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if collection:
            details["collection"] = collection
        if record_id:
            details["record_id"] = record_id

        super().__init__(
            message=message,
            code="SYNC_001",
            details=details,
            **kwargs,
        )


# =============================================================================
# CONFIGURATION EXCEPTIONS
# =============================================================================

class ConfigurationError(DokanHisabError):
    """Raised when configuration is invalid or missing"""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        expected_type: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if config_key:
            details["config_key"] = config_key
        if expected_type:
            details["expected_type"] = expected_type

        super().__init__(
            message=message,
            code="CONFIG_001",
            details=details,
            recoverable=False,
            **kwargs,
        )
