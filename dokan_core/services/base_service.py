# =============================================================================
# dokan_core/services/base_service.py
# Result container and base class for long-running services
# =============================================================================

from __future__ import annotations
from abc import ABC
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from dokan_core.errors import DokanHisabError
from dokan_core.logging import LogContext, get_logger


@dataclass
class ServiceResult:
    """
    Standard result container for service operations.

    Truthy when the operation succeeded, so callers can write
    `if engine.sync_pending(session): ...`.
    """
    success: bool
    data: Optional[Any] = None
    error: Optional[str] = None
    error_code: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None

    def __bool__(self) -> bool:
        return self.success

    @classmethod
    def ok(cls, data: Any = None, metadata: Optional[Dict[str, Any]] = None) -> ServiceResult:
        return cls(success=True, data=data, metadata=metadata)

    @classmethod
    def fail(
        cls,
        error: str,
        error_code: str = "UNKNOWN",
        metadata: Optional[Dict[str, Any]] = None,
    ) -> ServiceResult:
        return cls(success=False, error=error, error_code=error_code, metadata=metadata)

    @classmethod
    def from_exception(cls, e: Exception) -> ServiceResult:
        """Create a failed result from an exception"""
        if isinstance(e, DokanHisabError):
            return cls(success=False, error=e.message, error_code=e.code, metadata=e.details)
        return cls(success=False, error=str(e), error_code="EXCEPTION")


class BaseService(ABC):
    """
    Base class for services that report progress.

    Usage:
        class MyService(BaseService):
            def run(self) -> ServiceResult:
                with self.log_operation("Running"):
                    return ServiceResult.ok(...)
    """

    def __init__(self):
        self.logger = get_logger(self.__class__.__name__)
        self._progress_callback: Optional[Callable[[int, str], None]] = None

    def set_progress_callback(self, callback: Callable[[int, str], None]) -> None:
        """
        Args:
            callback: Function that takes (percentage: int, message: str)
        """
        self._progress_callback = callback

    def _update_progress(self, percentage: int, message: str = "") -> None:
        if self._progress_callback:
            self._progress_callback(percentage, message)

    def log_operation(self, operation: str) -> LogContext:
        return LogContext(self.logger, operation)
