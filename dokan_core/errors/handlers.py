# =============================================================================
# dokan_core/errors/handlers.py
# Error Handling Utilities for Dokan Hisab
# =============================================================================

from __future__ import annotations
import functools
import traceback
from typing import Optional, Callable, TypeVar, Any
import streamlit as st

from dokan_core.logging import get_logger
from .exceptions import DokanHisabError

logger = get_logger(__name__)

T = TypeVar("T")

# Shopkeeper-facing messages, keyed by error code
USER_MESSAGES = {
    "AUTH_001": "অনুগ্রহ করে আবার লগইন করুন",
    "DATA_001": "তথ্য সঠিক নয়, আবার চেষ্টা করুন",
    "STORE_001": "ডিভাইসে তথ্য সংরক্ষণ করা যায়নি",
    "REMOTE_001": "সার্ভারের সাথে সংযোগ করা যায়নি, তথ্য ডিভাইসে রাখা হয়েছে",
    "REMOTE_400": "সার্ভার তথ্য গ্রহণ করেনি, তথ্য ডিভাইসে রাখা হয়েছে",
    "SYNC_001": "সিঙ্ক সম্পূর্ণ হয়নি",
    "CONFIG_001": "অ্যাপ কনফিগারেশনে সমস্যা",
}
DEFAULT_USER_MESSAGE = "কিছু একটা সমস্যা হয়েছে"


def localized_message(error: Exception) -> str:
    """Return the Bengali message shown to the shopkeeper for an error."""
    if isinstance(error, DokanHisabError):
        return USER_MESSAGES.get(error.code, DEFAULT_USER_MESSAGE)
    return DEFAULT_USER_MESSAGE


def handle_error(
    error: Exception,
    show_user_message: bool = True,
    log_error: bool = True,
    user_message: Optional[str] = None,
) -> None:
    """
    Centralized error handling function.

    Recoverable errors are shown as a toast, unrecoverable ones as an
    inline error block.

    Args:
        error: The exception to handle
        show_user_message: Whether to display the error in the UI
        log_error: Whether to log the error
        user_message: Custom message to show user (localized default if None)
    """
    if isinstance(error, DokanHisabError):
        message = user_message or localized_message(error)
        code = error.code
        details = error.details
        recoverable = error.recoverable
    else:
        message = user_message or localized_message(error)
        code = "UNKNOWN"
        details = {"traceback": traceback.format_exc()}
        recoverable = True

    if log_error:
        logger.error(
            f"[{code}] {error}",
            extra={"details": details},
            exc_info=True,
        )

    if show_user_message:
        if recoverable:
            st.toast(message, icon="⚠️")
        else:
            st.error(f"{message}। সাহায্যের জন্য যোগাযোগ করুন।")

        if details and st.session_state.get("debug_mode", False):
            with st.expander("Error Details", expanded=False):
                st.json(details)


def safe_execute(
    func: Callable[..., T],
    *args,
    default: Optional[T] = None,
    error_message: Optional[str] = None,
    reraise: bool = False,
    **kwargs,
) -> Optional[T]:
    """
    Execute a function with automatic error handling.

    Usage:
        sale = safe_execute(
            service.create_sale,
            session, payload,
            error_message="বিক্রি সংরক্ষণ করা যায়নি",
        )
    """
    try:
        return func(*args, **kwargs)
    except Exception as e:
        handle_error(e, user_message=error_message)
        if reraise:
            raise
        return default


class ErrorContext:
    """
    Context manager for error handling with automatic logging and user feedback.

    Usage:
        with ErrorContext("Syncing pending records"):
            engine.sync_pending(session)
    """

    def __init__(
        self,
        operation: str,
        recoverable: bool = True,
        show_success: bool = False,
        success_message: Optional[str] = None,
    ):
        self.operation = operation
        self.recoverable = recoverable
        self.show_success = show_success
        self.success_message = success_message

    def __enter__(self) -> ErrorContext:
        logger.info(f"Starting: {self.operation}")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        if exc_type is not None:
            handle_error(exc_val)
            return self.recoverable

        logger.info(f"Completed: {self.operation}")
        if self.show_success:
            st.success(self.success_message or f"{self.operation} completed")

        return False


def error_boundary(
    default_return: Any = None,
    error_message: Optional[str] = None,
    log: bool = True,
):
    """
    Decorator to wrap UI helpers with error handling.

    Usage:
        @error_boundary(default_return=None)
        def render_sales_chart(sales):
            ...
    """
    def decorator(func: Callable[..., T]) -> Callable[..., Optional[T]]:
        @functools.wraps(func)
        def wrapper(*args, **kwargs) -> Optional[T]:
            try:
                return func(*args, **kwargs)
            except Exception as e:
                if log:
                    logger.error(
                        f"Error in {func.__name__}: {e}",
                        exc_info=True,
                    )
                if error_message:
                    st.error(error_message)
                return default_return

        return wrapper

    return decorator
