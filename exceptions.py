"""
Exception hierarchy for the finance dashboard.

Every error the application raises on purpose derives from FinanceAppError.
The HTTP layer maps ``status_code`` straight onto the response, so a new
error type only needs to pick the right code.
"""

from typing import Optional


class FinanceAppError(Exception):
    """
    Base exception class for all finance dashboard errors.

    Attributes:
        message: Human-readable error message
        details: Optional dictionary with additional error context
        original_error: Optional original exception that caused this error
    """

    status_code = 500

    def __init__(
        self,
        message: str,
        details: Optional[dict] = None,
        original_error: Optional[Exception] = None
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.original_error = original_error

    def __str__(self) -> str:
        msg = self.message
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            msg = f"{msg} ({detail_str})"
        return msg


class ValidationError(FinanceAppError):
    """Raised when a creation payload is malformed or references unknown records."""

    status_code = 400


class NotFoundError(FinanceAppError):
    """Raised when an update targets a record that does not exist."""

    status_code = 404


class AdvisorError(FinanceAppError):
    """Raised when the AI advisory service cannot produce a usable answer."""

    status_code = 502


class ReceiptAnalysisError(AdvisorError):
    """
    Raised when a receipt image cannot be analyzed.

    Unlike categorization and insight generation there is no safe default
    for a receipt, so this error always reaches the caller.
    """

    status_code = 500
