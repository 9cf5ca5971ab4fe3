"""Application error type carried by controller error states, and exception mapping."""

from __future__ import annotations

import sqlite3
from enum import Enum
from typing import Any

import requests

from .payments import PaymentException, PaymentErrorCode


class ErrorCategory(str, Enum):
    GENERAL = "general"
    NETWORK = "network"
    AUTHENTICATION = "authentication"
    VALIDATION = "validation"
    PERMISSION = "permission"
    STORAGE = "storage"


# Dutch user messages for the codes controllers emit
ERROR_MESSAGES = {
    "not_authenticated": "Je bent niet ingelogd. Log opnieuw in om verder te gaan.",
    "application_failed": "Sollicitatie kon niet worden verstuurd. Probeer het opnieuw.",
    "already_applied": "Je hebt al gesolliciteerd op deze opdracht.",
    "job_not_found": "Opdracht niet gevonden.",
    "jobs_load_failed": "Opdrachten konden niet worden geladen.",
    "profile_load_failed": "Profiel kon niet worden geladen.",
    "profile_save_failed": "Profiel kon niet worden opgeslagen.",
    "validation_error": "Ongeldige invoer.",
    "storage_error": "Gegevens konden niet worden opgeslagen of gelezen.",
    "network_error": "Netwerkfout. Controleer je internetverbinding.",
    "unknown_error": "Er is een onverwachte fout opgetreden.",
}


class AppError(Exception):
    """Error with a stable code, a Dutch user message and a category."""

    def __init__(
        self,
        code: str,
        message: str | None = None,
        category: ErrorCategory = ErrorCategory.GENERAL,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.code = code
        self.message = message or ERROR_MESSAGES.get(code, ERROR_MESSAGES["unknown_error"])
        self.category = category
        self.details = details or {}
        super().__init__(self.message)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, AppError):
            return NotImplemented
        return (self.code, self.message, self.category) == (other.code, other.message, other.category)

    def __hash__(self) -> int:
        return hash((self.code, self.message, self.category))

    def __repr__(self) -> str:
        return f"AppError(code={self.code!r}, category={self.category.value!r})"


class ProfileError(Exception):
    """Raised by the profile repository when a profile cannot be read or written."""

    def __init__(self, message: str, code: str = "profile_save_failed") -> None:
        self.code = code
        super().__init__(message)


_PAYMENT_CATEGORIES = {
    PaymentErrorCode.NETWORK_ERROR: ErrorCategory.NETWORK,
    PaymentErrorCode.SERVER_ERROR: ErrorCategory.NETWORK,
    PaymentErrorCode.GUARD_NOT_FOUND: ErrorCategory.GENERAL,
    PaymentErrorCode.PAYMENT_NOT_FOUND: ErrorCategory.GENERAL,
    PaymentErrorCode.INVALID_WEBHOOK_SIGNATURE: ErrorCategory.PERMISSION,
}


def error_from_exception(exc: BaseException) -> AppError:
    """Map any exception to an AppError with a Dutch message."""
    if isinstance(exc, AppError):
        return exc
    if isinstance(exc, PaymentException):
        from .services.payments import PaymentErrorHandler

        category = _PAYMENT_CATEGORIES.get(exc.error_code, ErrorCategory.VALIDATION)
        return AppError(
            exc.error_code.value,
            PaymentErrorHandler.dutch_message(exc),
            category,
            dict(exc.metadata),
        )
    if isinstance(exc, ProfileError):
        return AppError(exc.code, category=ErrorCategory.STORAGE, details={"error": str(exc)})
    if isinstance(exc, requests.RequestException):
        return AppError("network_error", category=ErrorCategory.NETWORK, details={"error": str(exc)})
    if isinstance(exc, (sqlite3.Error, OSError)):
        return AppError("storage_error", category=ErrorCategory.STORAGE, details={"error": str(exc)})
    if isinstance(exc, ValueError):
        return AppError("validation_error", str(exc) or None, ErrorCategory.VALIDATION)
    return AppError("unknown_error", details={"error": str(exc), "type": type(exc).__name__})
