"""Unit tests for AppError and exception mapping."""

import sqlite3

import pytest
import requests

from core.errors import AppError, ErrorCategory, ProfileError, error_from_exception
from core.payments import PaymentErrorCode, PaymentException


class TestAppError:
    def test_default_message_from_code(self):
        error = AppError("job_not_found")
        assert error.message == "Opdracht niet gevonden."
        assert str(error) == "Opdracht niet gevonden."
        assert error.category is ErrorCategory.GENERAL
        assert error.details == {}

    def test_unknown_code_gets_generic_message(self):
        assert AppError("something_else").message == "Er is een onverwachte fout opgetreden."

    def test_equality_ignores_details(self):
        assert AppError("storage_error", details={"a": 1}) == AppError("storage_error")
        assert AppError("storage_error") != AppError("storage_error", category=ErrorCategory.STORAGE)
        assert len({AppError("network_error"), AppError("network_error")}) == 1


class TestErrorFromException:
    def test_app_error_passes_through(self):
        error = AppError("already_applied")
        assert error_from_exception(error) is error

    def test_payment_validation_error(self):
        exc = PaymentException("bad iban", PaymentErrorCode.INVALID_IBAN, {"iban": "NL00"})
        error = error_from_exception(exc)
        assert error.code == "invalid_iban"
        assert error.message == "Het IBAN nummer is ongeldig. Controleer het rekeningnummer."
        assert error.category is ErrorCategory.VALIDATION
        assert error.details == {"iban": "NL00"}

    @pytest.mark.parametrize("code,category", [
        (PaymentErrorCode.NETWORK_ERROR, ErrorCategory.NETWORK),
        (PaymentErrorCode.SERVER_ERROR, ErrorCategory.NETWORK),
        (PaymentErrorCode.PAYMENT_NOT_FOUND, ErrorCategory.GENERAL),
        (PaymentErrorCode.INVALID_WEBHOOK_SIGNATURE, ErrorCategory.PERMISSION),
        (PaymentErrorCode.INSUFFICIENT_FUNDS, ErrorCategory.VALIDATION),
    ])
    def test_payment_categories(self, code, category):
        assert error_from_exception(PaymentException("x", code)).category is category

    def test_profile_error_is_storage(self):
        error = error_from_exception(ProfileError("Failed to save profile"))
        assert error.code == "profile_save_failed"
        assert error.category is ErrorCategory.STORAGE
        assert error.message == "Profiel kon niet worden opgeslagen."

    def test_request_exception_is_network(self):
        error = error_from_exception(requests.ConnectionError("refused"))
        assert error.code == "network_error"
        assert error.category is ErrorCategory.NETWORK

    @pytest.mark.parametrize("exc", [sqlite3.OperationalError("locked"), OSError("disk full")])
    def test_storage_errors(self, exc):
        error = error_from_exception(exc)
        assert error.code == "storage_error"
        assert error.details["error"] == str(exc)

    def test_value_error_keeps_message(self):
        error = error_from_exception(ValueError("Ongeldige postcode"))
        assert error.code == "validation_error"
        assert error.message == "Ongeldige postcode"
        assert error_from_exception(ValueError()).message == "Ongeldige invoer."

    def test_anything_else_is_unknown(self):
        error = error_from_exception(KeyError("x"))
        assert error.code == "unknown_error"
        assert error.details["type"] == "KeyError"
