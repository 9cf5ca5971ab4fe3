"""Unit tests for payment validation, the gateway client, refunds and error handling."""

import pytest
import requests

from core.payments import (
    IdealPayment,
    PaymentErrorCode,
    PaymentException,
    PaymentStatus,
    PaymentType,
    RefundStatus,
    SEPAPayment,
)
from core.services.payments import PaymentErrorHandler, PaymentGateway, PaymentService

IBAN = "NL91ABNA0417164300"


class FakeResponse:
    def __init__(self, status_code=200, payload=None):
        self.status_code = status_code
        self._payload = payload
        self.content = b"" if payload is None else b"{}"

    def json(self):
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload


class FakeSession:
    def __init__(self, responses=None, error=None):
        self.headers = {}
        self.responses = list(responses or [])
        self.error = error
        self.requests = []

    def request(self, method, url, json=None, timeout=None):
        self.requests.append((method, url, json, timeout))
        if self.error is not None:
            raise self.error
        return self.responses.pop(0)


def _sepa(payment_id="P1", amount=250.0, **changes):
    values = dict(id=payment_id, guard_id="guard-1", amount=amount, recipient_iban="NL91 ABNA 0417 1643 00",
                  recipient_name="Jan de Vries", description="Salaris week 23")
    values.update(changes)
    return SEPAPayment(**values)


def _ideal(**changes):
    values = dict(id="I1", user_id="comp-1", amount=50.0, description="Waarborgsom",
                  return_url="https://securyflex.nl/betaald", selected_bank_bic="INGBNL2A")
    values.update(changes)
    return IdealPayment(**values)


@pytest.fixture
def payments(db, settings):
    return PaymentService(db, settings=settings)


class TestSepaValidation:
    @pytest.mark.parametrize("changes,code,word", [
        ({"amount": 0}, PaymentErrorCode.INVALID_AMOUNT, "bedrag"),
        ({"amount": 15000.01}, PaymentErrorCode.AMOUNT_LIMIT_EXCEEDED, "sepa-limiet"),
        ({"recipient_iban": "NL92ABNA0417164300"}, PaymentErrorCode.INVALID_IBAN, "iban"),
        ({"recipient_iban": "DE89370400440532013000"}, PaymentErrorCode.INVALID_IBAN, "iban"),
        ({"recipient_name": "  "}, PaymentErrorCode.INVALID_RECIPIENT_NAME, "ontvanger"),
        ({"recipient_name": "x" * 71}, PaymentErrorCode.INVALID_RECIPIENT_NAME, "ontvanger"),
    ])
    def test_rejected(self, payments, changes, code, word):
        with pytest.raises(PaymentException) as exc_info:
            payments.validate_sepa_payment(_sepa(**changes))
        assert exc_info.value.error_code is code
        assert word in exc_info.value.message.lower()

    def test_limit_is_inclusive(self, payments):
        payments.validate_sepa_payment(_sepa(amount=15000))


class TestSepaProcessing:
    def test_without_gateway_stays_pending(self, payments):
        result = payments.process_sepa_payment(_sepa())
        assert result.success
        assert result.is_pending
        stored = payments.get_payment("P1")
        assert stored.status is PaymentStatus.PENDING
        assert stored.recipient_iban == IBAN
        assert stored.amount == 250.0

    def test_invalid_payment_recorded_as_failed(self, payments):
        result = payments.process_sepa_payment(_sepa(amount=-1))
        assert not result.success
        assert result.error_code is PaymentErrorCode.INVALID_AMOUNT
        assert payments.get_payment("P1").status is PaymentStatus.FAILED
        assert payments.get_payment("P1").error == "Het bedrag moet groter zijn dan 0"

    def test_gateway_submission(self, db, settings):
        session = FakeSession([FakeResponse(201, {"id": "prov-1", "status": "processing"})])
        gateway = PaymentGateway("https://pay.example/api/", api_key="secret", session=session)
        service = PaymentService(db, gateway, settings)

        result = service.process_sepa_payment(_sepa())
        assert result.success
        assert result.transaction_id == "prov-1"
        method, url, payload, timeout = session.requests[0]
        assert (method, url) == ("POST", "https://pay.example/api/sepa/transfers")
        assert payload["amount"] == "250.00"
        assert payload["iban"] == IBAN
        assert timeout == 15
        assert session.headers["Authorization"] == "Bearer secret"
        assert service.get_payment("P1").status is PaymentStatus.PROCESSING

    def test_gateway_rejection_is_failed_result(self, db, settings):
        gateway = PaymentGateway("https://pay.example", session=FakeSession([FakeResponse(400)]))
        result = PaymentService(db, gateway, settings).process_sepa_payment(_sepa())
        assert not result.success
        assert result.error_code is PaymentErrorCode.PAYMENT_CREATION_FAILED

    def test_resave_updates_existing_row(self, payments):
        payments.process_sepa_payment(_sepa())
        payments.process_sepa_payment(_sepa(amount=300.0))
        assert len(payments.list_payments("guard-1")) == 1
        assert payments.get_payment("P1").amount == 300.0


class TestBulk:
    def test_bulk_limit_checked_first(self, db, settings):
        settings["payments"] = {"bulk_max_count": 2}
        service = PaymentService(db, settings=settings)
        with pytest.raises(PaymentException) as exc_info:
            service.process_bulk_sepa([_sepa("A"), _sepa("B"), _sepa("C")])
        assert exc_info.value.error_code is PaymentErrorCode.BULK_LIMIT_EXCEEDED
        assert service.list_payments() == []

    def test_mixed_results(self, payments):
        result = payments.process_bulk_sepa([_sepa("A"), _sepa("B", amount=0)], batch_id="BATCH-1")
        assert result.batch_id == "BATCH-1"
        assert result.total_payments == 2
        assert result.successful_payments == 1
        assert result.failed_payments == 1
        assert result.success_rate == 0.5
        assert result.total_amount == 250.0
        # Pending payments are not completed yet
        assert result.overall_status is PaymentStatus.PROCESSING

    def test_all_failed(self, payments):
        result = payments.process_bulk_sepa([_sepa("A", amount=0)])
        assert result.overall_status is PaymentStatus.FAILED


class TestIdeal:
    def test_create_without_gateway(self, payments):
        result = payments.create_ideal_payment(_ideal())
        assert result.success
        assert result.status is PaymentStatus.PENDING
        stored = payments.get_payment("I1")
        assert stored.payment_type is PaymentType.IDEAL_PAYMENT
        assert stored.bank_bic == "INGBNL2A"

    @pytest.mark.parametrize("changes,code,word", [
        ({"amount": 0}, PaymentErrorCode.INVALID_AMOUNT, "bedrag"),
        ({"amount": 50000.01}, PaymentErrorCode.INVALID_AMOUNT, "bedrag"),
        ({"description": "x" * 36}, PaymentErrorCode.INVALID_DESCRIPTION, "omschrijving"),
        ({"return_url": "securyflex.nl/betaald"}, PaymentErrorCode.INVALID_RETURN_URL, "return-url"),
        ({"selected_bank_bic": "DEUTDEFF"}, PaymentErrorCode.UNSUPPORTED_BANK, "niet ondersteund"),
    ])
    def test_validation_failures(self, payments, changes, code, word):
        with pytest.raises(PaymentException) as exc_info:
            payments.validate_ideal_payment(_ideal(**changes))
        assert word in exc_info.value.message.lower()

        result = payments.create_ideal_payment(_ideal(**changes))
        assert not result.success
        assert result.error_code is code
        assert payments.get_payment("I1") is None

    def test_checkout_url_from_gateway(self, db, settings):
        session = FakeSession([FakeResponse(200, {"id": "tr_1", "checkout_url": "https://bank/checkout"})])
        service = PaymentService(db, PaymentGateway("https://pay.example", session=session), settings)
        result = service.create_ideal_payment(_ideal())
        assert result.metadata["checkout_url"] == "https://bank/checkout"
        assert session.requests[0][2]["issuer"] == "INGBNL2A"

    def test_supported_banks(self):
        assert len(PaymentService.supported_banks()) == 10


class TestRefunds:
    def test_partial_then_full(self, payments):
        payments.process_sepa_payment(_sepa())
        refund = payments.refund("P1", 100)
        assert refund.status is RefundStatus.PENDING
        assert payments.get_payment("P1").status is PaymentStatus.PARTIALLY_REFUNDED
        payments.refund("P1", 150)
        record = payments.get_payment("P1")
        assert record.status is PaymentStatus.REFUNDED
        assert record.refundable_amount == 0.0

    def test_refund_too_high(self, payments):
        payments.process_sepa_payment(_sepa())
        with pytest.raises(PaymentException) as exc_info:
            payments.refund("P1", 250.01)
        assert exc_info.value.error_code is PaymentErrorCode.REFUND_AMOUNT_TOO_HIGH
        assert "terugbetaling" in exc_info.value.message.lower()

    def test_refund_unknown_payment(self, payments):
        with pytest.raises(PaymentException) as exc_info:
            payments.refund("missing", 10)
        assert exc_info.value.error_code is PaymentErrorCode.PAYMENT_NOT_FOUND
        assert exc_info.value.message == "Betaling missing niet gevonden"


class TestStatusAndAnalytics:
    def test_update_status(self, payments):
        payments.process_sepa_payment(_sepa())
        record = payments.update_status("P1", PaymentStatus.COMPLETED)
        assert record.status is PaymentStatus.COMPLETED
        with pytest.raises(PaymentException):
            payments.update_status("missing", PaymentStatus.COMPLETED)

    def test_analytics(self, payments):
        payments.process_sepa_payment(_sepa("A", amount=100))
        payments.process_sepa_payment(_sepa("B", amount=200))
        payments.process_sepa_payment(_sepa("C", amount=-5))
        payments.update_status("A", PaymentStatus.COMPLETED)

        analytics = payments.get_analytics("guard-1")
        assert analytics.total_transactions == 3
        assert analytics.successful_transactions == 1
        assert analytics.failed_transactions == 1
        assert analytics.volume_by_type[PaymentType.SEPA_TRANSFER] == 295.0
        assert analytics.transactions_by_status[PaymentStatus.PENDING] == 1


class TestGateway:
    def test_network_error(self):
        gateway = PaymentGateway("https://pay.example", session=FakeSession(error=requests.ConnectionError("x")))
        with pytest.raises(PaymentException) as exc_info:
            gateway.get_payment_status("prov-1")
        assert exc_info.value.error_code is PaymentErrorCode.NETWORK_ERROR

    @pytest.mark.parametrize("status,code", [
        (503, PaymentErrorCode.SERVER_ERROR),
        (404, PaymentErrorCode.PAYMENT_NOT_FOUND),
        (422, PaymentErrorCode.PAYMENT_CREATION_FAILED),
    ])
    def test_http_errors(self, status, code):
        gateway = PaymentGateway("https://pay.example", session=FakeSession([FakeResponse(status)]))
        with pytest.raises(PaymentException) as exc_info:
            gateway.get_payment_status("prov-1")
        assert exc_info.value.error_code is code

    def test_invalid_json(self):
        session = FakeSession([FakeResponse(200, ValueError("bad json"))])
        with pytest.raises(PaymentException) as exc_info:
            PaymentGateway("https://pay.example", session=session).get_payment_status("prov-1")
        assert exc_info.value.error_code is PaymentErrorCode.SERVER_ERROR

    def test_empty_body(self):
        gateway = PaymentGateway("https://pay.example", session=FakeSession([FakeResponse(204)]))
        assert gateway.create_refund("prov-1", 10) == {}


class TestErrorHandler:
    def test_messages_and_suggestions(self):
        exc = PaymentException("bad iban", PaymentErrorCode.INVALID_IBAN)
        assert PaymentErrorHandler.dutch_message(exc).startswith("Het IBAN nummer is ongeldig")
        assert "Gebruik een Nederlands IBAN (NL..)" in PaymentErrorHandler.recovery_suggestions(exc)
        other = PaymentException("x", PaymentErrorCode.INSUFFICIENT_FUNDS)
        assert PaymentErrorHandler.recovery_suggestions(other)[0] == "Probeer de actie opnieuw"

    def test_categorize(self):
        assert PaymentErrorHandler.categorize(
            PaymentException("x", PaymentErrorCode.NETWORK_ERROR)) == PaymentErrorHandler.NETWORK
        assert PaymentErrorHandler.categorize(
            PaymentException("x", PaymentErrorCode.INVALID_AMOUNT)) == PaymentErrorHandler.VALIDATION
        assert PaymentErrorHandler.categorize(
            PaymentException("x", PaymentErrorCode.PAYMENT_EXPIRED)) == PaymentErrorHandler.BUSINESS
        assert PaymentErrorHandler.categorize(requests.Timeout()) == PaymentErrorHandler.NETWORK
        assert PaymentErrorHandler.categorize(KeyError("x")) == PaymentErrorHandler.UNKNOWN
        assert PaymentErrorHandler.http_message(418) == "HTTP fout (418). Probeer het opnieuw."

    def test_retry_until_success(self):
        delays = []
        calls = {"n": 0}

        def flaky():
            calls["n"] += 1
            if calls["n"] < 3:
                raise PaymentException("down", PaymentErrorCode.NETWORK_ERROR)
            return "ok"

        assert PaymentErrorHandler.execute_with_retry(flaky, "flaky", sleep=delays.append) == "ok"
        assert len(delays) == 2
        assert 1.0 <= delays[0] <= 1.1
        assert 2.0 <= delays[1] <= 2.2

    def test_retries_exhausted(self):
        delays = []

        def always_down():
            raise PaymentException("down", PaymentErrorCode.SERVER_ERROR)

        with pytest.raises(PaymentException) as exc_info:
            PaymentErrorHandler.execute_with_retry(always_down, "down", max_retries=2, sleep=delays.append)
        assert len(delays) == 2
        assert exc_info.value.metadata["total_attempts"] == 3
        assert "na 3 pogingen" in exc_info.value.message

    def test_validation_error_not_retried(self):
        delays = []

        def invalid():
            raise PaymentException("bad", PaymentErrorCode.INVALID_AMOUNT)

        with pytest.raises(PaymentException) as exc_info:
            PaymentErrorHandler.execute_with_retry(invalid, "invalid", sleep=delays.append)
        assert delays == []
        assert exc_info.value.message == "bad"

    def test_unknown_error_retried_once_then_wrapped(self):
        delays = []

        def broken():
            raise KeyError("boom")

        with pytest.raises(PaymentException) as exc_info:
            PaymentErrorHandler.execute_with_retry(broken, "broken", sleep=delays.append)
        assert len(delays) == 1
        assert exc_info.value.error_code is PaymentErrorCode.SERVER_ERROR
        assert exc_info.value.metadata["total_attempts"] == 2
