"""Payments: SEPA/iDEAL validation, persistence, refunds, the HTTP gateway and Dutch error handling."""

import random
import re
import time
import uuid
from dataclasses import replace
from datetime import datetime
from typing import Any, Callable, TypeVar
from urllib.parse import urlparse

import requests

import config
from utils.parsing import is_valid_dutch_iban, normalize_iban

from ..payments import (
    BulkPaymentResult,
    IdealBank,
    IdealPayment,
    PaymentAnalytics,
    PaymentErrorCode,
    PaymentException,
    PaymentRecord,
    PaymentResult,
    PaymentStatus,
    PaymentType,
    RefundResult,
    RefundStatus,
    SEPAPayment,
)

T = TypeVar("T")

SUPPORTED_BANKS = [
    IdealBank("ABNANL2A", "ABN AMRO"),
    IdealBank("INGBNL2A", "ING"),
    IdealBank("RABONL2U", "Rabobank"),
    IdealBank("SNSBNL2A", "SNS Bank"),
    IdealBank("ASNBNL21", "ASN Bank"),
    IdealBank("BUNQNL2A", "Bunq"),
    IdealBank("KNABNL2H", "Knab"),
    IdealBank("RBRBNL21", "RegioBank"),
    IdealBank("TRIONL2U", "Triodos Bank"),
    IdealBank("HANDNL2A", "Handelsbanken"),
]

MAX_RECIPIENT_NAME = 70
MAX_IDEAL_DESCRIPTION = 35

_IBAN_SHAPE_RE = re.compile(r"^NL\d{2}[A-Z]{4}\d{10}$")


# =========================================================================
# Error handling
# =========================================================================

_DUTCH_MESSAGES = {
    PaymentErrorCode.INVALID_AMOUNT: "Het opgegeven bedrag is ongeldig. Controleer het bedrag en probeer opnieuw.",
    PaymentErrorCode.INVALID_IBAN: "Het IBAN nummer is ongeldig. Controleer het rekeningnummer.",
    PaymentErrorCode.INVALID_RECIPIENT_NAME: "De naam van de ontvanger is ongeldig of te lang.",
    PaymentErrorCode.INVALID_DESCRIPTION: "De omschrijving is te lang of bevat ongeldige karakters.",
    PaymentErrorCode.INVALID_RETURN_URL: "De terugkeer-URL is ongeldig.",
    PaymentErrorCode.BULK_LIMIT_EXCEEDED: "De bulkbetaling overschrijdt het maximale aantal of totaalbedrag.",
    PaymentErrorCode.AMOUNT_LIMIT_EXCEEDED: "Het bedrag overschrijdt de toegestane limiet.",
    PaymentErrorCode.MONTHLY_LIMIT_EXCEEDED: "Maandelijkse betalingslimiet overschreden.",
    PaymentErrorCode.GUARD_NOT_FOUND: "Beveiliger niet gevonden. Controleer de gegevens.",
    PaymentErrorCode.PAYMENT_NOT_FOUND: "Betaling niet gevonden. Mogelijk is deze al verwerkt.",
    PaymentErrorCode.MISSING_BANK_DETAILS: "Bankgegevens ontbreken. Voeg eerst uw IBAN toe aan uw profiel.",
    PaymentErrorCode.PAYMENT_CREATION_FAILED: "Betaling aanmaken mislukt. Probeer het opnieuw.",
    PaymentErrorCode.BANK_SELECTION_FAILED: "Bank selectie mislukt. Kies een andere bank of probeer opnieuw.",
    PaymentErrorCode.UNSUPPORTED_BANK: "De geselecteerde bank wordt niet ondersteund voor iDEAL betalingen.",
    PaymentErrorCode.REFUND_AMOUNT_TOO_HIGH: "Terugbetaling kan niet hoger zijn dan het originele bedrag.",
    PaymentErrorCode.REFUND_CREATION_FAILED: "Terugbetaling aanmaken mislukt. Neem contact op met de klantenservice.",
    PaymentErrorCode.INVALID_WEBHOOK_SIGNATURE: "Beveiligingsfout bij betaling. Neem contact op met de support.",
    PaymentErrorCode.PAYMENT_EXPIRED: "Betaling is verlopen. Start een nieuwe betaling.",
    PaymentErrorCode.INSUFFICIENT_FUNDS: "Onvoldoende saldo. Controleer uw bankrekening.",
    PaymentErrorCode.NETWORK_ERROR: "Netwerkfout. Controleer uw internetverbinding en probeer opnieuw.",
    PaymentErrorCode.SERVER_ERROR: "Server fout. Probeer het later opnieuw of neem contact op met de support.",
}

_RECOVERY_SUGGESTIONS = {
    PaymentErrorCode.NETWORK_ERROR: [
        "Controleer uw internetverbinding",
        "Probeer over een paar minuten opnieuw",
        "Schakel tussen WiFi en mobiele data",
    ],
    PaymentErrorCode.INVALID_IBAN: [
        "Controleer of het IBAN correct is ingevoerd",
        "Gebruik een Nederlands IBAN (NL..)",
        "Gebruik geen spaties of speciale tekens",
    ],
    PaymentErrorCode.AMOUNT_LIMIT_EXCEEDED: [
        "Verlaag het bedrag onder de limiet",
        "Verdeel over meerdere betalingen",
        "Neem contact op voor hogere limieten",
    ],
    PaymentErrorCode.MISSING_BANK_DETAILS: [
        "Ga naar uw profiel",
        "Voeg uw IBAN toe",
        "Controleer dat alle gegevens correct zijn",
    ],
    PaymentErrorCode.PAYMENT_EXPIRED: [
        "Start een nieuwe betaling",
        "Betalingen verlopen na 15 minuten",
        "Zorg voor een stabiele internetverbinding",
    ],
    PaymentErrorCode.SERVER_ERROR: [
        "Probeer het over een paar minuten opnieuw",
        "Controleer of de betaling toch is gelukt",
        "Neem contact op als het probleem aanhoudt",
    ],
}

_DEFAULT_SUGGESTIONS = [
    "Probeer de actie opnieuw",
    "Controleer uw invoer",
    "Neem contact op met de support",
]

_HTTP_MESSAGES = {
    400: "Ongeldige aanvraag. Controleer uw gegevens.",
    401: "Niet geautoriseerd. Log opnieuw in.",
    403: "Toegang geweigerd.",
    404: "Service niet gevonden.",
    429: "Te veel aanvragen. Probeer het later opnieuw.",
    500: "Server fout. Probeer het later opnieuw.",
    502: "Service tijdelijk niet beschikbaar.",
    503: "Service onderhoud. Probeer het later opnieuw.",
    504: "Gateway time-out. Probeer het opnieuw.",
}

_VALIDATION_CODES = (
    PaymentErrorCode.INVALID_AMOUNT,
    PaymentErrorCode.INVALID_IBAN,
    PaymentErrorCode.INVALID_RECIPIENT_NAME,
    PaymentErrorCode.INVALID_DESCRIPTION,
)


class PaymentErrorHandler:
    """Dutch messages, recovery hints, categorization and retry for payment errors."""

    NETWORK = "network"
    SERVER = "server"
    VALIDATION = "validation"
    BUSINESS = "business"
    UNKNOWN = "unknown"

    @staticmethod
    def dutch_message(exc: PaymentException) -> str:
        return _DUTCH_MESSAGES.get(exc.error_code, "Er is een onbekende fout opgetreden.")

    @staticmethod
    def recovery_suggestions(exc: PaymentException) -> list[str]:
        return list(_RECOVERY_SUGGESTIONS.get(exc.error_code, _DEFAULT_SUGGESTIONS))

    @classmethod
    def categorize(cls, error: BaseException) -> str:
        if isinstance(error, PaymentException):
            if error.error_code is PaymentErrorCode.NETWORK_ERROR:
                return cls.NETWORK
            if error.error_code is PaymentErrorCode.SERVER_ERROR:
                return cls.SERVER
            if error.error_code in _VALIDATION_CODES:
                return cls.VALIDATION
            return cls.BUSINESS
        if isinstance(error, (requests.ConnectionError, requests.Timeout, TimeoutError, ConnectionError)):
            return cls.NETWORK
        if isinstance(error, requests.HTTPError):
            status = error.response.status_code if error.response is not None else None
            return cls.SERVER if status is not None and status >= 500 else cls.BUSINESS
        return cls.UNKNOWN

    @classmethod
    def is_retryable(cls, error: BaseException) -> bool:
        return cls.categorize(error) in (cls.NETWORK, cls.SERVER)

    @staticmethod
    def http_message(status_code: int | None) -> str:
        return _HTTP_MESSAGES.get(status_code, f"HTTP fout ({status_code}). Probeer het opnieuw.")

    @classmethod
    def execute_with_retry(
        cls,
        operation: Callable[[], T],
        operation_name: str,
        max_retries: int = 3,
        base_delay: float = 1.0,
        max_delay: float = 30.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> T:
        """
        Run operation, retrying network and server failures with exponential
        backoff plus jitter. Unknown errors get one retry; validation and
        business errors are raised immediately.
        """
        attempt = 0
        while True:
            attempt += 1
            try:
                return operation()
            except Exception as e:
                category = cls.categorize(e)
                retryable = category in (cls.NETWORK, cls.SERVER) or (category == cls.UNKNOWN and attempt <= 1)
                if not retryable or attempt > max_retries:
                    if isinstance(e, PaymentException):
                        if attempt > 1:
                            raise PaymentException(
                                f"Bewerking mislukt na {attempt} pogingen: {e.message}",
                                e.error_code,
                                {**e.metadata, "operation": operation_name, "total_attempts": attempt},
                            ) from e
                        raise
                    raise PaymentException(
                        f'Bewerking "{operation_name}" mislukt na {attempt} pogingen.',
                        PaymentErrorCode.SERVER_ERROR,
                        {"operation": operation_name, "total_attempts": attempt, "original_error": str(e)},
                    ) from e

                delay = min(base_delay * (2 ** (attempt - 1)), max_delay)
                delay += delay * 0.1 * random.random()
                print(f"Payment operation {operation_name} failed (attempt {attempt}): {e}. Retrying in {delay:.1f}s")
                sleep(delay)


# =========================================================================
# Gateway
# =========================================================================

class PaymentGateway:
    """JSON-over-HTTP client for the payment provider (requests, with a timeout)."""

    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        timeout: float = 15,
        session: requests.Session | None = None,
    ) -> None:
        self.base_url = (base_url or "").rstrip("/")
        self._timeout = timeout
        self._session = session or requests.Session()
        if api_key:
            self._session.headers["Authorization"] = f"Bearer {api_key}"

    def _request(self, method: str, path: str, payload: dict[str, Any] | None = None) -> dict[str, Any]:
        url = f"{self.base_url}/{path.lstrip('/')}"
        try:
            response = self._session.request(method, url, json=payload, timeout=self._timeout)
        except (requests.ConnectionError, requests.Timeout) as e:
            raise PaymentException(
                "Netwerkverbinding mislukt. Controleer uw internetverbinding.",
                PaymentErrorCode.NETWORK_ERROR,
                {"url": url, "error": str(e)},
            ) from e

        if response.status_code >= 500:
            raise PaymentException(
                PaymentErrorHandler.http_message(response.status_code),
                PaymentErrorCode.SERVER_ERROR,
                {"url": url, "status_code": response.status_code},
            )
        if response.status_code == 404:
            raise PaymentException(
                PaymentErrorHandler.http_message(404),
                PaymentErrorCode.PAYMENT_NOT_FOUND,
                {"url": url, "status_code": 404},
            )
        if response.status_code >= 400:
            raise PaymentException(
                PaymentErrorHandler.http_message(response.status_code),
                PaymentErrorCode.PAYMENT_CREATION_FAILED,
                {"url": url, "status_code": response.status_code},
            )

        try:
            return response.json() if response.content else {}
        except ValueError as e:
            raise PaymentException(
                "Ongeldig antwoord van betaalprovider.",
                PaymentErrorCode.SERVER_ERROR,
                {"url": url},
            ) from e

    def create_sepa_transfer(self, payment: SEPAPayment) -> dict[str, Any]:
        return self._request("POST", "sepa/transfers", {
            "id": payment.id,
            "amount": f"{payment.amount:.2f}",
            "currency": payment.currency,
            "iban": normalize_iban(payment.recipient_iban),
            "name": payment.recipient_name,
            "description": payment.description,
            "reference": payment.reference,
        })

    def create_ideal_payment(self, payment: IdealPayment) -> dict[str, Any]:
        return self._request("POST", "ideal/payments", {
            "id": payment.id,
            "amount": f"{payment.amount:.2f}",
            "currency": payment.currency,
            "description": payment.description,
            "return_url": payment.return_url,
            "issuer": payment.selected_bank_bic,
        })

    def get_payment_status(self, provider_id: str) -> dict[str, Any]:
        return self._request("GET", f"payments/{provider_id}")

    def create_refund(self, provider_id: str, amount: float, reason: str = "") -> dict[str, Any]:
        return self._request("POST", f"payments/{provider_id}/refunds", {
            "amount": f"{amount:.2f}",
            "reason": reason,
        })


# =========================================================================
# Service
# =========================================================================

class PaymentService:
    """
    Validates and records SEPA and iDEAL payments in the payments table.
    When a gateway is configured, payments are forwarded to the provider;
    otherwise they stay pending until their status is updated.
    """

    def __init__(
        self,
        store: Any,
        gateway: PaymentGateway | None = None,
        settings: dict[str, Any] | None = None,
    ) -> None:
        if settings is None:
            settings = config._get_app_settings()
        limits = {**config.DEFAULT_SETTINGS["payments"], **(settings.get("payments") or {})}

        self._store = store
        self._gateway = gateway
        self.sepa_max_amount = float(limits["sepa_max_amount"])
        self.bulk_max_total = float(limits["bulk_max_total"])
        self.bulk_max_count = int(limits["bulk_max_count"])
        self.ideal_min_amount = float(limits["ideal_min_amount"])
        self.ideal_max_amount = float(limits["ideal_max_amount"])

    @property
    def _payments(self):
        return self._store.table("payments")

    @staticmethod
    def supported_banks() -> list[IdealBank]:
        return list(SUPPORTED_BANKS)

    @staticmethod
    def new_payment_id(prefix: str = "PAY") -> str:
        return f"{prefix}-{uuid.uuid4().hex[:12].upper()}"

    # --- Validation ---

    def validate_sepa_payment(self, payment: SEPAPayment) -> None:
        if payment.amount <= 0:
            raise PaymentException("Het bedrag moet groter zijn dan 0", PaymentErrorCode.INVALID_AMOUNT,
                                   {"amount": payment.amount})
        if payment.amount > self.sepa_max_amount:
            raise PaymentException(f"Het bedrag overschrijdt de SEPA-limiet van {self.sepa_max_amount:.2f}",
                                   PaymentErrorCode.AMOUNT_LIMIT_EXCEEDED,
                                   {"amount": payment.amount, "limit": self.sepa_max_amount})
        iban = normalize_iban(payment.recipient_iban)
        if not _IBAN_SHAPE_RE.match(iban) or not is_valid_dutch_iban(iban):
            raise PaymentException("Ongeldig Nederlands IBAN", PaymentErrorCode.INVALID_IBAN, {"iban": iban})
        name = (payment.recipient_name or "").strip()
        if not name or len(name) > MAX_RECIPIENT_NAME:
            raise PaymentException("De naam van de ontvanger moet 1 tot 70 tekens lang zijn",
                                   PaymentErrorCode.INVALID_RECIPIENT_NAME, {"length": len(name)})

    def validate_bulk(self, payments: list[SEPAPayment]) -> None:
        total = sum(p.amount for p in payments)
        if len(payments) > self.bulk_max_count or total > self.bulk_max_total:
            raise PaymentException(
                f"Bulkbetaling overschrijdt {self.bulk_max_count} betalingen of {self.bulk_max_total:.2f} totaal",
                PaymentErrorCode.BULK_LIMIT_EXCEEDED,
                {"count": len(payments), "total": round(total, 2)},
            )

    def validate_ideal_payment(self, payment: IdealPayment) -> None:
        if not self.ideal_min_amount <= payment.amount <= self.ideal_max_amount:
            raise PaymentException(
                f"Het iDEAL-bedrag moet tussen {self.ideal_min_amount:.2f} en {self.ideal_max_amount:.2f} liggen",
                PaymentErrorCode.INVALID_AMOUNT, {"amount": payment.amount},
            )
        description = (payment.description or "").strip()
        if not description or len(description) > MAX_IDEAL_DESCRIPTION:
            raise PaymentException("De omschrijving moet 1 tot 35 tekens lang zijn",
                                   PaymentErrorCode.INVALID_DESCRIPTION, {"length": len(description)})
        parsed = urlparse(payment.return_url or "")
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise PaymentException("De return-URL moet een volledige http(s)-URL zijn",
                                   PaymentErrorCode.INVALID_RETURN_URL, {"return_url": payment.return_url})
        if payment.selected_bank_bic not in {bank.bic for bank in SUPPORTED_BANKS}:
            raise PaymentException(f"Bank wordt niet ondersteund: {payment.selected_bank_bic}",
                                   PaymentErrorCode.UNSUPPORTED_BANK, {"bic": payment.selected_bank_bic})

    # --- Persistence ---

    def _save(self, record: PaymentRecord) -> None:
        if self._payments.find_one({"Payment ID": record.payment_id}) is None:
            self._payments.add_rows([record.to_row()])
        else:
            row = record.to_row()
            row.pop("Payment ID")
            self._payments.update_by_fields({"Payment ID": record.payment_id}, row)

    def get_payment(self, payment_id: str) -> PaymentRecord | None:
        row = self._payments.find_one({"Payment ID": payment_id})
        return PaymentRecord.from_row(row) if row else None

    def list_payments(self, guard_id: str | None = None) -> list[PaymentRecord]:
        rows = self._payments.find({"Guard ID": guard_id} if guard_id else {})
        return [PaymentRecord.from_row(row) for row in rows]

    def update_status(self, payment_id: str, status: PaymentStatus, error: str = "") -> PaymentRecord:
        record = self.get_payment(payment_id)
        if record is None:
            raise PaymentException(f"Betaling {payment_id} niet gevonden", PaymentErrorCode.PAYMENT_NOT_FOUND,
                                   {"payment_id": payment_id})
        updates = {"Status": status.code, "Updated At": datetime.now().isoformat()}
        if error:
            updates["Error"] = error
        self._payments.update_by_fields({"Payment ID": payment_id}, updates)
        return self.get_payment(payment_id)

    # --- SEPA ---

    def process_sepa_payment(self, payment: SEPAPayment) -> PaymentResult:
        """Validate, record and (with a gateway) submit one SEPA transfer. Failures come back as failed results."""
        now = datetime.now()
        record = PaymentRecord(
            payment_id=payment.id,
            payment_type=payment.payment_type,
            guard_id=payment.guard_id,
            amount=payment.amount,
            status=PaymentStatus.PENDING,
            description=payment.description,
            recipient_iban=normalize_iban(payment.recipient_iban),
            recipient_name=payment.recipient_name,
            reference=payment.reference,
            currency=payment.currency,
            created_at=now,
            updated_at=now,
        )
        try:
            self.validate_sepa_payment(payment)
            status = PaymentStatus.PENDING
            provider_id = ""
            if self._gateway is not None:
                response = PaymentErrorHandler.execute_with_retry(
                    lambda: self._gateway.create_sepa_transfer(payment), "create_sepa_transfer"
                )
                provider_id = str(response.get("id", ""))
                status = PaymentStatus.from_code(response.get("status", "processing"))
            self._save(replace(record, status=status, provider_id=provider_id))
            return PaymentResult.succeeded(payment.id, payment.amount, status=status,
                                           transaction_id=provider_id, processing_time=now)
        except PaymentException as e:
            print(f"Error processing SEPA payment {payment.id}: {e}")
            self._save(replace(record, status=PaymentStatus.FAILED, error=e.message))
            return PaymentResult.failed(e, payment.id)

    def process_bulk_sepa(self, payments: list[SEPAPayment], batch_id: str | None = None) -> BulkPaymentResult:
        """Limits are checked for the whole batch first; each payment is then processed on its own."""
        self.validate_bulk(payments)
        batch_id = batch_id or self.new_payment_id("BATCH")
        results = [self.process_sepa_payment(p.copy_with(batch_id=batch_id)) for p in payments]

        if results and all(r.is_successful for r in results):
            overall = PaymentStatus.COMPLETED
        elif any(r.success for r in results):
            overall = PaymentStatus.PROCESSING
        else:
            overall = PaymentStatus.FAILED
        return BulkPaymentResult(batch_id=batch_id, overall_status=overall, individual_results=results,
                                 processing_time=datetime.now())

    # --- iDEAL ---

    def create_ideal_payment(self, payment: IdealPayment) -> PaymentResult:
        now = datetime.now()
        try:
            self.validate_ideal_payment(payment)
            checkout_url = ""
            provider_id = ""
            if self._gateway is not None:
                response = self._gateway.create_ideal_payment(payment)
                checkout_url = str(response.get("checkout_url", ""))
                provider_id = str(response.get("id", ""))
        except PaymentException as e:
            print(f"Error creating iDEAL payment {payment.id}: {e}")
            return PaymentResult.failed(e, payment.id)

        self._save(PaymentRecord(
            payment_id=payment.id,
            payment_type=payment.payment_type,
            guard_id=payment.user_id,
            amount=payment.amount,
            status=PaymentStatus.PENDING,
            description=payment.description,
            bank_bic=payment.selected_bank_bic,
            provider_id=provider_id,
            currency=payment.currency,
            created_at=now,
            updated_at=now,
        ))
        return PaymentResult.succeeded(payment.id, payment.amount, status=PaymentStatus.PENDING,
                                       transaction_id=provider_id, processing_time=now,
                                       metadata={"checkout_url": checkout_url})

    # --- Refunds ---

    def refund(self, payment_id: str, amount: float, reason: str = "") -> RefundResult:
        record = self.get_payment(payment_id)
        if record is None:
            raise PaymentException(f"Betaling {payment_id} niet gevonden", PaymentErrorCode.PAYMENT_NOT_FOUND,
                                   {"payment_id": payment_id})
        if amount <= 0:
            raise PaymentException("Het terugbetalingsbedrag moet groter zijn dan 0",
                                   PaymentErrorCode.INVALID_AMOUNT, {"amount": amount})
        if amount > record.refundable_amount:
            raise PaymentException(
                f"Terugbetaling van {amount:.2f} is hoger dan het terug te betalen bedrag "
                f"van {record.refundable_amount:.2f}",
                PaymentErrorCode.REFUND_AMOUNT_TOO_HIGH,
                {"amount": amount, "refundable": record.refundable_amount},
            )

        refund_id = self.new_payment_id("REF")
        status = RefundStatus.PENDING
        if self._gateway is not None and record.provider_id:
            try:
                response = self._gateway.create_refund(record.provider_id, amount, reason)
            except PaymentException as e:
                raise PaymentException(e.message, PaymentErrorCode.REFUND_CREATION_FAILED, e.metadata) from e
            refund_id = str(response.get("id", refund_id))
            status = RefundStatus.PROCESSING

        refunded = round(record.refunded_amount + amount, 2)
        new_status = PaymentStatus.REFUNDED if refunded >= record.amount else PaymentStatus.PARTIALLY_REFUNDED
        self._payments.update_by_fields({"Payment ID": payment_id}, {
            "Refunded Amount": f"{refunded:.2f}",
            "Status": new_status.code,
            "Updated At": datetime.now().isoformat(),
        })
        return RefundResult(refund_id=refund_id, payment_id=payment_id, status=status,
                            amount=amount, created_at=datetime.now())

    # --- Analytics ---

    def get_analytics(self, guard_id: str | None = None) -> PaymentAnalytics:
        records = self.list_payments(guard_id)
        volume_by_type: dict[PaymentType, float] = {}
        by_status: dict[PaymentStatus, int] = {}
        for record in records:
            volume_by_type[record.payment_type] = round(volume_by_type.get(record.payment_type, 0.0) + record.amount, 2)
            by_status[record.status] = by_status.get(record.status, 0) + 1
        return PaymentAnalytics(
            total_volume=round(sum(r.amount for r in records), 2),
            total_transactions=len(records),
            successful_transactions=by_status.get(PaymentStatus.COMPLETED, 0),
            failed_transactions=by_status.get(PaymentStatus.FAILED, 0),
            volume_by_type=volume_by_type,
            transactions_by_status=by_status,
        )
