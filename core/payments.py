"""Payment models: statuses, SEPA/iDEAL payments, results and the payment exception."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any

from utils.formatting import format_dutch_currency
from utils.parsing import parse_datetime, parse_float


class PaymentStatus(Enum):
    PENDING = ("pending", "Wachtend")
    PROCESSING = ("processing", "Verwerking")
    AWAITING_BANK = ("awaiting_bank", "Wacht op bank")
    COMPLETED = ("completed", "Voltooid")
    FAILED = ("failed", "Mislukt")
    CANCELLED = ("cancelled", "Geannuleerd")
    EXPIRED = ("expired", "Verlopen")
    REFUNDED = ("refunded", "Terugbetaald")
    PARTIALLY_REFUNDED = ("partially_refunded", "Gedeeltelijk terugbetaald")
    UNKNOWN = ("unknown", "Onbekend")

    def __init__(self, code: str, dutch_label: str) -> None:
        self.code = code
        self.dutch_label = dutch_label

    @property
    def is_final(self) -> bool:
        return self in (
            PaymentStatus.COMPLETED,
            PaymentStatus.FAILED,
            PaymentStatus.CANCELLED,
            PaymentStatus.EXPIRED,
            PaymentStatus.REFUNDED,
        )

    @classmethod
    def from_code(cls, code: str) -> PaymentStatus:
        for status in cls:
            if status.code == (code or "").strip().lower():
                return status
        return cls.UNKNOWN


class PaymentType(Enum):
    SEPA_TRANSFER = ("sepa_transfer", "SEPA Overschrijving")
    IDEAL_PAYMENT = ("ideal_payment", "iDEAL Betaling")
    EXPENSE = ("expense", "Onkostenvergoeding")
    DEPOSIT = ("deposit", "Waarborgsom")
    SALARY = ("salary", "Salaris")
    OVERTIME = ("overtime", "Overuren")
    BONUS = ("bonus", "Bonus")
    REFUND = ("refund", "Terugbetaling")

    def __init__(self, code: str, dutch_label: str) -> None:
        self.code = code
        self.dutch_label = dutch_label

    @classmethod
    def from_code(cls, code: str) -> PaymentType:
        for payment_type in cls:
            if payment_type.code == (code or "").strip().lower():
                return payment_type
        raise ValueError(f"Unknown payment type: {code!r}")


class RefundStatus(Enum):
    PENDING = ("pending", "Wachtend")
    PROCESSING = ("processing", "Verwerking")
    COMPLETED = ("completed", "Voltooid")
    FAILED = ("failed", "Mislukt")
    UNKNOWN = ("unknown", "Onbekend")

    def __init__(self, code: str, dutch_label: str) -> None:
        self.code = code
        self.dutch_label = dutch_label


class PaymentErrorCode(str, Enum):
    INVALID_AMOUNT = "invalid_amount"
    INVALID_IBAN = "invalid_iban"
    INVALID_RECIPIENT_NAME = "invalid_recipient_name"
    INVALID_DESCRIPTION = "invalid_description"
    INVALID_RETURN_URL = "invalid_return_url"
    BULK_LIMIT_EXCEEDED = "bulk_limit_exceeded"
    AMOUNT_LIMIT_EXCEEDED = "amount_limit_exceeded"
    MONTHLY_LIMIT_EXCEEDED = "monthly_limit_exceeded"
    GUARD_NOT_FOUND = "guard_not_found"
    PAYMENT_NOT_FOUND = "payment_not_found"
    MISSING_BANK_DETAILS = "missing_bank_details"
    PAYMENT_CREATION_FAILED = "payment_creation_failed"
    BANK_SELECTION_FAILED = "bank_selection_failed"
    UNSUPPORTED_BANK = "unsupported_bank"
    REFUND_AMOUNT_TOO_HIGH = "refund_amount_too_high"
    REFUND_CREATION_FAILED = "refund_creation_failed"
    INVALID_WEBHOOK_SIGNATURE = "invalid_webhook_signature"
    PAYMENT_EXPIRED = "payment_expired"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    NETWORK_ERROR = "network_error"
    SERVER_ERROR = "server_error"


class PaymentException(Exception):
    """Raised by payment validation and the gateway."""

    def __init__(
        self,
        message: str,
        error_code: PaymentErrorCode,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        self.message = message
        self.error_code = error_code
        self.metadata = metadata or {}
        super().__init__(message)

    def __str__(self) -> str:
        return f"PaymentException: {self.message} ({self.error_code.value})"


@dataclass(frozen=True)
class IdealBank:
    bic: str
    name: str
    country_code: str = "NL"


@dataclass(frozen=True)
class SEPAPayment:
    id: str
    guard_id: str
    amount: float
    recipient_iban: str
    recipient_name: str
    description: str
    status: PaymentStatus = PaymentStatus.PENDING
    payment_type: PaymentType = PaymentType.SEPA_TRANSFER
    currency: str = "EUR"
    reference: str = ""
    batch_id: str = ""
    created_at: datetime | None = None
    processed_at: datetime | None = None
    transaction_id: str = ""
    failure_reason: str = ""

    @property
    def formatted_amount(self) -> str:
        return format_dutch_currency(self.amount)

    def copy_with(self, **changes: Any) -> SEPAPayment:
        return replace(self, **changes)


@dataclass(frozen=True)
class IdealPayment:
    id: str
    user_id: str
    amount: float
    description: str
    return_url: str
    payment_type: PaymentType = PaymentType.IDEAL_PAYMENT
    status: PaymentStatus = PaymentStatus.PENDING
    currency: str = "EUR"
    selected_bank_bic: str = ""
    checkout_url: str = ""
    provider_payment_id: str = ""
    created_at: datetime | None = None
    expires_at: datetime | None = None

    @property
    def formatted_amount(self) -> str:
        return format_dutch_currency(self.amount)


@dataclass(frozen=True)
class PaymentRecord:
    """A stored payment of any type, as read back from the payments table."""

    payment_id: str
    payment_type: PaymentType
    guard_id: str
    amount: float
    status: PaymentStatus
    description: str = ""
    recipient_iban: str = ""
    recipient_name: str = ""
    reference: str = ""
    bank_bic: str = ""
    provider_id: str = ""
    refunded_amount: float = 0.0
    currency: str = "EUR"
    created_at: datetime | None = None
    updated_at: datetime | None = None
    error: str = ""

    @property
    def refundable_amount(self) -> float:
        return round(max(0.0, self.amount - self.refunded_amount), 2)

    def to_row(self) -> dict[str, str]:
        return {
            "Payment ID": self.payment_id,
            "Type": self.payment_type.code,
            "Guard ID": self.guard_id,
            "Amount": f"{self.amount:.2f}",
            "Currency": self.currency,
            "Recipient IBAN": self.recipient_iban,
            "Recipient Name": self.recipient_name,
            "Description": self.description,
            "Reference": self.reference,
            "Status": self.status.code,
            "Bank BIC": self.bank_bic,
            "Provider ID": self.provider_id,
            "Refunded Amount": f"{self.refunded_amount:.2f}",
            "Created At": self.created_at.isoformat() if self.created_at else "",
            "Updated At": self.updated_at.isoformat() if self.updated_at else "",
            "Error": self.error,
        }

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> PaymentRecord:
        return cls(
            payment_id=row.get("Payment ID", ""),
            payment_type=PaymentType.from_code(row.get("Type", "sepa_transfer") or "sepa_transfer"),
            guard_id=row.get("Guard ID", ""),
            amount=parse_float(row.get("Amount")),
            status=PaymentStatus.from_code(row.get("Status", "")),
            description=row.get("Description", ""),
            recipient_iban=row.get("Recipient IBAN", ""),
            recipient_name=row.get("Recipient Name", ""),
            reference=row.get("Reference", ""),
            bank_bic=row.get("Bank BIC", ""),
            provider_id=row.get("Provider ID", ""),
            refunded_amount=parse_float(row.get("Refunded Amount")),
            currency=row.get("Currency") or "EUR",
            created_at=parse_datetime(row.get("Created At")),
            updated_at=parse_datetime(row.get("Updated At")),
            error=row.get("Error", ""),
        )


@dataclass(frozen=True)
class PaymentResult:
    success: bool
    payment_id: str = ""
    status: PaymentStatus | None = None
    amount: float | None = None
    currency: str = "EUR"
    error_message: str = ""
    error_code: PaymentErrorCode | None = None
    transaction_id: str = ""
    processing_time: datetime | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def succeeded(
        cls,
        payment_id: str,
        amount: float,
        status: PaymentStatus = PaymentStatus.COMPLETED,
        **kwargs: Any,
    ) -> PaymentResult:
        return cls(success=True, payment_id=payment_id, amount=amount, status=status, **kwargs)

    @classmethod
    def failed(cls, exc: PaymentException, payment_id: str = "") -> PaymentResult:
        return cls(
            success=False,
            payment_id=payment_id,
            status=PaymentStatus.FAILED,
            error_message=exc.message,
            error_code=exc.error_code,
            metadata=dict(exc.metadata),
        )

    @property
    def is_successful(self) -> bool:
        return self.success and (self.status is None or self.status == PaymentStatus.COMPLETED)

    @property
    def is_failed(self) -> bool:
        return not self.success or self.status == PaymentStatus.FAILED

    @property
    def is_pending(self) -> bool:
        return self.status in (PaymentStatus.PENDING, PaymentStatus.PROCESSING)


@dataclass(frozen=True)
class BulkPaymentResult:
    batch_id: str
    overall_status: PaymentStatus
    individual_results: list[PaymentResult]
    processing_time: datetime | None = None
    error_message: str = ""

    @property
    def total_payments(self) -> int:
        return len(self.individual_results)

    @property
    def successful_payments(self) -> int:
        return sum(1 for r in self.individual_results if r.success)

    @property
    def failed_payments(self) -> int:
        return sum(1 for r in self.individual_results if r.is_failed)

    @property
    def success_rate(self) -> float:
        if not self.individual_results:
            return 0.0
        return self.successful_payments / self.total_payments

    @property
    def total_amount(self) -> float:
        return round(sum(r.amount or 0.0 for r in self.individual_results if r.success), 2)


@dataclass(frozen=True)
class RefundResult:
    refund_id: str
    payment_id: str
    status: RefundStatus
    amount: float
    created_at: datetime | None = None
    error_message: str = ""


@dataclass(frozen=True)
class PaymentAnalytics:
    total_volume: float
    total_transactions: int
    successful_transactions: int
    failed_transactions: int
    volume_by_type: dict[PaymentType, float]
    transactions_by_status: dict[PaymentStatus, int]

    @property
    def average_transaction(self) -> float:
        if not self.total_transactions:
            return 0.0
        return round(self.total_volume / self.total_transactions, 2)

    @property
    def success_rate(self) -> float:
        if not self.total_transactions:
            return 0.0
        return self.successful_transactions / self.total_transactions
