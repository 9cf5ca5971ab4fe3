"""Billing models: ZZP tax and BTW results, compliance status, invoices and tax summaries."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any

from utils.formatting import format_dutch_currency, format_percentage, format_short_date
from utils.parsing import parse_date, parse_float

from .payments import PaymentStatus

STANDARD_BTW_RATE = 0.21
REDUCED_BTW_RATE = 0.09
ZERO_BTW_RATE = 0.0


@dataclass(frozen=True)
class TaxBracket:
    min_income: float
    max_income: float | None
    rate: float

    @property
    def dutch_formatted_range(self) -> str:
        if self.max_income is None:
            return f"Vanaf {format_dutch_currency(self.min_income)}"
        return f"{format_dutch_currency(self.min_income)} - {format_dutch_currency(self.max_income)}"

    @property
    def dutch_formatted_rate(self) -> str:
        return format_percentage(self.rate, 2)


@dataclass(frozen=True)
class TaxBracketCalculation:
    bracket: TaxBracket
    taxable_income: float
    calculated_tax: float

    @property
    def dutch_formatted_tax(self) -> str:
        return format_dutch_currency(self.calculated_tax)


@dataclass(frozen=True)
class ZZPIncomeTaxCalculation:
    gross_income: float
    taxable_income: float
    total_tax_before_deductions: float
    zelfstandigenaftrek: float
    effective_income_tax: float
    effective_rate: float
    brackets: tuple[TaxBracketCalculation, ...] = ()

    @property
    def dutch_formatted_tax(self) -> str:
        return format_dutch_currency(self.effective_income_tax)

    @property
    def dutch_formatted_deduction(self) -> str:
        return format_dutch_currency(self.zelfstandigenaftrek)

    @property
    def dutch_formatted_rate(self) -> str:
        return format_percentage(self.effective_rate, 1)


@dataclass(frozen=True)
class BTWCalculation:
    gross_income: float
    annual_projected_income: float
    btw_threshold: float
    exceeds_threshold: bool
    registration_required: bool
    current_registration_status: bool
    applicable_rate: float
    btw_amount: float
    quarterly_btw_due: float
    historical_btw_ytd: float
    next_reporting_deadline: date
    calculated_at: datetime

    @property
    def dutch_formatted_btw(self) -> str:
        return format_dutch_currency(self.btw_amount)

    @property
    def dutch_formatted_threshold(self) -> str:
        return format_dutch_currency(self.btw_threshold)

    @property
    def dutch_formatted_rate(self) -> str:
        return format_percentage(self.applicable_rate)


@dataclass(frozen=True)
class ZZPNetIncomeCalculation:
    gross_income: float
    income_tax_amount: float
    btw_amount: float
    total_deductions: float

    @property
    def total_taxes(self) -> float:
        return round(self.income_tax_amount + self.btw_amount, 2)

    @property
    def final_net_income(self) -> float:
        return round(self.gross_income - self.income_tax_amount, 2)

    @property
    def effective_tax_rate(self) -> float:
        if self.gross_income <= 0:
            return 0.0
        return self.income_tax_amount / self.gross_income

    @property
    def dutch_formatted_net(self) -> str:
        return format_dutch_currency(self.final_net_income)

    @property
    def dutch_formatted_effective_rate(self) -> str:
        return format_percentage(self.effective_tax_rate, 1)


class DeductionCategory(Enum):
    SECURITY_EQUIPMENT = ("security_equipment", "Beveiligingsuitrusting", STANDARD_BTW_RATE)
    PROFESSIONAL_TRAINING = ("professional_training", "Cursussen en certificaten", STANDARD_BTW_RATE)
    TRANSPORTATION = ("transportation", "Reiskosten", STANDARD_BTW_RATE)
    HOME_OFFICE = ("home_office", "Thuiskantoor", STANDARD_BTW_RATE)
    BUSINESS_EXPENSES = ("business_expenses", "Zakelijke kosten", STANDARD_BTW_RATE)
    PROFESSIONAL_INSURANCE = ("professional_insurance", "Beroepsverzekeringen", ZERO_BTW_RATE)
    MARKETING_COSTS = ("marketing_costs", "Marketingkosten", STANDARD_BTW_RATE)
    MEALS = ("meals", "Maaltijden", REDUCED_BTW_RATE)

    def __init__(self, code: str, dutch_label: str, btw_rate: float) -> None:
        self.code = code
        self.dutch_label = dutch_label
        self.btw_rate = btw_rate

    @classmethod
    def from_code(cls, code: str) -> DeductionCategory:
        for category in cls:
            if category.code == (code or "").strip().lower():
                return category
        return cls.BUSINESS_EXPENSES


@dataclass(frozen=True)
class QuarterlyIncome:
    quarter: int
    start_date: date
    end_date: date
    gross_income: float
    net_income: float
    hours_worked: float


@dataclass(frozen=True)
class ZZPAnnualReturn:
    guard_id: str
    tax_year: int
    total_annual_income: float
    business_expenses: float
    total_deductions: float
    taxable_income: float
    income_tax_owed: float
    zelfstandigenaftrek: float
    mkb_winstvrijstelling: float
    quarterly_breakdown: tuple[QuarterlyIncome, ...] = ()
    professional_expenses: dict[str, float] = field(default_factory=dict)

    @property
    def total_professional_expenses(self) -> float:
        return round(sum(self.professional_expenses.values()), 2)

    @property
    def dutch_formatted_tax_owed(self) -> str:
        return format_dutch_currency(self.income_tax_owed)


@dataclass(frozen=True)
class ZZPStatusValidation:
    risk_bearing: float
    decision_making: float
    personal_work: float
    overall_score: float
    is_valid_zzp: bool
    compliance_risk: str
    recommendations: tuple[str, ...]
    shifts_assessed: int = 0


@dataclass(frozen=True)
class MinimumWageCheck:
    is_compliant: bool
    effective_hourly_rate: float
    minimum_wage_required: float
    total_hours: float
    total_earnings: float
    minimum_earnings_required: float
    shortfall: float
    compliance_percentage: float


@dataclass(frozen=True)
class VakantiegeldCalculation:
    annual_earnings: float
    vakantiegeld_rate: float
    vakantiegeld_total: float
    already_paid: float
    remaining_owed: float


class ComplianceLevel(Enum):
    COMPLIANT = ("compliant", "Compliant")
    WARNING = ("warning", "Waarschuwing")
    NON_COMPLIANT = ("non_compliant", "Niet Compliant")

    def __init__(self, code: str, dutch_label: str) -> None:
        self.code = code
        self.dutch_label = dutch_label


class RiskLevel(Enum):
    LOW = ("low", "Laag Risico")
    MEDIUM = ("medium", "Gemiddeld Risico")
    HIGH = ("high", "Hoog Risico")

    def __init__(self, code: str, dutch_label: str) -> None:
        self.code = code
        self.dutch_label = dutch_label


@dataclass(frozen=True)
class ZZPComplianceStatus:
    level: ComplianceLevel
    overall_score: float
    compliance_issues: tuple[str, ...]
    warnings: tuple[str, ...]
    last_assessed: datetime
    next_review_date: date

    @property
    def dutch_compliance_level(self) -> str:
        return self.level.dutch_label


@dataclass(frozen=True)
class ZZPRiskAssessment:
    guard_id: str
    total_risk_score: float
    risk_level: RiskLevel
    risk_factors: dict[str, float]
    recommended_actions: tuple[str, ...]
    assessed_at: datetime

    @property
    def dutch_risk_level(self) -> str:
        return self.risk_level.dutch_label


# =========================================================================
# Invoices
# =========================================================================

class InvoiceType(Enum):
    SALARY = ("salary", "SAL", "Salarisfactuur")
    EXPENSE = ("expense", "EXP", "Onkostenfactuur")
    TAX_SUMMARY = ("tax_summary", "TAX", "Jaaroverzicht")

    def __init__(self, code: str, prefix: str, dutch_label: str) -> None:
        self.code = code
        self.prefix = prefix
        self.dutch_label = dutch_label

    @classmethod
    def from_code(cls, code: str) -> InvoiceType:
        for invoice_type in cls:
            if invoice_type.code == code:
                return invoice_type
        raise ValueError(f"Unknown invoice type: {code!r}")


@dataclass(frozen=True)
class InvoiceLineItem:
    description: str
    quantity: float
    unit_price: float
    btw_rate: float

    def __post_init__(self) -> None:
        if self.quantity < 0:
            raise ValueError(f"Line item {self.description!r}: quantity cannot be negative")
        if self.unit_price < 0:
            raise ValueError(f"Line item {self.description!r}: unit price cannot be negative")
        if not 0 <= self.btw_rate <= 1:
            raise ValueError(f"Line item {self.description!r}: BTW rate must be between 0 and 1")

    @property
    def total_excl_btw(self) -> float:
        return round(self.quantity * self.unit_price, 2)

    @property
    def btw_amount(self) -> float:
        return round(self.total_excl_btw * self.btw_rate, 2)

    @property
    def total_incl_btw(self) -> float:
        return round(self.total_excl_btw + self.btw_amount, 2)

    def to_dict(self) -> dict[str, Any]:
        return {
            "description": self.description,
            "quantity": self.quantity,
            "unit_price": self.unit_price,
            "btw_rate": self.btw_rate,
        }


@dataclass(frozen=True)
class DutchInvoice:
    invoice_number: str
    type: InvoiceType
    issue_date: date
    due_date: date
    guard_id: str
    company_id: str
    company_name: str
    company_kvk: str
    company_btw: str
    company_address: str
    client_name: str
    client_address: str
    line_items: tuple[InvoiceLineItem, ...]
    notes: str = ""
    payment_status: PaymentStatus = PaymentStatus.PENDING

    def __post_init__(self) -> None:
        if self.due_date < self.issue_date:
            raise ValueError(f"Invoice {self.invoice_number}: due date before issue date")

    @property
    def subtotal(self) -> float:
        return round(sum(item.total_excl_btw for item in self.line_items), 2)

    @property
    def btw_total(self) -> float:
        return round(sum(item.btw_amount for item in self.line_items), 2)

    @property
    def total(self) -> float:
        return round(self.subtotal + self.btw_total, 2)

    def btw_by_rate(self) -> dict[float, float]:
        totals: dict[float, float] = {}
        for item in self.line_items:
            totals[item.btw_rate] = round(totals.get(item.btw_rate, 0.0) + item.btw_amount, 2)
        return totals

    def render_text(self) -> str:
        lines = [
            f"{self.type.dutch_label.upper()} {self.invoice_number}",
            "",
            self.company_name,
            self.company_address,
            f"KvK: {self.company_kvk}",
            f"BTW: {self.company_btw}",
            "",
            f"Aan: {self.client_name}",
        ]
        if self.client_address:
            lines.append(self.client_address)
        lines += [
            "",
            f"Factuurdatum: {format_short_date(self.issue_date)}",
            f"Vervaldatum: {format_short_date(self.due_date)}",
            "",
        ]
        for item in self.line_items:
            lines.append(
                f"{item.description:<40} {item.quantity:>6g} x {format_dutch_currency(item.unit_price):>12}"
                f"  BTW {format_percentage(item.btw_rate):>4}  {format_dutch_currency(item.total_excl_btw):>12}"
            )
        lines += [
            "",
            f"Subtotaal: {format_dutch_currency(self.subtotal)}",
        ]
        for rate, amount in sorted(self.btw_by_rate().items(), reverse=True):
            lines.append(f"BTW ({format_percentage(rate)}): {format_dutch_currency(amount)}")
        lines.append(f"Totaal: {format_dutch_currency(self.total)}")
        if self.notes:
            lines += ["", self.notes]
        return "\n".join(lines) + "\n"

    def to_row(self) -> dict[str, str]:
        return {
            "Invoice Number": self.invoice_number,
            "Type": self.type.code,
            "Guard ID": self.guard_id,
            "Company ID": self.company_id,
            "Issue Date": self.issue_date.isoformat(),
            "Due Date": self.due_date.isoformat(),
            "Client Name": self.client_name,
            "Subtotal": f"{self.subtotal:.2f}",
            "BTW Amount": f"{self.btw_total:.2f}",
            "Total": f"{self.total:.2f}",
            "Payment Status": self.payment_status.code,
            "Line Items": json.dumps([item.to_dict() for item in self.line_items], ensure_ascii=False),
            "Notes": self.notes,
        }


@dataclass(frozen=True)
class InvoiceSummary:
    """An invoice as listed from storage (totals only, no company letterhead)."""

    invoice_number: str
    type: InvoiceType
    guard_id: str
    issue_date: date | None
    due_date: date | None
    client_name: str
    subtotal: float
    btw_amount: float
    total: float
    payment_status: PaymentStatus
    line_items: tuple[InvoiceLineItem, ...] = ()

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> InvoiceSummary:
        raw_items = row.get("Line Items") or "[]"
        return cls(
            invoice_number=row.get("Invoice Number", ""),
            type=InvoiceType.from_code(row.get("Type", "salary") or "salary"),
            guard_id=row.get("Guard ID", ""),
            issue_date=parse_date(row.get("Issue Date")),
            due_date=parse_date(row.get("Due Date")),
            client_name=row.get("Client Name", ""),
            subtotal=parse_float(row.get("Subtotal")),
            btw_amount=parse_float(row.get("BTW Amount")),
            total=parse_float(row.get("Total")),
            payment_status=PaymentStatus.from_code(row.get("Payment Status", "")),
            line_items=tuple(InvoiceLineItem(**item) for item in json.loads(raw_items)),
        )


@dataclass(frozen=True)
class TaxSummary:
    summary_number: str
    guard_id: str
    year: int
    total_gross_income: float
    total_btw: float
    total_vakantiegeld: float
    total_income_tax: float
    invoice_count: int
    # "YYYY-MM" -> {"gross": .., "btw": ..}
    monthly_breakdown: dict[str, dict[str, float]] = field(default_factory=dict)

    @property
    def total_net_income(self) -> float:
        return round(self.total_gross_income - self.total_income_tax, 2)
