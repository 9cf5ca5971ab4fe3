"""DutchInvoiceService: salary and expense invoices, yearly tax summaries and the audit trail."""

import json
from datetime import date, datetime, timedelta
from typing import Any

import config
from local_storage import save_invoice_local
from utils.formatting import format_dutch_currency, format_dutch_date
from utils.parsing import parse_float

from ..billing import (
    DeductionCategory,
    DutchInvoice,
    InvoiceLineItem,
    InvoiceSummary,
    InvoiceType,
    TaxSummary,
)
from ..payments import PaymentStatus
from .tax import ZZPTaxService

SALARY_DUE_DAYS = 30
EXPENSE_DUE_DAYS = 7


def _period_label(moment: date) -> str:
    """'Salaris periode' covers the Monday-Sunday week containing moment."""
    week_start = moment - timedelta(days=moment.weekday())
    week_end = week_start + timedelta(days=6)
    return f"{format_dutch_date(week_start)} - {format_dutch_date(week_end)}"


class DutchInvoiceService:
    """
    Creates invoices with Dutch BTW lines, persists them to the invoices
    table, writes a text rendering under local_data/invoices and records
    every generation in the audit log.
    """

    def __init__(
        self,
        store: Any,
        tax_service: ZZPTaxService | None = None,
        settings: dict[str, Any] | None = None,
        save_files: bool = True,
    ) -> None:
        if settings is None:
            settings = config._get_app_settings()
        btw = {**config.DEFAULT_SETTINGS["btw"], **(settings.get("btw") or {})}

        self._store = store
        self._tax = tax_service or ZZPTaxService(store, settings)
        self._save_files = save_files
        self.standard_rate = float(btw["standard_rate"])
        self.company_defaults = {
            "name": btw["company_name"],
            "address": btw["company_address"],
            "kvk_number": btw["company_kvk_number"],
            "btw_number": btw["company_btw_number"],
        }

    @property
    def _invoices(self):
        return self._store.table("invoices")

    # =========================================================================
    # Numbering
    # =========================================================================

    def next_invoice_number(self, prefix: str, year: int | None = None) -> str:
        """Sequential per prefix and year: SAL-2024-0001, SAL-2024-0002, ..."""
        year = year or date.today().year
        key = f"invoice_counter_{prefix}_{year}"
        count = int(self._store.get_value(key, "0") or 0) + 1
        self._store.set_value(key, count)
        return f"{prefix}-{year}-{count:04d}"

    # =========================================================================
    # Generation
    # =========================================================================

    def _build_invoice(
        self,
        invoice_type: InvoiceType,
        number: str,
        guard: dict[str, Any],
        company: dict[str, Any],
        line_items: list[InvoiceLineItem],
        issue_date: date,
        due_days: int,
        notes: str,
    ) -> DutchInvoice:
        return DutchInvoice(
            invoice_number=number,
            type=invoice_type,
            issue_date=issue_date,
            due_date=issue_date + timedelta(days=due_days),
            guard_id=str(guard.get("id", "")),
            company_id=str(company.get("id", "")),
            company_name=company.get("name") or self.company_defaults["name"],
            company_kvk=company.get("kvk_number") or self.company_defaults["kvk_number"],
            company_btw=company.get("btw_number") or self.company_defaults["btw_number"],
            company_address=company.get("address") or self.company_defaults["address"],
            client_name=str(guard.get("name", "")).strip(),
            client_address=str(guard.get("address", "") or ""),
            line_items=tuple(line_items),
            notes=notes,
        )

    def _store_invoice(self, invoice: DutchInvoice, action: str) -> DutchInvoice:
        try:
            self._invoices.add_rows([invoice.to_row()])
            if self._save_files:
                save_invoice_local(invoice.render_text(), invoice.invoice_number)
            self._audit(action, invoice.invoice_number, invoice.guard_id, {
                "company_id": invoice.company_id,
                "amount": invoice.total,
                "btw_amount": invoice.btw_total,
            })
        except Exception as e:
            print(f"Error storing invoice {invoice.invoice_number}: {e}")
            raise
        print(f"Invoice {invoice.invoice_number} generated: {format_dutch_currency(invoice.total)}")
        return invoice

    def generate_salary_invoice(
        self,
        guard: dict[str, Any],
        company: dict[str, Any],
        gross_amount: float,
        vakantiegeld_amount: float = 0.0,
        overtime_hours: float = 0.0,
        overtime_rate: float = 0.0,
        period_date: date | None = None,
        today: date | None = None,
    ) -> DutchInvoice:
        if gross_amount <= 0:
            raise ValueError("Salary invoice requires a positive gross amount")
        if vakantiegeld_amount < 0 or vakantiegeld_amount > gross_amount:
            raise ValueError("Vakantiegeld must be between 0 and the gross amount")

        today = today or date.today()
        lines = [
            InvoiceLineItem("Salaris beveiligingsdiensten", 1, round(gross_amount - vakantiegeld_amount, 2),
                            self.standard_rate),
        ]
        if vakantiegeld_amount > 0:
            lines.append(InvoiceLineItem("Vakantiegeld (8%)", 1, round(vakantiegeld_amount, 2), 0.0))
        if overtime_hours > 0 and overtime_rate > 0:
            lines.append(InvoiceLineItem("Overuren (150% tarief)", overtime_hours, overtime_rate, self.standard_rate))

        invoice = self._build_invoice(
            InvoiceType.SALARY,
            self.next_invoice_number(InvoiceType.SALARY.prefix, today.year),
            guard,
            company,
            lines,
            today,
            SALARY_DUE_DAYS,
            f"Salaris periode {_period_label(period_date or today)}",
        )
        return self._store_invoice(invoice, "SALARY_INVOICE_GENERATED")

    def expense_line(self, expense: dict[str, Any]) -> InvoiceLineItem:
        """
        One line per expense. The BTW rate is derived from the given btw_amount,
        or taken from the expense category when no amount is given.
        """
        amount = parse_float(expense.get("amount"))
        if amount <= 0:
            raise ValueError(f"Expense {expense.get('description')!r}: amount must be positive")
        if expense.get("btw_amount") not in (None, ""):
            btw_amount = parse_float(expense.get("btw_amount"))
            rate = btw_amount / amount if btw_amount > 0 else 0.0
        else:
            rate = DeductionCategory.from_code(expense.get("category", "")).btw_rate
        return InvoiceLineItem(str(expense.get("description", "Onkosten")), 1, round(amount, 2), round(rate, 4))

    def generate_expense_invoice(
        self,
        guard: dict[str, Any],
        company: dict[str, Any],
        expenses: list[dict[str, Any]],
        description: str = "",
        today: date | None = None,
    ) -> DutchInvoice:
        if not expenses:
            raise ValueError("Expense invoice requires at least one expense")

        today = today or date.today()
        invoice = self._build_invoice(
            InvoiceType.EXPENSE,
            self.next_invoice_number(InvoiceType.EXPENSE.prefix, today.year),
            guard,
            company,
            [self.expense_line(e) for e in expenses],
            today,
            EXPENSE_DUE_DAYS,
            description,
        )
        return self._store_invoice(invoice, "EXPENSE_INVOICE_GENERATED")

    def generate_tax_summary(self, guard_id: str, year: int) -> TaxSummary:
        """Yearly totals and monthly breakdown over the guard's salary invoices."""
        salary_invoices = [
            inv for inv in self.list_invoices(guard_id)
            if inv.type is InvoiceType.SALARY and inv.issue_date and inv.issue_date.year == year
        ]

        gross = 0.0
        btw = 0.0
        vakantiegeld = 0.0
        monthly: dict[str, dict[str, float]] = {}
        for inv in salary_invoices:
            gross += inv.subtotal
            btw += inv.btw_amount
            vakantiegeld += sum(
                item.total_excl_btw for item in inv.line_items if item.description.startswith("Vakantiegeld")
            )
            month = monthly.setdefault(inv.issue_date.strftime("%Y-%m"), {"gross": 0.0, "net": 0.0, "btw": 0.0})
            month["gross"] = round(month["gross"] + inv.subtotal, 2)
            month["btw"] = round(month["btw"] + inv.btw_amount, 2)

        income_tax = self._tax.calculate_income_tax_detailed(round(gross, 2))
        for month in monthly.values():
            month["net"] = round(month["gross"] * (1 - income_tax.effective_rate), 2)

        number = self.next_invoice_number(InvoiceType.TAX_SUMMARY.prefix, year)
        summary = TaxSummary(
            summary_number=number,
            guard_id=guard_id,
            year=year,
            total_gross_income=round(gross, 2),
            total_btw=round(btw, 2),
            total_vakantiegeld=round(vakantiegeld, 2),
            total_income_tax=income_tax.effective_income_tax,
            invoice_count=len(salary_invoices),
            monthly_breakdown=dict(sorted(monthly.items())),
        )

        self._invoices.add_rows([{
            "Invoice Number": number,
            "Type": InvoiceType.TAX_SUMMARY.code,
            "Guard ID": guard_id,
            "Issue Date": date.today().isoformat(),
            "Due Date": date.today().isoformat(),
            "Subtotal": f"{summary.total_gross_income:.2f}",
            "BTW Amount": f"{summary.total_btw:.2f}",
            "Total": f"{summary.total_net_income:.2f}",
            "Payment Status": PaymentStatus.COMPLETED.code,
            "Line Items": "[]",
            "Notes": json.dumps(summary.monthly_breakdown),
        }])
        if self._save_files:
            save_invoice_local(self.render_tax_summary(summary), number)
        self._audit("TAX_SUMMARY_GENERATED", number, guard_id, {"amount": summary.total_gross_income})
        return summary

    @staticmethod
    def render_tax_summary(summary: TaxSummary) -> str:
        lines = [
            f"JAAROVERZICHT {summary.year} ({summary.summary_number})",
            "",
            f"Bruto inkomen: {format_dutch_currency(summary.total_gross_income)}",
            f"BTW: {format_dutch_currency(summary.total_btw)}",
            f"Vakantiegeld: {format_dutch_currency(summary.total_vakantiegeld)}",
            f"Inkomstenbelasting (schatting): {format_dutch_currency(summary.total_income_tax)}",
            f"Netto inkomen: {format_dutch_currency(summary.total_net_income)}",
            "",
        ]
        for month, values in summary.monthly_breakdown.items():
            lines.append(
                f"{month}: bruto {format_dutch_currency(values['gross'])}, "
                f"netto {format_dutch_currency(values['net'])}, BTW {format_dutch_currency(values['btw'])}"
            )
        return "\n".join(lines) + "\n"

    # =========================================================================
    # Queries
    # =========================================================================

    def list_invoices(self, guard_id: str, invoice_type: InvoiceType | None = None) -> list[InvoiceSummary]:
        filters = {"Guard ID": guard_id}
        if invoice_type is not None:
            filters["Type"] = invoice_type.code
        return [InvoiceSummary.from_row(row) for row in self._invoices.find(filters)]

    def get_invoice(self, invoice_number: str) -> InvoiceSummary | None:
        row = self._invoices.find_one({"Invoice Number": invoice_number})
        return InvoiceSummary.from_row(row) if row else None

    def update_payment_status(self, invoice_number: str, status: PaymentStatus) -> bool:
        return self._invoices.update_by_fields(
            {"Invoice Number": invoice_number}, {"Payment Status": status.code}
        ) > 0

    def overdue_invoices(self, guard_id: str, today: date | None = None) -> list[InvoiceSummary]:
        today = today or date.today()
        return [
            inv for inv in self.list_invoices(guard_id)
            if inv.type is not InvoiceType.TAX_SUMMARY
            and inv.due_date is not None and inv.due_date < today
            and not inv.payment_status.is_final
        ]

    # =========================================================================
    # Audit
    # =========================================================================

    def _audit(self, action: str, entity_id: str, user_id: str, details: dict[str, Any]) -> None:
        self._store.table("audit_log").add_rows([{
            "Action": action,
            "Entity ID": entity_id,
            "User ID": user_id,
            "Details": json.dumps(details, ensure_ascii=False),
            "Timestamp": datetime.now().isoformat(),
        }])

    def audit_trail(self, entity_id: str) -> list[dict[str, Any]]:
        rows = self._store.table("audit_log").find({"Entity ID": entity_id})
        for row in rows:
            row["Details"] = json.loads(row.get("Details") or "{}")
        return rows
