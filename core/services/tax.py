"""ZZPTaxService: Dutch ZZP income tax, BTW/KOR, DBA status checks and tax advice."""

import calendar
import json
from datetime import date, datetime, timedelta
from typing import Any

import config
from utils.parsing import parse_bool, parse_date, parse_datetime, parse_float

from ..billing import (
    BTWCalculation,
    ComplianceLevel,
    MinimumWageCheck,
    QuarterlyIncome,
    RiskLevel,
    TaxBracket,
    TaxBracketCalculation,
    VakantiegeldCalculation,
    ZZPAnnualReturn,
    ZZPComplianceStatus,
    ZZPIncomeTaxCalculation,
    ZZPNetIncomeCalculation,
    ZZPRiskAssessment,
    ZZPStatusValidation,
)

# Rough net share of gross shift earnings used for the quarterly overview
NET_INCOME_ESTIMATE = 0.7

DBA_VALID_THRESHOLD = 0.7

LOW_RISK_RECOMMENDATIONS = (
    "Houd financiële administratie bij",
    "Overweeg pensioenopbouw",
    "Plan kwartaal betalingen",
)

HIGH_RISK_RECOMMENDATIONS = (
    "Verhoog autonomie bij werkzaamheden",
    "Zorg voor eigen materiaal en verzekeringen",
    "Diversifieer klantenbestand",
    "Documenteer bedrijfsrisico's",
)

DEDUCTIBLE_EXPENSES = [
    "Werkkleding en uitrusting",
    "Telefoon- en internetkosten",
    "Reiskosten",
    "Verzekeringen",
    "Administratiekosten",
    "Cursussen en certificaten",
]

EXPENSE_TRACKING_ADVICE = [
    "Bewaar alle bonnetjes en facturen",
    "Gebruik aparte bankrekening voor bedrijf",
    "Registreer kilometers voor reiskosten",
    "Documenteer zakelijke telefoongesprekken",
    "Houd bij welk percentage thuiskantoor zakelijk is",
]

QUARTERLY_PAYMENT_DATES = [
    "Kwartaal 1: 31 mei",
    "Kwartaal 2: 31 augustus",
    "Kwartaal 3: 30 november",
    "Kwartaal 4: 28 februari (volgend jaar)",
]

PENSION_OPTIONS = [
    "Lijfrente via bank of verzekeraar",
    "Pensioensparen met fiscaal voordeel",
    "FOR (Fiscaal Oldedagsreserve)",
]

# Income tax rate used to estimate the pension contribution tax benefit
PENSION_TAX_BENEFIT_RATE = 0.37


def _quarter_bounds(year: int, quarter: int) -> tuple[date, date]:
    first_month = (quarter - 1) * 3 + 1
    last_month = quarter * 3
    last_day = calendar.monthrange(year, last_month)[1]
    return date(year, first_month, 1), date(year, last_month, last_day)


def next_btw_deadline(today: date) -> date:
    """BTW return is due on the last day of the month after the current quarter."""
    quarter = (today.month - 1) // 3 + 1
    month = quarter * 3 + 1
    year = today.year
    if month > 12:
        month -= 12
        year += 1
    return date(year, month, calendar.monthrange(year, month)[1])


class ZZPTaxService:
    """
    Tax calculations for self-employed guards. Parameters come from the
    'tax' and 'btw' settings sections; shift, expense and invoice rows are
    read from the store when one is given.
    """

    def __init__(self, store: Any = None, settings: dict[str, Any] | None = None) -> None:
        if settings is None:
            settings = config._get_app_settings()
        tax = {**config.DEFAULT_SETTINGS["tax"], **(settings.get("tax") or {})}
        btw = {**config.DEFAULT_SETTINGS["btw"], **(settings.get("btw") or {})}

        self._store = store
        self.brackets = [
            TaxBracket(float(b["min_income"]), None if b.get("max_income") is None else float(b["max_income"]),
                       float(b["rate"]))
            for b in sorted(tax["brackets"], key=lambda b: b["min_income"])
        ]
        self.zelfstandigenaftrek = float(tax["zelfstandigenaftrek"])
        self.startersaftrek = float(tax["startersaftrek"])
        self.startup_years = int(tax["startup_years"])
        self.phaseout_threshold = float(tax["aftrek_phaseout_threshold"])
        self.phaseout_rate = float(tax["aftrek_phaseout_rate"])
        self.mkb_rate = float(tax["mkb_winstvrijstelling_rate"])
        self.minimum_wage_hourly = float(tax["minimum_wage_hourly"])
        self.vakantiegeld_rate = float(tax["vakantiegeld_rate"])
        self.pension_rate = float(tax["pension_contribution_rate"])
        self.kor_threshold = float(btw["kor_threshold"])
        self.standard_btw_rate = float(btw["standard_rate"])

    # =========================================================================
    # Income tax
    # =========================================================================

    def _bracket_slices(self, taxable_income: float) -> list[TaxBracketCalculation]:
        slices = []
        for i, bracket in enumerate(self.brackets):
            upper = self.brackets[i + 1].min_income if i + 1 < len(self.brackets) else None
            if taxable_income <= bracket.min_income:
                break
            top = taxable_income if upper is None else min(taxable_income, upper)
            amount = max(0.0, top - bracket.min_income)
            slices.append(TaxBracketCalculation(bracket, amount, round(amount * bracket.rate, 2)))
        return slices

    def calculate_income_tax(self, taxable_income: float) -> float:
        """Progressive box 1 tax over the configured brackets."""
        if taxable_income <= 0:
            return 0.0
        return round(sum(s.calculated_tax for s in self._bracket_slices(taxable_income)), 2)

    def calculate_income_tax_detailed(self, gross_income: float) -> ZZPIncomeTaxCalculation:
        """Tax on gross income after the standard zelfstandigenaftrek, with the per-bracket split."""
        aftrek = self.calculate_zelfstandigenaftrek(gross_income)
        taxable = max(0.0, gross_income - aftrek)
        before_deductions = self.calculate_income_tax(gross_income)
        effective_tax = self.calculate_income_tax(taxable)
        return ZZPIncomeTaxCalculation(
            gross_income=gross_income,
            taxable_income=taxable,
            total_tax_before_deductions=before_deductions,
            zelfstandigenaftrek=aftrek,
            effective_income_tax=effective_tax,
            effective_rate=effective_tax / gross_income if gross_income > 0 else 0.0,
            brackets=tuple(self._bracket_slices(taxable)),
        )

    def calculate_zelfstandigenaftrek(
        self,
        total_income: float,
        is_startup: bool = False,
        business_start_year: int | None = None,
        tax_year: int | None = None,
    ) -> float:
        deduction = self.zelfstandigenaftrek
        tax_year = tax_year or date.today().year
        if is_startup and business_start_year is not None and tax_year - business_start_year < self.startup_years:
            deduction += self.startersaftrek

        if total_income > self.phaseout_threshold:
            deduction -= (total_income - self.phaseout_threshold) * self.phaseout_rate
        return max(0.0, round(deduction, 2))

    def calculate_mkb_winstvrijstelling(self, profit: float) -> float:
        return round(profit * self.mkb_rate, 2) if profit > 0 else 0.0

    def calculate_annual_tax(
        self,
        guard_id: str,
        tax_year: int,
        total_income: float,
        business_expenses: float,
        is_startup: bool = False,
        business_start_year: int | None = None,
    ) -> ZZPAnnualReturn:
        aftrek = self.calculate_zelfstandigenaftrek(total_income, is_startup, business_start_year, tax_year)
        mkb = self.calculate_mkb_winstvrijstelling(total_income - business_expenses)
        total_deductions = business_expenses + aftrek + mkb
        taxable_income = max(0.0, total_income - total_deductions)

        return ZZPAnnualReturn(
            guard_id=guard_id,
            tax_year=tax_year,
            total_annual_income=total_income,
            business_expenses=business_expenses,
            total_deductions=round(total_deductions, 2),
            taxable_income=round(taxable_income, 2),
            income_tax_owed=self.calculate_income_tax(taxable_income),
            zelfstandigenaftrek=aftrek,
            mkb_winstvrijstelling=mkb,
            quarterly_breakdown=tuple(self.get_quarterly_breakdown(guard_id, tax_year)),
            professional_expenses=self.get_professional_expenses(guard_id, tax_year),
        )

    def calculate_net_income(
        self,
        gross_income: float,
        btw_amount: float = 0.0,
        business_expenses: float = 0.0,
    ) -> ZZPNetIncomeCalculation:
        aftrek = self.calculate_zelfstandigenaftrek(gross_income)
        mkb = self.calculate_mkb_winstvrijstelling(gross_income - business_expenses)
        deductions = business_expenses + aftrek + mkb
        income_tax = self.calculate_income_tax(max(0.0, gross_income - deductions))
        return ZZPNetIncomeCalculation(
            gross_income=gross_income,
            income_tax_amount=income_tax,
            btw_amount=btw_amount,
            total_deductions=round(deductions, 2),
        )

    # =========================================================================
    # BTW
    # =========================================================================

    def calculate_btw(
        self,
        gross_income: float,
        annual_projected_income: float,
        registered: bool = False,
        ytd_btw: float = 0.0,
        today: date | None = None,
    ) -> BTWCalculation:
        """BTW over gross income; exempt (0%) while under the KOR threshold and not registered."""
        today = today or date.today()
        exceeds = annual_projected_income > self.kor_threshold
        applies = exceeds or registered
        rate = self.standard_btw_rate if applies else 0.0
        btw_amount = round(gross_income * rate, 2)
        return BTWCalculation(
            gross_income=gross_income,
            annual_projected_income=annual_projected_income,
            btw_threshold=self.kor_threshold,
            exceeds_threshold=exceeds,
            registration_required=exceeds and not registered,
            current_registration_status=registered,
            applicable_rate=rate,
            btw_amount=btw_amount,
            quarterly_btw_due=btw_amount,
            historical_btw_ytd=round(ytd_btw + btw_amount, 2),
            next_reporting_deadline=next_btw_deadline(today),
            calculated_at=datetime.now(),
        )

    # =========================================================================
    # DBA status, minimum wage and vakantiegeld
    # =========================================================================

    @staticmethod
    def _flag_share(shifts: list[dict[str, Any]], column: str) -> float:
        return sum(1 for s in shifts if parse_bool(s.get(column))) / len(shifts)

    def validate_zzp_status(self, shifts: list[dict[str, Any]]) -> ZZPStatusValidation:
        """
        Score shift rows against the DBA criteria (risk bearing, decision
        making, personal work). Higher is more clearly self-employed.
        """
        risk = 0.5
        decision = 0.5
        personal = 1.0
        if shifts:
            risk += self._flag_share(shifts, "Own Equipment") * 0.3
            risk += self._flag_share(shifts, "Has Insurance") * 0.2
            risk += self._flag_share(shifts, "Per Project") * 0.2
            decision += self._flag_share(shifts, "Autonomous") * 0.3
            decision += self._flag_share(shifts, "Flexible Hours") * 0.3
            decision += self._flag_share(shifts, "Client Interaction") * 0.2
            personal -= self._flag_share(shifts, "Delegated") * 0.5
            personal -= self._flag_share(shifts, "Substitute") * 0.3

        risk = min(1.0, max(0.0, risk))
        decision = min(1.0, max(0.0, decision))
        personal = min(1.0, max(0.0, personal))
        overall = (risk + decision + personal) / 3

        if overall >= 0.8:
            compliance_risk = "Low Risk - Clear ZZP status"
        elif overall >= 0.6:
            compliance_risk = "Medium Risk - Review recommended"
        else:
            compliance_risk = "High Risk - Potential employee classification"

        recommendations = []
        if overall < DBA_VALID_THRESHOLD:
            recommendations.extend(HIGH_RISK_RECOMMENDATIONS)
        recommendations.extend(LOW_RISK_RECOMMENDATIONS)

        return ZZPStatusValidation(
            risk_bearing=risk,
            decision_making=decision,
            personal_work=personal,
            overall_score=overall,
            is_valid_zzp=overall >= DBA_VALID_THRESHOLD,
            compliance_risk=compliance_risk,
            recommendations=tuple(recommendations),
            shifts_assessed=len(shifts),
        )

    def check_minimum_wage(
        self,
        total_hours: float,
        total_earnings: float,
        minimum_wage: float | None = None,
    ) -> MinimumWageCheck:
        minimum_wage = self.minimum_wage_hourly if minimum_wage is None else minimum_wage
        effective_rate = total_earnings / total_hours if total_hours > 0 else 0.0
        minimum_required = total_hours * minimum_wage
        compliant = effective_rate >= minimum_wage
        return MinimumWageCheck(
            is_compliant=compliant,
            effective_hourly_rate=effective_rate,
            minimum_wage_required=minimum_wage,
            total_hours=total_hours,
            total_earnings=total_earnings,
            minimum_earnings_required=minimum_required,
            shortfall=0.0 if compliant else round(minimum_required - total_earnings, 2),
            compliance_percentage=min(100.0, max(0.0, effective_rate / minimum_wage * 100)) if minimum_wage else 100.0,
        )

    def calculate_vakantiegeld(self, annual_earnings: float, already_paid: float = 0.0) -> VakantiegeldCalculation:
        total = round(annual_earnings * self.vakantiegeld_rate, 2)
        return VakantiegeldCalculation(
            annual_earnings=annual_earnings,
            vakantiegeld_rate=self.vakantiegeld_rate,
            vakantiegeld_total=total,
            already_paid=already_paid,
            remaining_owed=round(total - already_paid, 2),
        )

    # =========================================================================
    # Advice
    # =========================================================================

    def generate_tax_advice(self, projected_income: float) -> dict[str, Any]:
        estimated_tax = self.calculate_income_tax(max(0.0, projected_income - self.zelfstandigenaftrek))
        pension_contribution = round(projected_income * self.pension_rate, 2)
        return {
            "tax_planning": {
                "projected_income": projected_income,
                "estimated_tax": estimated_tax,
                "quarterly_payment_suggestion": round(estimated_tax / 4, 2),
                "advice": "Plan kwartaalbetalingen om boetes te voorkomen",
            },
            "deduction_optimization": {
                "zelfstandigenaftrek": self.zelfstandigenaftrek,
                "mkb_winstvrijstelling": round(projected_income * self.mkb_rate, 2),
                "deductible_expenses": list(DEDUCTIBLE_EXPENSES),
            },
            "quarterly_payments": {
                "annual_tax_estimate": estimated_tax,
                "quarterly_amount": round(estimated_tax / 4, 2),
                "payment_dates": list(QUARTERLY_PAYMENT_DATES),
            },
            "expense_tracking": list(EXPENSE_TRACKING_ADVICE),
            "pension_advice": {
                "recommended_contribution": pension_contribution,
                "tax_benefit": round(pension_contribution * PENSION_TAX_BENEFIT_RATE, 2),
                "advice": "Als ZZP'er bouw je geen AOW op via werkgever - zorg voor eigen pensioen",
                "options": list(PENSION_OPTIONS),
            },
        }

    # =========================================================================
    # Compliance
    # =========================================================================

    def assess_compliance(
        self,
        validation: ZZPStatusValidation,
        wage_check: MinimumWageCheck,
        btw: BTWCalculation,
        now: datetime | None = None,
    ) -> ZZPComplianceStatus:
        now = now or datetime.now()
        issues = []
        warnings = []

        if not validation.is_valid_zzp:
            issues.append("ZZP-status voldoet niet aan de DBA-criteria")
        elif validation.overall_score < 0.8:
            warnings.append("ZZP-status: beoordeling aanbevolen")

        if not wage_check.is_compliant:
            issues.append(
                f"Uurtarief onder minimumloon ({wage_check.effective_hourly_rate:.2f} < "
                f"{wage_check.minimum_wage_required:.2f})"
            )

        if btw.registration_required:
            issues.append("BTW-registratie verplicht: omzet boven KOR-drempel")
        elif not btw.exceeds_threshold and btw.annual_projected_income > 0.8 * btw.btw_threshold:
            warnings.append("Omzet nadert de KOR-drempel")

        score = max(0.0, min(1.0, 1.0 - 0.3 * len(issues) - 0.1 * len(warnings)))
        if issues:
            level = ComplianceLevel.NON_COMPLIANT
        elif warnings:
            level = ComplianceLevel.WARNING
        else:
            level = ComplianceLevel.COMPLIANT

        return ZZPComplianceStatus(
            level=level,
            overall_score=score,
            compliance_issues=tuple(issues),
            warnings=tuple(warnings),
            last_assessed=now,
            next_review_date=now.date() + timedelta(days=90),
        )

    def assess_risk(self, guard_id: str, validation: ZZPStatusValidation, now: datetime | None = None) -> ZZPRiskAssessment:
        factors = {
            "risk_bearing": round(1.0 - validation.risk_bearing, 4),
            "decision_making": round(1.0 - validation.decision_making, 4),
            "personal_work": round(1.0 - validation.personal_work, 4),
        }
        total = round(1.0 - validation.overall_score, 4)
        if validation.overall_score >= 0.8:
            level = RiskLevel.LOW
        elif validation.overall_score >= 0.6:
            level = RiskLevel.MEDIUM
        else:
            level = RiskLevel.HIGH
        actions = [r for r in validation.recommendations if r in HIGH_RISK_RECOMMENDATIONS]
        return ZZPRiskAssessment(
            guard_id=guard_id,
            total_risk_score=total,
            risk_level=level,
            risk_factors=factors,
            recommended_actions=tuple(actions),
            assessed_at=now or datetime.now(),
        )

    # =========================================================================
    # Store lookups (shifts, expenses, paid vakantiegeld)
    # =========================================================================

    def get_shifts(self, guard_id: str, start: date | None = None, end: date | None = None) -> list[dict[str, str]]:
        if self._store is None:
            return []
        rows = self._store.table("shifts").find({"Guard ID": guard_id})
        if start is None and end is None:
            return rows
        selected = []
        for row in rows:
            started = parse_datetime(row.get("Start"))
            if started is None:
                continue
            if start is not None and started.date() < start:
                continue
            if end is not None and started.date() > end:
                continue
            selected.append(row)
        return selected

    def get_quarterly_breakdown(self, guard_id: str, year: int) -> list[QuarterlyIncome]:
        quarters = []
        for quarter in range(1, 5):
            start, end = _quarter_bounds(year, quarter)
            shifts = self.get_shifts(guard_id, start, end)
            gross = round(sum(parse_float(s.get("Earnings")) for s in shifts), 2)
            quarters.append(QuarterlyIncome(
                quarter=quarter,
                start_date=start,
                end_date=end,
                gross_income=gross,
                net_income=round(gross * NET_INCOME_ESTIMATE, 2),
                hours_worked=sum(parse_float(s.get("Hours")) for s in shifts),
            ))
        return quarters

    def get_professional_expenses(self, guard_id: str, year: int) -> dict[str, float]:
        """Expense totals per category for the year (fully deductible)."""
        if self._store is None:
            return {}
        by_category: dict[str, float] = {}
        for row in self._store.table("expenses").find({"Guard ID": guard_id}):
            expense_date = parse_date(row.get("Date"))
            if expense_date is None or expense_date.year != year:
                continue
            category = row.get("Category") or "business_expenses"
            by_category[category] = round(by_category.get(category, 0.0) + parse_float(row.get("Amount")), 2)
        return by_category

    def validate_guard_zzp_status(self, guard_id: str, limit: int = 100) -> ZZPStatusValidation:
        shifts = sorted(self.get_shifts(guard_id), key=lambda s: s.get("Start", ""), reverse=True)
        return self.validate_zzp_status(shifts[:limit])

    def check_guard_minimum_wage(self, guard_id: str, start: date, end: date) -> MinimumWageCheck:
        shifts = self.get_shifts(guard_id, start, end)
        return self.check_minimum_wage(
            sum(parse_float(s.get("Hours")) for s in shifts),
            sum(parse_float(s.get("Earnings")) for s in shifts),
        )

    def get_vakantiegeld_paid(self, guard_id: str, year: int) -> float:
        """Vakantiegeld already paid out, from the 0% vakantiegeld lines of the guard's salary invoices."""
        if self._store is None:
            return 0.0
        paid = 0.0
        for row in self._store.table("invoices").find({"Guard ID": guard_id, "Type": "salary"}):
            issued = parse_date(row.get("Issue Date"))
            if issued is None or issued.year != year:
                continue
            for item in json.loads(row.get("Line Items") or "[]"):
                if str(item.get("description", "")).startswith("Vakantiegeld"):
                    paid += float(item.get("quantity", 0)) * float(item.get("unit_price", 0))
        return round(paid, 2)

    def calculate_guard_vakantiegeld(self, guard_id: str, year: int) -> VakantiegeldCalculation:
        start, end = date(year, 1, 1), date(year, 12, 31)
        earnings = sum(parse_float(s.get("Earnings")) for s in self.get_shifts(guard_id, start, end))
        return self.calculate_vakantiegeld(round(earnings, 2), self.get_vakantiegeld_paid(guard_id, year))
