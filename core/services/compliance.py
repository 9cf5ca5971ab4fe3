"""Working-time (Arbeidstijdenwet) and CAO pay checks for guard shifts."""

from dataclasses import dataclass, field
from datetime import datetime, time, timedelta
from typing import Any

from utils.parsing import parse_datetime, parse_float, parse_int

MAX_HOURS_PER_DAY = 9
MAX_HOURS_PER_WEEK = 48
MIN_REST_HOURS = 11
MAX_WORKING_DAYS_PER_WEEK = 6
BREAK_REQUIRED_AFTER_HOURS = 4.5
MIN_BREAK_MINUTES = 30
NIGHT_START_HOUR = 22
NIGHT_END_HOUR = 6
MAX_CONSECUTIVE_NIGHT_SHIFTS = 2

# CAO Particuliere Beveiliging minimum hourly rates (2024), per skill level
CAO_HOURLY_RATES = {
    1: 12.83,
    2: 13.45,
    3: 14.20,
    4: 15.10,
}

WEEKEND_SURCHARGE = 0.25
NIGHT_SURCHARGE = 0.20
HOLIDAY_SURCHARGE = 1.00
VACATION_PAY_RATE = 0.0833


@dataclass(frozen=True)
class ShiftPeriod:
    start: datetime
    end: datetime
    break_minutes: int = 0

    @property
    def hours(self) -> float:
        return (self.end - self.start).total_seconds() / 3600

    @property
    def is_weekend(self) -> bool:
        return self.start.weekday() >= 5

    @property
    def is_night_shift(self) -> bool:
        return is_night_shift(self.start, self.end)


@dataclass(frozen=True)
class ShiftValidation:
    is_compliant: bool
    violations: list[str]
    warnings: list[str]
    hours_worked: float
    weekly_hours_total: float
    is_night_shift: bool
    rest_hours_since_last_shift: float | None


@dataclass(frozen=True)
class CAOPaymentValidation:
    is_compliant: bool
    violations: list[str]
    hourly_rate: float
    minimum_rate: float
    current_total: float
    required_total: float
    adjustments: dict[str, float]
    vacation_pay: float

    @property
    def shortfall(self) -> float:
        return round(max(0.0, self.required_total - self.current_total), 2)


@dataclass(frozen=True)
class ComplianceReport:
    guard_id: str
    period_start: datetime
    period_end: datetime
    total_shifts: int
    compliant_shifts: int
    shift_issues: list[dict[str, Any]] = field(default_factory=list)
    shift_warnings: list[dict[str, Any]] = field(default_factory=list)
    compliant_payments: int = 0
    total_shortfall: float = 0.0

    @property
    def shift_compliance_rate(self) -> float:
        return self.compliant_shifts / self.total_shifts if self.total_shifts else 1.0

    @property
    def payment_compliance_rate(self) -> float:
        return self.compliant_payments / self.total_shifts if self.total_shifts else 1.0

    @property
    def overall_status(self) -> str:
        rate = (self.shift_compliance_rate + self.payment_compliance_rate) / 2
        if rate >= 0.95:
            return "Uitstekend - Volledig compliant"
        if rate >= 0.85:
            return "Goed - Kleine verbeterpunten"
        if rate >= 0.70:
            return "Redelijk - Meerdere compliance gaten"
        return "Slecht - Grote compliance problemen vereisen directe actie"

    @property
    def recommendations(self) -> list[str]:
        recommendations = []
        if self.shift_compliance_rate < 0.9:
            recommendations.extend([
                "Implementeer geautomatiseerde compliance controles",
                "Train managers in arbeidsrecht en CAO-bepalingen",
                "Stel duidelijke procedures op voor dienstregelingen",
            ])
        if len(self.shift_issues) > 5:
            recommendations.extend([
                "Voer structurele review uit van werkprocessen",
                "Overweeg investering in workforce management systeem",
            ])
        recommendations.append("Plan maandelijkse compliance reviews")
        recommendations.append("Documenteer alle afwijkingen en correctieve maatregelen")
        return recommendations


def is_night_shift(start: datetime, end: datetime) -> bool:
    """True when any part of [start, end) falls between 22:00 and 06:00."""
    day = start.date() - timedelta(days=1)
    while day <= end.date():
        night_start = datetime.combine(day, time(NIGHT_START_HOUR))
        night_end = datetime.combine(day + timedelta(days=1), time(NIGHT_END_HOUR))
        if start < night_end and end > night_start:
            return True
        day += timedelta(days=1)
    return False


def _week_start(moment: datetime) -> datetime:
    monday = moment.date() - timedelta(days=moment.weekday())
    return datetime.combine(monday, time())


class LaborLawComplianceService:
    """
    Checks a planned shift against the guard's earlier shifts. Earlier shifts
    are passed in, or read from the shifts table when a store is given.
    """

    def __init__(self, store: Any = None) -> None:
        self._store = store

    def get_shift_periods(self, guard_id: str) -> list[ShiftPeriod]:
        if self._store is None:
            return []
        periods = []
        for row in self._store.table("shifts").find({"Guard ID": guard_id}):
            start = parse_datetime(row.get("Start"))
            end = parse_datetime(row.get("End"))
            if start is None or end is None or end <= start:
                continue
            periods.append(ShiftPeriod(start, end))
        return sorted(periods, key=lambda p: p.start)

    def validate_shift(
        self,
        guard_id: str,
        start: datetime,
        end: datetime,
        previous_shifts: list[ShiftPeriod] | None = None,
        break_minutes: int = 0,
    ) -> ShiftValidation:
        if end <= start:
            raise ValueError("Shift end must be after shift start")
        if previous_shifts is None:
            previous_shifts = self.get_shift_periods(guard_id)
        earlier = [p for p in previous_shifts if p.start < start]

        violations: list[str] = []
        warnings: list[str] = []
        hours = (end - start).total_seconds() / 3600

        if hours > MAX_HOURS_PER_DAY:
            violations.append(
                f"Overschrijding maximum dagelijkse werktijd: {hours:.1f}h > {MAX_HOURS_PER_DAY}h"
            )

        week_start = _week_start(start)
        same_week = [p for p in earlier if week_start <= p.start < week_start + timedelta(days=7)]
        weekly_total = sum(p.hours for p in same_week) + hours
        if weekly_total > MAX_HOURS_PER_WEEK:
            violations.append(
                f"Overschrijding maximum wekelijkse werktijd: {weekly_total:.1f}h > {MAX_HOURS_PER_WEEK}h"
            )

        working_days = {p.start.date() for p in same_week} | {start.date()}
        if len(working_days) > MAX_WORKING_DAYS_PER_WEEK:
            violations.append(
                f"Overschrijding maximum werkdagen per week: {len(working_days)} > {MAX_WORKING_DAYS_PER_WEEK}"
            )

        rest_hours = None
        ended_before = [p.end for p in earlier if p.end <= start]
        if ended_before:
            rest_hours = round((start - max(ended_before)).total_seconds() / 3600, 1)
            if rest_hours < MIN_REST_HOURS:
                violations.append(f"Onvoldoende rusttijd: {rest_hours:g}h < {MIN_REST_HOURS}h")

        if hours > BREAK_REQUIRED_AFTER_HOURS and break_minutes < MIN_BREAK_MINUTES:
            warnings.append("Pauze van minimaal 30 minuten vereist voor diensten langer dan 4,5 uur")

        night = is_night_shift(start, end)
        if night:
            recent_nights = [
                p for p in earlier
                if p.start >= start - timedelta(days=3) and p.is_night_shift
            ]
            if len(recent_nights) >= MAX_CONSECUTIVE_NIGHT_SHIFTS:
                violations.append("Maximum van 2 opeenvolgende nachtdiensten overschreden")

        return ShiftValidation(
            is_compliant=not violations,
            violations=violations,
            warnings=warnings,
            hours_worked=round(hours, 2),
            weekly_hours_total=round(weekly_total, 2),
            is_night_shift=night,
            rest_hours_since_last_shift=rest_hours,
        )

    def validate_cao_payment(
        self,
        hourly_rate: float,
        hours_worked: float,
        skill_level: int = 1,
        is_weekend: bool = False,
        is_night: bool = False,
        is_holiday: bool = False,
    ) -> CAOPaymentValidation:
        """
        Compare pay against the CAO minimum for the skill level. Surcharges and
        vacation pay are computed on the minimum rate and added to the required total.
        """
        minimum_rate = CAO_HOURLY_RATES.get(skill_level, CAO_HOURLY_RATES[1])
        violations = []
        adjustments: dict[str, float] = {}

        if hourly_rate < minimum_rate:
            violations.append(f"Uurloon onder CAO minimum: €{hourly_rate:.2f} < €{minimum_rate:.2f}")
            adjustments["base_rate_adjustment"] = round((minimum_rate - hourly_rate) * hours_worked, 2)

        base = minimum_rate * hours_worked
        if is_weekend:
            adjustments["weekend_surcharge"] = round(base * WEEKEND_SURCHARGE, 2)
        if is_night:
            adjustments["night_surcharge"] = round(base * NIGHT_SURCHARGE, 2)
        if is_holiday:
            adjustments["holiday_surcharge"] = round(base * HOLIDAY_SURCHARGE, 2)
        vacation_pay = round(base * VACATION_PAY_RATE, 2)
        adjustments["vacation_pay"] = vacation_pay

        surcharges = sum(v for k, v in adjustments.items() if k != "base_rate_adjustment")
        return CAOPaymentValidation(
            is_compliant=not violations,
            violations=violations,
            hourly_rate=hourly_rate,
            minimum_rate=minimum_rate,
            current_total=round(hourly_rate * hours_worked, 2),
            required_total=round(base + surcharges, 2),
            adjustments=adjustments,
            vacation_pay=vacation_pay,
        )

    def monitor_compliance(
        self, guard_id: str, days: int = 30, now: datetime | None = None
    ) -> ComplianceReport:
        """Re-check every stored shift of the last `days` days against the ones before it."""
        now = now or datetime.now()
        period_start = now - timedelta(days=days)
        all_shifts = self.get_shift_periods(guard_id)
        rows = {
            row.get("Start"): row
            for row in (self._store.table("shifts").find({"Guard ID": guard_id}) if self._store else [])
        }

        issues: list[dict[str, Any]] = []
        warnings: list[dict[str, Any]] = []
        compliant_payments = 0
        shortfall = 0.0
        in_period = [p for p in all_shifts if period_start <= p.start <= now]

        for shift in in_period:
            result = self.validate_shift(guard_id, shift.start, shift.end, all_shifts,
                                         break_minutes=MIN_BREAK_MINUTES)
            if result.violations:
                issues.append({"date": shift.start, "violations": result.violations})
            if result.warnings:
                warnings.append({"date": shift.start, "warnings": result.warnings})

            row = rows.get(shift.start.isoformat(), {})
            hours = parse_float(row.get("Hours")) or shift.hours
            rate = parse_float(row.get("Earnings")) / hours if hours else 0.0
            payment = self.validate_cao_payment(
                rate, hours,
                skill_level=parse_int(row.get("Skill Level"), 1),
                is_weekend=shift.is_weekend,
                is_night=shift.is_night_shift,
            )
            if payment.is_compliant:
                compliant_payments += 1
            else:
                shortfall += payment.shortfall

        return ComplianceReport(
            guard_id=guard_id,
            period_start=period_start,
            period_end=now,
            total_shifts=len(in_period),
            compliant_shifts=len(in_period) - len(issues),
            shift_issues=issues,
            shift_warnings=warnings,
            compliant_payments=compliant_payments,
            total_shortfall=round(shortfall, 2),
        )
