"""Unit tests for working-time and CAO pay checks."""

from datetime import datetime

import pytest

from core.services.compliance import (
    ComplianceReport,
    LaborLawComplianceService,
    ShiftPeriod,
    is_night_shift,
)


def _dt(day, hour, minute=0):
    return datetime(2024, 6, day, hour, minute)


@pytest.fixture
def compliance():
    return LaborLawComplianceService()


class TestNightShift:
    def test_overlap_with_night_window(self):
        assert is_night_shift(_dt(3, 23), _dt(4, 7))
        assert is_night_shift(_dt(3, 5), _dt(3, 8))
        assert not is_night_shift(_dt(3, 6), _dt(3, 14))
        assert not is_night_shift(_dt(3, 14), _dt(3, 22))

    def test_shift_period_properties(self):
        period = ShiftPeriod(_dt(8, 22), _dt(9, 6))
        assert period.hours == 8
        assert period.is_weekend
        assert period.is_night_shift


class TestValidateShift:
    def test_regular_day_shift(self, compliance):
        result = compliance.validate_shift("guard-1", _dt(3, 8), _dt(3, 17), [], break_minutes=30)
        assert result.is_compliant
        assert result.warnings == []
        assert result.hours_worked == 9
        assert result.rest_hours_since_last_shift is None

    def test_break_warning(self, compliance):
        result = compliance.validate_shift("guard-1", _dt(3, 8), _dt(3, 13), [], break_minutes=15)
        assert result.is_compliant
        assert result.warnings == ["Pauze van minimaal 30 minuten vereist voor diensten langer dan 4,5 uur"]

    def test_daily_maximum(self, compliance):
        result = compliance.validate_shift("guard-1", _dt(3, 8), _dt(3, 18), [], break_minutes=30)
        assert not result.is_compliant
        assert result.violations[0].startswith("Overschrijding maximum dagelijkse werktijd: 10.0h")

    def test_insufficient_rest(self, compliance):
        previous = [ShiftPeriod(_dt(2, 14), _dt(2, 23))]
        result = compliance.validate_shift("guard-1", _dt(3, 8), _dt(3, 16), previous, break_minutes=30)
        assert result.rest_hours_since_last_shift == 9
        assert result.violations == ["Onvoldoende rusttijd: 9h < 11h"]

    def test_weekly_hours_and_days(self, compliance):
        previous = [ShiftPeriod(_dt(day, 8), _dt(day, 17)) for day in range(3, 9)]
        result = compliance.validate_shift("guard-1", _dt(9, 8), _dt(9, 16), previous, break_minutes=30)
        assert result.weekly_hours_total == 62
        assert any("wekelijkse werktijd" in v for v in result.violations)
        assert any("werkdagen per week: 7 > 6" in v for v in result.violations)

    def test_previous_week_not_counted(self, compliance):
        previous = [ShiftPeriod(_dt(day, 8), _dt(day, 17)) for day in range(1, 3)]
        result = compliance.validate_shift("guard-1", _dt(3, 8), _dt(3, 16), previous, break_minutes=30)
        assert result.weekly_hours_total == 8

    def test_consecutive_night_shifts(self, compliance):
        previous = [ShiftPeriod(_dt(3, 23), _dt(4, 7)), ShiftPeriod(_dt(4, 23), _dt(5, 7))]
        result = compliance.validate_shift("guard-1", _dt(6, 23), _dt(7, 7), previous, break_minutes=30)
        assert result.is_night_shift
        assert "Maximum van 2 opeenvolgende nachtdiensten overschreden" in result.violations

    def test_end_before_start(self, compliance):
        with pytest.raises(ValueError, match="end must be after"):
            compliance.validate_shift("guard-1", _dt(3, 17), _dt(3, 8), [])

    def test_reads_previous_shifts_from_store(self, db):
        db.table("shifts").add_rows([
            {"Shift ID": "S1", "Guard ID": "guard-1", "Start": "2024-06-02T14:00:00", "End": "2024-06-02T23:00:00"},
            {"Shift ID": "S2", "Guard ID": "guard-1", "Start": "bogus", "End": ""},
        ])
        service = LaborLawComplianceService(db)
        assert len(service.get_shift_periods("guard-1")) == 1
        result = service.validate_shift("guard-1", _dt(3, 8), _dt(3, 16), break_minutes=30)
        assert not result.is_compliant


class TestCAOPayment:
    def test_below_minimum(self, compliance):
        result = compliance.validate_cao_payment(12.0, 8)
        assert not result.is_compliant
        assert result.adjustments["base_rate_adjustment"] == pytest.approx(6.64)
        assert result.vacation_pay == pytest.approx(8.55)
        assert result.required_total == pytest.approx(102.64 + 8.55)
        assert result.current_total == 96.0
        assert result.shortfall == pytest.approx(111.19 - 96.0)

    def test_surcharges_added_to_required_total(self, compliance):
        result = compliance.validate_cao_payment(20.0, 8, is_weekend=True, is_night=True)
        assert result.is_compliant
        assert result.adjustments["weekend_surcharge"] == pytest.approx(25.66)
        assert result.adjustments["night_surcharge"] == pytest.approx(20.53)
        assert result.required_total == pytest.approx(102.64 + 25.66 + 20.53 + 8.55)

    def test_skill_levels(self, compliance):
        assert compliance.validate_cao_payment(14.0, 1, skill_level=3).minimum_rate == 14.20
        assert not compliance.validate_cao_payment(14.0, 1, skill_level=3).is_compliant
        assert compliance.validate_cao_payment(14.0, 1, skill_level=9).minimum_rate == 12.83


class TestMonitorCompliance:
    def test_report_over_stored_shifts(self, db):
        db.table("shifts").add_rows([
            {"Shift ID": "S1", "Guard ID": "guard-1", "Start": "2024-06-03T08:00:00",
             "End": "2024-06-03T17:00:00", "Hours": "9", "Earnings": "180"},
            {"Shift ID": "S2", "Guard ID": "guard-1", "Start": "2024-06-04T08:00:00",
             "End": "2024-06-04T18:00:00", "Hours": "10", "Earnings": "100"},
            {"Shift ID": "S3", "Guard ID": "guard-1", "Start": "2024-04-01T08:00:00",
             "End": "2024-04-01T20:00:00", "Hours": "12", "Earnings": "50"},
        ])
        report = LaborLawComplianceService(db).monitor_compliance("guard-1", now=_dt(10, 12))
        assert report.total_shifts == 2
        assert report.compliant_shifts == 1
        assert report.compliant_payments == 1
        assert report.shift_warnings == []
        assert report.total_shortfall == pytest.approx(128.3 + 10.69 - 100)
        assert report.shift_compliance_rate == 0.5
        assert report.overall_status.startswith("Slecht")
        assert "Implementeer geautomatiseerde compliance controles" in report.recommendations

    def test_empty_report(self, compliance):
        report = compliance.monitor_compliance("guard-1", now=_dt(10, 12))
        assert report.total_shifts == 0
        assert report.shift_compliance_rate == 1.0
        assert report.overall_status == "Uitstekend - Volledig compliant"

    def test_status_thresholds(self):
        report = ComplianceReport("g", _dt(1, 0), _dt(30, 0), total_shifts=10, compliant_shifts=9,
                                  compliant_payments=9)
        assert report.overall_status == "Goed - Kleine verbeterpunten"
        assert report.recommendations[-1] == "Documenteer alle afwijkingen en correctieve maatregelen"
