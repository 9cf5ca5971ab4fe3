"""Guard certificates (WPBR, VCA, BHV, EHBO), expiry alerts and renewal courses."""

from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Any

from utils.formatting import format_dutch_currency, format_dutch_date
from utils.parsing import join_list, parse_bool, parse_date, parse_datetime, parse_int, split_list

# Days before expiry at which a warning goes out
ALERT_SCHEDULE = (90, 60, 30, 7, 1)

EXPIRING_SOON_DAYS = 30


class CertificateType(Enum):
    WPBR = ("WPBR", "Wet Particuliere Beveiligingsorganisaties", r"^WPBR-\d{6}$", 5)
    VCA = ("VCA", "Veiligheid Checklist Aannemers", r"^VCA-\d{8}$", 10)
    BHV = ("BHV", "Bedrijfshulpverlening", r"^BHV-\d{7}$", 1)
    EHBO = ("EHBO", "Eerste Hulp Bij Ongelukken", r"^EHBO-\d{6}$", 3)

    def __init__(self, code: str, full_name: str, pattern: str, validity_years: int) -> None:
        self.code = code
        self.full_name = full_name
        self.pattern = re.compile(pattern, re.IGNORECASE)
        self.validity_years = validity_years

    def is_valid_number(self, number: str) -> bool:
        return bool(self.pattern.match((number or "").strip()))

    @classmethod
    def from_code(cls, code: str) -> CertificateType:
        for cert_type in cls:
            if cert_type.code == (code or "").strip().upper():
                return cert_type
        raise ValueError(f"Unknown certificate type: {code!r}")


class CertificateStatus(Enum):
    VALID = ("valid", "Geldig")
    EXPIRED = ("expired", "Verlopen")
    EXPIRING_SOON = ("expiring_soon", "Verloopt binnenkort")
    SUSPENDED = ("suspended", "Geschorst")
    REVOKED = ("revoked", "Ingetrokken")
    PENDING = ("pending", "In behandeling")
    UNKNOWN = ("unknown", "Onbekend")

    def __init__(self, code: str, dutch_label: str) -> None:
        self.code = code
        self.dutch_label = dutch_label

    @property
    def requires_attention(self) -> bool:
        return self in (
            CertificateStatus.EXPIRED,
            CertificateStatus.EXPIRING_SOON,
            CertificateStatus.SUSPENDED,
            CertificateStatus.REVOKED,
        )

    @classmethod
    def from_code(cls, code: str) -> CertificateStatus:
        for status in cls:
            if status.code == (code or "").strip().lower():
                return status
        return cls.UNKNOWN


@dataclass(frozen=True)
class Certificate:
    id: str
    user_id: str
    type: CertificateType
    number: str
    holder_name: str
    issue_date: date
    expiration_date: date
    status: CertificateStatus = CertificateStatus.VALID
    issuing_authority: str = ""
    competencies: tuple[str, ...] = ()
    verified: bool = False

    def __post_init__(self) -> None:
        if self.expiration_date <= self.issue_date:
            raise ValueError(
                f"Certificate {self.number!r}: expiration date must be after issue date"
            )

    def days_until_expiration(self, today: date | None = None) -> int:
        today = today or date.today()
        return (self.expiration_date - today).days

    def is_expired(self, today: date | None = None) -> bool:
        return self.days_until_expiration(today) < 0

    def expires_soon(self, today: date | None = None) -> bool:
        days = self.days_until_expiration(today)
        return 0 < days <= EXPIRING_SOON_DAYS

    def current_status(self, today: date | None = None) -> CertificateStatus:
        """Stored status, overridden by the expiry date for valid certificates."""
        if self.status in (CertificateStatus.SUSPENDED, CertificateStatus.REVOKED, CertificateStatus.PENDING):
            return self.status
        if self.is_expired(today):
            return CertificateStatus.EXPIRED
        if self.expires_soon(today):
            return CertificateStatus.EXPIRING_SOON
        return CertificateStatus.VALID

    def is_currently_valid(self, today: date | None = None) -> bool:
        return self.current_status(today) in (CertificateStatus.VALID, CertificateStatus.EXPIRING_SOON)

    def has_valid_number(self) -> bool:
        return self.type.is_valid_number(self.number)

    def copy_with(self, **changes: Any) -> Certificate:
        return replace(self, **changes)

    def to_row(self) -> dict[str, str]:
        return {
            "Certificate ID": self.id,
            "User ID": self.user_id,
            "Type": self.type.code,
            "Number": self.number,
            "Holder Name": self.holder_name,
            "Issue Date": self.issue_date.isoformat(),
            "Expiration Date": self.expiration_date.isoformat(),
            "Status": self.status.code,
            "Issuing Authority": self.issuing_authority,
            "Competencies": join_list(self.competencies),
            "Verified": "TRUE" if self.verified else "FALSE",
        }

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> Certificate:
        issue_date = parse_date(row.get("Issue Date"))
        expiration_date = parse_date(row.get("Expiration Date"))
        if issue_date is None or expiration_date is None:
            raise ValueError(f"Certificate row {row.get('Certificate ID')!r} is missing dates")
        return cls(
            id=row.get("Certificate ID", ""),
            user_id=row.get("User ID", ""),
            type=CertificateType.from_code(row.get("Type", "")),
            number=row.get("Number", ""),
            holder_name=row.get("Holder Name", ""),
            issue_date=issue_date,
            expiration_date=expiration_date,
            status=CertificateStatus.from_code(row.get("Status", "")),
            issuing_authority=row.get("Issuing Authority", ""),
            competencies=tuple(split_list(row.get("Competencies", ""))),
            verified=parse_bool(row.get("Verified")),
        )


class AlertType(Enum):
    WARNING_90 = ("warning90", "90 dagen waarschuwing", 1, "#2196F3")
    WARNING_60 = ("warning60", "60 dagen waarschuwing", 2, "#2196F3")
    WARNING_30 = ("warning30", "30 dagen waarschuwing", 3, "#FF9800")
    WARNING_7 = ("warning7", "7 dagen waarschuwing", 4, "#FF5722")
    WARNING_1 = ("warning1", "1 dag waarschuwing", 5, "#F44336")
    EXPIRED = ("expired", "Certificaat verlopen", 6, "#F44336")

    def __init__(self, code: str, display_name: str, urgency_level: int, color_hex: str) -> None:
        self.code = code
        self.display_name = display_name
        self.urgency_level = urgency_level
        self.color_hex = color_hex

    def alert_message(self, certificate_type: str, days_remaining: int) -> str:
        if self is AlertType.WARNING_90:
            return f"Je {certificate_type} certificaat verloopt over {days_remaining} dagen. Plan je verlenging."
        if self is AlertType.WARNING_60:
            return f"Je {certificate_type} certificaat verloopt over {days_remaining} dagen. Boek nu je verlengingscursus."
        if self is AlertType.WARNING_30:
            return f"Urgent: Je {certificate_type} certificaat verloopt over {days_remaining} dagen!"
        if self is AlertType.WARNING_7:
            return f"Kritiek: Je {certificate_type} certificaat verloopt over {days_remaining} dagen!"
        if self is AlertType.WARNING_1:
            return f"Laatste dag: Je {certificate_type} certificaat verloopt morgen!"
        return f"Je {certificate_type} certificaat is verlopen. Verleng direct om te blijven werken."

    @classmethod
    def from_code(cls, code: str) -> AlertType:
        for alert_type in cls:
            if alert_type.code == code:
                return alert_type
        return cls.WARNING_30


_ALERT_TYPES_BY_DAYS = {
    90: AlertType.WARNING_90,
    60: AlertType.WARNING_60,
    30: AlertType.WARNING_30,
    7: AlertType.WARNING_7,
    1: AlertType.WARNING_1,
}


def alert_type_for_days(days: int) -> AlertType:
    return _ALERT_TYPES_BY_DAYS.get(days, AlertType.WARNING_30)


@dataclass(frozen=True)
class RenewalCourse:
    id: str
    name: str
    provider: str
    duration_hours: int
    price: float
    next_start_date: date
    is_online: bool = False
    booking_url: str = ""

    @property
    def formatted_price(self) -> str:
        return format_dutch_currency(self.price)

    @property
    def formatted_duration(self) -> str:
        if self.duration_hours < 24:
            return f"{self.duration_hours} uur"
        days = self.duration_hours // 24
        return f"{days} dag" if days == 1 else f"{days} dagen"

    @property
    def formatted_start_date(self) -> str:
        return format_dutch_date(self.next_start_date)

    def is_starting_soon(self, today: date | None = None) -> bool:
        today = today or date.today()
        return 0 <= (self.next_start_date - today).days <= 7


@dataclass(frozen=True)
class CertificateAlert:
    id: str
    user_id: str
    certificate_id: str
    certificate_type: CertificateType
    certificate_number: str
    alert_type: AlertType
    alert_date: datetime
    expiry_date: date
    days_until_expiry: int
    sent: bool = False
    sent_at: datetime | None = None
    action_taken: bool = False
    action_taken_at: datetime | None = None
    renewal_courses: tuple[RenewalCourse, ...] = field(default_factory=tuple)

    @classmethod
    def create_expiry_warning(
        cls,
        certificate: Certificate,
        alert_type: AlertType,
        renewal_courses: tuple[RenewalCourse, ...] = (),
        now: datetime | None = None,
    ) -> CertificateAlert:
        now = now or datetime.now()
        return cls(
            id=f"{certificate.id}_{alert_type.code}",
            user_id=certificate.user_id,
            certificate_id=certificate.id,
            certificate_type=certificate.type,
            certificate_number=certificate.number,
            alert_type=alert_type,
            alert_date=now,
            expiry_date=certificate.expiration_date,
            days_until_expiry=certificate.days_until_expiration(now.date()),
            renewal_courses=tuple(renewal_courses),
        )

    @classmethod
    def create_expired_alert(
        cls,
        certificate: Certificate,
        renewal_courses: tuple[RenewalCourse, ...] = (),
        now: datetime | None = None,
    ) -> CertificateAlert:
        return cls.create_expiry_warning(certificate, AlertType.EXPIRED, renewal_courses, now)

    @property
    def title(self) -> str:
        if self.alert_type is AlertType.EXPIRED:
            return f"{self.certificate_type.code} Certificaat Verlopen"
        return f"{self.certificate_type.code} Certificaat Verloopt Binnenkort"

    @property
    def message(self) -> str:
        return self.alert_type.alert_message(self.certificate_type.code, self.days_until_expiry)

    @property
    def urgency_level(self) -> int:
        return self.alert_type.urgency_level

    @property
    def is_critical(self) -> bool:
        return self.alert_type in (AlertType.WARNING_7, AlertType.WARNING_1, AlertType.EXPIRED)

    @property
    def time_until_expiry_text(self) -> str:
        if self.days_until_expiry < 0:
            return f"Verlopen {abs(self.days_until_expiry)} dagen geleden"
        if self.days_until_expiry == 0:
            return "Verloopt vandaag"
        if self.days_until_expiry == 1:
            return "Verloopt morgen"
        return f"Verloopt over {self.days_until_expiry} dagen"

    @property
    def renewal_course_summary(self) -> str:
        if not self.renewal_courses:
            return "Geen verlengingscursussen beschikbaar"
        if len(self.renewal_courses) == 1:
            course = self.renewal_courses[0]
            return f"{course.name} - {course.formatted_price}"
        cheapest = min(self.renewal_courses, key=lambda c: c.price)
        return f"{len(self.renewal_courses)} cursussen beschikbaar vanaf {cheapest.formatted_price}"

    def to_row(self) -> dict[str, str]:
        return {
            "Alert ID": self.id,
            "User ID": self.user_id,
            "Certificate ID": self.certificate_id,
            "Certificate Type": self.certificate_type.code,
            "Certificate Number": self.certificate_number,
            "Alert Type": self.alert_type.code,
            "Alert Date": self.alert_date.isoformat(),
            "Expiry Date": self.expiry_date.isoformat(),
            "Days Until Expiry": str(self.days_until_expiry),
            "Sent": "TRUE" if self.sent else "FALSE",
            "Sent At": self.sent_at.isoformat() if self.sent_at else "",
            "Action Taken": "TRUE" if self.action_taken else "FALSE",
            "Action Taken At": self.action_taken_at.isoformat() if self.action_taken_at else "",
        }

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> CertificateAlert:
        return cls(
            id=row.get("Alert ID", ""),
            user_id=row.get("User ID", ""),
            certificate_id=row.get("Certificate ID", ""),
            certificate_type=CertificateType.from_code(row.get("Certificate Type", "WPBR") or "WPBR"),
            certificate_number=row.get("Certificate Number", ""),
            alert_type=AlertType.from_code(row.get("Alert Type", "")),
            alert_date=parse_datetime(row.get("Alert Date")) or datetime.min,
            expiry_date=parse_date(row.get("Expiry Date")) or date.min,
            days_until_expiry=parse_int(row.get("Days Until Expiry")),
            sent=parse_bool(row.get("Sent")),
            sent_at=parse_datetime(row.get("Sent At")),
            action_taken=parse_bool(row.get("Action Taken")),
            action_taken_at=parse_datetime(row.get("Action Taken At")),
        )


def default_renewal_courses(cert_type: CertificateType, today: date | None = None) -> list[RenewalCourse]:
    """Built-in renewal courses per certificate type; start dates are relative to today."""
    today = today or date.today()
    if cert_type is CertificateType.WPBR:
        return [
            RenewalCourse("wpbr_renewal_001", "WPBR Herhalingscursus Particuliere Beveiliging",
                          "Beveiligingsacademie Nederland", 16, 395.0, today + timedelta(days=14)),
            RenewalCourse("wpbr_renewal_002", "WPBR Update Training Online",
                          "E-Learning Beveiliging", 8, 295.0, today + timedelta(days=3), is_online=True),
        ]
    if cert_type is CertificateType.VCA:
        return [
            RenewalCourse("vca_renewal_001", "VCA Herhalingscursus Basis",
                          "VCA Training Center", 4, 125.0, today + timedelta(days=7)),
        ]
    if cert_type is CertificateType.BHV:
        return [
            RenewalCourse("bhv_renewal_001", "BHV Herhalingstraining",
                          "Arbo Training Solutions", 4, 89.0, today + timedelta(days=5)),
        ]
    return [
        RenewalCourse("ehbo_renewal_001", "EHBO Herhalingscursus",
                      "Rode Kruis Nederland", 4, 65.0, today + timedelta(days=10)),
    ]
