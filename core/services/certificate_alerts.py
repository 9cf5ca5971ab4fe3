"""CertificateAlertService: daily expiry checks, alert history and renewal courses."""

from dataclasses import replace
from datetime import date, datetime, timedelta
from typing import Any

import config
from utils.parsing import parse_bool, parse_date

from ..certificates import (
    ALERT_SCHEDULE,
    AlertType,
    Certificate,
    CertificateAlert,
    CertificateStatus,
    CertificateType,
    RenewalCourse,
    alert_type_for_days,
    default_renewal_courses,
)
from ..notifications import NotificationCategory
from .notifications import GuardNotificationService


class CertificateAlertService:
    """
    Walks the certificates table once a day and sends at most one alert per
    certificate per schedule step. Sent alerts are kept in certificate_alerts;
    an alert counts as already sent only for the certificate's current expiry
    date, so a renewed certificate starts its schedule again.
    """

    def __init__(
        self,
        store: Any,
        notification_service: GuardNotificationService | None = None,
        settings: dict[str, Any] | None = None,
    ) -> None:
        if settings is None:
            settings = config._get_app_settings()
        section = settings.get("certificates") or {}

        self._store = store
        self._notifications = notification_service
        self.schedule = tuple(sorted(section.get("alert_schedule_days") or ALERT_SCHEDULE, reverse=True))
        self._course_overrides = section.get("renewal_courses") or {}

    @property
    def _certificates(self):
        return self._store.table("certificates")

    @property
    def _alerts(self):
        return self._store.table("certificate_alerts")

    # =========================================================================
    # Certificates
    # =========================================================================

    def add_certificate(self, certificate: Certificate) -> Certificate:
        if not certificate.has_valid_number():
            raise ValueError(
                f"Invalid {certificate.type.code} certificate number: {certificate.number!r}"
            )
        if self._certificates.find_one({"Certificate ID": certificate.id}) is not None:
            raise ValueError(f"Certificate {certificate.id!r} already exists")
        self._certificates.add_rows([certificate.to_row()])
        return certificate

    def _load_certificates(self, filters: dict[str, Any]) -> list[Certificate]:
        certificates = []
        for row in self._certificates.find(filters):
            try:
                certificates.append(Certificate.from_row(row))
            except ValueError as e:
                print(f"Skipping certificate {row.get('Certificate ID')!r}: {e}")
        return certificates

    def get_user_certificates(self, user_id: str) -> list[Certificate]:
        return self._load_certificates({"User ID": user_id})

    def get_certificate(self, certificate_id: str) -> Certificate | None:
        certificates = self._load_certificates({"Certificate ID": certificate_id})
        return certificates[0] if certificates else None

    def get_expiring_certificates(
        self, user_id: str, days: int = 30, today: date | None = None
    ) -> list[Certificate]:
        """Certificates expiring within the next `days` days (today included), soonest first."""
        today = today or date.today()
        expiring = [
            cert for cert in self.get_user_certificates(user_id)
            if 0 <= cert.days_until_expiration(today) <= days
        ]
        return sorted(expiring, key=lambda c: c.expiration_date)

    # =========================================================================
    # Alert scheduling
    # =========================================================================

    def _sent_alert_codes(self, certificate: Certificate) -> set[str]:
        rows = self._alerts.find({
            "Certificate ID": certificate.id,
            "Expiry Date": certificate.expiration_date.isoformat(),
        })
        return {row["Alert Type"] for row in rows if parse_bool(row.get("Sent"))}

    def check_certificate(
        self, certificate: Certificate, today: date | None = None, now: datetime | None = None
    ) -> CertificateAlert | None:
        """The alert that is due for this certificate today, or None."""
        today = today or date.today()
        now = now or datetime.combine(today, datetime.now().time())
        if certificate.status in (CertificateStatus.REVOKED, CertificateStatus.SUSPENDED):
            return None

        days_left = certificate.days_until_expiration(today)
        sent = self._sent_alert_codes(certificate)

        if days_left < 0:
            if AlertType.EXPIRED.code in sent:
                return None
            return CertificateAlert.create_expired_alert(certificate, now=now)

        for day in self.schedule:
            if day - 1 < days_left <= day:
                alert_type = alert_type_for_days(day)
                if alert_type.code in sent:
                    return None
                return CertificateAlert.create_expiry_warning(certificate, alert_type, now=now)
        return None

    def _record_alert(self, alert: CertificateAlert, now: datetime) -> CertificateAlert:
        alert = replace(alert, sent=True, sent_at=now)
        # Re-sending for a renewed certificate reuses the id; the old row goes
        self._alerts.delete_by_fields({"Alert ID": alert.id})
        self._alerts.add_rows([alert.to_row()])
        return alert

    def _refresh_status(self, certificate: Certificate, today: date) -> None:
        current = certificate.current_status(today)
        if current is not certificate.status:
            self._certificates.update_by_fields(
                {"Certificate ID": certificate.id}, {"Status": current.code}
            )

    def run_daily_check(self, today: date | None = None, now: datetime | None = None) -> int:
        """Check every certificate, send the due alerts, and return how many were sent."""
        today = today or date.today()
        now = now or datetime.combine(today, datetime.now().time())
        sent_count = 0

        for certificate in self._load_certificates({}):
            self._refresh_status(certificate, today)
            alert = self.check_certificate(certificate, today, now)
            if alert is None:
                continue

            alert = replace(alert, renewal_courses=tuple(self.get_renewal_courses(certificate.type, today)))
            alert = self._record_alert(alert, now)
            if self._notifications is not None:
                self._notifications.send(
                    alert.user_id,
                    NotificationCategory.CERTIFICATE_EXPIRY,
                    alert.title,
                    alert.message,
                    urgent=alert.is_critical,
                    data={
                        "certificate_id": alert.certificate_id,
                        "alert_type": alert.alert_type.code,
                        "days_until_expiry": alert.days_until_expiry,
                        "renewal_courses": alert.renewal_course_summary,
                    },
                    now=now,
                )
            sent_count += 1

        print(f"Certificate check {today.isoformat()}: {sent_count} alert(s) sent")
        return sent_count

    # =========================================================================
    # Alert history
    # =========================================================================

    def get_user_alerts(self, user_id: str) -> list[CertificateAlert]:
        alerts = [CertificateAlert.from_row(row) for row in self._alerts.find({"User ID": user_id})]
        return sorted(alerts, key=lambda a: a.alert_date, reverse=True)

    def mark_alert_action_taken(self, alert_id: str, now: datetime | None = None) -> bool:
        now = now or datetime.now()
        return self._alerts.update_by_fields(
            {"Alert ID": alert_id}, {"Action Taken": True, "Action Taken At": now.isoformat()}
        ) > 0

    def mark_certificate_renewed(
        self, certificate_id: str, new_expiry: date, now: datetime | None = None
    ) -> bool:
        certificate = self.get_certificate(certificate_id)
        if certificate is None:
            return False
        if new_expiry <= certificate.issue_date:
            raise ValueError("New expiration date must be after the issue date")

        now = now or datetime.now()
        self._certificates.update_by_fields({"Certificate ID": certificate_id}, {
            "Expiration Date": new_expiry.isoformat(),
            "Status": CertificateStatus.VALID.code,
        })
        self._alerts.update_by_fields(
            {"Certificate ID": certificate_id, "Action Taken": False},
            {"Action Taken": True, "Action Taken At": now.isoformat()},
        )
        print(f"Certificate {certificate_id} renewed until {new_expiry.isoformat()}")
        return True

    # =========================================================================
    # Renewal courses
    # =========================================================================

    def get_renewal_courses(self, cert_type: CertificateType, today: date | None = None) -> list[RenewalCourse]:
        """Courses from settings (certificates.renewal_courses.<TYPE>) or the built-in list."""
        today = today or date.today()
        overrides = self._course_overrides.get(cert_type.code)
        if not overrides:
            return default_renewal_courses(cert_type, today)
        return [
            RenewalCourse(
                id=str(course.get("id", f"{cert_type.code.lower()}_course_{i}")),
                name=str(course.get("name", "")),
                provider=str(course.get("provider", "")),
                duration_hours=int(course.get("duration_hours", 0)),
                price=float(course.get("price", 0.0)),
                next_start_date=today + timedelta(days=int(course.get("start_in_days", 7))),
                is_online=bool(course.get("is_online", False)),
                booking_url=str(course.get("booking_url", "")),
            )
            for i, course in enumerate(overrides, start=1)
        ]

    # =========================================================================
    # Statistics
    # =========================================================================

    def get_alert_statistics(self, start: date, end: date) -> dict[str, Any]:
        """Sent alerts with an alert date in [start, end], and how many led to action."""
        alerts = []
        for row in self._alerts.get_all_records():
            if not parse_bool(row.get("Sent")):
                continue
            alert_day = parse_date(row.get("Alert Date"))
            if alert_day is not None and start <= alert_day <= end:
                alerts.append(row)

        total = len(alerts)
        acted = [row for row in alerts if parse_bool(row.get("Action Taken"))]
        renewed = {row["Certificate ID"] for row in acted}
        return {
            "total_alerts_sent": total,
            "action_taken_count": len(acted),
            "certificates_renewed": len(renewed),
            "effectiveness_rate": "%.1f" % (len(acted) / total * 100 if total else 0.0),
            "period_start": start.isoformat(),
            "period_end": end.isoformat(),
        }
