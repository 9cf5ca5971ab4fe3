"""Notification preferences and guard notifications."""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any

from utils.formatting import format_time, time_ago
from utils.parsing import parse_bool, parse_datetime


class NotificationCategory(Enum):
    JOB_OPPORTUNITY = ("job_opportunity", "Jobs")
    CERTIFICATE_EXPIRY = ("certificate_expiry", "Certificaten")
    PAYMENT_UPDATE = ("payment_update", "Betalingen")
    SYSTEM_ALERT = ("system_alert", "Systeem")

    def __init__(self, code: str, dutch_label: str) -> None:
        self.code = code
        self.dutch_label = dutch_label

    @classmethod
    def from_code(cls, code: str) -> NotificationCategory:
        for category in cls:
            if category.code == code:
                return category
        return cls.SYSTEM_ALERT


class DeliveryMethod(str, Enum):
    PUSH = "push"
    EMAIL = "email"
    IN_APP = "in_app"


class NotificationFrequency(Enum):
    IMMEDIATELY = ("immediately", "Onmiddellijk")
    HOURLY = ("hourly", "Elk uur")
    DAILY = ("daily", "Dagelijks")
    WEEKLY = ("weekly", "Wekelijks")

    def __init__(self, code: str, display_name: str) -> None:
        self.code = code
        self.display_name = display_name

    @classmethod
    def from_code(cls, code: str) -> NotificationFrequency:
        for frequency in cls:
            if frequency.code == code:
                return frequency
        return cls.IMMEDIATELY


@dataclass(frozen=True)
class CategoryPreferences:
    enabled: bool = True
    push: bool = True
    email: bool = True
    in_app: bool = True

    def allows(self, method: DeliveryMethod) -> bool:
        if not self.enabled:
            return False
        if method is DeliveryMethod.PUSH:
            return self.push
        if method is DeliveryMethod.EMAIL:
            return self.email
        return self.in_app


def _default_categories() -> dict[NotificationCategory, CategoryPreferences]:
    return {
        NotificationCategory.JOB_OPPORTUNITY: CategoryPreferences(email=False),
        # Email stays on for certificates and payments: compliance and financial records
        NotificationCategory.CERTIFICATE_EXPIRY: CategoryPreferences(),
        NotificationCategory.PAYMENT_UPDATE: CategoryPreferences(),
        NotificationCategory.SYSTEM_ALERT: CategoryPreferences(email=False),
    }


@dataclass(frozen=True)
class NotificationPreferences:
    master_enabled: bool = True
    categories: dict[NotificationCategory, CategoryPreferences] = field(default_factory=_default_categories)

    shift_reminders: bool = True
    renewal_course_notifications: bool = True
    maintenance_notifications: bool = False
    sound_enabled: bool = True
    vibration_enabled: bool = True

    quiet_hours_enabled: bool = False
    quiet_hours_start_hour: int = 22
    quiet_hours_start_minute: int = 0
    quiet_hours_end_hour: int = 8
    quiet_hours_end_minute: int = 0
    quiet_hours_allow_urgent: bool = True

    job_alert_frequency: NotificationFrequency = NotificationFrequency.IMMEDIATELY
    certificate_alert_frequency: NotificationFrequency = NotificationFrequency.IMMEDIATELY
    digest_mode: bool = False
    digest_hour: int = 9

    location_based: bool = True
    max_distance_for_job_alerts: float = 25.0
    muted_companies: tuple[str, ...] = ()
    preferred_job_types: tuple[str, ...] = ()

    def category(self, category: NotificationCategory) -> CategoryPreferences:
        return self.categories.get(category, CategoryPreferences())

    def with_category(self, category: NotificationCategory, **changes: Any) -> NotificationPreferences:
        categories = dict(self.categories)
        categories[category] = replace(self.category(category), **changes)
        return replace(self, categories=categories)

    def copy_with(self, **changes: Any) -> NotificationPreferences:
        for key in ("muted_companies", "preferred_job_types"):
            if key in changes:
                changes[key] = tuple(changes[key])
        return replace(self, **changes)

    def is_quiet_hours_active(self, now: datetime | None = None) -> bool:
        if not self.quiet_hours_enabled:
            return False
        now = now or datetime.now()
        now_minutes = now.hour * 60 + now.minute
        start = self.quiet_hours_start_hour * 60 + self.quiet_hours_start_minute
        end = self.quiet_hours_end_hour * 60 + self.quiet_hours_end_minute
        # Overnight window, e.g. 22:00 - 08:00
        if start > end:
            return now_minutes >= start or now_minutes < end
        return start <= now_minutes < end

    def should_send(self, category: NotificationCategory, method: DeliveryMethod) -> bool:
        if not self.master_enabled:
            return False
        return self.category(category).allows(method)

    def is_company_muted(self, company_name: str) -> bool:
        name = (company_name or "").strip().lower()
        return bool(name) and any(name == muted.strip().lower() for muted in self.muted_companies)

    def status_description(self, now: datetime | None = None) -> str:
        if not self.master_enabled:
            return "Alle notificaties uitgeschakeld"

        enabled = [c.dutch_label for c in NotificationCategory if self.category(c).enabled]
        if not enabled:
            return "Geen notificaties ingeschakeld"

        if self.is_quiet_hours_active(now):
            return f"{', '.join(enabled)} - Stille uren actief"
        return f"{', '.join(enabled)} ingeschakeld"

    @property
    def quiet_hours_display(self) -> str:
        if not self.quiet_hours_enabled:
            return "Uitgeschakeld"
        start = format_time(self.quiet_hours_start_hour, self.quiet_hours_start_minute)
        end = format_time(self.quiet_hours_end_hour, self.quiet_hours_end_minute)
        return f"{start} - {end}"

    @property
    def is_valid(self) -> bool:
        for hour in (self.quiet_hours_start_hour, self.quiet_hours_end_hour, self.digest_hour):
            if hour < 0 or hour > 23:
                return False
        for minute in (self.quiet_hours_start_minute, self.quiet_hours_end_minute):
            if minute < 0 or minute > 59:
                return False
        return 0 < self.max_distance_for_job_alerts <= 200

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["categories"] = {c.code: asdict(p) for c, p in self.categories.items()}
        data["job_alert_frequency"] = self.job_alert_frequency.code
        data["certificate_alert_frequency"] = self.certificate_alert_frequency.code
        data["muted_companies"] = list(self.muted_companies)
        data["preferred_job_types"] = list(self.preferred_job_types)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> NotificationPreferences:
        if not data:
            return cls()
        defaults = cls()
        categories = dict(defaults.categories)
        for code, prefs in (data.get("categories") or {}).items():
            category = NotificationCategory.from_code(code)
            categories[category] = replace(categories[category], **{
                k: bool(v) for k, v in prefs.items() if k in ("enabled", "push", "email", "in_app")
            })

        simple = {
            k: v for k, v in data.items()
            if k in cls.__dataclass_fields__
            and k not in ("categories", "job_alert_frequency", "certificate_alert_frequency",
                          "muted_companies", "preferred_job_types")
        }
        return replace(
            defaults,
            categories=categories,
            job_alert_frequency=NotificationFrequency.from_code(data.get("job_alert_frequency", "")),
            certificate_alert_frequency=NotificationFrequency.from_code(data.get("certificate_alert_frequency", "")),
            muted_companies=tuple(data.get("muted_companies") or ()),
            preferred_job_types=tuple(data.get("preferred_job_types") or ()),
            **simple,
        )


@dataclass(frozen=True)
class GuardNotification:
    id: str
    user_id: str
    category: NotificationCategory
    title: str
    body: str
    created_at: datetime
    read: bool = False
    urgent: bool = False
    data: dict[str, Any] = field(default_factory=dict)

    def time_ago(self, now: datetime | None = None) -> str:
        return time_ago(self.created_at, now or datetime.now())

    def to_row(self) -> dict[str, str]:
        return {
            "Notification ID": self.id,
            "User ID": self.user_id,
            "Category": self.category.code,
            "Title": self.title,
            "Body": self.body,
            "Created At": self.created_at.isoformat(),
            "Read": "TRUE" if self.read else "FALSE",
            "Urgent": "TRUE" if self.urgent else "FALSE",
            "Data": json.dumps(self.data, ensure_ascii=False) if self.data else "",
        }

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> GuardNotification:
        raw_data = row.get("Data") or ""
        return cls(
            id=row.get("Notification ID", ""),
            user_id=row.get("User ID", ""),
            category=NotificationCategory.from_code(row.get("Category", "")),
            title=row.get("Title", ""),
            body=row.get("Body", ""),
            created_at=parse_datetime(row.get("Created At")) or datetime.min,
            read=parse_bool(row.get("Read")),
            urgent=parse_bool(row.get("Urgent")),
            data=json.loads(raw_data) if raw_data else {},
        )
