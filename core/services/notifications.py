"""Guard notifications: preference-aware delivery plus the in-app inbox."""

import json
import uuid
from datetime import datetime
from typing import Any

import config

from ..models import Job
from ..notifications import (
    DeliveryMethod,
    GuardNotification,
    NotificationCategory,
    NotificationPreferences,
)

PREFERENCES_PREFIX = "notification_preferences_"


def _parse_clock(value: str, default: tuple[int, int]) -> tuple[int, int]:
    try:
        hour, minute = str(value).split(":", 1)
        return int(hour), int(minute)
    except (TypeError, ValueError):
        return default


class NotificationPreferencesService:
    """Stores NotificationPreferences per user in the key/value table as JSON."""

    def __init__(self, store: Any, settings: dict[str, Any] | None = None) -> None:
        if settings is None:
            settings = config._get_app_settings()
        self._store = store
        self._settings = settings

    def default_preferences(self) -> NotificationPreferences:
        """Defaults with quiet hours, alert distance and the muted/preferred lists taken from settings."""
        section = {**config.DEFAULT_SETTINGS["notifications"], **(self._settings.get("notifications") or {})}
        start_hour, start_minute = _parse_clock(section["quiet_hours_start"], (22, 0))
        end_hour, end_minute = _parse_clock(section["quiet_hours_end"], (8, 0))
        return NotificationPreferences(
            quiet_hours_start_hour=start_hour,
            quiet_hours_start_minute=start_minute,
            quiet_hours_end_hour=end_hour,
            quiet_hours_end_minute=end_minute,
            max_distance_for_job_alerts=float(section["max_job_alert_distance_km"]),
            muted_companies=tuple(self._settings.get("muted_companies") or ()),
            preferred_job_types=tuple(self._settings.get("preferred_job_types") or ()),
        )

    def load(self, user_id: str) -> NotificationPreferences:
        raw = self._store.get_value(f"{PREFERENCES_PREFIX}{user_id}")
        if not raw:
            return self.default_preferences()
        try:
            return NotificationPreferences.from_dict(json.loads(raw))
        except (ValueError, TypeError) as e:
            print(f"Error loading notification preferences for {user_id}: {e}")
            return self.default_preferences()

    def save(self, user_id: str, preferences: NotificationPreferences) -> None:
        if not preferences.is_valid:
            raise ValueError("Invalid notification preferences (hours, minutes or distance out of range)")
        self._store.set_value(f"{PREFERENCES_PREFIX}{user_id}", json.dumps(preferences.to_dict()))

    def reset(self, user_id: str) -> NotificationPreferences:
        self._store.delete_value(f"{PREFERENCES_PREFIX}{user_id}")
        return self.default_preferences()


class GuardNotificationService:
    """
    Decides which delivery methods a notification may use and keeps the
    in-app inbox in the notifications table. Push and email are only
    reported back to the caller; there is no delivery backend here.
    """

    def __init__(
        self,
        store: Any,
        preferences: NotificationPreferencesService | None = None,
        settings: dict[str, Any] | None = None,
    ) -> None:
        self._store = store
        self.preferences = preferences or NotificationPreferencesService(store, settings)

    @property
    def _notifications(self):
        return self._store.table("notifications")

    def send(
        self,
        user_id: str,
        category: NotificationCategory,
        title: str,
        body: str,
        urgent: bool = False,
        data: dict[str, Any] | None = None,
        company_name: str = "",
        now: datetime | None = None,
    ) -> list[DeliveryMethod]:
        """Returns the delivery methods used; an empty list means the notification was suppressed."""
        now = now or datetime.now()
        prefs = self.preferences.load(user_id)

        if company_name and prefs.is_company_muted(company_name):
            return []
        if prefs.is_quiet_hours_active(now) and not (urgent and prefs.quiet_hours_allow_urgent):
            return []

        methods = [method for method in DeliveryMethod if prefs.should_send(category, method)]
        if DeliveryMethod.IN_APP in methods:
            notification = GuardNotification(
                id=uuid.uuid4().hex,
                user_id=user_id,
                category=category,
                title=title,
                body=body,
                created_at=now,
                urgent=urgent,
                data=dict(data or {}),
            )
            self._notifications.add_rows([notification.to_row()])
        if methods:
            print(f"Notification [{category.code}] for {user_id}: {title} via {', '.join(m.value for m in methods)}")
        return methods

    def send_job_alert(self, user_id: str, job: Job, now: datetime | None = None) -> list[DeliveryMethod]:
        prefs = self.preferences.load(user_id)
        if prefs.location_based and job.distance > prefs.max_distance_for_job_alerts:
            return []
        if prefs.preferred_job_types and not any(
            t.strip().lower() in job.job_type.lower() for t in prefs.preferred_job_types
        ):
            return []
        return self.send(
            user_id,
            NotificationCategory.JOB_OPPORTUNITY,
            f"Nieuwe opdracht: {job.job_title}",
            f"{job.company_name} in {job.location} - {job.dutch_formatted_rate}",
            data={"job_id": job.job_id},
            company_name=job.company_name,
            now=now,
        )

    # --- Inbox ---

    def get_notifications(self, user_id: str, unread_only: bool = False) -> list[GuardNotification]:
        filters: dict[str, Any] = {"User ID": user_id}
        if unread_only:
            filters["Read"] = False
        notifications = [GuardNotification.from_row(row) for row in self._notifications.find(filters)]
        return sorted(notifications, key=lambda n: n.created_at, reverse=True)

    def unread_count(self, user_id: str) -> int:
        return self._notifications.count({"User ID": user_id, "Read": False})

    def mark_as_read(self, notification_id: str) -> bool:
        return self._notifications.update_by_fields({"Notification ID": notification_id}, {"Read": True}) > 0

    def mark_all_as_read(self, user_id: str) -> int:
        return self._notifications.update_by_fields({"User ID": user_id, "Read": False}, {"Read": True})

    def delete(self, notification_id: str) -> bool:
        return self._notifications.delete_by_fields({"Notification ID": notification_id}) > 0
