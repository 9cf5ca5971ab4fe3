"""Unit tests for notification preferences and guard notification delivery."""

from datetime import datetime

import pytest

from core.models import Job
from core.notifications import (
    DeliveryMethod,
    NotificationCategory,
    NotificationFrequency,
    NotificationPreferences,
)
from core.services.notifications import GuardNotificationService, NotificationPreferencesService

DAYTIME = datetime(2024, 6, 1, 14, 0)
NIGHT = datetime(2024, 6, 1, 23, 30)


@pytest.fixture
def prefs_service(db, settings):
    return NotificationPreferencesService(db, settings)


@pytest.fixture
def service(db, prefs_service):
    return GuardNotificationService(db, prefs_service)


class TestNotificationPreferences:
    def test_quiet_hours_overnight_window(self):
        prefs = NotificationPreferences(quiet_hours_enabled=True)
        assert prefs.is_quiet_hours_active(datetime(2024, 6, 1, 23, 0))
        assert prefs.is_quiet_hours_active(datetime(2024, 6, 1, 7, 59))
        assert not prefs.is_quiet_hours_active(datetime(2024, 6, 1, 8, 0))

    def test_quiet_hours_same_day_window(self):
        prefs = NotificationPreferences(
            quiet_hours_enabled=True, quiet_hours_start_hour=12, quiet_hours_end_hour=14
        )
        assert prefs.is_quiet_hours_active(datetime(2024, 6, 1, 13, 0))
        assert not prefs.is_quiet_hours_active(datetime(2024, 6, 1, 14, 0))

    def test_quiet_hours_disabled(self):
        assert not NotificationPreferences().is_quiet_hours_active(NIGHT)
        assert NotificationPreferences().quiet_hours_display == "Uitgeschakeld"

    def test_default_category_methods(self):
        prefs = NotificationPreferences()
        assert not prefs.should_send(NotificationCategory.JOB_OPPORTUNITY, DeliveryMethod.EMAIL)
        assert prefs.should_send(NotificationCategory.CERTIFICATE_EXPIRY, DeliveryMethod.EMAIL)
        assert not prefs.copy_with(master_enabled=False).should_send(
            NotificationCategory.CERTIFICATE_EXPIRY, DeliveryMethod.IN_APP
        )

    def test_disabled_category(self):
        prefs = NotificationPreferences().with_category(NotificationCategory.PAYMENT_UPDATE, enabled=False)
        assert not prefs.should_send(NotificationCategory.PAYMENT_UPDATE, DeliveryMethod.IN_APP)
        assert "Betalingen" not in prefs.status_description(DAYTIME)

    def test_muted_company_case_insensitive(self):
        prefs = NotificationPreferences().copy_with(muted_companies=["G4S Nederland"])
        assert prefs.is_company_muted(" g4s nederland ")
        assert not prefs.is_company_muted("Trigion")
        assert not prefs.is_company_muted("")

    def test_status_description(self):
        assert NotificationPreferences(master_enabled=False).status_description() == "Alle notificaties uitgeschakeld"
        prefs = NotificationPreferences(quiet_hours_enabled=True)
        assert prefs.status_description(NIGHT).endswith("Stille uren actief")

    def test_validation(self):
        assert NotificationPreferences().is_valid
        assert not NotificationPreferences(quiet_hours_start_hour=24).is_valid
        assert not NotificationPreferences(max_distance_for_job_alerts=250).is_valid
        assert not NotificationPreferences(max_distance_for_job_alerts=0).is_valid
        assert not NotificationPreferences(max_distance_for_job_alerts=-5).is_valid
        assert NotificationPreferences(max_distance_for_job_alerts=200).is_valid

    def test_dict_round_trip(self):
        prefs = (
            NotificationPreferences(job_alert_frequency=NotificationFrequency.DAILY)
            .with_category(NotificationCategory.SYSTEM_ALERT, push=False)
            .copy_with(muted_companies=["Trigion"], quiet_hours_enabled=True)
        )
        assert NotificationPreferences.from_dict(prefs.to_dict()) == prefs


class TestPreferencesService:
    def test_defaults_from_settings(self, db, settings):
        settings["notifications"]["quiet_hours_start"] = "23:15"
        settings["muted_companies"] = ["Trigion"]
        prefs = NotificationPreferencesService(db, settings).load("guard-1")
        assert (prefs.quiet_hours_start_hour, prefs.quiet_hours_start_minute) == (23, 15)
        assert prefs.muted_companies == ("Trigion",)

    def test_save_load_reset(self, prefs_service):
        prefs = NotificationPreferences(quiet_hours_enabled=True, digest_mode=True)
        prefs_service.save("guard-1", prefs)
        assert prefs_service.load("guard-1") == prefs
        assert prefs_service.load("guard-2") == prefs_service.default_preferences()
        assert prefs_service.reset("guard-1") == prefs_service.default_preferences()
        assert not prefs_service.load("guard-1").quiet_hours_enabled

    def test_invalid_preferences_rejected(self, prefs_service):
        with pytest.raises(ValueError, match="Invalid notification preferences"):
            prefs_service.save("guard-1", NotificationPreferences(digest_hour=30))

    def test_corrupt_json_falls_back(self, db, prefs_service):
        db.set_value("notification_preferences_guard-1", "{not json")
        assert prefs_service.load("guard-1") == prefs_service.default_preferences()


class TestGuardNotificationService:
    def test_send_stores_in_app(self, service):
        methods = service.send("guard-1", NotificationCategory.JOB_OPPORTUNITY, "Titel", "Tekst", now=DAYTIME)
        assert methods == [DeliveryMethod.PUSH, DeliveryMethod.IN_APP]
        inbox = service.get_notifications("guard-1")
        assert [n.title for n in inbox] == ["Titel"]
        assert service.unread_count("guard-1") == 1

    def test_quiet_hours_suppress_unless_urgent(self, service, prefs_service):
        prefs_service.save("guard-1", NotificationPreferences(quiet_hours_enabled=True))
        assert service.send("guard-1", NotificationCategory.SYSTEM_ALERT, "a", "b", now=NIGHT) == []
        assert service.send("guard-1", NotificationCategory.SYSTEM_ALERT, "a", "b", urgent=True, now=NIGHT)
        assert len(service.get_notifications("guard-1")) == 1

    def test_urgent_blocked_when_not_allowed(self, service, prefs_service):
        prefs_service.save("guard-1", NotificationPreferences(
            quiet_hours_enabled=True, quiet_hours_allow_urgent=False
        ))
        assert service.send("guard-1", NotificationCategory.SYSTEM_ALERT, "a", "b", urgent=True, now=NIGHT) == []

    def test_muted_company_suppressed(self, service, prefs_service):
        prefs_service.save("guard-1", NotificationPreferences(muted_companies=("Trigion",)))
        assert service.send("guard-1", NotificationCategory.JOB_OPPORTUNITY, "a", "b",
                            company_name="Trigion", now=DAYTIME) == []

    def test_disabled_in_app_not_stored(self, service, prefs_service):
        prefs = NotificationPreferences().with_category(NotificationCategory.PAYMENT_UPDATE, in_app=False)
        prefs_service.save("guard-1", prefs)
        methods = service.send("guard-1", NotificationCategory.PAYMENT_UPDATE, "a", "b", now=DAYTIME)
        assert methods == [DeliveryMethod.PUSH, DeliveryMethod.EMAIL]
        assert service.get_notifications("guard-1") == []

    def test_job_alert_distance_and_type(self, service, prefs_service, job_row):
        near = Job.from_row(job_row("J1"))
        far = Job.from_row(job_row("J2", **{"Distance": "40"}))
        assert service.send_job_alert("guard-1", near, now=DAYTIME)
        assert service.send_job_alert("guard-1", far, now=DAYTIME) == []

        prefs_service.save("guard-1", NotificationPreferences(preferred_job_types=("Portier",)))
        assert service.send_job_alert("guard-1", near, now=DAYTIME) == []

        stored = service.get_notifications("guard-1")[0]
        assert stored.title == "Nieuwe opdracht: Objectbeveiliger"
        assert stored.data == {"job_id": "J1"}

    def test_inbox_management(self, service):
        service.send("guard-1", NotificationCategory.SYSTEM_ALERT, "oud", "b", now=datetime(2024, 6, 1, 9, 0))
        service.send("guard-1", NotificationCategory.SYSTEM_ALERT, "nieuw", "b", now=datetime(2024, 6, 1, 10, 0))
        service.send("guard-2", NotificationCategory.SYSTEM_ALERT, "ander", "b", now=DAYTIME)

        newest, oldest = service.get_notifications("guard-1")
        assert newest.title == "nieuw"
        assert service.mark_as_read(oldest.id)
        assert [n.title for n in service.get_notifications("guard-1", unread_only=True)] == ["nieuw"]
        assert service.mark_all_as_read("guard-1") == 1
        assert service.unread_count("guard-1") == 0
        assert service.unread_count("guard-2") == 1

        assert service.delete(newest.id)
        assert not service.delete(newest.id)
        assert len(service.get_notifications("guard-1")) == 1
