"""Unit tests for the runner's collection, scheduling and backoff helpers."""

import io
from datetime import date, datetime

import pytest

from core.repository import JobRepository
from core.sources import DataSource
from pipeline import collection, runner
from pipeline.logging_dashboard import _dashboard_content, _rotate_if_large, _TimestampedLog


class ListSource(DataSource):
    name = "list"

    def __init__(self, items, available=True):
        self.items = items
        self.available = available

    def fetch_jobs(self, **kwargs):
        yield from self.items

    def is_available(self):
        return self.available


class CountingAlerts:
    def __init__(self, sent=2):
        self.sent = sent
        self.days = []

    def run_daily_check(self, today):
        self.days.append(today)
        return self.sent


def _item(job_id, title, company="Trigion"):
    return {"job_id": job_id, "job_title": title, "company_name": company, "location": "Utrecht",
            "hourly_rate": 21.0}


@pytest.fixture
def repository(db):
    return JobRepository(db)


class TestCollectNewJobs:
    def test_adds_only_unseen_jobs(self, repository, db, job_row):
        db.jobs.add_jobs([job_row("J1", title="Portier", company="Trigion")])
        source = ListSource([_item("J1", "Portier"), _item("X2", "Nachtwaker"), _item("X2", "Nachtwaker")])

        added = collection.collect_new_jobs(repository, [source], {"flag": False})
        assert added == 1
        ids = sorted(r["Job ID"] for r in repository.get_all_records())
        assert ids == ["J1", "X2"]
        assert repository.get_all_records()[-1]["Source"] == "list"

    def test_same_title_and_company_with_new_id_is_added(self, repository, db, job_row):
        db.jobs.add_jobs([job_row("J1", title="Portier", company="Trigion")])
        source = ListSource([_item("X1", "Portier"), _item("X2", "Portier")])
        assert collection.collect_new_jobs(repository, [source], {"flag": False}) == 2

    def test_same_id_at_other_company_is_added(self, repository, db, job_row):
        db.jobs.add_jobs([job_row("J1", title="Portier", company="Trigion")])
        source = ListSource([_item("J1", "Portier", company="Securitas")])
        assert collection.collect_new_jobs(repository, [source], {"flag": False}) == 1

    def test_items_without_id_are_skipped(self, repository):
        source = ListSource([_item("", "Portier")])
        assert collection.collect_new_jobs(repository, [source], {"flag": False}) == 0

    def test_skips_unavailable_sources(self, repository):
        source = ListSource([_item("X1", "Portier")], available=False)
        assert collection.collect_new_jobs(repository, [source], {"flag": False}) == 0

    def test_stops_on_shutdown(self, repository):
        source = ListSource([_item("X1", "Portier")])
        assert collection.collect_new_jobs(repository, [source], {"flag": True}) == 0
        assert repository.get_all_records() == []


class TestBuildSources:
    def test_default_is_static(self, monkeypatch):
        monkeypatch.setattr(collection, "JOB_SOURCES", [])
        sources = collection.build_sources({"search": {}})
        assert [s.name for s in sources] == ["static"]

    def test_unknown_sources_skipped(self, monkeypatch):
        monkeypatch.setattr(collection, "JOB_SOURCES", [])
        sources = collection.build_sources({"search": {"job_sources": ["static", "telex"]}})
        assert len(sources) == 1


class TestCertificateCheck:
    def test_runs_once_per_day(self, db):
        alerts = CountingAlerts()
        assert runner.run_certificate_check_if_due(db, alerts, date(2024, 6, 1)) == 2
        assert runner.run_certificate_check_if_due(db, alerts, date(2024, 6, 1)) == 0
        assert runner.run_certificate_check_if_due(db, alerts, date(2024, 6, 2)) == 2
        assert alerts.days == [date(2024, 6, 1), date(2024, 6, 2)]
        assert db.get_value(runner.LAST_CERTIFICATE_CHECK_KEY) == "2024-06-02"

    def test_catches_up_on_missed_days(self, db):
        db.set_value(runner.LAST_CERTIFICATE_CHECK_KEY, "2024-06-01")
        alerts = CountingAlerts(sent=1)
        assert runner.run_certificate_check_if_due(db, alerts, date(2024, 6, 4)) == 3
        assert alerts.days == [date(2024, 6, 2), date(2024, 6, 3), date(2024, 6, 4)]
        assert db.get_value(runner.LAST_CERTIFICATE_CHECK_KEY) == "2024-06-04"

    def test_catch_up_is_limited_to_a_week(self, db):
        db.set_value(runner.LAST_CERTIFICATE_CHECK_KEY, "2024-05-01")
        alerts = CountingAlerts(sent=0)
        runner.run_certificate_check_if_due(db, alerts, date(2024, 6, 1))
        assert alerts.days[0] == date(2024, 5, 26)
        assert alerts.days[-1] == date(2024, 6, 1)
        assert len(alerts.days) == runner.MAX_CATCH_UP_DAYS

    def test_unreadable_last_check_runs_today_only(self, db):
        db.set_value(runner.LAST_CERTIFICATE_CHECK_KEY, "gisteren")
        alerts = CountingAlerts()
        runner.run_certificate_check_if_due(db, alerts, date(2024, 6, 1))
        assert alerts.days == [date(2024, 6, 1)]


class TestSleepLogic:
    @pytest.fixture(autouse=True)
    def no_sleep(self, monkeypatch):
        monkeypatch.setattr(runner.time, "sleep", lambda seconds: None)

    def test_progress_resets_to_base(self):
        assert runner._handle_sleep_logic(True, 7200, 3600, {"flag": False}) == 3600

    def test_no_progress_doubles_up_to_a_day(self):
        assert runner._handle_sleep_logic(False, 3600, 3600, {"flag": False}) == 7200
        assert runner._handle_sleep_logic(False, 60000, 3600, {"flag": False}) == 86400

    def test_shutdown_keeps_interval(self):
        assert runner._handle_sleep_logic(False, 3600, 3600, {"flag": True}) == 3600

    def test_sleep_ends_at_midnight(self, monkeypatch):
        slept = []
        monkeypatch.setattr(runner.time, "sleep", slept.append)
        monkeypatch.setattr(runner, "_seconds_until_midnight", lambda: 90)
        assert runner._handle_sleep_logic(False, 86400, 3600, {"flag": False}) == 86400
        assert sum(slept) == 90

    def test_seconds_until_midnight(self):
        assert runner._seconds_until_midnight(datetime(2024, 6, 1, 23, 59, 0)) == 61
        assert runner._seconds_until_midnight(datetime(2024, 6, 1, 0, 0, 0)) == 86401


class TestDashboardLaunch:
    def test_counts_jobs_and_alerts(self, repository, db, job_row):
        assert _dashboard_content(repository, db) == {"jobs": 0, "alerts": 0}
        db.table("certificate_alerts").add_rows([{"Alert ID": "A1", "User ID": "guard-1"}])
        assert _dashboard_content(repository, db) == {"jobs": 0, "alerts": 1}
        db.jobs.add_jobs([job_row("J1")])
        assert _dashboard_content(repository, db)["jobs"] == 1

    def test_store_errors_mean_nothing_to_show(self):
        class Broken:
            def get_all_records(self):
                raise OSError("gone")

            def table(self, name):
                raise OSError("gone")

        assert _dashboard_content(Broken(), Broken()) == {"jobs": 0, "alerts": 0}

    def test_launch_skipped_when_already_launched(self, repository):
        flag = {"launched": True}
        runner._launch_dashboard_once(repository, None, flag)
        assert flag == {"launched": True}

    def test_nothing_to_show_does_not_launch(self, repository, db):
        flag = {"launched": False}
        runner._launch_dashboard_once(repository, db, flag)
        assert flag == {"launched": False}


class TestActivityLog:
    def test_log_lines_are_timestamped(self):
        console, log = io.StringIO(), io.StringIO()
        stream = _TimestampedLog(console, log, clock=lambda: datetime(2024, 6, 1, 8, 30, 0))
        stream.write("Cycle summary:\n - New jobs")
        stream.write(" collected: 2\n")
        assert console.getvalue() == "Cycle summary:\n - New jobs collected: 2\n"
        assert log.getvalue() == (
            "[2024-06-01 08:30:00] Cycle summary:\n"
            "[2024-06-01 08:30:00]  - New jobs collected: 2\n"
        )

    def test_failing_log_file_keeps_console(self):
        class FullDisk(io.StringIO):
            def write(self, data):
                raise OSError("disk full")

        console = io.StringIO()
        stream = _TimestampedLog(console, FullDisk())
        stream.write("one\n")
        stream.write("two\n")
        assert console.getvalue().startswith("one\nActivity log disabled: disk full\ntwo\n")

    def test_rotate_large_log(self, tmp_path):
        log_path = tmp_path / "activity.log"
        assert not _rotate_if_large(log_path, 10)
        log_path.write_text("x" * 20, encoding="utf-8")
        assert _rotate_if_large(log_path, 10)
        assert not log_path.exists()
        assert (tmp_path / "activity.log.1").read_text(encoding="utf-8") == "x" * 20
        log_path.write_text("small", encoding="utf-8")
        assert not _rotate_if_large(log_path, 10)
