"""Unit tests for JobRepository."""

import pytest

from core.models import ApplicationStatus
from core.repository import FALLBACK_JOB_TYPES, JobRepository


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


@pytest.fixture
def repo(db, job_row):
    db.jobs.add_jobs([
        job_row("J1", title="Objectbeveiliger Zuidplein", **{"Hourly Rate": "22.5", "Distance": "2.3",
                                                             "Created At": "2024-05-01T09:00:00"}),
        job_row("J2", title="Festival Crowd Control", company="Trigion", **{
            "Hourly Rate": "29", "Distance": "12.4", "Job Type": "Evenementbeveiliging",
            "Required Certificates": "WPBR Diploma A;VCA Certificaat", "Created At": "2024-05-03T09:00:00"}),
        job_row("J3", title="Portier Leidseplein", company="Amsterdam Security", **{
            "Hourly Rate": "18.5", "Distance": "40", "Job Type": "Portier",
            "Required Certificates": "Portier Diploma", "Created At": "2024-05-02T09:00:00"}),
        job_row("J4", title="Gesloten opdracht", **{"Status": "closed"}),
    ])
    return JobRepository(db)


class TestListing:
    def test_get_all_records(self, repo):
        assert len(repo.get_all_records()) == 4

    def test_get_jobs_only_active_newest_first(self, repo):
        jobs = repo.get_jobs()
        assert [j.job_id for j in jobs] == ["J2", "J3", "J1"]

    def test_get_job_by_id(self, repo):
        assert repo.get_job_by_id("J3").company_name == "Amsterdam Security"
        assert repo.get_job_by_id("J4") is None
        assert repo.get_job_by_id("nope") is None

    def test_cache_served_until_expiry(self, db, job_row):
        clock = FakeClock()
        repo = JobRepository(db, cache_minutes=5, clock=clock)
        assert repo.get_jobs() == []
        db.jobs.add_jobs([job_row("J9")])
        assert repo.get_jobs() == []
        clock.now = 301
        assert [j.job_id for j in repo.get_jobs()] == ["J9"]

    def test_refresh_bypasses_cache(self, db, job_row):
        repo = JobRepository(db)
        repo.get_jobs()
        db.jobs.add_jobs([job_row("J9")])
        assert len(repo.refresh_jobs()) == 1

    def test_stale_cache_served_when_store_fails(self, repo):
        clock = FakeClock()
        repo._clock = clock
        repo.refresh_jobs()

        def broken():
            raise RuntimeError("disk gone")

        repo.get_all_records = broken
        clock.now = 10_000
        assert len(repo.get_jobs()) == 3

    def test_store_error_without_cache_propagates(self, db):
        repo = JobRepository(db)

        def broken():
            raise RuntimeError("disk gone")

        repo.get_all_records = broken
        with pytest.raises(RuntimeError):
            repo.get_jobs()


class TestSearchAndFilter:
    def test_search_all_terms_case_insensitive(self, repo):
        assert [j.job_id for j in repo.search_jobs("PORTIER leidseplein")] == ["J3"]

    def test_empty_search_returns_all(self, repo):
        assert len(repo.search_jobs("  ")) == 3

    def test_rate_bounds_inclusive(self, repo):
        jobs = repo.filter_jobs(min_hourly_rate=22.5, max_hourly_rate=29)
        assert sorted(j.job_id for j in jobs) == ["J1", "J2"]

    def test_max_distance(self, repo):
        assert sorted(j.job_id for j in repo.filter_jobs(max_distance=12.4)) == ["J1", "J2"]

    def test_job_type_substring(self, repo):
        assert [j.job_id for j in repo.filter_jobs(job_type="evenement")] == ["J2"]

    def test_required_certificates_all_needed(self, repo):
        jobs = repo.filter_jobs(required_certificates=["wpbr", "vca"])
        assert [j.job_id for j in jobs] == ["J2"]

    def test_filters_combine(self, repo):
        jobs = repo.filter_jobs(search_query="objectbeveiliger", min_hourly_rate=25)
        assert jobs == []


class TestApplications:
    def test_apply_once(self, repo):
        assert repo.apply_to_job("J1", "guard-1", "Beschikbaar")
        assert not repo.apply_to_job("J1", "guard-1")
        assert repo.get_applied_jobs("guard-1") == ["J1"]
        assert repo.get_job_by_id("J1").applicant_count == 1

    def test_remove_application(self, repo):
        repo.apply_to_job("J1", "guard-1")
        assert repo.remove_application("J1", "guard-1")
        assert not repo.remove_application("J1", "guard-1")
        assert repo.get_applied_jobs("guard-1") == []
        assert repo.get_job_by_id("J1").applicant_count == 0

    def test_application_details_and_status(self, repo):
        repo.apply_to_job("J2", "guard-1", "Ervaren")
        assert repo.update_application_status("J2", "guard-1", ApplicationStatus.ACCEPTED)
        details = repo.get_application_details("J2", "guard-1")
        assert details.status is ApplicationStatus.ACCEPTED
        assert details.message == "Ervaren"


class TestMetadata:
    def test_job_types_and_companies(self, repo):
        assert repo.get_job_types() == ["Evenementbeveiliging", "Objectbeveiliging", "Portier"]
        assert "Trigion" in repo.get_companies()

    def test_fallback_job_types_when_empty(self, db):
        assert JobRepository(db).get_job_types() == list(FALLBACK_JOB_TYPES)

    def test_statistics(self, repo):
        stats = repo.get_job_statistics()
        assert stats["total_jobs"] == 3
        assert stats["average_hourly_rate"] == pytest.approx((22.5 + 29 + 18.5) / 3)
        assert stats["companies"] == 3


class TestWrites:
    def test_existing_job_keys(self, repo):
        keys = repo.get_existing_job_keys()
        assert ("J3", "Amsterdam Security") in keys
        assert "Portier Leidseplein @ Amsterdam Security" not in keys

    def test_add_jobs_clears_cache(self, repo, job_row):
        repo.get_jobs()
        repo.add_jobs([job_row("J5", title="Nieuwe opdracht")])
        assert repo.get_job_by_id("J5") is not None

    def test_update_by_key(self, repo):
        assert repo.update_by_key("J1", "G4S Nederland", {"Hourly Rate": "23"}) == 1
        assert repo.get_job_by_id("J1").hourly_rate == 23.0
