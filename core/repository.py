"""JobRepository: DAO for job listings and applications (wraps SecuryFlexDatabase)."""

import time
from datetime import datetime
from typing import Any, Callable

from utils.storage import get_existing_job_keys

from .models import ApplicationStatus, Job, JobApplication

DEFAULT_CACHE_MINUTES = 5

FALLBACK_CERTIFICATES = [
    "WPBR Diploma A",
    "WPBR Diploma B",
    "BHV Certificaat",
    "VCA Certificaat",
    "Portier Diploma",
]

FALLBACK_JOB_TYPES = [
    "Objectbeveiliging",
    "Evenementbeveiliging",
    "Winkelbeveiliging",
    "Persoonbeveiliging",
    "Portier",
]


def _sorted_unique(values) -> list[str]:
    return sorted({v.strip() for v in values if v and v.strip()})


class JobRepository:
    """
    Repository for job persistence. Wraps the job store (SecuryFlexDatabase)
    and exposes both row dicts and Job models. Active jobs are cached for a
    few minutes; when the store fails the last cached list is served.
    """

    def __init__(
        self,
        job_store: Any,
        cache_minutes: float = DEFAULT_CACHE_MINUTES,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Args:
            job_store: Object with a `jobs` table and table(name) access.
                       Typically local_storage.SecuryFlexDatabase.
            cache_minutes: How long get_jobs() serves the cached list
            clock: Monotonic seconds source (overridable in tests)
        """
        self._store = job_store
        self._cache_seconds = cache_minutes * 60
        self._clock = clock
        self._cache: list[Job] | None = None
        self._cache_time: float | None = None

    @property
    def store(self) -> Any:
        return self._store

    @property
    def _applications(self):
        return self._store.table("applications")

    # =========================================================================
    # Listing and cache
    # =========================================================================

    def get_all_records(self) -> list[dict[str, str]]:
        """Return all jobs as list of row dicts (no _id)."""
        return self._store.jobs.get_all_records()

    def get_all_jobs(self) -> list[Job]:
        """Return all jobs as Job domain models, whatever their status."""
        return [Job.from_row(r) for r in self.get_all_records()]

    def _cache_valid(self) -> bool:
        if self._cache is None or self._cache_time is None:
            return False
        return self._clock() - self._cache_time < self._cache_seconds

    def get_jobs(self) -> list[Job]:
        """Active jobs, newest first. Cached; falls back to the last cache on store errors."""
        if self._cache_valid():
            return list(self._cache)

        try:
            jobs = [job for job in self.get_all_jobs() if job.is_active]
        except Exception as e:
            if self._cache is not None:
                print(f"Error loading jobs, serving cached list: {e}")
                return list(self._cache)
            raise

        jobs.sort(key=lambda j: j.created_at or datetime.min, reverse=True)
        self._cache = jobs
        self._cache_time = self._clock()
        return list(jobs)

    def clear_cache(self) -> None:
        self._cache = None
        self._cache_time = None

    def refresh_jobs(self) -> list[Job]:
        self.clear_cache()
        return self.get_jobs()

    def get_job_by_id(self, job_id: str) -> Job | None:
        for job in self.get_jobs():
            if job.job_id == job_id:
                return job
        return None

    # =========================================================================
    # Search and filter
    # =========================================================================

    def search_jobs(self, query: str, jobs: list[Job] | None = None) -> list[Job]:
        """Jobs whose searchable text contains every whitespace-separated term."""
        jobs = self.get_jobs() if jobs is None else jobs
        terms = (query or "").lower().split()
        if not terms:
            return list(jobs)
        return [job for job in jobs if all(term in job.searchable_text() for term in terms)]

    def filter_jobs(
        self,
        search_query: str = "",
        min_hourly_rate: float | None = None,
        max_hourly_rate: float | None = None,
        max_distance: float | None = None,
        job_type: str = "",
        required_certificates: list[str] | None = None,
        jobs: list[Job] | None = None,
    ) -> list[Job]:
        """Apply search text and filters. Bounds are inclusive; text matches are case-insensitive substrings."""
        result = self.search_jobs(search_query, jobs)

        if min_hourly_rate is not None:
            result = [j for j in result if j.hourly_rate >= min_hourly_rate]
        if max_hourly_rate is not None:
            result = [j for j in result if j.hourly_rate <= max_hourly_rate]
        if max_distance is not None:
            result = [j for j in result if j.distance <= max_distance]

        if job_type and job_type.strip():
            wanted = job_type.strip().lower()
            result = [j for j in result if wanted in j.job_type.lower()]

        if required_certificates:
            wanted_certs = [c.lower() for c in required_certificates if c and c.strip()]

            def has_all(job: Job) -> bool:
                job_certs = [c.lower() for c in job.required_certificates]
                return all(any(w in c for c in job_certs) for w in wanted_certs)

            result = [j for j in result if has_all(j)]

        return result

    # =========================================================================
    # Applications
    # =========================================================================

    def has_applied(self, job_id: str, user_id: str) -> bool:
        return self._applications.count({"Job ID": job_id, "User ID": user_id}) > 0

    def _bump_applicant_count(self, job_id: str, delta: int) -> None:
        row = self._store.jobs.find_one({"Job ID": job_id})
        if row is None:
            return
        job = Job.from_row(row)
        new_count = max(0, job.applicant_count + delta)
        self._store.jobs.update_by_fields({"Job ID": job_id}, {"Applicant Count": new_count})
        self.clear_cache()

    def apply_to_job(self, job_id: str, user_id: str, message: str = "") -> bool:
        """Store a pending application. Returns False if the user already applied."""
        if self.has_applied(job_id, user_id):
            return False

        now = datetime.now()
        application = JobApplication(
            job_id=job_id,
            user_id=user_id,
            message=message,
            status=ApplicationStatus.PENDING,
            applied_at=now,
            updated_at=now,
        )
        self._applications.add_rows([application.to_row()])
        self._bump_applicant_count(job_id, 1)
        return True

    def remove_application(self, job_id: str, user_id: str) -> bool:
        """Delete an application. Returns False if there was none."""
        deleted = self._applications.delete_by_fields({"Job ID": job_id, "User ID": user_id})
        if not deleted:
            return False
        self._bump_applicant_count(job_id, -1)
        return True

    def get_applied_jobs(self, user_id: str) -> list[str]:
        return [row["Job ID"] for row in self._applications.find({"User ID": user_id})]

    def get_application_details(self, job_id: str, user_id: str) -> JobApplication | None:
        row = self._applications.find_one({"Job ID": job_id, "User ID": user_id})
        return JobApplication.from_row(row) if row else None

    def update_application_status(self, job_id: str, user_id: str, status: ApplicationStatus) -> bool:
        updated = self._applications.update_by_fields(
            {"Job ID": job_id, "User ID": user_id},
            {"Status": status.code, "Updated At": datetime.now().isoformat()},
        )
        return updated > 0

    # =========================================================================
    # Metadata and statistics
    # =========================================================================

    def get_job_types(self) -> list[str]:
        types = _sorted_unique(j.job_type for j in self.get_jobs())
        return types or list(FALLBACK_JOB_TYPES)

    def get_companies(self) -> list[str]:
        return _sorted_unique(j.company_name for j in self.get_jobs())

    def get_locations(self) -> list[str]:
        return _sorted_unique(j.location for j in self.get_jobs())

    def get_available_certificates(self) -> list[str]:
        certs = _sorted_unique(c for j in self.get_jobs() for c in j.required_certificates)
        return certs or list(FALLBACK_CERTIFICATES)

    def get_job_statistics(self) -> dict[str, float]:
        jobs = self.get_jobs()
        if not jobs:
            return {
                "total_jobs": 0,
                "average_hourly_rate": 0.0,
                "job_types": 0,
                "companies": 0,
                "average_distance": 0.0,
                "average_company_rating": 0.0,
            }
        count = len(jobs)
        return {
            "total_jobs": count,
            "average_hourly_rate": sum(j.hourly_rate for j in jobs) / count,
            "job_types": len({j.job_type for j in jobs if j.job_type}),
            "companies": len({j.company_name for j in jobs if j.company_name}),
            "average_distance": sum(j.distance for j in jobs) / count,
            "average_company_rating": sum(j.company_rating for j in jobs) / count,
        }

    # =========================================================================
    # Writes and dedupe
    # =========================================================================

    def get_existing_job_keys(self) -> set[tuple[str, str]]:
        """Return the (job_id, company_name) keys already stored, for deduplication."""
        return get_existing_job_keys(self._store.jobs)

    def add_jobs(self, jobs: list[dict[str, str]]) -> None:
        """Append jobs from row dicts (keys = JOB_COLUMNS column names)."""
        if not jobs:
            return
        self._store.jobs.add_jobs(jobs)
        self.clear_cache()

    def add_jobs_from_models(self, jobs: list[Job]) -> None:
        self.add_jobs([j.to_row() for j in jobs])

    def update_by_key(self, job_id: str, company_name: str, updates: dict[str, Any]) -> int:
        """Update one job by (job_id, company_name). Returns number of rows updated."""
        count = self._store.jobs.update_job_by_key(job_id, company_name, updates)
        if count:
            self.clear_cache()
        return count

    def update_job(self, job: Job, updates: dict[str, Any]) -> int:
        return self.update_by_key(job.job_id, job.company_name, updates)
