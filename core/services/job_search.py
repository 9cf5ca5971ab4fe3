"""JobSearchController: job list state, debounced search/filter and applications."""

import threading
from dataclasses import dataclass, field
from typing import Any, Callable

import config
from utils.debounce import Debouncer

from ..errors import AppError, ErrorCategory, error_from_exception
from ..models import Job, JobFilter
from ..repository import JobRepository


# =========================================================================
# States
# =========================================================================

class JobState:
    """Base class of every state the controller emits."""


@dataclass(frozen=True)
class JobInitial(JobState):
    pass


@dataclass(frozen=True)
class JobLoading(JobState):
    message: str = "Opdrachten laden..."


@dataclass(frozen=True)
class JobLoaded(JobState):
    all_jobs: list[Job]
    filtered_jobs: list[Job]
    filters: JobFilter
    applied_job_ids: frozenset[str] = frozenset()
    has_active_filters: bool = False

    @property
    def result_summary(self) -> str:
        if len(self.filtered_jobs) == len(self.all_jobs):
            return f"{len(self.all_jobs)} opdrachten"
        return f"{len(self.filtered_jobs)} van {len(self.all_jobs)} opdrachten"

    def has_applied(self, job_id: str) -> bool:
        return job_id in self.applied_job_ids


@dataclass(frozen=True)
class JobApplicationSuccess(JobState):
    job_id: str
    job_title: str

    @property
    def message(self) -> str:
        return f"Sollicitatie voor '{self.job_title}' verstuurd"


@dataclass(frozen=True)
class JobApplicationRemoved(JobState):
    job_id: str
    job_title: str

    @property
    def message(self) -> str:
        return f"Sollicitatie voor '{self.job_title}' ingetrokken"


@dataclass(frozen=True)
class JobMetadataLoaded(JobState):
    job_types: list[str]
    companies: list[str]
    locations: list[str]
    certificates: list[str]


@dataclass(frozen=True)
class JobStatisticsLoaded(JobState):
    statistics: dict[str, float] = field(default_factory=dict)


@dataclass(frozen=True)
class JobError(JobState):
    error: AppError

    @property
    def code(self) -> str:
        return self.error.code

    @property
    def message(self) -> str:
        return self.error.message


Listener = Callable[[JobState], None]


# =========================================================================
# Controller
# =========================================================================

class JobSearchController:
    """
    Holds the job list state for one user and pushes every state change to
    subscribed listeners. Text and filter input go through debouncers;
    search() and filter() apply immediately. Debounced calls arrive on timer
    threads, so state and pending filter changes are guarded by one lock and
    nothing is emitted after close().
    """

    def __init__(
        self,
        repository: JobRepository,
        user_id: str | None = None,
        debounce_ms: int | None = None,
        settings: dict[str, Any] | None = None,
    ) -> None:
        if debounce_ms is None:
            if settings is None:
                settings = config._get_app_settings()
            search = {**config.DEFAULT_SETTINGS["search"], **(settings.get("search") or {})}
            debounce_ms = int(search["debounce_ms"])

        self._repository = repository
        self._user_id = user_id
        self._listeners: list[Listener] = []
        self._state: JobState = JobInitial()
        self._all_jobs: list[Job] = []
        self._filters = JobFilter()
        self._applied: set[str] = set()
        self._pending_filter_changes: dict[str, Any] = {}
        self._closed = False
        self._lock = threading.RLock()

        delay = debounce_ms / 1000
        self._search_debouncer = Debouncer(delay, self.search)
        self._filter_debouncer = Debouncer(delay, self._apply_pending_filters)

    # --- State and listeners ---

    @property
    def state(self) -> JobState:
        return self._state

    @property
    def filters(self) -> JobFilter:
        return self._filters

    @property
    def user_id(self) -> str | None:
        return self._user_id

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener; returns a function that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _emit(self, state: JobState) -> None:
        with self._lock:
            if self._closed:
                return
            self._state = state
            for listener in list(self._listeners):
                listener(state)

    def _emit_error(self, error: BaseException | AppError, code: str | None = None) -> None:
        app_error = error if isinstance(error, AppError) else error_from_exception(error)
        if code is not None and app_error.code in ("unknown_error", "storage_error"):
            app_error = AppError(code, category=app_error.category, details=app_error.details)
        self._emit(JobError(app_error))

    def _emit_loaded(self) -> None:
        filtered = self._repository.filter_jobs(
            search_query=self._filters.search_query,
            min_hourly_rate=self._filters.hourly_rate_range[0],
            max_hourly_rate=self._filters.hourly_rate_range[1],
            max_distance=self._filters.max_distance,
            job_type=self._filters.job_type,
            required_certificates=list(self._filters.certificates),
            jobs=self._all_jobs,
        )
        self._emit(JobLoaded(
            all_jobs=list(self._all_jobs),
            filtered_jobs=filtered,
            filters=self._filters,
            applied_job_ids=frozenset(self._applied),
            has_active_filters=self._filters.has_active_filters,
        ))

    # --- Loading ---

    def initialize(self) -> None:
        self._load_applied_ids()
        self.load_jobs()

    def load_jobs(self) -> None:
        self._emit(JobLoading())
        try:
            self._all_jobs = self._repository.get_jobs()
        except Exception as e:
            print(f"Error loading jobs: {e}")
            self._emit_error(e, "jobs_load_failed")
            return
        self._emit_loaded()

    def refresh_jobs(self) -> None:
        self._emit(JobLoading("Opdrachten vernieuwen..."))
        try:
            self._all_jobs = self._repository.refresh_jobs()
        except Exception as e:
            print(f"Error refreshing jobs: {e}")
            self._emit_error(e, "jobs_load_failed")
            return
        self._emit_loaded()

    # --- Search and filters ---

    def search(self, query: str) -> None:
        with self._lock:
            if self._closed:
                return
            self._filters = self._filters.copy_with(search_query=query or "")
            self._emit_loaded()

    def filter(self, **changes: Any) -> None:
        with self._lock:
            if self._closed:
                return
            try:
                self._filters = self._filters.copy_with(**changes)
            except TypeError as e:
                self._emit_error(ValueError(f"Unknown filter: {e}"))
                return
            self._emit_loaded()

    def update_search_query(self, query: str) -> None:
        self._search_debouncer.call(query)

    def update_filters(self, **changes: Any) -> None:
        # Changes made within one debounce window are merged
        with self._lock:
            if self._closed:
                return
            self._pending_filter_changes.update(changes)
        self._filter_debouncer.call()

    def _apply_pending_filters(self) -> None:
        with self._lock:
            changes, self._pending_filter_changes = self._pending_filter_changes, {}
            if changes:
                self.filter(**changes)

    def clear_filters(self) -> None:
        self._search_debouncer.cancel()
        self._filter_debouncer.cancel()
        with self._lock:
            self._pending_filter_changes = {}
            self._filters = JobFilter()
            self._emit_loaded()

    # --- Applications ---

    def set_user(self, user_id: str | None) -> None:
        self._user_id = user_id
        self._load_applied_ids()
        if isinstance(self._state, JobLoaded):
            self._emit_loaded()

    def _load_applied_ids(self) -> None:
        if not self._user_id:
            self._applied = set()
            return
        self._applied = set(self._repository.get_applied_jobs(self._user_id))

    def load_applied_jobs(self) -> None:
        try:
            self._load_applied_ids()
        except Exception as e:
            print(f"Error loading applied jobs: {e}")
            self._emit_error(e)
            return
        self._emit_loaded()

    def _require_job(self, job_id: str) -> Job | None:
        if not self._user_id:
            self._emit(JobError(AppError("not_authenticated", category=ErrorCategory.AUTHENTICATION)))
            return None
        job = self._repository.get_job_by_id(job_id)
        if job is None:
            self._emit(JobError(AppError("job_not_found", details={"job_id": job_id})))
        return job

    def apply_to_job(self, job_id: str, message: str = "") -> bool:
        job = self._require_job(job_id)
        if job is None:
            return False
        try:
            applied = self._repository.apply_to_job(job_id, self._user_id, message)
        except Exception as e:
            print(f"Error applying to job {job_id}: {e}")
            self._emit_error(e, "application_failed")
            return False
        if not applied:
            self._emit(JobError(AppError("already_applied", category=ErrorCategory.VALIDATION)))
            return False

        self._applied.add(job_id)
        self._emit(JobApplicationSuccess(job_id, job.job_title))
        self._all_jobs = self._repository.get_jobs()
        self._emit_loaded()
        return True

    def remove_application(self, job_id: str) -> bool:
        job = self._require_job(job_id)
        if job is None:
            return False
        try:
            removed = self._repository.remove_application(job_id, self._user_id)
        except Exception as e:
            print(f"Error removing application for {job_id}: {e}")
            self._emit_error(e, "application_failed")
            return False
        if not removed:
            return False

        self._applied.discard(job_id)
        self._emit(JobApplicationRemoved(job_id, job.job_title))
        self._all_jobs = self._repository.get_jobs()
        self._emit_loaded()
        return True

    # --- Metadata ---

    def load_metadata(self) -> None:
        try:
            self._emit(JobMetadataLoaded(
                job_types=self._repository.get_job_types(),
                companies=self._repository.get_companies(),
                locations=self._repository.get_locations(),
                certificates=self._repository.get_available_certificates(),
            ))
        except Exception as e:
            print(f"Error loading job metadata: {e}")
            self._emit_error(e)

    def load_statistics(self) -> None:
        try:
            self._emit(JobStatisticsLoaded(self._repository.get_job_statistics()))
        except Exception as e:
            print(f"Error loading job statistics: {e}")
            self._emit_error(e)

    def get_job_by_id(self, job_id: str) -> Job | None:
        return self._repository.get_job_by_id(job_id)

    def close(self) -> None:
        with self._lock:
            self._closed = True
            self._pending_filter_changes = {}
            self._listeners.clear()
        self._search_debouncer.cancel()
        self._filter_debouncer.cancel()
