"""Job collection: build the configured sources and import new jobs (deduplicated by job id and company)."""

from datetime import datetime

from core.factory import create_data_source
from core.models import Job
from core.repository import JobRepository
from core.sources import DataSource, to_job_row

from .constants import JOB_FEED_URL, JOB_SOURCES


def build_sources(settings: dict) -> list[DataSource]:
    """
    Sources named in JOB_SOURCES (env) or search.job_sources (settings).
    Unknown names are reported and skipped.
    """
    search = settings.get("search") or {}
    names = JOB_SOURCES or search.get("job_sources") or ["static"]
    feed_url = JOB_FEED_URL or search.get("job_feed_url") or ""
    timeout = (settings.get("payments") or {}).get("request_timeout_sec", 15)

    sources = []
    for name in names:
        try:
            if name.strip().lower() == "feed":
                sources.append(create_data_source(name, url=feed_url, timeout=timeout))
            else:
                sources.append(create_data_source(name))
        except ValueError as e:
            print(f"Skipping job source: {e}")
    return sources


def collect_new_jobs(repository: JobRepository, sources: list[DataSource], shutdown_requested: dict) -> int:
    """Fetch every available source and store jobs not seen before. Returns the number added."""
    existing_keys = repository.get_existing_job_keys()
    total_new = 0

    for source in sources:
        if shutdown_requested['flag']:
            break
        if not source.is_available():
            print(f"Job source '{source.name}' unavailable. Skipping.")
            continue

        print(f"\n--- Collecting jobs from '{source.name}' ---")
        now = datetime.now()
        new_rows = []
        for item in source.fetch_jobs():
            row = to_job_row(item, source.name, created_at=now)
            if not row["Job ID"]:
                print(f"Skipping job without id from '{source.name}': {row['Job Title']!r}")
                continue
            key = Job.from_row(row).natural_key()
            if key in existing_keys:
                continue
            existing_keys.add(key)
            new_rows.append(row)

        if new_rows:
            repository.add_jobs(new_rows)
            print(f"Added {len(new_rows)} new jobs from '{source.name}'.")
        else:
            print(f"No new jobs from '{source.name}'.")
        total_new += len(new_rows)

    return total_new
