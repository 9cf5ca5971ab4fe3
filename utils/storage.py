"""Database setup and job lookups."""

from pathlib import Path

DEFAULT_DB_PATH = Path("local_data") / "securyflex.db"


def setup_database(db_path: str | Path | None = None):
    """Set up the local SQLite store holding every collection."""
    from local_storage import SecuryFlexDatabase

    path = Path(db_path) if db_path else DEFAULT_DB_PATH
    db = SecuryFlexDatabase(str(path))
    print(f"Using local SQLite storage: {path}")
    return db


def get_existing_job_keys(job_store) -> set[tuple[str, str]]:
    """Get set of existing job keys (job_id, company_name) from the job store.
    job_store: jobs table or any object with get_all_records() returning list of dicts.
    """
    all_rows = job_store.get_all_records()
    existing = set()
    for row in all_rows:
        job_id = str(row.get('Job ID', '')).strip()
        company_name = str(row.get('Company Name', '')).strip()
        if job_id:
            existing.add((job_id, company_name))
    return existing
