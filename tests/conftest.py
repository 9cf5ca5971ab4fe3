"""Shared fixtures: a throwaway SQLite store and default settings."""

import copy

import pytest

from config import DEFAULT_SETTINGS
from local_storage import SecuryFlexDatabase


@pytest.fixture
def db(tmp_path):
    return SecuryFlexDatabase(str(tmp_path / "securyflex.db"))


@pytest.fixture
def settings():
    return copy.deepcopy(DEFAULT_SETTINGS)


def _job_row(job_id, title="Objectbeveiliger", company="G4S Nederland", **overrides):
    row = {
        "Job ID": job_id,
        "Job Title": title,
        "Company Name": company,
        "Location": "Rotterdam",
        "Postal Code": "3011AD",
        "Hourly Rate": "22.5",
        "Distance": "5.0",
        "Company Rating": "4.5",
        "Applicant Count": "0",
        "Duration": "8",
        "Job Type": "Objectbeveiliging",
        "Description": "Toegangscontrole en surveillance",
        "Required Certificates": "WPBR Diploma A;BHV Certificaat",
        "Status": "active",
        "Created At": "2024-05-01T09:00:00",
        "Source": "static",
    }
    row.update(overrides)
    return row


@pytest.fixture
def job_row():
    """Factory for jobs-table rows with sensible defaults."""
    return _job_row
