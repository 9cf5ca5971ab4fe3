"""DataSource interface: abstract contract for security job listing providers."""

from abc import ABC, abstractmethod
from typing import Any, Iterator

from utils.parsing import join_list


class DataSource(ABC):
    """
    Interface for job listing data sources (built-in listings, provider feeds).
    Implementations yield normalized job items that convert to Job rows via to_job_row().
    """

    name = "base"

    @abstractmethod
    def fetch_jobs(self, **kwargs: Any) -> Iterator[dict[str, Any]]:
        """
        Fetch job listings from this source.

        Yields normalized items with at least:
          - job_id (str)
          - job_title (str)
          - company_name (str)
          - location (str)
          - hourly_rate (float)

        Optional keys: postal_code, distance, company_rating, applicant_count,
        duration, job_type, description, required_certificates (list[str]),
        start_date / end_date (datetime or ISO string).
        """
        ...

    def is_available(self) -> bool:
        """Return True if this source can be used (e.g. not backing off after a failure)."""
        return True


def _iso(value: Any) -> str:
    if value is None:
        return ""
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return str(value)


def to_job_row(item: dict[str, Any], source: str, created_at: Any = None) -> dict[str, str]:
    """Convert a normalized item into a jobs-table row dict."""
    certificates = item.get("required_certificates") or []
    if isinstance(certificates, str):
        certificates = [c.strip() for c in certificates.split(",")]
    return {
        "Job ID": str(item.get("job_id", "")).strip(),
        "Job Title": str(item.get("job_title", "")).strip(),
        "Company Name": str(item.get("company_name", "")).strip(),
        "Location": str(item.get("location", "")).strip(),
        "Postal Code": str(item.get("postal_code", "")).strip(),
        "Hourly Rate": str(item.get("hourly_rate", "")),
        "Distance": str(item.get("distance", "")),
        "Company Rating": str(item.get("company_rating", "")),
        "Applicant Count": str(item.get("applicant_count", 0)),
        "Duration": str(item.get("duration", "")),
        "Job Type": str(item.get("job_type", "")).strip(),
        "Description": str(item.get("description", "")).strip(),
        "Required Certificates": join_list(certificates),
        "Start Date": _iso(item.get("start_date")),
        "End Date": _iso(item.get("end_date")),
        "Status": "active",
        "Created At": _iso(created_at),
        "Source": source,
    }
