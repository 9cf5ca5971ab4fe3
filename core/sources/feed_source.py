"""Provider JSON feed job source (requests), with back-off after failures."""

import time
from typing import Any, Iterator

import requests

from utils.parsing import html_to_markdown, parse_float, parse_int, parse_location

from .base import DataSource

DEFAULT_TIMEOUT_SEC = 15


class FeedStateManager:
    """Tracks feed availability; after a failure the feed is skipped for retry_delay seconds."""

    def __init__(self, retry_delay: float = 3600):
        self._available = True
        self._last_failure_time = None
        self._retry_delay = retry_delay

    def is_available(self) -> bool:
        if not self._available and self._last_failure_time:
            elapsed = time.time() - self._last_failure_time
            if elapsed > self._retry_delay:
                print(f"Job feed retry delay ({self._retry_delay}s) elapsed. Allowing retry...")
                self._available = True
                self._last_failure_time = None
        return self._available

    def mark_unavailable(self):
        self._available = False
        self._last_failure_time = time.time()

    def reset(self):
        self._available = True
        self._last_failure_time = None


def _first(item: dict[str, Any], *keys: str, default: Any = "") -> Any:
    for key in keys:
        value = item.get(key)
        if value not in (None, ""):
            return value
    return default


def _normalize_feed_item(item: dict[str, Any]) -> dict[str, Any]:
    """Convert a provider feed entry (snake_case or camelCase keys) to a normalized job item."""
    raw_location = str(_first(item, "location", "city")).strip()
    location, postal_code = parse_location(raw_location)
    postal_code = str(_first(item, "postal_code", "postalCode", default=postal_code)).strip()

    description = str(_first(item, "description", "job_description", "descriptionHtml")).strip()
    if "<" in description and ">" in description:
        description = html_to_markdown(description).strip()

    certificates = _first(item, "required_certificates", "requiredCertificates", "certificates", default=[])
    if isinstance(certificates, str):
        certificates = [c.strip() for c in certificates.split(",") if c.strip()]

    return {
        "job_id": str(_first(item, "job_id", "jobId", "id")).strip(),
        "job_title": str(_first(item, "job_title", "jobTitle", "title")).strip(),
        "company_name": str(_first(item, "company_name", "companyName", "company")).strip(),
        "location": location,
        "postal_code": postal_code,
        "hourly_rate": parse_float(_first(item, "hourly_rate", "hourlyRate", "rate")),
        "distance": parse_float(_first(item, "distance", "distanceKm")),
        "company_rating": parse_float(_first(item, "company_rating", "companyRating", "rating")),
        "applicant_count": parse_int(_first(item, "applicant_count", "applicantCount")),
        "duration": parse_int(_first(item, "duration", "hours")),
        "job_type": str(_first(item, "job_type", "jobType", "type")).strip(),
        "description": description,
        "required_certificates": list(certificates),
        "start_date": _first(item, "start_date", "startDate", default=None),
        "end_date": _first(item, "end_date", "endDate", default=None),
    }


class JsonFeedSource(DataSource):
    """DataSource that reads a provider JSON feed: a list of jobs or {"jobs": [...]}."""

    name = "feed"

    def __init__(
        self,
        url: str = "",
        session: requests.Session | None = None,
        timeout: float = DEFAULT_TIMEOUT_SEC,
        state: FeedStateManager | None = None,
    ) -> None:
        self.url = (url or "").strip()
        self._session = session or requests.Session()
        self._timeout = timeout
        self._state = state or FeedStateManager()

    def fetch_jobs(self, **kwargs: Any) -> Iterator[dict[str, Any]]:
        if not self.url:
            return
        if not self._state.is_available():
            print("Job feed is currently unavailable. Skipping fetch.")
            return

        try:
            response = self._session.get(self.url, timeout=self._timeout)
            response.raise_for_status()
            payload = response.json()
        except (requests.RequestException, ValueError) as e:
            print(f"Error fetching job feed {self.url}: {e}")
            self._state.mark_unavailable()
            return

        items = payload.get("jobs", []) if isinstance(payload, dict) else payload
        for item in items or []:
            if not isinstance(item, dict):
                continue
            normalized = _normalize_feed_item(item)
            if normalized["job_id"] and normalized["job_title"] and normalized["company_name"]:
                yield normalized

    def is_available(self) -> bool:
        return bool(self.url) and self._state.is_available()
