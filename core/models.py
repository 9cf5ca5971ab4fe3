"""Domain models: security jobs, companies, applications and job filters."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any

from utils.formatting import format_distance, format_hourly_rate
from utils.parsing import parse_datetime, parse_float, parse_int, split_list
from utils.schema import JOB_COLUMNS

# Default empty value for any schema column
_EMPTY = ""

DEFAULT_HOURLY_RATE_RANGE = (0.0, 100.0)
DEFAULT_MAX_DISTANCE = 50.0


class Company:
    """Company value object: name, website and overview."""

    __slots__ = ("_name", "_url", "_overview")

    def __init__(
        self,
        name: str = _EMPTY,
        url: str = _EMPTY,
        overview: str = _EMPTY,
    ) -> None:
        self._name = (name or _EMPTY).strip()
        self._url = (url or _EMPTY).strip()
        self._overview = (overview or _EMPTY).strip()

    @property
    def name(self) -> str:
        return self._name

    @property
    def url(self) -> str:
        return self._url

    @property
    def overview(self) -> str:
        return self._overview

    def with_overview(self, overview: str) -> Company:
        return Company(name=self._name, url=self._url, overview=(overview or _EMPTY).strip())

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Company):
            return NotImplemented
        return (
            self._name == other._name
            and self._url == other._url
            and self._overview == other._overview
        )

    def __hash__(self) -> int:
        return hash((self._name, self._url, self._overview))

    def __repr__(self) -> str:
        return f"Company(name={self._name!r})"


class Job:
    """
    Security job listing with full schema encapsulation.
    Converts to/from storage row dicts; numeric columns are parsed on access.
    """

    __slots__ = ("_row",)

    def __init__(self, row: dict[str, Any] | None = None) -> None:
        if row is None:
            row = {}
        self._row = {k: (str(v).strip() if v is not None else _EMPTY) for k, v in row.items()}
        # Ensure all schema columns exist
        for col in JOB_COLUMNS:
            if col not in self._row:
                self._row[col] = _EMPTY
        if not self._row["Status"]:
            self._row["Status"] = "active"

    # --- Identity ---
    @property
    def job_id(self) -> str:
        return self._row["Job ID"]

    @property
    def company_name(self) -> str:
        return self._row["Company Name"]

    @property
    def job_title(self) -> str:
        return self._row["Job Title"]

    def natural_key(self) -> tuple[str, str]:
        """Unique key for this job: (job_id, company_name)."""
        return (self.job_id, self.company_name)

    def job_key_str(self) -> str:
        """Display label: 'Job Title @ Company Name'."""
        return f"{self.job_title} @ {self.company_name}"

    @property
    def company(self) -> Company:
        return Company(name=self.company_name)

    # --- Location ---
    @property
    def location(self) -> str:
        return self._row["Location"]

    @property
    def postal_code(self) -> str:
        return self._row["Postal Code"]

    @property
    def distance(self) -> float:
        return parse_float(self._row["Distance"])

    # --- Pay and listing details ---
    @property
    def hourly_rate(self) -> float:
        return parse_float(self._row["Hourly Rate"])

    @property
    def company_rating(self) -> float:
        return parse_float(self._row["Company Rating"])

    @property
    def applicant_count(self) -> int:
        return parse_int(self._row["Applicant Count"])

    @property
    def duration(self) -> int:
        """Shift length in hours."""
        return parse_int(self._row["Duration"])

    @property
    def job_type(self) -> str:
        return self._row["Job Type"]

    @property
    def description(self) -> str:
        return self._row["Description"]

    @property
    def required_certificates(self) -> list[str]:
        return split_list(self._row["Required Certificates"])

    @property
    def start_date(self) -> datetime | None:
        return parse_datetime(self._row["Start Date"])

    @property
    def end_date(self) -> datetime | None:
        return parse_datetime(self._row["End Date"])

    @property
    def created_at(self) -> datetime | None:
        return parse_datetime(self._row["Created At"])

    @property
    def status(self) -> str:
        return self._row["Status"]

    @property
    def is_active(self) -> bool:
        return self.status.lower() == "active"

    @property
    def source(self) -> str:
        return self._row["Source"]

    # --- Dutch display helpers ---
    @property
    def dutch_formatted_rate(self) -> str:
        return format_hourly_rate(self.hourly_rate)

    @property
    def dutch_formatted_distance(self) -> str:
        return format_distance(self.distance)

    def searchable_text(self) -> str:
        parts = [
            self.job_title,
            self.company_name,
            self.location,
            self.job_type,
            self.description,
            " ".join(self.required_certificates),
        ]
        return " ".join(parts).lower()

    # --- Raw row ---
    def get(self, column: str, default: str = _EMPTY) -> str:
        return self._row.get(column, default)

    def to_row(self) -> dict[str, str]:
        """Return a full row dict with all JOB_COLUMNS keys (no _id)."""
        return {col: self._row.get(col, _EMPTY) for col in JOB_COLUMNS}

    def to_row_with_id(self, row_id: int | None = None) -> dict[str, Any]:
        """Row dict including _id if present or passed."""
        row = dict(self.to_row())
        if row_id is not None:
            row["_id"] = row_id
        elif "_id" in self._row:
            row["_id"] = self._row["_id"]
        return row

    def copy_with_updates(self, updates: dict[str, Any]) -> Job:
        """Return a new Job with the given column updates."""
        new_row = dict(self._row)
        for k, v in updates.items():
            new_row[k] = str(v).strip() if v is not None else _EMPTY
        return Job(row=new_row)

    @classmethod
    def from_row(cls, row: dict[str, Any] | None) -> Job:
        """Build a Job from a storage row (dict with JOB_COLUMNS keys, optionally _id)."""
        if not row:
            return cls(row={})
        # Strip _id for the model; it's storage-specific
        clean = {k: v for k, v in row.items() if k != "_id"}
        return cls(row=clean)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Job):
            return NotImplemented
        return self.to_row() == other.to_row()

    def __hash__(self) -> int:
        return hash(self.natural_key())

    def __repr__(self) -> str:
        return f"Job({self.job_key_str()!r})"


class ApplicationStatus(Enum):
    PENDING = ("pending", "In behandeling")
    ACCEPTED = ("accepted", "Geaccepteerd")
    REJECTED = ("rejected", "Afgewezen")
    WITHDRAWN = ("withdrawn", "Ingetrokken")
    COMPLETED = ("completed", "Voltooid")

    def __init__(self, code: str, dutch_label: str) -> None:
        self.code = code
        self.dutch_label = dutch_label

    @classmethod
    def from_code(cls, code: str) -> ApplicationStatus:
        for status in cls:
            if status.code == (code or "").strip().lower():
                return status
        return cls.PENDING


@dataclass(frozen=True)
class JobApplication:
    job_id: str
    user_id: str
    message: str = ""
    status: ApplicationStatus = ApplicationStatus.PENDING
    applied_at: datetime | None = None
    updated_at: datetime | None = None

    def to_row(self) -> dict[str, str]:
        return {
            "Job ID": self.job_id,
            "User ID": self.user_id,
            "Message": self.message,
            "Status": self.status.code,
            "Applied At": self.applied_at.isoformat() if self.applied_at else "",
            "Updated At": self.updated_at.isoformat() if self.updated_at else "",
        }

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> JobApplication:
        return cls(
            job_id=row.get("Job ID", ""),
            user_id=row.get("User ID", ""),
            message=row.get("Message", ""),
            status=ApplicationStatus.from_code(row.get("Status", "")),
            applied_at=parse_datetime(row.get("Applied At")),
            updated_at=parse_datetime(row.get("Updated At")),
        )


@dataclass(frozen=True)
class JobFilter:
    """Current search text plus filter criteria for the job list."""

    search_query: str = ""
    hourly_rate_range: tuple[float, float] = DEFAULT_HOURLY_RATE_RANGE
    max_distance: float = DEFAULT_MAX_DISTANCE
    job_type: str = ""
    certificates: tuple[str, ...] = field(default_factory=tuple)

    @property
    def has_active_filters(self) -> bool:
        return (
            bool(self.search_query.strip())
            or tuple(self.hourly_rate_range) != DEFAULT_HOURLY_RATE_RANGE
            or self.max_distance != DEFAULT_MAX_DISTANCE
            or bool(self.job_type)
            or bool(self.certificates)
        )

    def copy_with(self, **changes: Any) -> JobFilter:
        if "certificates" in changes and changes["certificates"] is not None:
            changes["certificates"] = tuple(changes["certificates"])
        if "hourly_rate_range" in changes and changes["hourly_rate_range"] is not None:
            low, high = changes["hourly_rate_range"]
            changes["hourly_rate_range"] = (float(low), float(high))
        return replace(self, **changes)
