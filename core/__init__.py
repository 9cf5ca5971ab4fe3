"""
Core domain layer: models, job sources, repositories and services.
Keeps the marketplace logic storage-agnostic and testable.
"""

from .models import Job, Company, JobFilter
from .sources import DataSource, StaticJobSource, JsonFeedSource
from .repository import JobRepository
from .profile_repository import ProfileRepository
from .errors import AppError, ProfileError

__all__ = [
    "Job",
    "Company",
    "JobFilter",
    "DataSource",
    "StaticJobSource",
    "JsonFeedSource",
    "JobRepository",
    "ProfileRepository",
    "AppError",
    "ProfileError",
]
