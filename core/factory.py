"""Factory for data sources and repositories (DI-friendly)."""

from typing import Any

from .profile_repository import ProfileRepository
from .repository import JobRepository
from .sources import DataSource, JsonFeedSource, StaticJobSource


def create_data_source(name: str, **kwargs: Any) -> DataSource:
    """
    Create a DataSource by name. Use for DI or when switching sources without changing callers.

    Supported names: 'static', 'feed'.
    """
    name_lower = (name or "").strip().lower()
    if name_lower == "static":
        return StaticJobSource(**kwargs)
    if name_lower == "feed":
        return JsonFeedSource(**kwargs)
    raise ValueError(f"Unknown data source: {name!r}. Use 'static' or 'feed'.")


def create_repository(store: Any, cache_minutes: float | None = None) -> JobRepository:
    """Create a JobRepository wrapping the given store (e.g. SecuryFlexDatabase)."""
    if cache_minutes is None:
        return JobRepository(store)
    return JobRepository(store, cache_minutes=cache_minutes)


def create_profile_repository(store: Any) -> ProfileRepository:
    return ProfileRepository(store)
