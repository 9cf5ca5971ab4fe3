from .base import DataSource, to_job_row
from .feed_source import FeedStateManager, JsonFeedSource
from .static_source import StaticJobSource

__all__ = ["DataSource", "FeedStateManager", "JsonFeedSource", "StaticJobSource", "to_job_row"]
