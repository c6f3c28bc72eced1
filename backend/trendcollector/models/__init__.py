"""SQLAlchemy models for the trend collector.

All models are imported here so metadata.create_all sees every table.
"""

from trendcollector.models.base import Base, UUIDPrimaryKeyMixin
from trendcollector.models.keyword import Keyword
from trendcollector.models.video import Video
from trendcollector.models.trend import Trend
from trendcollector.models.collection_run import CollectionRun

__all__ = [
    "Base",
    "UUIDPrimaryKeyMixin",
    "Keyword",
    "Video",
    "Trend",
    "CollectionRun",
]
