"""Services module for data access and aggregation.

The notifier lives in trendcollector.services.notifier and is not
re-exported here because it depends on the collector service.
"""

from trendcollector.services.keyword_service import KeywordService
from trendcollector.services.video_service import VideoService
from trendcollector.services.trend_service import TrendService, TrendSummary, summarize_videos

__all__ = [
    "KeywordService",
    "VideoService",
    "TrendService",
    "TrendSummary",
    "summarize_videos",
]
