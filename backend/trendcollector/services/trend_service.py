"""Daily trend aggregation.

Folds the videos collected for each keyword during the current calendar day
into one Trend row per (keyword, day, period). The day boundary is local
midnight in the configured timezone; all stored timestamps are UTC, so the
boundaries are converted before querying.

A keyword with no videos collected today gets no row at all: absence of
activity is represented by absence of a row, never by a zeroed one.
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import List, Optional, Sequence, Tuple
from uuid import UUID

import structlog
from sqlalchemy import select, and_
from sqlalchemy.ext.asyncio import AsyncSession

from trendcollector.config import settings
from trendcollector.models.trend import Trend
from trendcollector.models.video import Video
from trendcollector.services.keyword_service import KeywordService
from trendcollector.services.video_service import VideoService

logger = structlog.get_logger(__name__)

DAILY = "daily"


@dataclass
class TrendSummary:
    """Aggregate figures for one keyword's videos on one day."""

    video_count: int
    total_views: int
    avg_views: int
    top_video: Video


def summarize_videos(videos: Sequence[Video]) -> Optional[TrendSummary]:
    """Compute the daily aggregate for a list of videos.

    The top video is the one with the highest view_count; on ties the first
    one in the given order wins. avg_views is rounded half up.

    Returns:
        TrendSummary, or None for an empty list
    """
    if not videos:
        return None

    count = len(videos)
    total_views = sum(v.view_count or 0 for v in videos)

    top_video = videos[0]
    for video in videos[1:]:
        if (video.view_count or 0) > (top_video.view_count or 0):
            top_video = video

    return TrendSummary(
        video_count=count,
        total_views=total_views,
        avg_views=(2 * total_views + count) // (2 * count),
        top_video=top_video,
    )


class TrendService:
    """Computes and stores per-keyword trend aggregates."""

    def __init__(self, db: AsyncSession, tz: Optional[tzinfo] = None):
        """Initialize trend service.

        Args:
            db: Async database session
            tz: Timezone that defines the calendar day (defaults to settings.TIMEZONE)
        """
        self.db = db
        self.tz = tz or settings.get_timezone()
        self.keyword_service = KeywordService(db)
        self.video_service = VideoService(db)
        self.logger = logger.bind(service="trend_service")

    def day_bounds(self, now: Optional[datetime] = None) -> Tuple[date, datetime, datetime]:
        """Return the local calendar day containing `now` and its UTC bounds.

        Args:
            now: Reference instant; naive values are taken as UTC

        Returns:
            (local day, start in UTC inclusive, end in UTC exclusive)
        """
        now = now or datetime.now(timezone.utc)
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)

        day = now.astimezone(self.tz).date()
        start = datetime.combine(day, time.min, tzinfo=self.tz)
        end = datetime.combine(day + timedelta(days=1), time.min, tzinfo=self.tz)

        return day, start.astimezone(timezone.utc), end.astimezone(timezone.utc)

    async def update_daily_trends(self, now: Optional[datetime] = None) -> List[Trend]:
        """Recompute today's aggregate for every keyword, active or not.

        Args:
            now: Reference instant (defaults to current time)

        Returns:
            Trend rows created or updated by this pass
        """
        day, start, end = self.day_bounds(now)

        keywords = await self.keyword_service.get_all_keywords()
        keyword_ids = [k.id for k in keywords]

        self.logger.info("updating_daily_trends", day=day.isoformat(), keywords=len(keyword_ids))

        trends: List[Trend] = []
        for keyword_id in keyword_ids:
            videos = await self.video_service.get_videos_collected_between(keyword_id, start, end)
            summary = summarize_videos(videos)
            if summary is None:
                continue

            trend = await self.upsert_trend(keyword_id, day, summary)
            trends.append(trend)

        self.logger.info("daily_trends_updated", day=day.isoformat(), count=len(trends))

        return trends

    async def get_trend(
        self,
        keyword_id: UUID,
        day: date,
        period: str = DAILY,
    ) -> Optional[Trend]:
        """Find the trend row for (keyword_id, day, period)."""
        result = await self.db.execute(
            select(Trend).where(and_(
                Trend.keyword_id == keyword_id,
                Trend.date == day,
                Trend.period == period,
            ))
        )
        return result.scalar_one_or_none()

    async def upsert_trend(
        self,
        keyword_id: UUID,
        day: date,
        summary: TrendSummary,
        period: str = DAILY,
    ) -> Trend:
        """Insert a trend row, or update the existing one for the same key.

        Args:
            keyword_id: Keyword UUID
            day: Calendar day
            summary: Aggregate figures
            period: Aggregation period

        Returns:
            Created or updated Trend
        """
        trend = await self.get_trend(keyword_id, day, period)

        if trend:
            trend.video_count = summary.video_count
            trend.total_views = summary.total_views
            trend.avg_views = summary.avg_views
            trend.top_video_id = summary.top_video.id
        else:
            trend = Trend(
                keyword_id=keyword_id,
                date=day,
                period=period,
                video_count=summary.video_count,
                total_views=summary.total_views,
                avg_views=summary.avg_views,
                top_video_id=summary.top_video.id,
            )
            self.db.add(trend)

        await self.db.commit()

        self.logger.debug(
            "trend_upserted",
            keyword_id=str(keyword_id),
            day=day.isoformat(),
            video_count=summary.video_count,
            total_views=summary.total_views,
        )

        return trend
