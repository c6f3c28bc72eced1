"""Video service for persisting collected videos.

Handles upserting videos by their YouTube ID and the read queries used
by trend aggregation and the recent-activity summary.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

import structlog
from sqlalchemy import select, and_, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from trendcollector.collectors.mapper import VideoInfo
from trendcollector.core.exceptions import PersistenceError
from trendcollector.models.collection_run import CollectionRun
from trendcollector.models.keyword import Keyword
from trendcollector.models.video import Video

logger = structlog.get_logger(__name__)


class VideoService:
    """Service for managing collected videos."""

    def __init__(self, db: AsyncSession):
        """Initialize video service.

        Args:
            db: Async database session
        """
        self.db = db
        self.logger = logger.bind(service="video_service")

    async def upsert_video(
        self,
        keyword_id: UUID,
        info: VideoInfo,
        now: Optional[datetime] = None,
    ) -> Tuple[Video, bool]:
        """Insert or update a video based on its external_video_id.

        A new video is stored with every mapped field. An existing video only
        gets its title, view/like counts and collected_at refreshed; the
        keyword that first surfaced it stays the owner. A missing like_count
        keeps the previously stored value.

        Args:
            keyword_id: Keyword that surfaced the video
            info: Mapped yt-dlp record
            now: Collection timestamp (defaults to current UTC time)

        Returns:
            (video, created) tuple

        Raises:
            PersistenceError: The video has no ID or the write failed
        """
        if not info.external_video_id:
            raise PersistenceError("video", "external_video_id is required")

        now = now or datetime.now(timezone.utc)

        try:
            result = await self.db.execute(
                select(Video).where(Video.external_video_id == info.external_video_id)
            )
            video = result.scalar_one_or_none()

            if video:
                video.title = info.title
                video.view_count = info.view_count
                if info.like_count is not None:
                    video.like_count = info.like_count
                video.collected_at = now
                created = False
            else:
                video = Video(
                    external_video_id=info.external_video_id,
                    keyword_id=keyword_id,
                    title=info.title,
                    url=info.url,
                    channel_name=info.channel,
                    channel_url=info.channel_url,
                    description=info.description,
                    view_count=info.view_count,
                    like_count=info.like_count,
                    duration=info.duration,
                    thumbnail=info.thumbnail,
                    published_at=info.published_at,
                    collected_at=now,
                )
                self.db.add(video)
                created = True

            await self.db.commit()

        except SQLAlchemyError as e:
            await self.db.rollback()
            raise PersistenceError("video", f"{info.external_video_id}: {e}") from e

        self.logger.debug(
            "video_upserted",
            external_video_id=info.external_video_id,
            created=created,
            view_count=info.view_count,
        )

        return video, created

    async def get_videos_collected_between(
        self,
        keyword_id: UUID,
        start: datetime,
        end: datetime,
    ) -> List[Video]:
        """Videos of a keyword whose collected_at lies in [start, end).

        Ordered by collected_at so callers see them in collection order.
        """
        result = await self.db.execute(
            select(Video)
            .where(and_(
                Video.keyword_id == keyword_id,
                Video.collected_at >= start,
                Video.collected_at < end,
            ))
            .order_by(Video.collected_at)
        )
        return list(result.scalars().all())

    async def get_recent_summary(
        self,
        days: int = 7,
        now: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """Summarize what was collected over the last N days.

        Args:
            days: Window size in days
            now: Reference time (defaults to current UTC time)

        Returns:
            Dict with period, total_videos, total_views, collection_runs and
            a per-keyword keyword_breakdown list
        """
        now = now or datetime.now(timezone.utc)
        since = now - timedelta(days=days)

        totals = await self.db.execute(
            select(
                func.count(Video.id),
                func.coalesce(func.sum(Video.view_count), 0),
            ).where(Video.collected_at >= since)
        )
        total_videos, total_views = totals.one()

        runs = await self.db.execute(
            select(func.count(CollectionRun.id)).where(CollectionRun.started_at >= since)
        )

        breakdown = await self.db.execute(
            select(Keyword.id, Keyword.name, func.count(Video.id))
            .outerjoin(Video, and_(
                Video.keyword_id == Keyword.id,
                Video.collected_at >= since,
            ))
            .group_by(Keyword.id, Keyword.name)
            .order_by(Keyword.name)
        )

        return {
            "period": f"{days} days",
            "total_videos": int(total_videos or 0),
            "total_views": int(total_views or 0),
            "collection_runs": runs.scalar() or 0,
            "keyword_breakdown": [
                {"id": str(keyword_id), "name": name, "videos_count": count}
                for keyword_id, name, count in breakdown.all()
            ],
        }
