"""Collection orchestration service.

Connects the yt-dlp client with the database services: searches one keyword
at a time, upserts the videos it returns, records one CollectionRun per full
pass and finally refreshes the daily trend aggregates.

Keywords are processed strictly sequentially with a fixed delay in between;
parallel searches get the host's IP rate limited by YouTube.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence
from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from trendcollector.collectors.ytdlp import SearchOptions, YtDlpClient
from trendcollector.config import settings
from trendcollector.core.exceptions import (
    NotFoundError,
    PersistenceError,
    SearchToolError,
    ToolNotInstalled,
)
from trendcollector.models.collection_run import CollectionRun
from trendcollector.services.keyword_service import KeywordService
from trendcollector.services.trend_service import TrendService
from trendcollector.services.video_service import VideoService

logger = structlog.get_logger(__name__)

INACTIVE_KEYWORD_ERROR = "Keyword is inactive"

RUN_SUCCESS = "success"
RUN_PARTIAL = "partial"
RUN_FAILED = "failed"


@dataclass
class CollectResult:
    """Outcome of collecting one keyword."""

    keyword_id: UUID
    keyword_name: str
    videos_collected: int = 0
    error: Optional[str] = None
    inactive: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "keyword_id": str(self.keyword_id),
            "keyword_name": self.keyword_name,
            "videos_collected": self.videos_collected,
            "error": self.error,
            "inactive": self.inactive,
        }


@dataclass
class CollectAllResult:
    """Outcome of one full collection run."""

    started_at: datetime
    completed_at: datetime
    total_keywords: int
    total_videos: int
    status: str
    results: List[CollectResult] = field(default_factory=list)
    run_id: Optional[UUID] = None

    @property
    def duration_seconds(self) -> float:
        return (self.completed_at - self.started_at).total_seconds()


def classify_run_status(results: Sequence[CollectResult]) -> str:
    """Derive the run status from per-keyword outcomes.

    - "failed":  no video was collected at all
    - "partial": some videos were collected but at least one keyword errored
    - "success": videos were collected and no keyword errored

    Inactive keywords are a zero-effect outcome, not an error.
    """
    total_videos = sum(r.videos_collected for r in results)
    if total_videos == 0:
        return RUN_FAILED

    has_errors = any(r.error and not r.inactive for r in results)
    return RUN_PARTIAL if has_errors else RUN_SUCCESS


class CollectorService:
    """Orchestrates keyword collection runs.

    This service:
    - Collects a single keyword (search + upsert)
    - Runs all active keywords sequentially with a delay between them
    - Records each full run to the collection_runs table
    - Refreshes daily trends after a full run
    """

    def __init__(
        self,
        db: AsyncSession,
        client: Optional[YtDlpClient] = None,
        trend_service: Optional[TrendService] = None,
        delay_seconds: Optional[float] = None,
        max_age_days: Optional[int] = None,
    ):
        """Initialize collector service.

        Args:
            db: Async database session
            client: yt-dlp client (a default one is created if omitted)
            trend_service: Trend aggregator run after each full pass
            delay_seconds: Pause between keywords (defaults to settings)
            max_age_days: Recency window for searches (defaults to settings, 0 disables)
        """
        self.db = db
        self.client = client or YtDlpClient()
        self.keyword_service = KeywordService(db)
        self.video_service = VideoService(db)
        self.trend_service = trend_service or TrendService(db)
        self.delay_seconds = (
            settings.COLLECT_DELAY_SECONDS if delay_seconds is None else delay_seconds
        )
        self.max_age_days = (
            settings.COLLECT_MAX_AGE_DAYS if max_age_days is None else max_age_days
        )
        self.logger = logger.bind(service="collector_service")

    async def collect(self, keyword_id: UUID, limit: Optional[int] = None) -> CollectResult:
        """Collect videos for a single keyword.

        Args:
            keyword_id: Keyword UUID
            limit: Max videos to request (defaults to settings.COLLECT_LIMIT)

        Returns:
            CollectResult; `error` is set when the search tool failed or the
            keyword is inactive

        Raises:
            NotFoundError: No keyword with this ID
        """
        limit = limit or settings.COLLECT_LIMIT

        keyword = await self.keyword_service.get_keyword_by_id(keyword_id)
        if not keyword:
            raise NotFoundError("Keyword", str(keyword_id))

        # Plain values only: a rollback after a failed upsert expires ORM objects
        keyword_name = keyword.name

        if not keyword.is_active:
            self.logger.info("keyword_inactive", keyword=keyword_name)
            return CollectResult(
                keyword_id=keyword_id,
                keyword_name=keyword_name,
                error=INACTIVE_KEYWORD_ERROR,
                inactive=True,
            )

        options = SearchOptions(limit=limit, max_age_days=self.max_age_days or None)

        try:
            search = await self.client.search(keyword_name, options)
        except SearchToolError as e:
            self.logger.error("keyword_search_failed", keyword=keyword_name, error=str(e))
            return CollectResult(
                keyword_id=keyword_id,
                keyword_name=keyword_name,
                error=str(e),
            )
        except Exception as e:
            # One keyword's failure must never abort the remaining keywords
            self.logger.error(
                "keyword_search_crashed",
                keyword=keyword_name,
                error=str(e),
                exc_info=True,
            )
            return CollectResult(
                keyword_id=keyword_id,
                keyword_name=keyword_name,
                error=str(e) or type(e).__name__,
            )

        collected = 0
        for info in search.videos:
            try:
                await self.video_service.upsert_video(keyword_id, info)
                collected += 1
            except PersistenceError as e:
                self.logger.error(
                    "video_upsert_failed",
                    keyword=keyword_name,
                    external_video_id=info.external_video_id,
                    error=str(e),
                )
                # Continue with the remaining videos

        self.logger.info(
            "keyword_collected",
            keyword=keyword_name,
            found=len(search.videos),
            collected=collected,
            partial=search.partial,
        )

        return CollectResult(
            keyword_id=keyword_id,
            keyword_name=keyword_name,
            videos_collected=collected,
        )

    async def collect_all(self, limit: Optional[int] = None) -> CollectAllResult:
        """Collect videos for every active keyword.

        Args:
            limit: Max videos per keyword (defaults to settings.COLLECT_LIMIT)

        Returns:
            CollectAllResult with per-keyword results and overall status

        Raises:
            ToolNotInstalled: yt-dlp is unavailable; nothing was collected
        """
        limit = limit or settings.COLLECT_LIMIT
        started_at = datetime.now(timezone.utc)

        if not await self.client.check_available():
            self.logger.error("collection_aborted_tool_missing", binary=self.client.binary)
            raise ToolNotInstalled(self.client.binary)

        active_keywords = await self.keyword_service.get_active_keywords()
        keyword_ids = [k.id for k in active_keywords]

        if not keyword_ids:
            self.logger.info("no_active_keywords")
            return CollectAllResult(
                started_at=started_at,
                completed_at=datetime.now(timezone.utc),
                total_keywords=0,
                total_videos=0,
                status=RUN_SUCCESS,
            )

        self.logger.info("collection_started", keywords=len(keyword_ids), limit=limit)

        results: List[CollectResult] = []
        for index, keyword_id in enumerate(keyword_ids):
            if index > 0 and self.delay_seconds > 0:
                await asyncio.sleep(self.delay_seconds)

            result = await self.collect(keyword_id, limit)
            results.append(result)

        completed_at = datetime.now(timezone.utc)
        total_videos = sum(r.videos_collected for r in results)
        status = classify_run_status(results)

        run = await self.record_run(started_at, completed_at, results, status)

        self.logger.info(
            "collection_completed",
            run_id=str(run.id),
            status=status,
            keywords=len(results),
            total_videos=total_videos,
            duration_seconds=round((completed_at - started_at).total_seconds(), 2),
        )

        await self.trend_service.update_daily_trends()

        return CollectAllResult(
            started_at=started_at,
            completed_at=completed_at,
            total_keywords=len(results),
            total_videos=total_videos,
            status=status,
            results=results,
            run_id=run.id,
        )

    async def record_run(
        self,
        started_at: datetime,
        completed_at: datetime,
        results: Sequence[CollectResult],
        status: str,
    ) -> CollectionRun:
        """Append a CollectionRun row for a finished run."""
        errors = [f"{r.keyword_name}: {r.error}" for r in results if r.error and not r.inactive]
        duration = (completed_at - started_at).total_seconds()

        run = CollectionRun(
            started_at=started_at,
            completed_at=completed_at,
            duration_seconds=Decimal(str(round(duration, 2))),
            keyword_count=len(results),
            video_count=sum(r.videos_collected for r in results),
            status=status,
            error="; ".join(errors) if errors else None,
            results=[r.to_dict() for r in results],
        )
        self.db.add(run)
        await self.db.commit()

        return run
