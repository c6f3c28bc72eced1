"""Per-keyword daily trend aggregates."""

import uuid
import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import String, ForeignKey, Integer, BigInteger, Date, DateTime, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from trendcollector.models.base import Base, UUIDPrimaryKeyMixin

if TYPE_CHECKING:
    from trendcollector.models.keyword import Keyword
    from trendcollector.models.video import Video


class Trend(UUIDPrimaryKeyMixin, Base):
    """Summary of the videos collected for one keyword on one day.

    A row exists only for days on which at least one video was collected.
    """

    __tablename__ = "trends"

    keyword_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("keywords.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    date: Mapped[datetime.date] = mapped_column(Date, nullable=False, comment="Calendar day in the configured timezone")
    period: Mapped[str] = mapped_column(
        String(10),
        nullable=False,
        default="daily",
        comment="Aggregation period: currently only 'daily'"
    )

    # Aggregates
    video_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_views: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    avg_views: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    top_video_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        ForeignKey("videos.id", ondelete="SET NULL"),
        nullable=True,
    )

    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False
    )

    __table_args__ = (
        UniqueConstraint("keyword_id", "date", "period", name="uq_trends_keyword_date_period"),
    )

    # Relationships
    keyword: Mapped["Keyword"] = relationship(back_populates="trends")
    top_video: Mapped[Optional["Video"]] = relationship()

    def __repr__(self) -> str:
        return (
            f"<Trend(keyword_id={self.keyword_id}, date={self.date}, "
            f"video_count={self.video_count}, total_views={self.total_views})>"
        )
