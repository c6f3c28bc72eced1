"""Collected YouTube video metadata."""

import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import String, Text, ForeignKey, BigInteger, DateTime, Index, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from trendcollector.models.base import Base, UUIDPrimaryKeyMixin

if TYPE_CHECKING:
    from trendcollector.models.keyword import Keyword


class Video(UUIDPrimaryKeyMixin, Base):
    """A video seen in a keyword's search results.

    Uniquely identified by external_video_id. Created on first sighting and
    refreshed (title, counts, collected_at) on every later one.
    """

    __tablename__ = "videos"

    external_video_id: Mapped[str] = mapped_column(
        String(64),
        unique=True,
        nullable=False,
        comment="YouTube video ID"
    )
    keyword_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("keywords.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="Keyword that first surfaced this video"
    )

    # Metadata
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    url: Mapped[str] = mapped_column(String(500), nullable=False)
    channel_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    channel_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    duration: Mapped[Optional[str]] = mapped_column(String(20), nullable=True, comment="H:MM:SS or M:SS")
    thumbnail: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    # Metrics
    view_count: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    like_count: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)

    # Timestamps
    published_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="Upload date reported by YouTube"
    )
    collected_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
        comment="Last time this video was seen by the collector (UTC)"
    )

    __table_args__ = (
        Index("idx_videos_keyword_collected", "keyword_id", "collected_at"),
        Index("idx_videos_collected", "collected_at"),
    )

    # Relationships
    keyword: Mapped["Keyword"] = relationship(back_populates="videos")

    def __repr__(self) -> str:
        return f"<Video(id={self.id}, external_video_id='{self.external_video_id}', view_count={self.view_count})>"
