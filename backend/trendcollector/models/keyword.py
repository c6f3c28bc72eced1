"""Tracked search keywords."""

from datetime import datetime
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import String, Boolean, DateTime, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from trendcollector.models.base import Base, UUIDPrimaryKeyMixin

if TYPE_CHECKING:
    from trendcollector.models.video import Video
    from trendcollector.models.trend import Trend


class Keyword(UUIDPrimaryKeyMixin, Base):
    """A keyword whose YouTube search results are collected periodically.

    Keywords are managed outside the collector; the collector only reads
    them and never runs for inactive ones.
    """

    __tablename__ = "keywords"

    name: Mapped[str] = mapped_column(
        String(200),
        unique=True,
        index=True,
        nullable=False,
        comment="Search keyword, case-sensitive as stored"
    )
    category: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        index=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    # Relationships
    videos: Mapped[List["Video"]] = relationship(back_populates="keyword")
    trends: Mapped[List["Trend"]] = relationship(back_populates="keyword")

    def __repr__(self) -> str:
        return f"<Keyword(id={self.id}, name='{self.name}', is_active={self.is_active})>"
