"""Collection run log."""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import JSON, String, Text, Integer, Numeric, DateTime
from sqlalchemy.orm import Mapped, mapped_column

from trendcollector.models.base import Base, UUIDPrimaryKeyMixin


class CollectionRun(UUIDPrimaryKeyMixin, Base):
    """One full collection pass over all active keywords.

    Append-only: a row is written once, after the keyword loop finishes.
    """

    __tablename__ = "collection_runs"

    # Timing
    started_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        index=True,
        comment="When the run started"
    )
    completed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        comment="When the keyword loop finished"
    )
    duration_seconds: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(10, 2),
        nullable=True,
    )

    # Metrics
    keyword_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    video_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        comment="Status: 'success', 'partial', 'failed'"
    )
    error: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        comment="Per-keyword errors joined into one message"
    )

    # Per-keyword breakdown
    results: Mapped[list] = mapped_column(JSON, nullable=False, default=list)

    def __repr__(self) -> str:
        return f"<CollectionRun(id={self.id}, status='{self.status}', video_count={self.video_count})>"
