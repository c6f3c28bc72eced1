"""Keyword lookups for the collector."""

from typing import Iterable, List, Mapping, Optional
from uuid import UUID

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from trendcollector.models.keyword import Keyword

logger = structlog.get_logger(__name__)


class KeywordService:
    """Read access to tracked keywords, plus seeding of defaults."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.logger = logger.bind(service="keyword_service")

    async def get_keyword_by_id(self, keyword_id: UUID) -> Optional[Keyword]:
        """Get a keyword by ID, or None."""
        result = await self.db.execute(
            select(Keyword).where(Keyword.id == keyword_id)
        )
        return result.scalar_one_or_none()

    async def get_active_keywords(self) -> List[Keyword]:
        """All keywords with is_active set, oldest first."""
        result = await self.db.execute(
            select(Keyword)
            .where(Keyword.is_active == True)
            .order_by(Keyword.created_at, Keyword.name)
        )
        return list(result.scalars().all())

    async def get_all_keywords(self) -> List[Keyword]:
        """All keywords regardless of is_active, oldest first."""
        result = await self.db.execute(
            select(Keyword).order_by(Keyword.created_at, Keyword.name)
        )
        return list(result.scalars().all())

    async def ensure_keywords(self, entries: Iterable[Mapping[str, Optional[str]]]) -> List[Keyword]:
        """Insert keywords that do not exist yet.

        Existing names are matched case-insensitively so "AI coding" is not
        added next to "ai coding".

        Args:
            entries: Mappings with "name" and optional "category"

        Returns:
            Newly created keywords
        """
        existing = {k.name.lower() for k in await self.get_all_keywords()}

        created: List[Keyword] = []
        for entry in entries:
            name = (entry.get("name") or "").strip()
            if not name:
                continue
            if name.lower() in existing:
                self.logger.debug("keyword_exists", name=name)
                continue

            keyword = Keyword(name=name, category=entry.get("category"), is_active=True)
            self.db.add(keyword)
            created.append(keyword)
            existing.add(name.lower())

        if created:
            await self.db.commit()
            self.logger.info("keywords_seeded", count=len(created), names=[k.name for k in created])

        return created
