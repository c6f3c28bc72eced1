"""Pytest configuration and shared fixtures."""

from typing import Dict, List, Optional, Tuple, Union

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

from trendcollector.collectors.mapper import VideoInfo
from trendcollector.collectors.ytdlp import SearchOptions, SearchResult
from trendcollector.models import Base, Keyword


class FakeYtDlpClient:
    """Stands in for YtDlpClient at the collector boundary.

    `responses` maps a keyword name to the videos its search returns, or to
    an exception the search raises.
    """

    binary = "yt-dlp"

    def __init__(self):
        self.available = True
        self.responses: Dict[str, Union[List[VideoInfo], Exception]] = {}
        self.calls: List[Tuple[str, Optional[SearchOptions]]] = []
        self.availability_checks = 0

    async def check_available(self) -> bool:
        self.availability_checks += 1
        return self.available

    async def search(self, keyword: str, options: Optional[SearchOptions] = None) -> SearchResult:
        self.calls.append((keyword, options))
        response = self.responses.get(keyword, [])
        if isinstance(response, Exception):
            raise response
        return SearchResult(videos=list(response))


def make_video_info(video_id: str, view_count: int = 0, **kwargs) -> VideoInfo:
    """Build a VideoInfo the way the mapper would for a minimal record."""
    return VideoInfo(
        external_video_id=video_id,
        title=kwargs.pop("title", f"Video {video_id}"),
        url=kwargs.pop("url", f"https://youtube.com/watch?v={video_id}"),
        channel=kwargs.pop("channel", "Test Channel"),
        view_count=view_count,
        **kwargs,
    )


# ============================================================================
# DATABASE FIXTURES
# ============================================================================

@pytest_asyncio.fixture
async def db_engine():
    """In-memory SQLite engine shared by every session of one test."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        echo=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    """Session factory bound to the in-memory engine."""
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def test_db(session_factory):
    """A session on the in-memory database."""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def active_keyword(test_db: AsyncSession) -> Keyword:
    """An active keyword."""
    keyword = Keyword(name="AI coding", category="technology", is_active=True)
    test_db.add(keyword)
    await test_db.commit()
    await test_db.refresh(keyword)
    return keyword


@pytest_asyncio.fixture
async def inactive_keyword(test_db: AsyncSession) -> Keyword:
    """A keyword that must never be collected."""
    keyword = Keyword(name="retired topic", category="misc", is_active=False)
    test_db.add(keyword)
    await test_db.commit()
    await test_db.refresh(keyword)
    return keyword


@pytest.fixture
def fake_client() -> FakeYtDlpClient:
    """Scriptable yt-dlp client."""
    return FakeYtDlpClient()


@pytest.fixture
def make_video():
    """Factory for VideoInfo records: make_video("abc", view_count=100)."""
    return make_video_info
