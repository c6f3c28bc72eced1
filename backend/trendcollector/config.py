"""Application configuration via Pydantic Settings."""

from zoneinfo import ZoneInfo

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Global application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./data/trends.db"

    @model_validator(mode="after")
    def fix_database_url(self) -> "Settings":
        """Hosted Postgres hands out postgresql:// but asyncpg needs postgresql+asyncpg://"""
        url = self.DATABASE_URL
        if url.startswith("postgresql://"):
            self.DATABASE_URL = url.replace("postgresql://", "postgresql+asyncpg://", 1)
        elif url.startswith("postgres://"):
            self.DATABASE_URL = url.replace("postgres://", "postgresql+asyncpg://", 1)
        return self

    # App
    ENVIRONMENT: str = "development"
    DEBUG: bool = False
    LOG_JSON: bool = False

    # yt-dlp
    YTDLP_BINARY: str = "yt-dlp"
    YTDLP_DEBUG_STDERR: bool = False
    NDJSON_MAX_BUFFER_BYTES: int = 5_000_000  # ~5MB without a newline

    # Collection
    COLLECT_LIMIT: int = 10
    COLLECT_MAX_AGE_DAYS: int = 7  # 0 disables the recency window
    COLLECT_DELAY_SECONDS: float = 2.0

    # Scheduler
    SCHEDULE_CRON: str = "0 9 * * *"  # Every day at 09:00
    TIMEZONE: str = "Asia/Seoul"

    # Telegram notifications
    TELEGRAM_BOT_TOKEN: str = ""
    TELEGRAM_CHAT_ID: str = ""
    NOTIFY_MAX_ATTEMPTS: int = 1
    NOTIFY_RETRY_WAIT_SECONDS: float = 1.0

    def get_timezone(self) -> ZoneInfo:
        """Timezone used for the cron trigger and the trend day boundary.

        Returns:
            ZoneInfo for TIMEZONE
        """
        return ZoneInfo(self.TIMEZONE)


settings = Settings()
