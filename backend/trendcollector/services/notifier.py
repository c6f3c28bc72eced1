"""Telegram notifications for collection runs.

Delivery is best effort: every public method logs failures and returns
False instead of raising, so a broken notification channel can never change
the outcome of a collection run.
"""

from datetime import datetime
from typing import Optional

import httpx
import structlog
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from trendcollector.collectors.collector_service import CollectAllResult
from trendcollector.config import settings

logger = structlog.get_logger(__name__)

TELEGRAM_API_URL = "https://api.telegram.org"

STATUS_EMOJI = {
    "success": "✅",
    "partial": "⚠️",
    "failed": "❌",
}


def format_collection_message(result: CollectAllResult) -> str:
    """Render a run result as a Telegram Markdown message."""
    lines = [
        f"{STATUS_EMOJI.get(result.status, '❔')} *YouTube collection finished*",
        "",
        "📊 *Summary*",
        f"- Keywords: {result.total_keywords}",
        f"- Videos: {result.total_videos}",
        f"- Duration: {round(result.duration_seconds)}s",
        f"- Status: {result.status}",
    ]

    if result.results:
        lines.extend(["", "📋 *Per keyword*"])
        for r in result.results:
            line = f"{'⚠️' if r.error else '✅'} {r.keyword_name}: {r.videos_collected}"
            if r.error:
                line += f" (error: {r.error[:30]})"
            lines.append(line)

    lines.extend(["", f"⏰ {result.completed_at.isoformat(timespec='seconds')}"])
    return "\n".join(lines)


class TelegramNotifier:
    """Sends collection reports to a Telegram chat via the Bot API."""

    def __init__(
        self,
        bot_token: Optional[str] = None,
        chat_id: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
        max_attempts: Optional[int] = None,
        retry_wait_seconds: Optional[float] = None,
    ):
        """Initialize the notifier.

        Args:
            bot_token: Bot token (defaults to settings.TELEGRAM_BOT_TOKEN)
            chat_id: Target chat (defaults to settings.TELEGRAM_CHAT_ID)
            client: Shared httpx client; a short-lived one is used per call otherwise
            max_attempts: Delivery attempts, 1 disables retries
            retry_wait_seconds: Exponential backoff multiplier between attempts
        """
        self.bot_token = settings.TELEGRAM_BOT_TOKEN if bot_token is None else bot_token
        self.chat_id = settings.TELEGRAM_CHAT_ID if chat_id is None else chat_id
        self.client = client
        self.max_attempts = max_attempts or settings.NOTIFY_MAX_ATTEMPTS
        self.retry_wait_seconds = (
            settings.NOTIFY_RETRY_WAIT_SECONDS if retry_wait_seconds is None else retry_wait_seconds
        )
        self.logger = logger.bind(service="telegram_notifier")

    @property
    def configured(self) -> bool:
        return bool(self.bot_token and self.chat_id)

    async def notify_collection_result(self, result: CollectAllResult) -> bool:
        """Send the summary of a full collection run."""
        return await self.send_message(format_collection_message(result))

    async def notify_scheduler_start(self, cron: str) -> bool:
        """Announce that the collection scheduler started."""
        started = datetime.now().astimezone().isoformat(timespec="seconds")
        return await self.send_message(
            f"🚀 *YouTube trend collector*\n\nScheduler started.\n\nSchedule: `{cron}`\nStarted: {started}"
        )

    async def notify_error(self, error: BaseException, context: Optional[str] = None) -> bool:
        """Report an error that aborted a run."""
        context_line = f"\n📍 Context: {context}" if context else ""
        occurred = datetime.now().astimezone().isoformat(timespec="seconds")
        return await self.send_message(
            f"❌ *Error*{context_line}\n\n🔴 {error}\n\n⏰ {occurred}"
        )

    async def send_message(self, text: str) -> bool:
        """Send a Markdown message to the configured chat.

        Returns:
            True if Telegram accepted the message, False otherwise
        """
        if not self.configured:
            self.logger.warning("telegram_not_configured")
            return False

        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self.max_attempts),
                wait=wait_exponential(multiplier=self.retry_wait_seconds, max=30),
                retry=retry_if_exception_type(httpx.HTTPError),
                reraise=True,
            ):
                with attempt:
                    await self._post_message(text)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            self.logger.error("telegram_send_failed", error=str(e))
            return False
        except Exception as e:
            self.logger.error("telegram_send_failed", error=str(e), exc_info=True)
            return False

        self.logger.info("telegram_message_sent", chars=len(text))
        return True

    async def _post_message(self, text: str) -> None:
        url = f"{TELEGRAM_API_URL}/bot{self.bot_token}/sendMessage"
        payload = {
            "chat_id": self.chat_id,
            "text": text,
            "parse_mode": "Markdown",
            "disable_web_page_preview": True,
        }

        if self.client is not None:
            response = await self.client.post(url, json=payload)
        else:
            async with httpx.AsyncClient(timeout=10.0) as client:
                response = await client.post(url, json=payload)

        response.raise_for_status()
