"""Command line entry point for the trend collector.

Usage:
    trend-collector collect                 # all active keywords
    trend-collector collect --seed          # add default keywords first
    trend-collector collect --keyword-id UUID --limit 5
    trend-collector schedule                # run the cron scheduler until interrupted
    trend-collector summary --days 7
    trend-collector video dQw4w9WgXcQ
"""

import argparse
import asyncio
import signal
import sys
import uuid
from typing import List, Optional

import structlog

from trendcollector.config import settings
from trendcollector.core.exceptions import TrendCollectorException
from trendcollector.core.log_config import configure_logging

logger = structlog.get_logger(__name__)

DEFAULT_KEYWORDS = [
    {"name": "tech news", "category": "technology"},
    {"name": "programming", "category": "development"},
    {"name": "frontend", "category": "development"},
    {"name": "backend", "category": "development"},
    {"name": "AI coding", "category": "technology"},
    {"name": "devops", "category": "development"},
    {"name": "golang", "category": "language"},
    {"name": "nextjs", "category": "framework"},
]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="trend-collector",
        description="Collect trending YouTube videos for tracked keywords",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    collect = subparsers.add_parser("collect", help="Run one collection pass")
    collect.add_argument("--limit", type=int, default=settings.COLLECT_LIMIT, help="Videos per keyword")
    collect.add_argument("--keyword-id", type=uuid.UUID, help="Collect a single keyword only")
    collect.add_argument("--seed", action="store_true", help="Insert the default keywords first")
    collect.add_argument("--no-notify", action="store_true", help="Skip the Telegram report")

    schedule = subparsers.add_parser("schedule", help="Run collections on the configured cron schedule")
    schedule.add_argument("--no-notify", action="store_true", help="Skip Telegram reports")

    summary = subparsers.add_parser("summary", help="Show what was collected recently")
    summary.add_argument("--days", type=int, default=7)

    video = subparsers.add_parser("video", help="Show metadata for a single video")
    video.add_argument("video_id")

    return parser


async def _collect(args: argparse.Namespace) -> int:
    from trendcollector.collectors.collector_service import CollectorService
    from trendcollector.db.session import async_session_factory, init_db
    from trendcollector.services.keyword_service import KeywordService
    from trendcollector.services.notifier import TelegramNotifier

    await init_db()

    async with async_session_factory() as db:
        if args.seed:
            created = await KeywordService(db).ensure_keywords(DEFAULT_KEYWORDS)
            print(f"✅ Seeded {len(created)} keyword(s)")

        collector = CollectorService(db)

        if args.keyword_id:
            single = await collector.collect(args.keyword_id, args.limit)
            print(f"{single.keyword_name}: {single.videos_collected} video(s)")
            if single.error:
                print(f"⚠️  {single.error}")
            return 0 if single.error is None else 1

        result = await collector.collect_all(args.limit)

    print(f"\n{'=' * 60}")
    print(f"  Collection {result.status.upper()}")
    print(f"{'=' * 60}")
    print(f"  Keywords: {result.total_keywords}")
    print(f"  Videos:   {result.total_videos}")
    print(f"  Duration: {result.duration_seconds:.1f}s")
    for r in result.results:
        marker = "⚠️ " if r.error else "✅"
        suffix = f"  ({r.error})" if r.error else ""
        print(f"  {marker} {r.keyword_name}: {r.videos_collected}{suffix}")
    print(f"{'=' * 60}\n")

    if not args.no_notify:
        await TelegramNotifier().notify_collection_result(result)

    return 0


async def _schedule(args: argparse.Namespace) -> int:
    from trendcollector.collectors.scheduler import CollectionScheduler
    from trendcollector.db.session import async_session_factory, init_db
    from trendcollector.services.notifier import TelegramNotifier

    await init_db()

    notifier = None if args.no_notify else TelegramNotifier()
    scheduler = CollectionScheduler(async_session_factory, notifier=notifier)
    scheduler.start()
    if notifier is not None:
        await notifier.notify_scheduler_start(scheduler.cron)

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except NotImplementedError:
            # Windows event loops have no signal handlers; Ctrl+C still raises KeyboardInterrupt
            pass

    try:
        await stop_event.wait()
    finally:
        scheduler.stop()

    return 0


async def _summary(args: argparse.Namespace) -> int:
    from trendcollector.db.session import async_session_factory, init_db
    from trendcollector.services.video_service import VideoService

    await init_db()

    async with async_session_factory() as db:
        summary = await VideoService(db).get_recent_summary(days=args.days)

    print(f"\n📊 Last {summary['period']}")
    print(f"   Videos:          {summary['total_videos']}")
    print(f"   Views:           {summary['total_views']:,}")
    print(f"   Collection runs: {summary['collection_runs']}")
    for row in summary["keyword_breakdown"]:
        print(f"   - {row['name']}: {row['videos_count']}")
    print()

    return 0


async def _video(args: argparse.Namespace) -> int:
    from trendcollector.collectors.ytdlp import YtDlpClient

    info = await YtDlpClient().fetch_video_info(args.video_id)

    print(f"\n🎬 {info.title}")
    print(f"   Channel:   {info.channel}")
    print(f"   Views:     {info.view_count:,}")
    if info.like_count is not None:
        print(f"   Likes:     {info.like_count:,}")
    if info.duration:
        print(f"   Duration:  {info.duration}")
    if info.published_at:
        print(f"   Published: {info.published_at.date().isoformat()}")
    print(f"   URL:       {info.url}\n")

    return 0


COMMANDS = {
    "collect": _collect,
    "schedule": _schedule,
    "summary": _summary,
    "video": _video,
}


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(debug=settings.DEBUG, json_logs=settings.LOG_JSON)

    try:
        return asyncio.run(COMMANDS[args.command](args))
    except TrendCollectorException as e:
        logger.error("command_failed", command=args.command, error=e.message)
        print(f"\n❌ {e.message}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    sys.exit(main())
