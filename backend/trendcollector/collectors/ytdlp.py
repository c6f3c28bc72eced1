"""yt-dlp based YouTube search.

YtDlpClient spawns yt-dlp, streams its NDJSON stdout through
NdjsonStreamParser and maps every record into a VideoInfo. From the
caller's side a search is a single awaitable that returns once the process
has exited and its output has been fully drained.

Exit classification:
    - exit 0                          -> result with whatever was parsed
    - non-zero exit, >= 1 record      -> result with the partial records
    - non-zero exit, no records       -> ToolExecutionFailed
    - binary missing at spawn time    -> ToolNotInstalled

stderr is either discarded or logged at debug level; it never influences
the outcome.
"""

import asyncio
from asyncio.subprocess import DEVNULL, PIPE
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Tuple

import structlog

from trendcollector.collectors.mapper import VideoInfo, map_video_info
from trendcollector.collectors.ndjson import NdjsonStreamParser
from trendcollector.config import settings
from trendcollector.core.exceptions import (
    ParseError,
    ToolExecutionFailed,
    ToolNotInstalled,
    ToolSpawnFailed,
)

logger = structlog.get_logger(__name__)

# Named recency buckets -> yt-dlp relative date tokens for --dateafter
DATE_RANGE_TOKENS = {
    "today": "today",
    "this_week": "today-1week",
    "this_month": "today-1month",
    "this_year": "today-1year",
}

READ_CHUNK_SIZE = 64 * 1024


@dataclass
class SearchOptions:
    """Options for a keyword search.

    max_age_days takes precedence over date_range when both are set.
    """

    limit: int = 10
    max_age_days: Optional[int] = None
    date_range: Optional[str] = None  # 'today', 'this_week', 'this_month', 'this_year'

    def __post_init__(self):
        """Validate options after initialization."""
        if self.limit <= 0:
            raise ValueError("limit must be positive")
        if self.max_age_days is not None and self.max_age_days < 0:
            raise ValueError("max_age_days must be non-negative")
        if self.date_range is not None and self.date_range not in DATE_RANGE_TOKENS:
            raise ValueError(f"Invalid date_range: {self.date_range}")


@dataclass
class SearchResult:
    """Videos returned by one yt-dlp search."""

    videos: List[VideoInfo] = field(default_factory=list)
    exit_code: int = 0
    skipped_lines: int = 0

    @property
    def partial(self) -> bool:
        """True when yt-dlp failed but some records were still recovered."""
        return self.exit_code != 0


class YtDlpClient:
    """Thin async wrapper around the yt-dlp command line tool."""

    def __init__(
        self,
        binary: Optional[str] = None,
        max_buffer_bytes: Optional[int] = None,
        debug_stderr: Optional[bool] = None,
        read_chunk_size: int = READ_CHUNK_SIZE,
    ):
        """Initialize the client.

        Args:
            binary: yt-dlp executable (defaults to settings.YTDLP_BINARY)
            max_buffer_bytes: NDJSON partial-line bound (defaults to settings)
            debug_stderr: Log stderr at debug level instead of discarding it
            read_chunk_size: Bytes requested per stdout read
        """
        self.binary = binary or settings.YTDLP_BINARY
        self.max_buffer_bytes = max_buffer_bytes or settings.NDJSON_MAX_BUFFER_BYTES
        self.debug_stderr = settings.YTDLP_DEBUG_STDERR if debug_stderr is None else debug_stderr
        self.read_chunk_size = read_chunk_size
        self.logger = logger.bind(service="ytdlp_client", binary=self.binary)

    def build_search_args(
        self,
        keyword: str,
        options: SearchOptions,
        today: Optional[date] = None,
    ) -> List[str]:
        """Build the yt-dlp argument list for a keyword search.

        Args:
            keyword: Search keyword
            options: Search options
            today: Reference day for the max_age_days cutoff (UTC today by default)

        Returns:
            Argument list, without the binary itself
        """
        # ytsearchdate orders by upload date, which suits a recency window
        prefix = "ytsearchdate" if options.max_age_days else "ytsearch"

        args = [
            f"{prefix}{options.limit}:{keyword}",
            "--dump-json",
            "--flat-playlist",
            "--no-warnings",
            "--quiet",
            "--playlist-end",
            str(options.limit),
        ]

        if options.max_age_days:
            today = today or datetime.now(timezone.utc).date()
            cutoff = today - timedelta(days=options.max_age_days)
            args.extend(["--dateafter", cutoff.strftime("%Y%m%d")])
        elif options.date_range:
            args.extend(["--dateafter", DATE_RANGE_TOKENS[options.date_range]])

        return args

    async def search(
        self,
        keyword: str,
        options: Optional[SearchOptions] = None,
    ) -> SearchResult:
        """Search YouTube for a keyword.

        Args:
            keyword: Search keyword
            options: Search options (defaults to SearchOptions())

        Returns:
            SearchResult with mapped videos, possibly partial

        Raises:
            ToolNotInstalled: yt-dlp binary could not be spawned
            ToolExecutionFailed: yt-dlp exited non-zero without any record
            ToolSpawnFailed: the OS refused to start yt-dlp
        """
        options = options or SearchOptions()
        args = self.build_search_args(keyword, options)

        self.logger.info(
            "ytdlp_search_started",
            keyword=keyword,
            limit=options.limit,
            max_age_days=options.max_age_days,
            date_range=options.date_range,
        )

        records, exit_code, parser = await self._run(args)

        if exit_code != 0 and not records:
            self.logger.warning("ytdlp_search_failed", keyword=keyword, exit_code=exit_code)
            raise ToolExecutionFailed(exit_code, binary=self.binary)

        videos = [map_video_info(record) for record in records]

        if exit_code != 0:
            self.logger.warning(
                "ytdlp_partial_results",
                keyword=keyword,
                exit_code=exit_code,
                count=len(videos),
            )

        self.logger.info(
            "ytdlp_search_completed",
            keyword=keyword,
            count=len(videos),
            skipped_lines=parser.parse_errors,
            discarded_bytes=parser.discarded_bytes,
        )

        return SearchResult(
            videos=videos,
            exit_code=exit_code,
            skipped_lines=parser.parse_errors,
        )

    async def fetch_video_info(self, video_id: str) -> VideoInfo:
        """Fetch full metadata for a single video.

        Raises:
            ToolNotInstalled: yt-dlp binary could not be spawned
            ToolExecutionFailed: yt-dlp failed or printed no record
        """
        args = [
            f"https://youtube.com/watch?v={video_id}",
            "--dump-json",
            "--no-warnings",
            "--quiet",
        ]
        records, exit_code, _ = await self._run(args)

        if exit_code != 0 or not records:
            raise ToolExecutionFailed(exit_code, binary=self.binary)

        return map_video_info(records[0])

    async def check_available(self) -> bool:
        """Check whether yt-dlp can be executed.

        Returns:
            True if `yt-dlp --version` exits with code 0
        """
        try:
            process = await asyncio.create_subprocess_exec(
                self.binary, "--version", stdout=DEVNULL, stderr=DEVNULL
            )
        except OSError as e:
            self.logger.warning("ytdlp_unavailable", error=str(e))
            return False

        return await process.wait() == 0

    async def _run(self, args: List[str]) -> Tuple[List[Dict[str, Any]], int, NdjsonStreamParser]:
        """Spawn yt-dlp and drain its output to completion.

        Returns:
            (decoded records, exit code, parser used for the stream)
        """
        parser = NdjsonStreamParser(
            on_error=self._on_parse_error,
            max_buffer_bytes=self.max_buffer_bytes,
        )

        try:
            process = await asyncio.create_subprocess_exec(
                self.binary,
                *args,
                stdout=PIPE,
                stderr=PIPE if self.debug_stderr else DEVNULL,
            )
        except FileNotFoundError as e:
            self.logger.error("ytdlp_not_installed", error=str(e))
            raise ToolNotInstalled(self.binary) from e
        except OSError as e:
            # Permission denied, too many open files, ...
            self.logger.error("ytdlp_spawn_failed", error=str(e))
            raise ToolSpawnFailed(str(e), binary=self.binary) from e

        records: List[Dict[str, Any]] = []

        async def drain_stdout() -> None:
            while True:
                chunk = await process.stdout.read(self.read_chunk_size)
                if not chunk:
                    break
                records.extend(parser.feed(chunk))

        async def drain_stderr() -> None:
            if process.stderr is None:
                return
            while True:
                line = await process.stderr.readline()
                if not line:
                    break
                self.logger.debug("ytdlp_stderr", line=line.decode("utf-8", errors="replace").rstrip())

        try:
            await asyncio.gather(drain_stdout(), drain_stderr())
            exit_code = await process.wait()
        except BaseException:
            if process.returncode is None:
                process.kill()
                # Reap the child so it does not linger as a zombie
                await asyncio.shield(process.wait())
            raise

        records.extend(parser.flush())
        return records, exit_code, parser

    def _on_parse_error(self, line: str, error: ParseError) -> None:
        # yt-dlp occasionally mixes non-JSON lines into stdout
        self.logger.debug("ytdlp_line_skipped", reason=error.reason, line=line[:200])
