"""Collection pipeline for YouTube keyword searches.

This package provides:
- NDJSON stream framing for yt-dlp output
- Mapping of raw yt-dlp records into VideoInfo
- The yt-dlp client that spawns searches
- The collector service and its cron scheduler (import those modules directly)
"""

from .ndjson import NdjsonStreamParser
from .mapper import VideoInfo, map_video_info, format_duration
from .ytdlp import SearchOptions, SearchResult, YtDlpClient

__all__ = [
    # Stream framing
    "NdjsonStreamParser",
    # Records
    "VideoInfo",
    "map_video_info",
    "format_duration",
    # yt-dlp
    "SearchOptions",
    "SearchResult",
    "YtDlpClient",
]
