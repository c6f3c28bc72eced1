"""Mapping of raw yt-dlp JSON records into VideoInfo.

yt-dlp's output schema is loose: fields go missing, change type between
extractor versions, or come back null. Every field here falls back to its
own default independently, so map_video_info never raises.
"""

import math
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Mapping, Optional

UNKNOWN_TITLE = "Unknown Title"
UNKNOWN_CHANNEL = "Unknown Channel"
YOUTUBE_BASE_URL = "https://youtube.com"

_UPLOAD_DATE_RE = re.compile(r"^\d{8}$")


@dataclass
class VideoInfo:
    """Normalized video data produced from one yt-dlp record."""

    external_video_id: str  # YouTube video ID, "" when the record had none
    title: str
    url: str
    channel: str
    view_count: int = 0
    channel_url: Optional[str] = None
    like_count: Optional[int] = None
    duration: Optional[str] = None  # H:MM:SS or M:SS
    thumbnail: Optional[str] = None
    published_at: Optional[datetime] = None
    description: Optional[str] = None


def map_video_info(raw: Mapping[str, Any]) -> VideoInfo:
    """Convert one decoded yt-dlp record into a VideoInfo.

    Args:
        raw: One JSON object from yt-dlp's --dump-json output

    Returns:
        VideoInfo with defaults applied to missing or malformed fields
    """
    video_id = _get_string(raw, "id") or ""

    url = _get_string(raw, "webpage_url")
    if not url:
        url = f"{YOUTUBE_BASE_URL}/watch?v={video_id}" if video_id else YOUTUBE_BASE_URL

    view_count = _get_number(raw, "view_count")
    like_count = _get_number(raw, "like_count")

    return VideoInfo(
        external_video_id=video_id,
        title=_get_string(raw, "title") or UNKNOWN_TITLE,
        url=url,
        channel=_get_string(raw, "channel") or _get_string(raw, "uploader") or UNKNOWN_CHANNEL,
        channel_url=_get_string(raw, "channel_url") or _get_string(raw, "uploader_url"),
        view_count=int(view_count) if view_count is not None else 0,
        like_count=int(like_count) if like_count is not None else None,
        duration=format_duration(_get_number(raw, "duration")),
        thumbnail=_get_string(raw, "thumbnail") or _last_thumbnail(raw),
        published_at=parse_upload_date(raw.get("upload_date")),
        description=_get_string(raw, "description"),
    )


def format_duration(seconds: Optional[float]) -> Optional[str]:
    """Format a duration in seconds as H:MM:SS (one hour or more) or M:SS.

    Returns None for a missing, zero or negative duration.
    """
    if not seconds or seconds < 0:
        return None

    total = int(seconds)
    hrs, rem = divmod(total, 3600)
    mins, secs = divmod(rem, 60)

    if hrs > 0:
        return f"{hrs}:{mins:02d}:{secs:02d}"
    return f"{mins}:{secs:02d}"


def parse_upload_date(value: Any) -> Optional[datetime]:
    """Parse yt-dlp's YYYYMMDD upload_date into a UTC midnight datetime."""
    if not isinstance(value, str) or not _UPLOAD_DATE_RE.match(value):
        return None
    try:
        return datetime.strptime(value, "%Y%m%d").replace(tzinfo=timezone.utc)
    except ValueError:
        # Eight digits but not a calendar date, e.g. 20241340
        return None


def _get_string(raw: Mapping[str, Any], key: str) -> Optional[str]:
    value = raw.get(key)
    if isinstance(value, str) and value.strip():
        return value
    return None


def _get_number(raw: Mapping[str, Any], key: str) -> Optional[float]:
    value = raw.get(key)
    # bool is an int subclass but never a count
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if not math.isfinite(value):
        return None
    return value


def _last_thumbnail(raw: Mapping[str, Any]) -> Optional[str]:
    """--flat-playlist records carry a thumbnails list instead of thumbnail."""
    thumbnails = raw.get("thumbnails")
    if not isinstance(thumbnails, list):
        return None
    for entry in reversed(thumbnails):
        if isinstance(entry, Mapping):
            url = _get_string(entry, "url")
            if url:
                return url
    return None
