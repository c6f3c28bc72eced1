"""Tests for yt-dlp record mapping."""

from datetime import datetime, timezone

import pytest

from trendcollector.collectors.mapper import (
    UNKNOWN_CHANNEL,
    UNKNOWN_TITLE,
    format_duration,
    map_video_info,
    parse_upload_date,
)


# ============================================================================
# TESTS: map_video_info
# ============================================================================

class TestMapVideoInfo:
    """Mapping never raises and applies per-field defaults."""

    def test_full_record(self):
        raw = {
            "id": "dQw4w9WgXcQ",
            "title": "Test Video",
            "webpage_url": "https://www.youtube.com/watch?v=dQw4w9WgXcQ",
            "channel": "Test Channel",
            "channel_url": "https://www.youtube.com/@test",
            "view_count": 1500,
            "like_count": 42,
            "duration": 212,
            "thumbnail": "https://i.ytimg.com/vi/dQw4w9WgXcQ/hq.jpg",
            "upload_date": "20261015",
            "description": "A description",
        }

        info = map_video_info(raw)

        assert info.external_video_id == "dQw4w9WgXcQ"
        assert info.title == "Test Video"
        assert info.url == "https://www.youtube.com/watch?v=dQw4w9WgXcQ"
        assert info.channel == "Test Channel"
        assert info.channel_url == "https://www.youtube.com/@test"
        assert info.view_count == 1500
        assert info.like_count == 42
        assert info.duration == "3:32"
        assert info.thumbnail == "https://i.ytimg.com/vi/dQw4w9WgXcQ/hq.jpg"
        assert info.published_at == datetime(2026, 10, 15, tzinfo=timezone.utc)
        assert info.description == "A description"

    def test_empty_record_gets_defaults(self):
        info = map_video_info({})

        assert info.external_video_id == ""
        assert info.title == UNKNOWN_TITLE
        assert info.url == "https://youtube.com"
        assert info.channel == UNKNOWN_CHANNEL
        assert info.view_count == 0
        assert info.like_count is None
        assert info.duration is None
        assert info.thumbnail is None
        assert info.published_at is None

    def test_url_built_from_id(self):
        info = map_video_info({"id": "abc123"})
        assert info.url == "https://youtube.com/watch?v=abc123"

    def test_uploader_used_when_channel_missing(self):
        info = map_video_info({"id": "x", "uploader": "Uploader Name", "uploader_url": "https://u"})

        assert info.channel == "Uploader Name"
        assert info.channel_url == "https://u"

    def test_wrong_types_fall_back(self):
        raw = {
            "id": 12345,
            "title": None,
            "channel": "   ",
            "view_count": "1000",
            "like_count": True,
            "duration": "long",
            "upload_date": 20261015,
        }

        info = map_video_info(raw)

        assert info.external_video_id == ""
        assert info.title == UNKNOWN_TITLE
        assert info.channel == UNKNOWN_CHANNEL
        assert info.view_count == 0
        assert info.like_count is None
        assert info.duration is None
        assert info.published_at is None

    def test_float_view_count_is_truncated(self):
        assert map_video_info({"view_count": 1234.9}).view_count == 1234

    def test_non_finite_view_count_ignored(self):
        assert map_video_info({"view_count": float("nan")}).view_count == 0
        assert map_video_info({"view_count": float("inf")}).view_count == 0

    def test_thumbnail_from_flat_playlist_list(self):
        raw = {
            "thumbnails": [
                {"url": "https://i.ytimg.com/small.jpg"},
                {"url": "https://i.ytimg.com/large.jpg"},
                {"height": 90},
            ]
        }
        assert map_video_info(raw).thumbnail == "https://i.ytimg.com/large.jpg"


# ============================================================================
# TESTS: HELPERS
# ============================================================================

class TestFormatDuration:

    @pytest.mark.parametrize("seconds,expected", [
        (5, "0:05"),
        (65, "1:05"),
        (599, "9:59"),
        (3600, "1:00:00"),
        (3725, "1:02:05"),
        (36000, "10:00:00"),
        (125.7, "2:05"),
    ])
    def test_formats(self, seconds, expected):
        assert format_duration(seconds) == expected

    @pytest.mark.parametrize("seconds", [None, 0, -10])
    def test_missing_or_invalid(self, seconds):
        assert format_duration(seconds) is None


class TestParseUploadDate:

    def test_valid_date(self):
        assert parse_upload_date("20240131") == datetime(2024, 1, 31, tzinfo=timezone.utc)

    @pytest.mark.parametrize("value", ["2024-01-31", "2024013", "20241340", "", None, 20240131])
    def test_invalid_values(self, value):
        assert parse_upload_date(value) is None
