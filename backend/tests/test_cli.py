"""Tests for the command line entry point."""

import uuid
from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest

from trendcollector import cli
from trendcollector.collectors.mapper import VideoInfo
from trendcollector.collectors.ytdlp import YtDlpClient
from trendcollector.core.exceptions import ToolNotInstalled


class TestBuildParser:

    def test_collect_defaults(self):
        args = cli.build_parser().parse_args(["collect"])

        assert args.command == "collect"
        assert args.keyword_id is None
        assert args.seed is False
        assert args.no_notify is False

    def test_collect_single_keyword(self):
        keyword_id = uuid.uuid4()
        args = cli.build_parser().parse_args(
            ["collect", "--keyword-id", str(keyword_id), "--limit", "3", "--no-notify"]
        )

        assert args.keyword_id == keyword_id
        assert args.limit == 3
        assert args.no_notify is True

    def test_invalid_keyword_id(self):
        with pytest.raises(SystemExit):
            cli.build_parser().parse_args(["collect", "--keyword-id", "not-a-uuid"])

    def test_command_required(self):
        with pytest.raises(SystemExit):
            cli.build_parser().parse_args([])

    def test_every_command_has_a_handler(self):
        parser = cli.build_parser()
        for command in ("collect", "schedule", "summary", "video"):
            argv = [command, "abc"] if command == "video" else [command]
            assert parser.parse_args(argv).command in cli.COMMANDS

    def test_default_keywords_are_unique(self):
        names = [entry["name"].lower() for entry in cli.DEFAULT_KEYWORDS]
        assert len(names) == len(set(names))


class TestMain:

    @pytest.fixture(autouse=True)
    def keep_logging_config(self, monkeypatch):
        # main() would bind structlog to the captured stderr of this test
        monkeypatch.setattr(cli, "configure_logging", lambda **kwargs: None)

    def test_video_command(self, monkeypatch, capsys):
        info = VideoInfo(
            external_video_id="abc",
            title="Single video",
            url="https://youtube.com/watch?v=abc",
            channel="Channel",
            view_count=12345,
            like_count=67,
            duration="4:05",
            published_at=datetime(2026, 10, 1, tzinfo=timezone.utc),
        )
        monkeypatch.setattr(YtDlpClient, "fetch_video_info", AsyncMock(return_value=info))

        assert cli.main(["video", "abc"]) == 0

        out = capsys.readouterr().out
        assert "Single video" in out
        assert "12,345" in out
        assert "4:05" in out
        assert "2026-10-01" in out

    def test_collector_error_exit_code(self, monkeypatch, capsys):
        monkeypatch.setattr(YtDlpClient, "fetch_video_info", AsyncMock(side_effect=ToolNotInstalled()))

        assert cli.main(["video", "abc"]) == 1
        assert "not installed" in capsys.readouterr().err
