"""YouTube trend collector: yt-dlp keyword searches folded into daily trends."""

__version__ = "1.0.0"
