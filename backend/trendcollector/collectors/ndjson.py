"""Incremental NDJSON framing for yt-dlp output.

yt-dlp prints one JSON object per line, but stdout arrives in chunks whose
boundaries have nothing to do with line boundaries. NdjsonStreamParser keeps
the trailing partial line between feed() calls and hands back every record
completed so far. Framing works on raw bytes, so a multi-byte UTF-8 sequence
split across two chunks is reassembled before it is decoded.

Example:
    parser = NdjsonStreamParser(on_error=lambda line, err: ...)
    records = []
    async for chunk in stream:
        records.extend(parser.feed(chunk))
    records.extend(parser.flush())
"""

import json
from typing import Any, Callable, Dict, List, Optional

import structlog

from trendcollector.core.exceptions import ParseError

logger = structlog.get_logger(__name__)

DEFAULT_MAX_BUFFER_BYTES = 5_000_000

ErrorCallback = Callable[[str, ParseError], None]


class NdjsonStreamParser:
    """Turns a chunked byte stream into decoded JSON objects, one per line.

    - Accepts both LF and CRLF line endings.
    - Blank lines are skipped silently.
    - A line that is not a JSON object is reported to ``on_error`` and skipped.
    - If a partial line grows beyond ``max_buffer_bytes`` without a newline,
      the buffer is dropped and accumulation restarts. The drop is logged and
      counted in ``discarded_bytes``.
    """

    def __init__(
        self,
        on_error: Optional[ErrorCallback] = None,
        max_buffer_bytes: int = DEFAULT_MAX_BUFFER_BYTES,
    ):
        if max_buffer_bytes <= 0:
            raise ValueError("max_buffer_bytes must be positive")

        self._buffer = bytearray()
        self._on_error = on_error
        self.max_buffer_bytes = max_buffer_bytes
        self.lines_seen = 0
        self.parse_errors = 0
        self.discarded_bytes = 0
        self.logger = logger.bind(component="ndjson_parser")

    @property
    def buffered_bytes(self) -> int:
        """Size of the pending partial line."""
        return len(self._buffer)

    def feed(self, chunk: bytes) -> List[Dict[str, Any]]:
        """Consume one chunk and return the records of every completed line.

        Args:
            chunk: Raw bytes in arrival order (str is accepted and UTF-8 encoded)

        Returns:
            Decoded records, in stream order
        """
        if isinstance(chunk, str):
            chunk = chunk.encode("utf-8")
        if not chunk:
            return []

        self._buffer.extend(chunk)

        records: List[Dict[str, Any]] = []
        start = 0
        while True:
            newline = self._buffer.find(b"\n", start)
            if newline == -1:
                break
            self._decode_line(self._buffer[start:newline], records)
            start = newline + 1

        if start:
            del self._buffer[:start]

        if len(self._buffer) > self.max_buffer_bytes:
            self.discarded_bytes += len(self._buffer)
            self.logger.warning(
                "ndjson_buffer_overflow",
                buffered_bytes=len(self._buffer),
                max_buffer_bytes=self.max_buffer_bytes,
            )
            self._buffer.clear()

        return records

    def flush(self) -> List[Dict[str, Any]]:
        """Decode everything still buffered once the stream has ended.

        The remainder may hold several lines when the producer never wrote a
        final newline, so it is split again rather than decoded as one line.

        Returns:
            Decoded records, in stream order
        """
        if not self._buffer:
            return []

        remainder = bytes(self._buffer)
        self._buffer.clear()

        records: List[Dict[str, Any]] = []
        for line in remainder.split(b"\n"):
            self._decode_line(line, records)
        return records

    def _decode_line(self, raw: bytes, records: List[Dict[str, Any]]) -> None:
        if raw.endswith(b"\r"):
            raw = raw[:-1]

        line = raw.decode("utf-8", errors="replace").strip()
        if not line:
            return

        self.lines_seen += 1

        try:
            record = json.loads(line)
        except ValueError as e:
            self._report(line, ParseError(line, f"invalid JSON: {e}"))
            return

        if not isinstance(record, dict):
            self._report(line, ParseError(line, f"expected object, got {type(record).__name__}"))
            return

        records.append(record)

    def _report(self, line: str, error: ParseError) -> None:
        self.parse_errors += 1
        if self._on_error is not None:
            self._on_error(line, error)
