"""Tests for NDJSON stream framing."""

import json

import pytest

from trendcollector.collectors.ndjson import NdjsonStreamParser
from trendcollector.core.exceptions import ParseError


RECORDS = [
    {"id": "a1", "title": "First", "view_count": 10},
    {"id": "b2", "title": "Second, with émoji 🎬", "view_count": 20},
    {"id": "c3", "title": "세 번째 영상", "view_count": 30},
]

PAYLOAD = "".join(json.dumps(r, ensure_ascii=False) + "\n" for r in RECORDS).encode("utf-8")


def feed_in_chunks(parser: NdjsonStreamParser, payload: bytes, size: int) -> list:
    records = []
    for i in range(0, len(payload), size):
        records.extend(parser.feed(payload[i:i + size]))
    records.extend(parser.flush())
    return records


def feed_at_splits(parser: NdjsonStreamParser, payload: bytes, splits: list) -> list:
    records = []
    bounds = [0] + splits + [len(payload)]
    for start, end in zip(bounds, bounds[1:]):
        records.extend(parser.feed(payload[start:end]))
    records.extend(parser.flush())
    return records


# ============================================================================
# TESTS: CHUNK BOUNDARIES
# ============================================================================

class TestChunkBoundaries:
    """Framing must not depend on how the stream was chunked."""

    def test_single_chunk(self):
        parser = NdjsonStreamParser()
        assert feed_in_chunks(parser, PAYLOAD, len(PAYLOAD)) == RECORDS

    @pytest.mark.parametrize("size", [1, 2, 3, 7, 16, 64])
    def test_fixed_chunk_sizes(self, size):
        parser = NdjsonStreamParser()
        assert feed_in_chunks(parser, PAYLOAD, size) == RECORDS

    @pytest.mark.parametrize("splits", [
        [5],
        [1, 2, 3],
        [40, 41, 90],
        [len(PAYLOAD) - 1],
    ])
    def test_irregular_splits(self, splits):
        parser = NdjsonStreamParser()
        assert feed_at_splits(parser, PAYLOAD, splits) == RECORDS

    def test_partial_line_is_kept_between_feeds(self):
        parser = NdjsonStreamParser()
        line = b'{"id": "chunk123", "title": "Chunked Video"}\n'
        mid = len(line) // 2

        assert parser.feed(line[:mid]) == []
        assert parser.buffered_bytes == mid
        assert parser.feed(line[mid:]) == [{"id": "chunk123", "title": "Chunked Video"}]
        assert parser.buffered_bytes == 0

    def test_multibyte_character_split_across_chunks(self):
        parser = NdjsonStreamParser()
        payload = json.dumps({"title": "한글"}, ensure_ascii=False).encode("utf-8") + b"\n"
        # Split inside the three-byte encoding of the first Hangul syllable
        split = payload.index("한".encode("utf-8")) + 1

        records = parser.feed(payload[:split]) + parser.feed(payload[split:])

        assert records == [{"title": "한글"}]


# ============================================================================
# TESTS: DELIMITERS AND FLUSH
# ============================================================================

class TestDelimiters:
    """Line endings and end-of-stream handling."""

    def test_missing_final_newline_yields_same_records(self):
        with_newline = NdjsonStreamParser()
        without_newline = NdjsonStreamParser()

        assert feed_in_chunks(with_newline, PAYLOAD, 5) == RECORDS
        assert feed_in_chunks(without_newline, PAYLOAD.rstrip(b"\n"), 5) == RECORDS

    def test_flush_emits_last_unterminated_line(self):
        parser = NdjsonStreamParser()
        a = json.dumps({"id": "a"}).encode()
        b = json.dumps({"id": "b"}).encode()

        assert parser.feed(a + b"\n" + b) == [{"id": "a"}]
        assert parser.flush() == [{"id": "b"}]
        assert parser.flush() == []

    def test_crlf_line_endings(self):
        parser = NdjsonStreamParser()
        payload = b'{"id": "x"}\r\n{"id": "y"}\r\n'

        assert feed_in_chunks(parser, payload, 3) == [{"id": "x"}, {"id": "y"}]

    def test_carriage_return_split_from_newline(self):
        parser = NdjsonStreamParser()

        records = parser.feed(b'{"id": "x"}\r') + parser.feed(b'\n{"id": "y"}')
        records += parser.flush()

        assert records == [{"id": "x"}, {"id": "y"}]

    def test_blank_lines_are_skipped_without_error(self):
        errors = []
        parser = NdjsonStreamParser(on_error=lambda line, err: errors.append(line))

        records = feed_in_chunks(parser, b'\n\n{"id": "x"}\n   \n\r\n', 4)

        assert records == [{"id": "x"}]
        assert errors == []

    def test_empty_stream(self):
        parser = NdjsonStreamParser()
        assert parser.feed(b"") == []
        assert parser.flush() == []

    def test_str_chunks_are_accepted(self):
        parser = NdjsonStreamParser()
        assert parser.feed('{"id": "s"}\n') == [{"id": "s"}]


# ============================================================================
# TESTS: MALFORMED INPUT
# ============================================================================

class TestMalformedLines:
    """Bad lines are reported and skipped, never raised."""

    def test_invalid_line_between_valid_lines(self):
        errors = []
        parser = NdjsonStreamParser(on_error=lambda line, err: errors.append((line, err)))
        payload = b'{"id": "a"}\nWARNING: not json\n{"id": "b"}\n'

        records = feed_in_chunks(parser, payload, 6)

        assert records == [{"id": "a"}, {"id": "b"}]
        assert len(errors) == 1
        line, err = errors[0]
        assert line == "WARNING: not json"
        assert isinstance(err, ParseError)
        assert parser.parse_errors == 1

    def test_invalid_line_without_callback(self):
        parser = NdjsonStreamParser()
        records = feed_in_chunks(parser, b'{"id": "a"}\n{broken\n', 100)

        assert records == [{"id": "a"}]
        assert parser.parse_errors == 1

    def test_non_object_json_is_reported(self):
        errors = []
        parser = NdjsonStreamParser(on_error=lambda line, err: errors.append(err.reason))

        records = feed_in_chunks(parser, b'[1, 2]\n42\n{"id": "ok"}\n', 100)

        assert records == [{"id": "ok"}]
        assert len(errors) == 2
        assert "expected object" in errors[0]


# ============================================================================
# TESTS: BUFFER BOUND
# ============================================================================

class TestBufferBound:
    """A partial line that never ends is dropped, then framing resumes."""

    def test_overlong_partial_line_is_discarded(self):
        parser = NdjsonStreamParser(max_buffer_bytes=16)

        assert parser.feed(b'{"id": "' + b"x" * 32) == []
        assert parser.buffered_bytes == 0
        assert parser.discarded_bytes == 40

    def test_accumulation_restarts_after_discard(self):
        errors = []
        parser = NdjsonStreamParser(max_buffer_bytes=16, on_error=lambda line, err: errors.append(line))

        parser.feed(b'{"id": "' + b"x" * 32)
        records = parser.feed(b'"}\n{"id": "b"}\n')

        # The tail of the dropped line fails to decode; the next line is intact
        assert records == [{"id": "b"}]
        assert errors == ['"}']

    def test_complete_lines_in_large_chunk_are_not_discarded(self):
        parser = NdjsonStreamParser(max_buffer_bytes=16)
        payload = b'{"id": "a"}\n{"id": "b"}\n{"id": "c"}\n'

        assert parser.feed(payload) == [{"id": "a"}, {"id": "b"}, {"id": "c"}]
        assert parser.discarded_bytes == 0

    def test_invalid_bound_rejected(self):
        with pytest.raises(ValueError, match="max_buffer_bytes must be positive"):
            NdjsonStreamParser(max_buffer_bytes=0)
