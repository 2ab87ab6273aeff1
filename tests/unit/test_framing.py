# tests/unit/test_framing.py

"""Tests for the length-prefixed frame codec."""

import pytest

from testrelay.exceptions import ProtocolError
from testrelay.server import FrameDecoder, LogEvent, ResultEvent, StartEvent, decode_payload, encode_frame
from testrelay.server.framing import DEFAULT_MAX_PENDING_READS


def test_encode_frame_prefixes_byte_length():
    frame = encode_frame("log", "héllo")
    payload = "log\x1fhéllo".encode()
    assert frame == str(len(payload)).encode() + b":" + payload


def test_decode_result_with_empty_fields():
    event = decode_payload("result\x1fa.B.test_c\x1fpassed\x1f\x1f".encode())
    assert event == ResultEvent(test="a.B.test_c", outcome="passed", message="", traceback="")


@pytest.mark.parametrize(
    "payload, reason",
    [
        (b"bogus\x1fx", "Unknown command"),
        (b"result\x1fonly-two", "expects 4 field"),
        (b"\xff\xfe", "not valid UTF-8"),
    ],
)
def test_decode_payload_rejects_malformed(payload, reason):
    with pytest.raises(ProtocolError, match=reason):
        decode_payload(payload)


class TestFrameDecoder:
    def test_frame_split_across_reads(self):
        frame = encode_frame("start", "pkg.mod.Case.test_x")
        decoder = FrameDecoder()

        assert decoder.feed(frame[:1]) == []
        assert decoder.feed(frame[1:5]) == []
        assert decoder.feed(frame[5:]) == [StartEvent(test="pkg.mod.Case.test_x")]
        assert decoder.buffered == 0

    def test_pipelined_frames_in_one_read(self):
        data = encode_frame("start", "a.B.c") + encode_frame("result", "a.B.c", "passed", "", "") + encode_frame("log", "x")

        items = FrameDecoder().feed(data)

        assert items == [
            StartEvent(test="a.B.c"),
            ResultEvent(test="a.B.c", outcome="passed"),
            LogEvent(message="x"),
        ]

    def test_non_numeric_header_is_reported_and_skipped(self):
        decoder = FrameDecoder()

        items = decoder.feed(b"abc:" + encode_frame("log", "after"))

        assert isinstance(items[0], ProtocolError)
        assert items[1] == LogEvent(message="after")

    def test_header_without_delimiter_is_discarded(self):
        decoder = FrameDecoder()

        items = decoder.feed(b"1" * 25)

        assert len(items) == 1
        assert "delimiter" in str(items[0])
        assert decoder.buffered == 0

    def test_oversized_frame_is_rejected(self):
        decoder = FrameDecoder(max_frame_size=10)

        items = decoder.feed(b"11:")

        assert len(items) == 1
        assert "exceeds limit" in str(items[0])

    def test_undecodable_payload_does_not_stop_the_stream(self):
        decoder = FrameDecoder()

        items = decoder.feed(encode_frame("nope") + encode_frame("log", "still here"))

        assert isinstance(items[0], ProtocolError)
        assert items[1] == LogEvent(message="still here")

    def test_incomplete_frame_gives_up_after_pending_read_limit(self):
        decoder = FrameDecoder(max_pending_reads=2)

        assert decoder.feed(b"100:ab") == []
        assert decoder.feed(b"cd") == []
        items = decoder.feed(b"ef")

        assert len(items) == 1
        assert "still incomplete" in str(items[0])
        assert decoder.buffered == 0

    def test_rest_of_an_abandoned_frame_is_skipped(self):
        decoder = FrameDecoder(max_pending_reads=2)
        decoder.feed(b"100:ab")
        decoder.feed(b"cd")
        assert len(decoder.feed(b"ef")) == 1

        assert decoder.feed(b"x" * 50) == []
        items = decoder.feed(b"x" * 44 + encode_frame("log", "after"))

        assert items == [LogEvent(message="after")]
        assert decoder.buffered == 0

    def test_large_frame_in_small_reads_is_not_abandoned(self):
        traceback = "Traceback (most recent call last):\n" + "  File \"x.py\", line 1\n" * 14_000
        frame = encode_frame("result", "a.B.test_c", "error", "boom", traceback)
        decoder = FrameDecoder()

        items = []
        for offset in range(0, len(frame), 1024):
            items.extend(decoder.feed(frame[offset:offset + 1024]))

        assert len(frame) > 1024 * DEFAULT_MAX_PENDING_READS
        assert items == [ResultEvent(test="a.B.test_c", outcome="error", message="boom", traceback=traceback)]

    def test_close_reports_partial_frame(self):
        decoder = FrameDecoder()
        decoder.feed(b"10:abc")

        errors = decoder.close()

        assert len(errors) == 1
        assert "partial frame" in str(errors[0])

    def test_close_with_clean_buffer(self):
        decoder = FrameDecoder()
        decoder.feed(encode_frame("log", "done"))
        assert decoder.close() == []
