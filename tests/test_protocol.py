"""
test_protocol.py - Unit Tests for the Frame Codec
===================================================
"""

import struct

import pytest

from sendfile.errors import MalformedFrame, FrameTooLarge
from sendfile.transfer.protocol import (
    Frame,
    HEADER_SIZE,
    encode,
    encode_prefix,
    decode_header,
    check_length,
    split_body,
)


class TestEncode:
    """Tests for frame encoding."""

    def test_header_is_eight_bytes_big_endian(self):
        """total_length is sent as an unsigned 64-bit big-endian integer."""
        frame = encode(b"a.txt", b"hello")
        assert HEADER_SIZE == 8
        assert frame[:8] == struct.pack('>Q', 11)

    def test_hello_wire_bytes(self):
        """Bytes after the header are name, terminator, payload."""
        frame = encode(b"a.txt", b"hello")
        assert frame[8:] == b"a.txt\x00hello"
        assert decode_header(frame[:8]) == 11

    def test_empty_payload(self):
        """A zero-byte file still carries the name and terminator."""
        frame = encode(b"empty.txt", b"")
        assert decode_header(frame[:8]) == 10
        assert frame[8:] == b"empty.txt\x00"

    @pytest.mark.parametrize("name,payload", [
        (b"x", b""),
        (b"report.pdf", b"\x00" * 17),
        (b"data.bin", bytes(range(256)) * 4),
    ])
    def test_total_length_arithmetic(self, name, payload):
        """total_length == len(name) + 1 + len(payload)."""
        frame = encode(name, payload)
        assert decode_header(frame[:8]) == len(name) + 1 + len(payload)
        assert len(frame) == 8 + len(name) + 1 + len(payload)

    def test_prefix_matches_full_frame(self):
        """encode_prefix is the frame minus its payload."""
        payload = b"some payload"
        assert encode_prefix(b"f", len(payload)) + payload == encode(b"f", payload)

    def test_name_with_zero_byte_rejected(self):
        """A name containing the terminator cannot be framed."""
        with pytest.raises(ValueError, match="zero byte"):
            encode(b"bad\x00name", b"data")

    def test_negative_payload_length_rejected(self):
        with pytest.raises(ValueError):
            encode_prefix(b"f", -1)


class TestDecode:
    """Tests for header decoding and body splitting."""

    def test_decode_header_wrong_size(self):
        """Headers must be exactly 8 bytes."""
        with pytest.raises(MalformedFrame):
            decode_header(b"\x00" * 7)

    def test_decode_header_accepts_any_value(self):
        """Decoding alone performs no bounds check."""
        assert decode_header(b"\xff" * 8) == 2 ** 64 - 1

    def test_split_without_terminator(self):
        """A body with no zero byte is malformed."""
        with pytest.raises(MalformedFrame, match="terminator"):
            split_body(b"no-terminator-here")

    def test_split_empty_body(self):
        with pytest.raises(MalformedFrame):
            split_body(b"")

    def test_split_at_first_zero_only(self):
        """Later zero bytes belong to the payload."""
        name, payload = split_body(b"a.bin\x00\x00\x01\x00\x02")
        assert name == b"a.bin"
        assert payload == b"\x00\x01\x00\x02"

    def test_roundtrip(self):
        """Decoding an encoded frame gives back name and payload."""
        payload = bytes(range(256)) * 3
        frame = encode(b"blob.bin", payload)
        total = decode_header(frame[:HEADER_SIZE])
        assert split_body(frame[HEADER_SIZE:HEADER_SIZE + total]) == (b"blob.bin", payload)


class TestCheckLength:
    """Tests for the received-length bound."""

    def test_zero_length_rejected(self):
        """A frame must at least hold the terminator."""
        with pytest.raises(MalformedFrame):
            check_length(0, 1024)

    def test_over_limit_rejected(self):
        with pytest.raises(FrameTooLarge):
            check_length(1025, 1024)

    def test_frame_too_large_is_malformed(self):
        """Oversized frames are a kind of protocol error."""
        assert issubclass(FrameTooLarge, MalformedFrame)

    def test_at_limit_accepted(self):
        assert check_length(1024, 1024) == 1024


class TestFrame:
    """Tests for the Frame dataclass."""

    def test_total_length(self):
        assert Frame(b"a.txt", b"hello").total_length == 11

    def test_from_body(self):
        frame = Frame.from_body(b"n\x00p")
        assert frame == Frame(b"n", b"p")
