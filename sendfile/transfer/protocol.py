"""
Frame Codec

Design Decision: Wire Format
============================

Options Considered:
1. Length prefix in host byte order
   - No conversion at all
   - Only works between hosts of the same endianness

2. Length prefix in network byte order (big-endian)
   - Portable, same cost
   - Breaks compatibility with host-order little-endian peers

Decision: 8-byte big-endian length prefix.

Message Format (one frame per connection):
```
+------------------+--------------+------+-----------------+
| total_length (8B)| name (N B)   | 0x00 | payload (M B)   |
+------------------+--------------+------+-----------------+

total_length = N + 1 + M
```

The receiver learns the frame size from the header alone, reads that many
bytes, then scans for the first zero byte to find where the name ends. The
payload may itself contain zero bytes.
"""

import struct
from dataclasses import dataclass
from typing import Tuple

from ..errors import MalformedFrame, FrameTooLarge

HEADER_FORMAT = '>Q'
HEADER_SIZE = struct.calcsize(HEADER_FORMAT)  # 8
NAME_TERMINATOR = b'\x00'

# Largest value representable in the header
MAX_TOTAL_LENGTH = 2 ** 64 - 1


def encode_prefix(name: bytes, payload_length: int) -> bytes:
    """
    Encode everything that precedes the payload.

    Lets a sender stream the payload after the prefix without holding
    the whole file in memory.
    """
    if NAME_TERMINATOR in name:
        raise ValueError(f"Name must not contain a zero byte: {name!r}")
    if payload_length < 0:
        raise ValueError(f"Negative payload length: {payload_length}")

    total_length = len(name) + 1 + payload_length
    if total_length > MAX_TOTAL_LENGTH:
        raise ValueError(f"Frame too large to encode: {total_length}")

    return struct.pack(HEADER_FORMAT, total_length) + name + NAME_TERMINATOR


def encode(name: bytes, payload: bytes) -> bytes:
    """Encode a complete frame."""
    return encode_prefix(name, len(payload)) + payload


def decode_header(header: bytes) -> int:
    """Read total_length out of the 8-byte header."""
    if len(header) != HEADER_SIZE:
        raise MalformedFrame(f"header must be {HEADER_SIZE} bytes, got {len(header)}")
    return struct.unpack(HEADER_FORMAT, header)[0]


def check_length(total_length: int, max_frame_size: int) -> int:
    """
    Bound a decoded total_length before anything is allocated for it.

    Returns:
        total_length, unchanged

    Raises:
        MalformedFrame: no room for the name terminator
        FrameTooLarge: larger than max_frame_size
    """
    if total_length < 1:
        raise MalformedFrame("frame has no room for a name terminator")
    if total_length > max_frame_size:
        raise FrameTooLarge(f"{total_length} bytes (limit {max_frame_size})")
    return total_length


def split_body(body: bytes) -> Tuple[bytes, bytes]:
    """
    Split a frame body into (name, payload) at the first zero byte.

    Raises:
        MalformedFrame: if the body contains no zero byte
    """
    end = body.find(NAME_TERMINATOR)
    if end < 0:
        raise MalformedFrame("no name terminator in frame body")
    return body[:end], body[end + 1:]


@dataclass
class Frame:
    """One file transfer: a name and the file's bytes."""
    name: bytes
    payload: bytes = b''

    @property
    def total_length(self) -> int:
        return len(self.name) + 1 + len(self.payload)

    def to_bytes(self) -> bytes:
        """Serialize frame to bytes."""
        return encode(self.name, self.payload)

    @classmethod
    def from_body(cls, body: bytes) -> 'Frame':
        name, payload = split_body(body)
        return cls(name=name, payload=payload)
