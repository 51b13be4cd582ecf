"""Length-prefixed framing for the WAL-G archive socket.

Every message is an array of bytes:

    1 byte   - message type (tag), ASCII character
    2 bytes  - total frame length N including the 3 header bytes, uint16 BE
    N-3 bytes - message body

Messages sent by the client:

    C  "CHECK"                          - handshake
    F  base file name, 24 bytes wide    - archive this WAL segment

The daemon answers with raw bytes from a single write. Success is signalled by
a leading ``OK``; anything else is an error and its bytes are the diagnostic.
"""

import struct
from dataclasses import dataclass
from typing import Optional, Tuple

from walgarchive.exceptions import EncodingError, ProtocolError

HEADER = struct.Struct(">cH")
HEADER_SIZE = HEADER.size  # 3
MAX_FRAME_SIZE = 0xFFFF

CHECK_TAG = b"C"
FILE_TAG = b"F"
CHECK_BODY = b"CHECK"

# WAL segment names are 24 hex characters; names are NUL padded to this width.
FILE_NAME_WIDTH = 24

SUCCESS_SENTINEL = b"OK"


@dataclass(frozen=True)
class Frame:
    """A decoded protocol message."""

    tag: bytes
    body: bytes

    @property
    def length(self) -> int:
        return HEADER_SIZE + len(self.body)

    @property
    def file_name(self) -> str:
        """Body of a file frame with its padding removed."""
        return self.body.rstrip(b"\x00").decode("utf-8")


@dataclass(frozen=True)
class Outcome:
    """Verdict for one daemon response."""

    success: bool
    detail: bytes = b""

    @property
    def message(self) -> str:
        """Printable form of the raw response."""
        if not self.detail:
            return "<empty response>"
        return self.detail.decode("utf-8", errors="replace").rstrip("\x00\r\n")


def encode_frame(tag: bytes, body: bytes) -> bytes:
    """
    Encode a message into a wire frame.

    Args:
        tag: Single byte message type
        body: Message body

    Returns:
        Header followed by body

    Raises:
        EncodingError: If the tag is not one byte or the frame is too large
    """
    if len(tag) != 1:
        raise EncodingError(f"Message tag must be a single byte, got {tag!r}")
    length = HEADER_SIZE + len(body)
    if length > MAX_FRAME_SIZE:
        raise EncodingError(f"Frame of {length} bytes exceeds {MAX_FRAME_SIZE}")
    return HEADER.pack(tag, length) + body


def encode_check() -> bytes:
    """Encode the handshake frame."""
    return encode_frame(CHECK_TAG, CHECK_BODY)


def encode_file_name(name: str) -> bytes:
    """
    Place a base file name into the fixed-width body field.

    Names longer than the field are rejected, never truncated.

    Raises:
        EncodingError: If the name is empty, is not a base name, or does not fit
    """
    if not name:
        raise EncodingError("File name is empty")
    if "/" in name or "\x00" in name:
        raise EncodingError(f"Not a base file name: {name!r}")

    raw = name.encode("utf-8")
    if len(raw) > FILE_NAME_WIDTH:
        raise EncodingError(
            f"File name {name!r} is {len(raw)} bytes, "
            f"field width is {FILE_NAME_WIDTH}"
        )
    return raw.ljust(FILE_NAME_WIDTH, b"\x00")


def encode_archive(name: str) -> bytes:
    """Encode the frame asking the daemon to archive ``name``."""
    return encode_frame(FILE_TAG, encode_file_name(name))


def decode_header(header: bytes) -> Tuple[bytes, int]:
    """Return ``(tag, length)`` from the first 3 bytes of a frame."""
    if len(header) < HEADER_SIZE:
        raise ProtocolError(
            f"Truncated frame header: {len(header)} of {HEADER_SIZE} bytes",
            detail=bytes(header),
        )
    tag, length = HEADER.unpack_from(header)
    if length < HEADER_SIZE:
        raise ProtocolError(
            f"Frame length {length} is shorter than its header",
            detail=bytes(header),
        )
    return tag, length


def decode_frame(data: bytes) -> Frame:
    """
    Decode exactly one frame.

    Raises:
        ProtocolError: If the header is truncated or its length field does not
            match the buffer
    """
    tag, length = decode_header(data)
    if length != len(data):
        raise ProtocolError(
            f"Frame declares {length} bytes but {len(data)} were given",
            detail=bytes(data),
        )
    return Frame(tag=tag, body=bytes(data[HEADER_SIZE:]))


def decode_response(buffer: bytes, received: Optional[int] = None) -> Outcome:
    """
    Interpret a daemon response.

    Only the first ``received`` bytes of ``buffer`` are examined; the buffer is
    never treated as a terminated string.

    Args:
        buffer: Receive buffer
        received: Number of bytes actually received (defaults to len(buffer))

    Returns:
        Outcome with the raw received bytes as detail
    """
    if received is None:
        received = len(buffer)
    received = max(0, min(received, len(buffer)))
    data = bytes(buffer[:received])
    return Outcome(success=data.startswith(SUCCESS_SENTINEL), detail=data)
