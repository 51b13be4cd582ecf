"""Client side of the WAL-G archive socket protocol.

Architecture:
- protocol: frame encoding and response verdicts
- connection: Unix socket lifecycle, bounded sends, single or framed receives
- ArchiveClient: check and archive-file request cycles over one connection
"""

from walgarchive.daemon.client import ArchiveClient
from walgarchive.daemon.connection import Connection, open_connection
from walgarchive.daemon.protocol import (
    Frame,
    Outcome,
    decode_frame,
    decode_response,
    encode_archive,
    encode_check,
    encode_frame,
)

__all__ = [
    "ArchiveClient",
    "Connection",
    "open_connection",
    "Frame",
    "Outcome",
    "decode_frame",
    "decode_response",
    "encode_archive",
    "encode_check",
    "encode_frame",
]
