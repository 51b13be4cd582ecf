"""Archive completed WAL segments through the WAL-G daemon socket."""

from walgarchive.archive import WalgArchiveModule
from walgarchive.daemon import ArchiveClient
from walgarchive.exceptions import (
    ArchiveConnectionError,
    ArchiveError,
    ConfigurationError,
    EncodingError,
    ProtocolError,
    TransportError,
)

__version__ = "0.1.0"

__all__ = [
    "WalgArchiveModule",
    "ArchiveClient",
    "ArchiveError",
    "ArchiveConnectionError",
    "ConfigurationError",
    "EncodingError",
    "ProtocolError",
    "TransportError",
]
