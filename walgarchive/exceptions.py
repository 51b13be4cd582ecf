"""Error taxonomy for the WAL-G archive client.

Every failure the client can produce derives from :class:`ArchiveError`, so the
archive module can report it and turn it into a failed call without catching
anything broader.
"""

from typing import Optional


class ArchiveError(Exception):
    """Base class for archive client failures.

    Args:
        message: Human readable description
        detail: Raw diagnostic bytes (daemon response), if any
    """

    def __init__(self, message: str, detail: Optional[bytes] = None):
        super().__init__(message)
        self.detail = detail


class ConfigurationError(ArchiveError):
    """Socket path missing, too long, or not present on disk."""


class ArchiveConnectionError(ArchiveError):
    """Creating or connecting the Unix socket failed."""

    def __init__(
        self,
        message: str,
        stage: str,
        path: str = "",
        errno: Optional[int] = None,
    ):
        super().__init__(message)
        self.stage = stage
        self.path = path
        self.errno = errno


class TransportError(ArchiveError):
    """Send or receive failed, including writes that never completed."""

    def __init__(self, message: str, sent: int = 0, expected: int = 0):
        super().__init__(message)
        self.sent = sent
        self.expected = expected


class ProtocolError(ArchiveError):
    """Daemon answered with something other than the success sentinel."""


class EncodingError(ArchiveError):
    """A message could not be encoded into a frame."""
