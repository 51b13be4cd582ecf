"""Archive module callbacks.

The archiver calls these two operations synchronously, once per WAL segment
that is ready:

    is_configured()                      - can we archive right now?
    archive_file(segment_name, full_path) - archive one segment

Both answer with a plain boolean. A False answer means "retry later"; the
archiver applies its own backoff. Every failure is logged and kept on the
module as ``last_error`` so the caller can report it.
"""

import logging
import os
from typing import Optional

from walgarchive.core.configs import ArchiveSettings
from walgarchive.daemon.client import ArchiveClient
from walgarchive.exceptions import ArchiveError, ConfigurationError

logger = logging.getLogger(__name__)


class WalgArchiveModule:
    """Adapts ArchiveClient to the archiver's callback contract."""

    def __init__(self, client: Optional[ArchiveClient]):
        self.client = client
        self.last_error: Optional[ArchiveError] = None

    @classmethod
    def from_settings(cls, settings: ArchiveSettings) -> "WalgArchiveModule":
        if not settings.enabled:
            return cls(None)
        return cls(ArchiveClient.from_settings(settings))

    @property
    def last_diagnostic(self) -> Optional[str]:
        """Message of the last failure, including any raw daemon response."""
        if self.last_error is None:
            return None
        return str(self.last_error)

    def _fail(self, error: ArchiveError) -> bool:
        self.last_error = error
        logger.error(str(error))
        return False

    def is_configured(self) -> bool:
        self.last_error = None
        if self.client is None or not self.client.socket_path:
            return self._fail(
                ConfigurationError('"walg_socket" parameter is an empty string')
            )
        try:
            return self.client.check_configured()
        except ArchiveError as e:
            return self._fail(e)

    def archive_file(self, segment_name: str, full_path: str = "") -> bool:
        self.last_error = None
        if self.client is None:
            return self._fail(
                ConfigurationError('"walg_socket" parameter is an empty string')
            )
        logger.debug(f"Archiving {segment_name} ({full_path or 'path unknown'})")
        try:
            return self.client.archive_file(os.path.basename(segment_name))
        except ArchiveError as e:
            return self._fail(e)

    def shutdown(self) -> None:
        """Release the daemon connection."""
        if self.client is not None:
            self.client.close()
