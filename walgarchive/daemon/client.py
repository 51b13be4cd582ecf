"""Protocol client for the WAL-G archive daemon.

Usage:
    with ArchiveClient("/var/run/walg.sock") as client:
        client.check_configured()
        client.archive_file("000000010000000000000001")

Connection policy: the connection opened by the first call is reused by later
calls. Any failure while talking to the daemon drops it, including an error
reply or a reply that fills the receive limit, so the next call starts on a
fresh connection. If a reused connection turns out to be dead before a
single byte of a request was accepted, the client reconnects once and re-sends
within the same call.

An ArchiveClient is not thread safe. The archiver issues one request at a time
and a single instance must not be shared between threads.
"""

import logging
from typing import Callable, Optional

from walgarchive.daemon.connection import (
    DEFAULT_SEND_ATTEMPTS,
    MAX_RESPONSE_SIZE,
    Connection,
    open_connection,
)
from walgarchive.daemon.protocol import (
    Outcome,
    decode_response,
    encode_archive,
    encode_check,
)
from walgarchive.exceptions import ProtocolError, TransportError

logger = logging.getLogger(__name__)


class ArchiveClient:
    """
    Talks to one WAL-G daemon socket.

    Args:
        socket_path: Path to the daemon's Unix socket
        timeout: Socket timeout in seconds (None blocks indefinitely)
        max_send_attempts: Bound on send calls per frame
        max_response_size: Receive cap in bytes
        framed_responses: Read length-prefixed responses instead of a single
            receive
        connector: Callable opening a Connection (path, timeout)
    """

    def __init__(
        self,
        socket_path: str,
        timeout: Optional[float] = None,
        max_send_attempts: int = DEFAULT_SEND_ATTEMPTS,
        max_response_size: int = MAX_RESPONSE_SIZE,
        framed_responses: bool = False,
        connector: Callable[[str, Optional[float]], Connection] = open_connection,
    ):
        self.socket_path = socket_path
        self.timeout = timeout
        self.max_send_attempts = max_send_attempts
        self.max_response_size = max_response_size
        self.framed_responses = framed_responses
        self._connector = connector
        self._connection: Optional[Connection] = None
        self._configured = False

    @classmethod
    def from_settings(cls, settings) -> "ArchiveClient":
        """Build a client from ArchiveSettings."""
        return cls(
            settings.socket_path,
            timeout=settings.timeout,
            max_send_attempts=settings.max_send_attempts,
            max_response_size=settings.max_response_size,
            framed_responses=settings.framed_responses,
        )

    @property
    def connected(self) -> bool:
        return self._connection is not None and not self._connection.closed

    @property
    def configured(self) -> bool:
        """True after a successful handshake on the current connection."""
        return self._configured and self.connected

    def connect(self) -> Connection:
        """Return the current connection, opening one if needed."""
        if not self.connected:
            self._configured = False
            self._connection = self._connector(self.socket_path, self.timeout)
        return self._connection

    def close(self) -> None:
        """Release the connection. Safe to call when already closed."""
        if self._connection is not None:
            self._connection.close()
            self._connection = None
        self._configured = False

    def __enter__(self) -> "ArchiveClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def check_configured(self) -> bool:
        """
        Handshake with the daemon.

        Returns:
            True when the daemon answered the check message with OK

        Raises:
            ProtocolError: If the daemon answered with anything else
            ArchiveConnectionError, TransportError: On connection failures
        """
        outcome = self._exchange(encode_check())
        if not outcome.success:
            self.close()
            raise ProtocolError(
                f"Incorrect response: {outcome.message}",
                detail=outcome.detail,
            )
        self._configured = True
        return True

    def archive_file(self, base_name: str) -> bool:
        """
        Ask the daemon to archive one WAL file.

        The frame is encoded before any connection is made, so a name that
        does not fit raises EncodingError without sending anything.

        Returns:
            True when the daemon acknowledged the file

        Raises:
            EncodingError: If the name does not fit the file name field
            ProtocolError: If the daemon reported an error
            ArchiveConnectionError, TransportError: On connection failures
        """
        frame = encode_archive(base_name)
        outcome = self._exchange(frame)
        if not outcome.success:
            self.close()
            raise ProtocolError(
                f"Message includes error for {base_name}: {outcome.message}",
                detail=outcome.detail,
            )
        logger.info(f"File: {base_name} has been sent")
        return True

    def _read_response(self, connection: Connection) -> bytes:
        if self.framed_responses:
            return connection.receive_framed(self.max_response_size)
        return connection.receive(self.max_response_size)

    def _exchange(self, frame: bytes) -> Outcome:
        """Send one frame and decode the single response to it."""
        reused = self.connected
        connection = self.connect()
        try:
            try:
                connection.send_frame(frame, self.max_send_attempts)
            except TransportError as e:
                if not reused or e.sent:
                    raise
                logger.debug(f"Reused connection is dead ({e}), reconnecting")
                self.close()
                connection = self.connect()
                connection.send_frame(frame, self.max_send_attempts)
            data = self._read_response(connection)
        except BaseException:
            # Stream state is unknown after a failed exchange.
            self.close()
            raise

        if not self.framed_responses and len(data) >= self.max_response_size:
            # The reply may continue past the cap.
            logger.debug(f"Response filled {len(data)} byte limit, dropping connection")
            self.close()

        logger.debug(f"WAL-G response: {data!r}")
        return decode_response(data)
