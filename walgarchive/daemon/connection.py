"""Unix socket connection to the WAL-G daemon.

:func:`open_connection` validates the socket path and returns an owned
:class:`Connection`. The connection knows how to push a whole frame through
partial writes with a bounded number of send calls, and how to read a response
either with a single receive (what WAL-G does today) or as a length-prefixed
frame.
"""

import logging
import os
import socket
from typing import Optional

from walgarchive.daemon.protocol import HEADER_SIZE, decode_header
from walgarchive.exceptions import (
    ArchiveConnectionError,
    ConfigurationError,
    ProtocolError,
    TransportError,
)

logger = logging.getLogger(__name__)

# Path buffer size of the host server (MAXPGPATH).
MAX_PATH_LENGTH = 1024
# Archived file names can be up to 64 characters, plus separator and terminator.
FILE_NAME_RESERVE = 64 + 2

MAX_RESPONSE_SIZE = 512
DEFAULT_SEND_ATTEMPTS = 8


def check_path_length(path: str) -> None:
    """
    Make sure the socket path leaves room for archived file names.

    Raises:
        ConfigurationError: If the path is too long
    """
    size = len(os.fsencode(path))
    if size + FILE_NAME_RESERVE >= MAX_PATH_LENGTH:
        raise ConfigurationError(
            f"Path to WAL-G socket is too long ({size} bytes)"
        )


class Connection:
    """
    An open stream to the daemon.

    The object owns its socket: ``close()`` releases it and is safe to call
    more than once. Use it as a context manager to guarantee release.
    """

    def __init__(self, sock: socket.socket, path: str):
        self._sock: Optional[socket.socket] = sock
        self.path = path

    @property
    def closed(self) -> bool:
        return self._sock is None

    def _require_socket(self) -> socket.socket:
        if self._sock is None:
            raise TransportError(f"Connection to {self.path} is closed")
        return self._sock

    def send_frame(self, data: bytes, max_attempts: int = DEFAULT_SEND_ATTEMPTS) -> int:
        """
        Send a whole frame, accumulating partial writes.

        Args:
            data: Encoded frame
            max_attempts: Maximum number of send calls before giving up

        Returns:
            Number of bytes sent (always ``len(data)``)

        Raises:
            TransportError: On socket error, a send that accepts nothing, or when
                the frame is still incomplete after ``max_attempts`` calls
        """
        sock = self._require_socket()
        view = memoryview(data)
        total = len(data)
        sent = 0
        attempts = 0

        while sent < total:
            if attempts >= max_attempts:
                raise TransportError(
                    f"Gave up after {attempts} send attempts: "
                    f"sent {sent} of {total} bytes",
                    sent=sent,
                    expected=total,
                )
            attempts += 1
            try:
                n = sock.send(view[sent:])
            except socket.timeout as e:
                raise TransportError(
                    f"Timed out sending message to {self.path} "
                    f"({sent} of {total} bytes sent)",
                    sent=sent,
                    expected=total,
                ) from e
            except OSError as e:
                raise TransportError(
                    f"Failed to send message to {self.path}: {e}",
                    sent=sent,
                    expected=total,
                ) from e
            if n <= 0:
                raise TransportError(
                    f"Socket accepted no data ({sent} of {total} bytes sent)",
                    sent=sent,
                    expected=total,
                )
            sent += n
            if sent < total:
                logger.debug(f"Short write: {sent} of {total} bytes sent")

        return sent

    def _recv(self, size: int) -> bytes:
        sock = self._require_socket()
        try:
            return sock.recv(size)
        except socket.timeout as e:
            raise TransportError(f"Timed out waiting for response from {self.path}") from e
        except OSError as e:
            raise TransportError(f"Failed to receive response from {self.path}: {e}") from e

    def receive(self, max_size: int = MAX_RESPONSE_SIZE) -> bytes:
        """
        Perform exactly one receive of at most ``max_size`` bytes.

        Raises:
            TransportError: If the receive fails or the daemon closed the stream
        """
        data = self._recv(max_size)
        if not data:
            raise TransportError(f"Connection closed by daemon at {self.path}")
        return data

    def _recv_exactly(self, size: int) -> bytes:
        chunks = []
        remaining = size
        while remaining > 0:
            chunk = self._recv(remaining)
            if not chunk:
                raise TransportError(
                    f"Connection closed by daemon after {size - remaining} of {size} bytes"
                )
            chunks.append(chunk)
            remaining -= len(chunk)
        return b"".join(chunks)

    def receive_framed(self, max_size: int = MAX_RESPONSE_SIZE) -> bytes:
        """
        Read one length-prefixed frame and return its body.

        Raises:
            ProtocolError: If the declared length exceeds ``max_size``
            TransportError: If the stream ends early
        """
        header = self._recv_exactly(HEADER_SIZE)
        _, length = decode_header(header)
        if length > max_size:
            raise ProtocolError(
                f"Response frame of {length} bytes exceeds limit of {max_size}",
                detail=header,
            )
        return self._recv_exactly(length - HEADER_SIZE)

    def close(self) -> None:
        if self._sock is None:
            return
        sock, self._sock = self._sock, None
        try:
            sock.close()
        except OSError as e:
            logger.debug(f"Error closing socket {self.path}: {e}")

    def __enter__(self) -> "Connection":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


def open_connection(path: str, timeout: Optional[float] = None) -> Connection:
    """
    Connect to the daemon socket. No retries are made.

    Args:
        path: Filesystem path of the Unix socket
        timeout: Socket timeout in seconds (None blocks indefinitely)

    Returns:
        An open Connection

    Raises:
        ConfigurationError: If the path is too long
        ArchiveConnectionError: If the socket cannot be created or connected
    """
    check_path_length(path)

    try:
        sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
    except OSError as e:
        raise ArchiveConnectionError(
            f"Error on creating socket: {e}",
            stage="create",
            path=path,
            errno=e.errno,
        ) from e

    try:
        sock.settimeout(timeout)
        sock.connect(path)
    except OSError as e:
        sock.close()
        raise ArchiveConnectionError(
            f"Error on connecting to socket {path}: {e}",
            stage="connect",
            path=path,
            errno=e.errno,
        ) from e
    except BaseException:
        sock.close()
        raise

    logger.debug(f"Connected to WAL-G socket {path}")
    return Connection(sock, path)
