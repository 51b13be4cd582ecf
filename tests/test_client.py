"""
Tests for daemon/client.py - check and archive-file request cycles.
"""

import errno
import socket
import unittest
from unittest.mock import MagicMock

from walgarchive.core.configs import ArchiveSettings
from walgarchive.daemon.client import ArchiveClient
from walgarchive.daemon.connection import Connection
from walgarchive.daemon.protocol import Frame
from walgarchive.exceptions import (
    ArchiveConnectionError,
    EncodingError,
    ProtocolError,
    TransportError,
)

from fake_daemon import FakeDaemon

SEGMENT = "000000010000000000000001"


def _mock_connection(send=None, recv=None):
    sock = MagicMock()
    sock.send.side_effect = send or (lambda data: len(data))
    if recv is not None:
        sock.recv.side_effect = recv
    else:
        sock.recv.return_value = b"OK"
    return Connection(sock, "/tmp/walg.sock"), sock


class TestClientWithDaemon(unittest.TestCase):
    """Exercise the client against an in-process daemon."""

    def test_check_configured(self):
        with FakeDaemon([b"OK"]) as daemon:
            with ArchiveClient(daemon.path, timeout=5) as client:
                self.assertTrue(client.check_configured())
                self.assertTrue(client.configured)
        self.assertEqual(daemon.frames, [Frame(tag=b"C", body=b"CHECK")])

    def test_archive_reuses_checked_connection(self):
        with FakeDaemon() as daemon:
            with ArchiveClient(daemon.path, timeout=5) as client:
                client.check_configured()
                self.assertTrue(client.archive_file(SEGMENT))
                self.assertTrue(client.archive_file("000000010000000000000002"))
        self.assertEqual(daemon.connections, 1)
        self.assertEqual(
            [frame.file_name for frame in daemon.frames[1:]],
            [SEGMENT, "000000010000000000000002"],
        )

    def test_archive_logs_sent_file(self):
        with FakeDaemon() as daemon:
            with ArchiveClient(daemon.path, timeout=5) as client:
                with self.assertLogs("walgarchive.daemon.client", "INFO") as logs:
                    client.archive_file(SEGMENT)
        self.assertIn(f"File: {SEGMENT} has been sent", logs.output[0])

    def test_error_response_raises_with_detail(self):
        with FakeDaemon([b"OK", b"ERRBADPATH"]) as daemon:
            with ArchiveClient(daemon.path, timeout=5) as client:
                client.check_configured()
                with self.assertRaises(ProtocolError) as context:
                    client.archive_file(SEGMENT)
                self.assertFalse(client.connected)
                self.assertTrue(client.archive_file(SEGMENT))
        self.assertEqual(context.exception.detail, b"ERRBADPATH")
        self.assertIn("ERRBADPATH", str(context.exception))
        self.assertEqual(daemon.connections, 2)

    def test_oversized_reply_does_not_leak_into_next_request(self):
        with FakeDaemon([b"ERR" + b"x" * 597, b"OK", b"ERRBADPATH"]) as daemon:
            with ArchiveClient(daemon.path, timeout=5) as client:
                with self.assertRaises(ProtocolError) as first:
                    client.check_configured()
                self.assertEqual(len(first.exception.detail), 512)
                self.assertTrue(client.check_configured())
                with self.assertRaises(ProtocolError) as context:
                    client.archive_file(SEGMENT)
        self.assertEqual(context.exception.detail, b"ERRBADPATH")
        self.assertEqual(daemon.connections, 2)

    def test_failed_check(self):
        with FakeDaemon([b"NOTREADY"]) as daemon:
            with ArchiveClient(daemon.path, timeout=5) as client:
                with self.assertRaises(ProtocolError) as context:
                    client.check_configured()
                self.assertFalse(client.configured)
        self.assertIn("NOTREADY", str(context.exception))

    def test_reconnects_after_daemon_hangs_up(self):
        with FakeDaemon([b"OK", None]) as daemon:
            with ArchiveClient(daemon.path, timeout=5) as client:
                client.check_configured()
                with self.assertRaises(TransportError):
                    client.archive_file(SEGMENT)
                self.assertFalse(client.connected)
                self.assertTrue(client.archive_file(SEGMENT))
        self.assertEqual(daemon.connections, 2)

    def test_long_name_sends_nothing(self):
        connector = MagicMock()
        client = ArchiveClient("/tmp/walg.sock", connector=connector)
        with self.assertRaises(EncodingError):
            client.archive_file(SEGMENT + ".partial")
        connector.assert_not_called()


class TestClientFailures(unittest.TestCase):
    """Failure handling with injected connections."""

    def test_connect_failure_propagates(self):
        connector = MagicMock(
            side_effect=ArchiveConnectionError("refused", stage="connect")
        )
        client = ArchiveClient("/tmp/walg.sock", connector=connector)
        with self.assertRaises(ArchiveConnectionError):
            client.check_configured()
        self.assertFalse(client.connected)

    def test_short_writes_completed(self):
        connection, sock = _mock_connection(send=[10, 17])
        client = ArchiveClient("/tmp/walg.sock", connector=MagicMock(return_value=connection))
        self.assertTrue(client.archive_file(SEGMENT))
        self.assertEqual(sock.send.call_count, 2)

    def test_stalled_writes_fail_within_bound(self):
        connection, sock = _mock_connection(send=lambda data: 1)
        client = ArchiveClient(
            "/tmp/walg.sock",
            max_send_attempts=5,
            connector=MagicMock(return_value=connection),
        )
        with self.assertRaises(TransportError) as context:
            client.archive_file(SEGMENT)
        self.assertEqual(sock.send.call_count, 5)
        self.assertEqual(context.exception.sent, 5)
        self.assertEqual(context.exception.expected, 27)
        self.assertFalse(client.connected)
        sock.close.assert_called_once()
        sock.recv.assert_not_called()

    def test_dead_reused_connection_is_replaced_once(self):
        stale, stale_sock = _mock_connection(
            send=[8, BrokenPipeError(errno.EPIPE, "Broken pipe")]
        )
        fresh, fresh_sock = _mock_connection()
        connector = MagicMock(side_effect=[stale, fresh])
        client = ArchiveClient("/tmp/walg.sock", connector=connector)

        client.check_configured()
        self.assertTrue(client.archive_file(SEGMENT))

        self.assertEqual(connector.call_count, 2)
        stale_sock.close.assert_called_once()
        self.assertEqual(bytes(fresh_sock.send.call_args[0][0])[3:], SEGMENT.encode())

    def test_fresh_connection_failure_not_retried(self):
        connection, _ = _mock_connection(
            send=BrokenPipeError(errno.EPIPE, "Broken pipe")
        )
        connector = MagicMock(return_value=connection)
        client = ArchiveClient("/tmp/walg.sock", connector=connector)
        with self.assertRaises(TransportError):
            client.check_configured()
        self.assertEqual(connector.call_count, 1)

    def test_partial_send_on_reused_connection_not_resent(self):
        stale, _ = _mock_connection(send=[8, 5, BrokenPipeError(errno.EPIPE, "Broken pipe")])
        connector = MagicMock(return_value=stale)
        client = ArchiveClient("/tmp/walg.sock", connector=connector)
        client.check_configured()
        with self.assertRaises(TransportError):
            client.archive_file(SEGMENT)
        self.assertEqual(connector.call_count, 1)

    def test_receive_timeout_drops_connection(self):
        connection, sock = _mock_connection(recv=socket.timeout("timed out"))
        client = ArchiveClient("/tmp/walg.sock", timeout=0.5, connector=MagicMock(return_value=connection))
        with self.assertRaises(TransportError):
            client.check_configured()
        self.assertFalse(client.connected)
        sock.close.assert_called_once()

    def test_interrupt_releases_connection(self):
        connection, sock = _mock_connection(recv=KeyboardInterrupt())
        client = ArchiveClient("/tmp/walg.sock", connector=MagicMock(return_value=connection))
        with self.assertRaises(KeyboardInterrupt):
            client.archive_file(SEGMENT)
        self.assertFalse(client.connected)
        sock.close.assert_called_once()

    def test_framed_responses(self):
        connection, sock = _mock_connection(recv=[b"R\x00\x05", b"OK"])
        client = ArchiveClient(
            "/tmp/walg.sock",
            framed_responses=True,
            connector=MagicMock(return_value=connection),
        )
        self.assertTrue(client.check_configured())

    def test_reply_filling_cap_drops_connection(self):
        connection, sock = _mock_connection(recv=[b"OK" + b"x" * 62])
        client = ArchiveClient(
            "/tmp/walg.sock",
            max_response_size=64,
            connector=MagicMock(return_value=connection),
        )
        self.assertTrue(client.check_configured())
        self.assertFalse(client.connected)
        sock.close.assert_called_once()

    def test_response_cap_is_configurable(self):
        connection, sock = _mock_connection()
        client = ArchiveClient(
            "/tmp/walg.sock",
            max_response_size=64,
            connector=MagicMock(return_value=connection),
        )
        client.check_configured()
        sock.recv.assert_called_once_with(64)

    def test_from_settings(self):
        settings = ArchiveSettings(
            socket_path="/tmp/walg.sock",
            timeout=3.0,
            max_send_attempts=2,
            max_response_size=128,
            framed_responses=True,
        )
        client = ArchiveClient.from_settings(settings)
        self.assertEqual(client.socket_path, "/tmp/walg.sock")
        self.assertEqual(client.timeout, 3.0)
        self.assertEqual(client.max_send_attempts, 2)
        self.assertEqual(client.max_response_size, 128)
        self.assertTrue(client.framed_responses)


if __name__ == "__main__":
    unittest.main()
