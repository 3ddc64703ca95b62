import socket
import tempfile
import threading
import unittest
from pathlib import Path
from unittest.mock import patch


def _endpoint(td: str):
    from ccnotify.paths import Endpoint

    return Endpoint(socket_path=Path(td) / "ccnotify.sock", pid_file_path=Path(td) / "ccnotify.pid")


def _serve_once(sock_path: Path, reply: bytes) -> threading.Thread:
    srv = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
    srv.bind(str(sock_path))
    srv.listen(1)

    def _run() -> None:
        with srv:
            conn, _ = srv.accept()
            with conn:
                conn.recv(65536)
                if reply:
                    conn.sendall(reply)

    t = threading.Thread(target=_run, daemon=True)
    t.start()
    return t


class TestClientOps(unittest.TestCase):
    def test_missing_socket_raises_endpoint_missing(self) -> None:
        from ccnotify.daemon.client_ops import send_daemon_request
        from ccnotify.errors import DaemonUnavailable, EndpointMissing

        with tempfile.TemporaryDirectory() as td:
            with self.assertRaises(EndpointMissing) as ctx:
                send_daemon_request(_endpoint(td), {"type": "ping"}, connect_timeout_s=0.1, timeout_s=0.1)
            self.assertIsInstance(ctx.exception, DaemonUnavailable)

    def test_dead_socket_file_raises_connect_failed(self) -> None:
        from ccnotify.daemon.client_ops import send_daemon_request
        from ccnotify.errors import ConnectFailed

        with tempfile.TemporaryDirectory() as td:
            ep = _endpoint(td)
            ep.socket_path.write_text("", encoding="utf-8")
            with self.assertRaises(ConnectFailed):
                send_daemon_request(ep, {"type": "ping"}, connect_timeout_s=0.5, timeout_s=0.5)

    def test_silent_daemon_raises_request_timeout(self) -> None:
        from ccnotify.daemon.client_ops import send_daemon_request
        from ccnotify.errors import RequestTimeout

        with tempfile.TemporaryDirectory() as td:
            ep = _endpoint(td)
            srv = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
            with srv:
                srv.bind(str(ep.socket_path))
                srv.listen(1)
                with self.assertRaises(RequestTimeout):
                    send_daemon_request(ep, {"type": "ping"}, connect_timeout_s=0.5, timeout_s=0.3)

    def test_garbage_reply_raises_protocol_error(self) -> None:
        from ccnotify.daemon.client_ops import send_daemon_request
        from ccnotify.errors import ProtocolError

        with tempfile.TemporaryDirectory() as td:
            ep = _endpoint(td)
            t = _serve_once(ep.socket_path, b"this is not json\n")
            with self.assertRaises(ProtocolError):
                send_daemon_request(ep, {"type": "ping"}, connect_timeout_s=1.0, timeout_s=2.0)
            t.join(2.0)

    def test_closed_without_reply_raises_protocol_error(self) -> None:
        from ccnotify.daemon.client_ops import send_daemon_request
        from ccnotify.errors import ProtocolError

        with tempfile.TemporaryDirectory() as td:
            ep = _endpoint(td)
            t = _serve_once(ep.socket_path, b"")
            with self.assertRaises(ProtocolError):
                send_daemon_request(ep, {"type": "ping"}, connect_timeout_s=1.0, timeout_s=2.0)
            t.join(2.0)

    def test_reply_decoded(self) -> None:
        from ccnotify.daemon.client_ops import send_daemon_request

        with tempfile.TemporaryDirectory() as td:
            ep = _endpoint(td)
            t = _serve_once(ep.socket_path, b'{"type": "ping", "ping": {"version": "0.4.0", "uptime": 2}}\n')
            obj = send_daemon_request(ep, {"type": "ping"}, connect_timeout_s=1.0, timeout_s=2.0)
            t.join(2.0)
        self.assertEqual(obj["ping"]["uptime"], 2)


class TestClient(unittest.TestCase):
    def test_version_mismatch_raised(self) -> None:
        from ccnotify.daemon import client
        from ccnotify.errors import VersionMismatch

        reply = {"error": "protocol version mismatch: client=1.0 daemon=2.0 (restart)", "code": "version_mismatch"}
        with patch.object(client, "send_daemon_request", return_value=reply):
            with self.assertRaises(VersionMismatch) as ctx:
                client.ping()
        self.assertEqual(ctx.exception.daemon_version, "2.0")
        self.assertEqual(ctx.exception.client_version, "1.0")

    def test_daemon_error_raised_with_code(self) -> None:
        from ccnotify.daemon import client
        from ccnotify.errors import DaemonReportedError

        reply = {"type": "notify", "error": "notification failed: no server", "code": "notify_failed"}
        with patch.object(client, "send_daemon_request", return_value=reply):
            with self.assertRaises(DaemonReportedError) as ctx:
                client.send_notification("t")
        self.assertEqual(ctx.exception.code, "notify_failed")

    def test_wrong_payload_is_protocol_error(self) -> None:
        from ccnotify.daemon import client
        from ccnotify.errors import ProtocolError

        reply = {"type": "ping", "ping": {"version": "0.4.0", "uptime": 1}}
        with patch.object(client, "send_daemon_request", return_value=reply):
            with self.assertRaises(ProtocolError):
                client.send_notification("t")

    def test_malformed_response_is_protocol_error(self) -> None:
        from ccnotify.daemon import client
        from ccnotify.errors import ProtocolError

        with patch.object(client, "send_daemon_request", return_value={"type": "ping"}):
            with self.assertRaises(ProtocolError):
                client.ping()

    def test_is_running_false_without_daemon(self) -> None:
        from ccnotify.daemon.client import is_running

        with tempfile.TemporaryDirectory() as td:
            self.assertFalse(is_running(endpoint=_endpoint(td), timeout_s=0.2))


if __name__ == "__main__":
    unittest.main()
