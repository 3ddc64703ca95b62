import io
import tempfile
import unittest
from contextlib import redirect_stdout
from pathlib import Path
from unittest.mock import patch


def _endpoint(td: str):
    from ccnotify.paths import Endpoint

    return Endpoint(socket_path=Path(td) / "ccnotify.sock", pid_file_path=Path(td) / "ccnotify.pid")


class TestDaemonMainStartSafety(unittest.TestCase):
    def test_start_refuses_duplicate_when_pid_alive_but_ipc_down(self) -> None:
        from ccnotify import daemon_main

        with tempfile.TemporaryDirectory() as td:
            out = io.StringIO()
            with patch.object(daemon_main, "default_endpoint", return_value=_endpoint(td)), patch.object(
                daemon_main, "is_running", return_value=False
            ), patch.object(daemon_main, "read_pid", return_value=12345), patch.object(
                daemon_main, "pid_alive", return_value=True
            ), patch.object(
                daemon_main, "_spawn_daemon", return_value=67890
            ) as spawn_mock, redirect_stdout(
                out
            ):
                rc = daemon_main.main(["start"])

            self.assertEqual(rc, 1)
            self.assertFalse(spawn_mock.called)
            self.assertIn("refusing to spawn duplicate daemon", out.getvalue())

    def test_start_cleans_stale_pid_and_spawns(self) -> None:
        from ccnotify import daemon_main
        from ccnotify.contracts.v1 import Settings

        with tempfile.TemporaryDirectory() as td:
            ep = _endpoint(td)
            ep.pid_file_path.write_text("12345\n", encoding="utf-8")
            out = io.StringIO()
            with patch.object(daemon_main, "default_endpoint", return_value=ep), patch.object(
                daemon_main, "is_running", return_value=False
            ), patch.object(daemon_main, "pid_alive", return_value=False), patch.object(
                daemon_main, "load_settings", return_value=Settings()
            ), patch.object(
                daemon_main, "wait_until_running", return_value=True
            ), patch.object(
                daemon_main, "_spawn_daemon", return_value=67890
            ) as spawn_mock, redirect_stdout(
                out
            ):
                rc = daemon_main.main(["start"])

            self.assertEqual(rc, 0)
            self.assertTrue(spawn_mock.called)
            self.assertFalse(ep.pid_file_path.exists())
            text = out.getvalue()
            self.assertIn("cleaning up stale state", text)
            self.assertIn("started pid=67890", text)

    def test_start_reports_not_ready(self) -> None:
        from ccnotify import daemon_main
        from ccnotify.contracts.v1 import Settings

        with tempfile.TemporaryDirectory() as td:
            out = io.StringIO()
            with patch.object(daemon_main, "default_endpoint", return_value=_endpoint(td)), patch.object(
                daemon_main, "is_running", return_value=False
            ), patch.object(daemon_main, "load_settings", return_value=Settings()), patch.object(
                daemon_main, "wait_until_running", return_value=False
            ), patch.object(
                daemon_main, "_spawn_daemon", return_value=555
            ), redirect_stdout(
                out
            ):
                rc = daemon_main.main(["start"])
            self.assertEqual(rc, 1)
            self.assertIn("not ready", out.getvalue())

    def test_start_when_running_is_noop(self) -> None:
        from ccnotify import daemon_main

        with tempfile.TemporaryDirectory() as td:
            out = io.StringIO()
            with patch.object(daemon_main, "default_endpoint", return_value=_endpoint(td)), patch.object(
                daemon_main, "is_running", return_value=True
            ), patch.object(daemon_main, "_spawn_daemon") as spawn_mock, redirect_stdout(out):
                rc = daemon_main.main(["start"])
            self.assertEqual(rc, 0)
            self.assertFalse(spawn_mock.called)
            self.assertIn("already running", out.getvalue())

    def test_status_not_running_exits_nonzero(self) -> None:
        from ccnotify import daemon_main

        with tempfile.TemporaryDirectory() as td:
            out = io.StringIO()
            with patch.object(daemon_main, "default_endpoint", return_value=_endpoint(td)), redirect_stdout(out):
                rc = daemon_main.main(["status"])
            self.assertEqual(rc, 1)
            self.assertEqual(len(out.getvalue().strip().splitlines()), 1)
            self.assertIn("not running", out.getvalue())

    def test_status_running_shows_protocol_version(self) -> None:
        from ccnotify import daemon_main
        from ccnotify.contracts.v1 import PROTOCOL_VERSION, PingResult

        with tempfile.TemporaryDirectory() as td:
            out = io.StringIO()
            with patch.object(daemon_main, "default_endpoint", return_value=_endpoint(td)), patch.object(
                daemon_main, "ping", return_value=PingResult(version=PROTOCOL_VERSION, uptime=7)
            ), patch.object(daemon_main, "read_pid", return_value=4242), redirect_stdout(out):
                rc = daemon_main.main(["status"])
            self.assertEqual(rc, 0)
            line = out.getvalue().strip()
            self.assertIn(f"protocol={PROTOCOL_VERSION}", line)
            self.assertIn("uptime=7s", line)
            self.assertIn("pid=4242", line)

    def test_stop_when_not_running(self) -> None:
        from ccnotify import daemon_main

        with tempfile.TemporaryDirectory() as td:
            out = io.StringIO()
            with patch.object(daemon_main, "default_endpoint", return_value=_endpoint(td)), redirect_stdout(out):
                rc = daemon_main.main(["stop"])
            self.assertEqual(rc, 0)
            self.assertIn("not running", out.getvalue())


if __name__ == "__main__":
    unittest.main()
