"""Desktop notification backend (freedesktop notifications via notify-send).

The daemon only needs two things from the OS: post a notification and hear
about a click on its default action. `notify-send --print-id --wait --action`
(libnotify >= 0.7.9) gives both: the id on the first stdout line, then the
invoked action key when the user clicks.
"""

from __future__ import annotations

import logging
import selectors
import subprocess
import threading
from dataclasses import dataclass
from typing import Callable, List, Optional, Protocol

from ..errors import NotifyFailed
from ..util.proc import CommandRunner, default_runner

logger = logging.getLogger("ccnotify.notifier")

ClickHandler = Callable[[], None]

DEFAULT_ACTION_KEY = "default"
DEFAULT_ACTION_LABEL = "Focus Terminal"


@dataclass(frozen=True)
class Notification:
    title: str
    body: str = ""
    app_name: str = "ccnotify"
    icon: str = ""
    timeout_s: int = 0


class NotificationBackend(Protocol):
    def post(self, n: Notification, *, on_click: Optional[ClickHandler] = None) -> int:
        """Show `n`; return the OS notification id (0 if unknown)."""
        ...


def _parse_id(line: str) -> int:
    s = str(line or "").strip()
    return int(s) if s.isdigit() else 0


class NotifySendBackend:
    def __init__(
        self,
        *,
        runner: Optional[CommandRunner] = None,
        binary: str = "notify-send",
        ack_timeout_s: float = 10.0,
    ) -> None:
        self.runner = runner or default_runner()
        self.binary = binary
        self.ack_timeout_s = float(ack_timeout_s)

    def _base_argv(self, n: Notification) -> List[str]:
        argv = [self.binary, f"--app-name={n.app_name or 'ccnotify'}"]
        if n.icon:
            argv.append(f"--icon={n.icon}")
        if n.timeout_s > 0:
            argv.append(f"--expire-time={int(n.timeout_s) * 1000}")
        return argv

    def post(self, n: Notification, *, on_click: Optional[ClickHandler] = None) -> int:
        if on_click is None:
            return self._post_plain(n)
        return self._post_with_action(n, on_click)

    def _post_plain(self, n: Notification) -> int:
        argv = self._base_argv(n) + ["--print-id", "--", n.title, n.body]
        res = self.runner.run(argv, timeout_s=self.ack_timeout_s)
        if res.ok:
            return _parse_id(res.stdout.splitlines()[0] if res.stdout else "")
        if res.not_found:
            raise NotifyFailed(f"{self.binary} not installed")
        # Older libnotify has no --print-id.
        res = self.runner.run(self._base_argv(n) + ["--", n.title, n.body], timeout_s=self.ack_timeout_s)
        if not res.ok:
            raise NotifyFailed(res.describe())
        return 0

    def _post_with_action(self, n: Notification, on_click: ClickHandler) -> int:
        argv = self._base_argv(n) + [
            "--print-id",
            "--wait",
            f"--action={DEFAULT_ACTION_KEY}={DEFAULT_ACTION_LABEL}",
            "--",
            n.title,
            n.body,
        ]
        try:
            proc = subprocess.Popen(
                argv,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                start_new_session=True,
            )
        except FileNotFoundError as e:
            raise NotifyFailed(f"{self.binary} not installed") from e
        except OSError as e:
            raise NotifyFailed(f"failed to run {self.binary}: {e}") from e

        assert proc.stdout is not None
        sel = selectors.DefaultSelector()
        try:
            sel.register(proc.stdout, selectors.EVENT_READ)
            ready = sel.select(timeout=self.ack_timeout_s)
        finally:
            sel.close()
        if not ready:
            proc.kill()
            proc.wait()
            raise NotifyFailed(f"{self.binary} did not acknowledge within {self.ack_timeout_s:g}s")

        first = proc.stdout.readline()
        if not first:
            proc.wait()
            err = (proc.stderr.read() if proc.stderr else "").strip()
            if "--action" in err or "Unknown option" in err or "--wait" in err:
                logger.warning("%s lacks --wait/--action support; click-to-focus unavailable", self.binary)
                return self._post_plain(n)
            raise NotifyFailed(err or f"{self.binary} exited {proc.returncode}")

        notification_id = _parse_id(first)
        threading.Thread(
            target=_watch_actions,
            args=(proc, notification_id, on_click),
            daemon=True,
            name=f"ccnotify-action-{notification_id}",
        ).start()
        return notification_id


def _watch_actions(proc: "subprocess.Popen[str]", notification_id: int, on_click: ClickHandler) -> None:
    """Block until the notification closes; fire on_click for the default action."""
    assert proc.stdout is not None
    try:
        for line in proc.stdout:
            key = line.strip()
            if not key:
                continue
            logger.info("action invoked: id=%s action=%s", notification_id, key)
            if key != DEFAULT_ACTION_KEY:
                continue
            try:
                on_click()
            except Exception:
                logger.exception("click handler failed for notification %s", notification_id)
    finally:
        try:
            proc.wait(timeout=1.0)
        except subprocess.TimeoutExpired:
            proc.kill()
            proc.wait()
        for stream in (proc.stdout, proc.stderr):
            if stream is not None:
                stream.close()
