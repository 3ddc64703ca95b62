"""Notification daemon: AF_UNIX socket server, one worker thread per connection."""

from __future__ import annotations

import functools
import logging
import os
import secrets
import signal
import socket
import threading
import time
from dataclasses import dataclass
from typing import Any, List, Optional, Tuple

from .. import __version__
from ..contracts.v1 import PROTOCOL_VERSION, DaemonRequest, DaemonResponse, FocusTarget, NotifyRequest, Settings
from ..errors import VersionMismatch
from ..kernel.focus_action import run_focus_action
from ..kernel.settings import load_settings
from ..kernel.terminal import detect_terminal_name
from ..notifier.desktop import ClickHandler, Notification, NotificationBackend, NotifySendBackend
from ..paths import Endpoint, resolve_endpoint
from ..util.file_lock import LockUnavailableError, acquire_lockfile, release_lockfile
from ..util.proc import CommandRunner
from .client import is_running
from .ops.socket_accept_ops import handle_incoming_connection
from .request_dispatch_ops import RequestDispatchDeps, dispatch_request, parse_request
from .serve_ops import (
    bind_server_socket,
    cleanup_after_stop,
    drain_workers,
    read_pid_file,
    start_connection_worker,
    write_pid,
)
from .socket_protocol_ops import dump_response as _dump_response
from .socket_protocol_ops import error as _error
from .socket_protocol_ops import recv_json_line as _recv_json_line
from .socket_protocol_ops import send_json as _send_json

logger = logging.getLogger("ccnotify.daemon.server")

ACCEPT_TIMEOUT_S = 1.0
DRAIN_TIMEOUT_S = 5.0
STALE_PING_TIMEOUT_S = 1.0


@dataclass(frozen=True)
class DaemonState:
    endpoint: Endpoint
    pid: int
    started_monotonic: float
    version: str
    settings: Settings

    def uptime(self) -> int:
        return max(0, int(time.monotonic() - self.started_monotonic))


def new_notification_id() -> int:
    """Random positive 31-bit id for backends that report none."""
    return secrets.randbelow(0x7FFFFFFF) + 1


def _focus_for(notify: NotifyRequest) -> FocusTarget:
    focus = notify.focus
    if focus is None:
        return FocusTarget(terminal=notify.focus_target or detect_terminal_name())
    if not focus.terminal:
        return focus.model_copy(update={"terminal": notify.focus_target or detect_terminal_name()})
    return focus


def _make_post_notification(state: DaemonState, backend: NotificationBackend, runner: CommandRunner):
    desktop = state.settings.desktop

    def _post(notify: NotifyRequest) -> int:
        n = Notification(
            title=notify.title,
            body=notify.body,
            app_name=desktop.app_name,
            icon=desktop.app_icon,
            timeout_s=max(0, int(notify.timeout)),
        )
        on_click: Optional[ClickHandler] = None
        if desktop.click_to_focus:
            focus = _focus_for(notify)
            if focus.click_enabled:
                # Bound per notification; handlers share no focus state.
                on_click = functools.partial(run_focus_action, focus, runner=runner)

        return backend.post(n, on_click=on_click)

    return _post


def _make_invalid_request_error(e: Exception) -> DaemonResponse:
    if isinstance(e, VersionMismatch):
        logger.warning("rejected request: %s", e)
        return _error("version_mismatch", str(e))
    return _error("invalid_request", f"invalid request: {e}")


def _request_dispatch_deps(
    state: DaemonState,
    backend: NotificationBackend,
    runner: CommandRunner,
) -> RequestDispatchDeps:
    return RequestDispatchDeps(
        version=state.version,
        uptime_provider=state.uptime,
        post_notification=_make_post_notification(state, backend, runner),
        new_notification_id=new_notification_id,
        error_factory=_error,
    )


def handle_request(req: DaemonRequest, *, deps: RequestDispatchDeps) -> Tuple[DaemonResponse, bool]:
    return dispatch_request(req, deps=deps)


def _remove_stale_endpoint(ep: Endpoint) -> None:
    for p in (ep.socket_path, ep.pid_file_path):
        try:
            p.unlink()
            logger.info("removed stale %s", p)
        except FileNotFoundError:
            pass


def serve_forever(
    endpoint: Optional[Endpoint] = None,
    settings: Optional[Settings] = None,
    backend: Optional[NotificationBackend] = None,
    *,
    stop_event: Optional[threading.Event] = None,
) -> int:
    ep = endpoint or resolve_endpoint()
    s = settings or load_settings()
    ep.socket_path.parent.mkdir(parents=True, exist_ok=True)

    # Held for the lifetime of the daemon process.
    try:
        lock_handle = acquire_lockfile(ep.lock_path, blocking=False)
    except LockUnavailableError:
        logger.info("another daemon holds %s; exiting", ep.lock_path)
        return 0

    if ep.socket_path.exists():
        if is_running(endpoint=ep, timeout_s=STALE_PING_TIMEOUT_S):
            logger.info("daemon already running at %s", ep.socket_path)
            release_lockfile(lock_handle)
            return 0
        _remove_stale_endpoint(ep)

    runner = CommandRunner(timeout_s=s.focus.command_timeout_seconds)
    b = backend or NotifySendBackend(runner=runner)
    state = DaemonState(
        endpoint=ep,
        pid=os.getpid(),
        started_monotonic=time.monotonic(),
        version=PROTOCOL_VERSION,
        settings=s,
    )
    deps = _request_dispatch_deps(state, b, runner)
    stop = stop_event or threading.Event()

    if threading.current_thread() is threading.main_thread():
        def _signal_handler(signum: int, frame: Any) -> None:
            logger.info("received signal %s; stopping", signum)
            stop.set()

        signal.signal(signal.SIGTERM, _signal_handler)
        signal.signal(signal.SIGINT, _signal_handler)

    deadline_s = s.daemon.connection_deadline_seconds
    idle_s = s.daemon.idle_timeout_seconds

    def _serve_connection(conn: Any) -> None:
        deadline = time.monotonic() + deadline_s
        try:
            should_exit = handle_incoming_connection(
                conn,
                recv_json_line=lambda c: _recv_json_line(c, deadline=deadline),
                parse_request=parse_request,
                make_invalid_request_error=_make_invalid_request_error,
                send_json=_send_json,
                dump_response=_dump_response,
                handle_request=lambda req: handle_request(req, deps=deps),
                logger=logger,
            )
        except Exception:
            logger.exception("connection worker failed")
            return
        if should_exit:
            logger.info("stop requested by client")
            stop.set()

    workers: List[threading.Thread] = []
    try:
        srv = bind_server_socket(sock_path=ep.socket_path)
    except OSError as e:
        logger.error("cannot bind %s: %s", ep.socket_path, e)
        release_lockfile(lock_handle)
        return 1

    with srv:
        srv.listen(16)
        srv.settimeout(ACCEPT_TIMEOUT_S)  # Allow periodic check of stop event
        write_pid(ep.pid_file_path, state.pid)
        logger.info(
            "listening on %s pid=%s protocol=%s version=%s", ep.socket_path, state.pid, state.version, __version__
        )

        last_activity = time.monotonic()
        while not stop.is_set():
            try:
                conn, _ = srv.accept()
            except socket.timeout:
                if idle_s > 0 and time.monotonic() - last_activity >= idle_s:
                    if not any(t.is_alive() for t in workers):
                        logger.info("idle for %.0fs; shutting down", idle_s)
                        break
                continue
            except OSError as e:
                if stop.is_set():
                    break
                logger.warning("accept failed: %s", e)
                continue
            last_activity = time.monotonic()
            start_connection_worker(conn, serve_connection=_serve_connection, workers=workers)

    drain_workers(workers, timeout_s=DRAIN_TIMEOUT_S)
    cleanup_after_stop(
        stop_event=stop,
        sock_path=ep.socket_path,
        pid_path=ep.pid_file_path,
        lock_path=ep.lock_path,
        release_lockfile=release_lockfile,
        lock_handle=lock_handle,
    )
    logger.info("stopped after %ss", state.uptime())
    return 0


def read_pid(endpoint: Optional[Endpoint] = None) -> int:
    ep = endpoint or resolve_endpoint()
    return read_pid_file(ep.pid_file_path)
