"""`ccnotify daemon start|stop|status`: one-line diagnostics, non-zero on failure."""

from __future__ import annotations

import argparse
import time
from typing import List, Optional

from .daemon.client import is_running, ping, stop
from .daemon.launcher import find_daemon_command, spawn_daemon, wait_until_running
from .daemon.serve_ops import pid_alive
from .daemon.server import read_pid
from .errors import CcnotifyError
from .kernel.settings import load_settings
from .paths import Endpoint, resolve_endpoint


def default_endpoint() -> Endpoint:
    return resolve_endpoint()


def _spawn_daemon() -> int:
    return spawn_daemon(find_daemon_command())


def _cleanup_stale(ep: Endpoint) -> None:
    for p in (ep.socket_path, ep.pid_file_path):
        try:
            p.unlink()
        except FileNotFoundError:
            pass


def cmd_start(ep: Endpoint) -> int:
    if is_running(endpoint=ep):
        print(f"ccnotify: daemon already running pid={read_pid(ep) or '?'}")
        return 0

    pid = read_pid(ep)
    if pid > 0:
        if pid_alive(pid):
            print(f"ccnotify: pid={pid} alive but not answering on {ep.socket_path}; refusing to spawn duplicate daemon")
            return 1
        print(f"ccnotify: pid={pid} is gone, cleaning up stale state")
        _cleanup_stale(ep)

    settings = load_settings()
    try:
        new_pid = _spawn_daemon()
    except CcnotifyError as e:
        print(f"ccnotify: {e}")
        return 1
    if not wait_until_running(
        ep,
        timeout_s=settings.daemon.startup_wait_seconds,
        poll_interval_s=settings.daemon.poll_interval_seconds,
    ):
        print(f"ccnotify: daemon pid={new_pid} not ready within {settings.daemon.startup_wait_seconds:g}s")
        return 1
    print(f"ccnotify: daemon started pid={new_pid}")
    return 0


def cmd_stop(ep: Endpoint) -> int:
    if not is_running(endpoint=ep):
        print("ccnotify: daemon not running")
        return 0
    try:
        last = stop(endpoint=ep)
    except CcnotifyError as e:
        print(f"ccnotify: stop failed: {e}")
        return 1
    deadline = time.monotonic() + 5.0
    while time.monotonic() < deadline:
        if not ep.socket_path.exists():
            print(f"ccnotify: daemon stopped (uptime {last.uptime}s)")
            return 0
        time.sleep(0.1)
    print(f"ccnotify: daemon acknowledged stop but {ep.socket_path} still exists")
    return 1


def cmd_status(ep: Endpoint) -> int:
    try:
        info = ping(endpoint=ep)
    except CcnotifyError as e:
        pid = read_pid(ep)
        hint = f" (pid file says {pid}, process {'alive' if pid_alive(pid) else 'gone'})" if pid > 0 else ""
        print(f"ccnotify: not running: {e}{hint}")
        return 1
    print(f"ccnotify: running pid={read_pid(ep) or '?'} protocol={info.version} uptime={info.uptime}s socket={ep.socket_path}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="ccnotify daemon", description="Manage the ccnotify daemon")
    parser.add_argument("action", choices=["start", "stop", "status"])
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    ep = default_endpoint()
    if args.action == "start":
        return cmd_start(ep)
    if args.action == "stop":
        return cmd_stop(ep)
    return cmd_status(ep)
