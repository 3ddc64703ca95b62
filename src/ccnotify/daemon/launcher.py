"""Start the daemon on demand from a client process."""

from __future__ import annotations

import importlib.util
import logging
import os
import shutil
import subprocess
import sys
import time
from pathlib import Path
from typing import List, Mapping, Optional

from ..contracts.v1 import Settings
from ..errors import LaunchFailed
from ..paths import Endpoint, resolve_endpoint
from .client import is_running

logger = logging.getLogger("ccnotify.daemon.launcher")

DAEMON_FLAG = "--daemon"


def _module_command() -> Optional[List[str]]:
    exe = sys.executable
    if not exe or getattr(sys, "frozen", False) or not os.access(exe, os.X_OK):
        return None
    if importlib.util.find_spec("ccnotify") is None:
        return None
    return [exe, "-m", "ccnotify"]


def find_daemon_command(env: Optional[Mapping[str, str]] = None) -> List[str]:
    """Command that runs ccnotify, without the daemon flag.

    Search order: the plugin's bundled binary under $CLAUDE_PLUGIN_ROOT, this
    interpreter's `-m ccnotify`, then `ccnotify` on PATH. The interpreter step is
    skipped for frozen or embedded hosts where `-m` cannot run the package.
    """
    environ = os.environ if env is None else env
    plugin_root = str(environ.get("CLAUDE_PLUGIN_ROOT") or "").strip()
    if plugin_root:
        candidate = Path(plugin_root) / "bin" / "ccnotify"
        if candidate.is_file() and os.access(candidate, os.X_OK):
            return [str(candidate)]
    module_cmd = _module_command()
    if module_cmd:
        return module_cmd
    found = shutil.which("ccnotify", path=environ.get("PATH"))
    if found:
        return [found]
    raise LaunchFailed("ccnotify executable not found (CLAUDE_PLUGIN_ROOT, python -m ccnotify, PATH)")


def spawn_daemon(command: List[str]) -> int:
    """Start the daemon detached from this process; returns its pid."""
    argv = list(command) + [DAEMON_FLAG]
    try:
        proc = subprocess.Popen(
            argv,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            start_new_session=True,
            close_fds=True,
        )
    except OSError as e:
        raise LaunchFailed(f"failed to spawn {argv[0]}: {e}") from e
    logger.info("spawned daemon pid=%s argv=%s", proc.pid, argv)
    return int(proc.pid)


def wait_until_running(
    endpoint: Endpoint,
    *,
    timeout_s: float = 5.0,
    poll_interval_s: float = 0.1,
) -> bool:
    deadline = time.monotonic() + float(timeout_s)
    while True:
        if is_running(endpoint=endpoint, timeout_s=max(poll_interval_s, 0.5)):
            return True
        if time.monotonic() >= deadline:
            return False
        time.sleep(poll_interval_s)


def launch_daemon(
    *,
    endpoint: Optional[Endpoint] = None,
    settings: Optional[Settings] = None,
    env: Optional[Mapping[str, str]] = None,
) -> int:
    """Spawn the daemon and wait for it to answer a ping; returns the spawned pid."""
    ep = endpoint or resolve_endpoint(env)
    s = settings or Settings()
    pid = spawn_daemon(find_daemon_command(env))
    wait_s = s.daemon.startup_wait_seconds
    if not wait_until_running(ep, timeout_s=wait_s, poll_interval_s=s.daemon.poll_interval_seconds):
        raise LaunchFailed(f"daemon pid={pid} not ready within {wait_s:g}s at {ep.socket_path}")
    return pid


def ensure_running(
    *,
    endpoint: Optional[Endpoint] = None,
    settings: Optional[Settings] = None,
    env: Optional[Mapping[str, str]] = None,
) -> bool:
    """True once a daemon answers; False means the caller should deliver directly."""
    ep = endpoint or resolve_endpoint(env)
    if is_running(endpoint=ep):
        return True
    try:
        launch_daemon(endpoint=ep, settings=settings, env=env)
    except LaunchFailed as e:
        logger.warning("daemon launch failed: %s", e)
        return False
    return True
