from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

SOCKET_NAME = "ccnotify.sock"
PID_NAME = "ccnotify.pid"

# Shared fallback directory. Kept literal (not tempfile.gettempdir()) so that
# every client and daemon resolves the same path regardless of TMPDIR.
SHARED_TMP_DIR = Path("/tmp")


@dataclass(frozen=True)
class Endpoint:
    socket_path: Path
    pid_file_path: Path

    @property
    def lock_path(self) -> Path:
        return self.socket_path.with_suffix(".lock")

    @property
    def log_path(self) -> Path:
        return self.socket_path.with_suffix(".log")


def resolve_endpoint(env: Optional[Mapping[str, str]] = None, uid: Optional[int] = None) -> Endpoint:
    """Return the daemon socket and PID file paths.

    Uses $XDG_RUNTIME_DIR when set (usually /run/user/<uid>); otherwise falls
    back to /tmp with the numeric user id embedded in both file names.
    """
    environ = os.environ if env is None else env
    runtime_dir = str(environ.get("XDG_RUNTIME_DIR") or "").strip()
    if runtime_dir:
        base = Path(runtime_dir)
        return Endpoint(socket_path=base / SOCKET_NAME, pid_file_path=base / PID_NAME)

    user_id = os.getuid() if uid is None else int(uid)
    return Endpoint(
        socket_path=SHARED_TMP_DIR / f"ccnotify-{user_id}.sock",
        pid_file_path=SHARED_TMP_DIR / f"ccnotify-{user_id}.pid",
    )


def config_dir(env: Optional[Mapping[str, str]] = None) -> Path:
    environ = os.environ if env is None else env
    base = str(environ.get("XDG_CONFIG_HOME") or "").strip()
    if base:
        return Path(base) / "ccnotify"
    return Path.home() / ".config" / "ccnotify"


def config_path(env: Optional[Mapping[str, str]] = None) -> Path:
    environ = os.environ if env is None else env
    override = str(environ.get("CCNOTIFY_CONFIG") or "").strip()
    if override:
        return Path(override).expanduser()
    return config_dir(environ) / "config.yaml"
