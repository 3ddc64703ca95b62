from __future__ import annotations

import logging
import os
import socket
import threading
import time
from pathlib import Path
from typing import Any, Callable, List

logger = logging.getLogger("ccnotify.daemon.serve")


def bind_server_socket(*, sock_path: Path) -> socket.socket:
    """Bind a fresh AF_UNIX listener at `sock_path`, readable only by the owner."""
    af_unix = getattr(socket, "AF_UNIX", None)
    assert af_unix is not None
    sock_path.parent.mkdir(parents=True, exist_ok=True)
    try:
        sock_path.unlink()
    except FileNotFoundError:
        pass
    s = socket.socket(af_unix, socket.SOCK_STREAM)
    try:
        s.bind(str(sock_path))
        os.chmod(sock_path, 0o600)
    except OSError:
        s.close()
        raise
    return s


def write_pid(pid_path: Path, pid: int) -> None:
    pid_path.parent.mkdir(parents=True, exist_ok=True)
    tmp = pid_path.with_name(pid_path.name + ".tmp")
    fd = os.open(str(tmp), os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
    with os.fdopen(fd, "w", encoding="utf-8") as f:
        f.write(f"{int(pid)}\n")
    os.replace(tmp, pid_path)


def read_pid_file(pid_path: Path) -> int:
    try:
        txt = pid_path.read_text(encoding="utf-8").strip()
    except OSError:
        return 0
    return int(txt) if txt.isdigit() else 0


def pid_alive(pid: int) -> bool:
    if pid <= 0:
        return False
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        return True
    except OSError:
        return False
    return True


def start_connection_worker(
    conn: Any,
    *,
    serve_connection: Callable[[Any], None],
    workers: List[threading.Thread],
) -> threading.Thread:
    # Drop finished workers so the list stays bounded by in-flight connections.
    workers[:] = [t for t in workers if t.is_alive()]
    t = threading.Thread(target=serve_connection, args=(conn,), name="ccnotify-conn", daemon=True)
    t.start()
    workers.append(t)
    return t


def drain_workers(workers: List[threading.Thread], *, timeout_s: float = 5.0) -> int:
    """Join in-flight workers within one shared budget; returns how many are still running."""
    deadline = time.monotonic() + float(timeout_s)
    for t in list(workers):
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            break
        t.join(remaining)
    left = sum(1 for t in workers if t.is_alive())
    if left:
        logger.warning("%d connection worker(s) still running after %.1fs drain", left, timeout_s)
    return left


def _unlink(path: Path) -> None:
    try:
        path.unlink()
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning("failed to remove %s: %s", path, e)


def cleanup_after_stop(
    *,
    stop_event: threading.Event,
    sock_path: Path,
    pid_path: Path,
    lock_path: Path,
    release_lockfile: Callable[[Any], Any],
    lock_handle: Any,
) -> None:
    stop_event.set()
    _unlink(sock_path)
    _unlink(pid_path)
    # Removed while the lock is still held.
    _unlink(lock_path)
    release_lockfile(lock_handle)
