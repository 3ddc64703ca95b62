from __future__ import annotations

import fcntl
import os
from pathlib import Path
from typing import IO, Any


class LockUnavailableError(RuntimeError):
    pass


def acquire_lockfile(path: Path, *, blocking: bool = True) -> IO[Any]:
    """Take an exclusive flock on `path` and return the open handle.

    The lock lives as long as the handle; pass it to release_lockfile().
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd = os.open(str(path), os.O_RDWR | os.O_CREAT, 0o600)
    f = os.fdopen(fd, "r+")
    flags = fcntl.LOCK_EX
    if not blocking:
        flags |= fcntl.LOCK_NB
    try:
        fcntl.flock(f.fileno(), flags)
    except BlockingIOError as e:
        f.close()
        raise LockUnavailableError(str(path)) from e
    except OSError:
        f.close()
        raise
    return f


def release_lockfile(handle: Any) -> None:
    if handle is None:
        return
    try:
        fcntl.flock(handle.fileno(), fcntl.LOCK_UN)
    except (OSError, ValueError):
        pass
    try:
        handle.close()
    except OSError:
        pass
