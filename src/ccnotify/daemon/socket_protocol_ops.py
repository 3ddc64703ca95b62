from __future__ import annotations

import json
import socket
import time
from typing import Any, Dict, Optional

from ..contracts.v1 import DaemonResponse, MessageType, error_response

MAX_LINE_BYTES = 1_000_000


class LineTooLong(ValueError):
    pass


def recv_json_line(conn: socket.socket, *, deadline: Optional[float] = None) -> Any:
    """Read one newline-terminated JSON document.

    `deadline` is a time.monotonic() value; socket.timeout propagates once it
    passes. Returns None when the peer closed before sending anything.
    Raises ValueError on undecodable input.
    """
    buf = b""
    while b"\n" not in buf:
        if deadline is not None:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise socket.timeout("request deadline exceeded")
            conn.settimeout(remaining)
        chunk = conn.recv(65536)
        if not chunk:
            break
        buf += chunk
        if len(buf) > MAX_LINE_BYTES:
            raise LineTooLong(f"request exceeds {MAX_LINE_BYTES} bytes")
    line = buf.split(b"\n", 1)[0].strip()
    if not line:
        return None
    return json.loads(line.decode("utf-8"))


def send_json(conn: socket.socket, obj: Dict[str, Any]) -> None:
    data = (json.dumps(obj, ensure_ascii=False) + "\n").encode("utf-8")
    conn.sendall(data)


def dump_response(resp: Any) -> Dict[str, Any]:
    if resp is None:
        return dump_response(error("internal_error", "invalid daemon response: None"))
    if isinstance(resp, DaemonResponse):
        out = resp.model_dump(exclude_none=True)
        if not out.get("error"):
            out.pop("error", None)
        if not out.get("code"):
            out.pop("code", None)
        return out
    if isinstance(resp, dict):
        return resp
    return dump_response(error("internal_error", f"invalid daemon response type: {type(resp).__name__}"))


def error(code: str, message: str, *, type: Optional[MessageType] = None) -> DaemonResponse:
    return error_response(message, code=code, type=type)
