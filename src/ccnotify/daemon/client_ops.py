"""Daemon IPC client helpers."""

from __future__ import annotations

import json
import socket
import time
from typing import Any, Dict

from ..errors import ConnectFailed, EndpointMissing, ProtocolError, RequestTimeout, TransportError
from ..paths import Endpoint
from .socket_protocol_ops import recv_json_line


def send_daemon_request(
    endpoint: Endpoint,
    request_payload: Dict[str, Any],
    *,
    connect_timeout_s: float,
    timeout_s: float,
) -> Dict[str, Any]:
    """One request/response exchange on a fresh connection.

    `connect_timeout_s` bounds the connect; `timeout_s` bounds the whole
    exchange, including the connect.
    """
    af_unix = getattr(socket, "AF_UNIX", None)
    if af_unix is None:
        raise ConnectFailed("AF_UNIX not supported")
    path = endpoint.socket_path
    if not path.exists():
        raise EndpointMissing(f"daemon socket not found: {path}")

    deadline = time.monotonic() + float(timeout_s)
    sock = socket.socket(af_unix, socket.SOCK_STREAM)
    try:
        sock.settimeout(min(float(connect_timeout_s), float(timeout_s)))
        try:
            sock.connect(str(path))
        except FileNotFoundError as e:
            raise EndpointMissing(f"daemon socket not found: {path}") from e
        except socket.timeout as e:
            raise ConnectFailed(f"connect to {path} timed out") from e
        except OSError as e:
            raise ConnectFailed(f"connect to {path} failed: {e}") from e

        try:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise socket.timeout("request deadline exceeded")
            sock.settimeout(remaining)
            sock.sendall((json.dumps(request_payload, ensure_ascii=False) + "\n").encode("utf-8"))
            obj = recv_json_line(sock, deadline=deadline)
        except socket.timeout as e:
            raise RequestTimeout(f"no response from daemon within {float(timeout_s):g}s") from e
        except ValueError as e:
            raise ProtocolError(f"undecodable daemon response: {e}") from e
        except OSError as e:
            raise TransportError(f"daemon connection failed: {e}") from e
    finally:
        try:
            sock.close()
        except OSError:
            pass

    if obj is None:
        raise ProtocolError("daemon closed the connection without a response")
    if not isinstance(obj, dict):
        raise ProtocolError(f"daemon response is not an object: {type(obj).__name__}")
    return obj
