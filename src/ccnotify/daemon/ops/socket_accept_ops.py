"""Socket accept-loop helpers for daemon."""

from __future__ import annotations

import logging
import socket
from typing import Any, Callable, Dict, Tuple

from ...contracts.v1 import DaemonResponse, error_response


def _close(conn: Any) -> None:
    try:
        conn.close()
    except OSError:
        pass


def _reply_and_close(
    conn: Any,
    resp: DaemonResponse,
    *,
    send_json: Callable[[Any, Dict[str, Any]], None],
    dump_response: Callable[[Any], Dict[str, Any]],
) -> None:
    try:
        send_json(conn, dump_response(resp))
    except OSError:
        pass
    finally:
        _close(conn)


def handle_incoming_connection(
    conn: Any,
    *,
    recv_json_line: Callable[[Any], Any],
    parse_request: Callable[[Any], Any],
    make_invalid_request_error: Callable[[Exception], DaemonResponse],
    send_json: Callable[[Any, Dict[str, Any]], None],
    dump_response: Callable[[Any], Dict[str, Any]],
    handle_request: Callable[[Any], Tuple[Any, bool]],
    logger: logging.Logger,
) -> bool:
    """Handle a single accepted daemon connection: one request, one response.

    Returns:
        should_exit flag requested by request handling.
    """
    try:
        raw = recv_json_line(conn)
    except socket.timeout:
        logger.debug("connection deadline expired before a full request arrived")
        _close(conn)
        return False
    except OSError as e:
        logger.debug("read failed: %s", e)
        _close(conn)
        return False
    except ValueError as e:
        _reply_and_close(conn, make_invalid_request_error(e), send_json=send_json, dump_response=dump_response)
        return False

    if raw is None:
        # Peer closed without sending anything.
        _close(conn)
        return False

    try:
        req = parse_request(raw)
    except Exception as e:
        _reply_and_close(conn, make_invalid_request_error(e), send_json=send_json, dump_response=dump_response)
        return False

    should_exit = False
    try:
        resp, should_exit = handle_request(req)
        try:
            send_json(conn, dump_response(resp))
        except (BrokenPipeError, ConnectionResetError, OSError):
            pass
    except Exception as e:
        logger.exception("Unexpected error in handle_request: %s", e)
        try:
            error_resp = error_response(f"internal error: {type(e).__name__}: {e}", code="internal_error")
            send_json(conn, dump_response(error_resp))
        except Exception:
            pass
    finally:
        _close(conn)

    return bool(should_exit)
