"""Typed client for the notification daemon."""

from __future__ import annotations

import logging
import re
from typing import Optional

from pydantic import ValidationError

from ..contracts.v1 import (
    PROTOCOL_VERSION,
    DaemonRequest,
    DaemonResponse,
    FocusTarget,
    NotifyRequest,
    NotifyResult,
    PingResult,
    Settings,
    new_request,
)
from ..errors import CcnotifyError, DaemonReportedError, ProtocolError, VersionMismatch
from ..paths import Endpoint, resolve_endpoint
from .client_ops import send_daemon_request

logger = logging.getLogger("ccnotify.daemon.client")

_DAEMON_VERSION_RE = re.compile(r"daemon=(\S+)")


def _timeouts(settings: Optional[Settings]) -> tuple:
    s = settings or Settings()
    return s.daemon.connect_timeout_seconds, s.daemon.request_timeout_seconds


def call_daemon(
    req: DaemonRequest,
    *,
    endpoint: Optional[Endpoint] = None,
    connect_timeout_s: float = 5.0,
    timeout_s: float = 30.0,
) -> DaemonResponse:
    """Send one request; return the success response or raise."""
    ep = endpoint or resolve_endpoint()
    obj = send_daemon_request(
        ep,
        req.model_dump(exclude_none=True),
        connect_timeout_s=connect_timeout_s,
        timeout_s=timeout_s,
    )
    if str(obj.get("code") or "") == "version_mismatch":
        m = _DAEMON_VERSION_RE.search(str(obj.get("error") or ""))
        raise VersionMismatch(PROTOCOL_VERSION, m.group(1) if m else "")
    try:
        resp = DaemonResponse.model_validate(obj)
    except ValidationError as e:
        raise ProtocolError(f"malformed daemon response: {e.errors()[:1]}") from e
    if resp.error:
        raise DaemonReportedError(resp.error, code=resp.code)
    return resp


def send_notification(
    title: str,
    body: str = "",
    *,
    focus_target: str = "",
    timeout: int = 0,
    focus: Optional[FocusTarget] = None,
    endpoint: Optional[Endpoint] = None,
    settings: Optional[Settings] = None,
) -> NotifyResult:
    connect_s, request_s = _timeouts(settings)
    notify = NotifyRequest(title=title, body=body, focus_target=focus_target, timeout=timeout, focus=focus)
    resp = call_daemon(
        new_request("notify", notify),
        endpoint=endpoint,
        connect_timeout_s=connect_s,
        timeout_s=request_s,
    )
    if resp.notify is None:
        raise ProtocolError("notify response carries no notify result")
    return resp.notify


def ping(*, endpoint: Optional[Endpoint] = None, settings: Optional[Settings] = None) -> PingResult:
    connect_s, request_s = _timeouts(settings)
    resp = call_daemon(new_request("ping"), endpoint=endpoint, connect_timeout_s=connect_s, timeout_s=request_s)
    if resp.ping is None:
        raise ProtocolError("ping response carries no ping result")
    return resp.ping


def stop(*, endpoint: Optional[Endpoint] = None, settings: Optional[Settings] = None) -> PingResult:
    """Ask the daemon to drain and exit; returns its last ping snapshot."""
    connect_s, request_s = _timeouts(settings)
    resp = call_daemon(new_request("stop"), endpoint=endpoint, connect_timeout_s=connect_s, timeout_s=request_s)
    if resp.ping is None:
        raise ProtocolError("stop response carries no ping result")
    return resp.ping


def is_running(*, endpoint: Optional[Endpoint] = None, timeout_s: float = 1.0) -> bool:
    """True only if the daemon answers a ping in time; file existence is not enough."""
    try:
        call_daemon(new_request("ping"), endpoint=endpoint, connect_timeout_s=timeout_s, timeout_s=timeout_s)
    except CcnotifyError as e:
        logger.debug("daemon ping failed: %s", e)
        return False
    return True
