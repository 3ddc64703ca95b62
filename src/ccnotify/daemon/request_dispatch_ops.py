"""Daemon request dispatch orchestration."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Tuple

from ..contracts.v1 import PROTOCOL_VERSION, DaemonRequest, DaemonResponse, NotifyRequest
from ..errors import VersionMismatch
from .ops.daemon_core_ops import try_handle_daemon_core_op
from .ops.notify_ops import try_handle_notify_op


@dataclass(frozen=True)
class RequestDispatchDeps:
    version: str
    uptime_provider: Callable[[], int]
    post_notification: Callable[[NotifyRequest], int]
    new_notification_id: Callable[[], int]
    error_factory: Callable[[str, str], DaemonResponse]


def parse_request(raw: Any) -> DaemonRequest:
    """Validate a decoded request line.

    The protocol version is checked on the raw envelope first so that a peer
    speaking another version always gets a version error, even when its
    payload shape no longer validates here.
    """
    if not isinstance(raw, dict):
        raise ValueError(f"request must be a JSON object, got {type(raw).__name__}")
    client_version = str(raw.get("version") or "")
    if client_version != PROTOCOL_VERSION:
        raise VersionMismatch(client_version, PROTOCOL_VERSION)
    return DaemonRequest.model_validate(raw)


def dispatch_request(
    req: DaemonRequest,
    *,
    deps: RequestDispatchDeps,
) -> Tuple[DaemonResponse, bool]:
    msg_type = str(req.type or "").strip()

    daemon_core_resp = try_handle_daemon_core_op(
        msg_type,
        version=deps.version,
        uptime_provider=deps.uptime_provider,
    )
    if daemon_core_resp is not None:
        return daemon_core_resp

    notify_resp = try_handle_notify_op(
        msg_type,
        req.notify,
        post_notification=deps.post_notification,
        new_notification_id=deps.new_notification_id,
    )
    if notify_resp is not None:
        return notify_resp, False

    return deps.error_factory("unknown_type", f"unknown message type: {msg_type}"), False
