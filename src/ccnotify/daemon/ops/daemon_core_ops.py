"""Core daemon operation handlers (ping/stop)."""

from __future__ import annotations

from typing import Callable, Optional, Tuple

from ...contracts.v1 import DaemonResponse, PingResult


def _ping_result(version: str, uptime_provider: Callable[[], int]) -> PingResult:
    return PingResult(version=version, uptime=max(0, int(uptime_provider())))


def try_handle_daemon_core_op(
    type: str,
    *,
    version: str,
    uptime_provider: Callable[[], int],
) -> Optional[Tuple[DaemonResponse, bool]]:
    if type == "ping":
        return DaemonResponse(type="ping", ping=_ping_result(version, uptime_provider)), False

    if type == "stop":
        # Respond first; the connection worker raises the stop event afterwards.
        return DaemonResponse(type="stop", ping=_ping_result(version, uptime_provider)), True

    return None
