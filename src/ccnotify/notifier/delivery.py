"""Client-side delivery: daemon first, direct notification as the fallback."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional

from ..contracts.v1 import Settings
from ..daemon.client import send_notification
from ..daemon.launcher import ensure_running
from ..errors import CcnotifyError, NotifyFailed
from ..kernel.focus_action import build_focus_target
from ..paths import Endpoint, resolve_endpoint
from ..util.proc import CommandRunner
from .desktop import Notification, NotificationBackend, NotifySendBackend

logger = logging.getLogger("ccnotify.delivery")


@dataclass(frozen=True)
class DeliveryResult:
    via: str  # "daemon" | "direct" | "disabled"
    notification_id: int = 0


def deliver(
    title: str,
    body: str = "",
    settings: Optional[Settings] = None,
    *,
    endpoint: Optional[Endpoint] = None,
    backend: Optional[NotificationBackend] = None,
    env: Optional[Mapping[str, str]] = None,
    use_daemon: bool = True,
) -> DeliveryResult:
    """Show a notification for the terminal this process runs in.

    Goes through the daemon (so a click can focus the terminal) and degrades
    to a plain notification without a click action when the daemon path
    fails. Raises NotifyFailed only when the direct post fails too.
    """
    s = settings or Settings()
    environ = os.environ if env is None else env
    if not s.desktop.enabled:
        logger.info("desktop notifications disabled in config; dropping %r", title)
        return DeliveryResult(via="disabled")

    ep = endpoint or resolve_endpoint(environ)
    runner = CommandRunner(timeout_s=s.focus.command_timeout_seconds)

    if use_daemon:
        focus = None
        if s.desktop.click_to_focus:
            focus = build_focus_target(terminal_override=s.desktop.terminal, env=environ, runner=runner)
        try:
            if ensure_running(endpoint=ep, settings=s, env=environ):
                res = send_notification(
                    title,
                    body,
                    focus_target=focus.terminal if focus is not None else s.desktop.terminal,
                    timeout=s.desktop.timeout_seconds,
                    focus=focus,
                    endpoint=ep,
                    settings=s,
                )
                return DeliveryResult(via="daemon", notification_id=res.notification_id)
            logger.warning("daemon unavailable; posting notification directly")
        except CcnotifyError as e:
            logger.warning("daemon delivery failed (%s); posting notification directly", e)

    b = backend or NotifySendBackend(runner=runner)
    n = Notification(
        title=title,
        body=body,
        app_name=s.desktop.app_name,
        icon=s.desktop.app_icon,
        timeout_s=s.desktop.timeout_seconds,
    )
    try:
        notification_id = b.post(n)
    except NotifyFailed:
        logger.error("direct notification failed for %r", title)
        raise
    return DeliveryResult(via="direct", notification_id=notification_id)
