"""Notification operation handlers for daemon."""

from __future__ import annotations

import logging
from typing import Callable, Optional

from ...contracts.v1 import DaemonResponse, NotifyRequest, NotifyResult, error_response
from ...errors import NotifyFailed

logger = logging.getLogger("ccnotify.daemon.notify")


def handle_notify(
    notify: NotifyRequest,
    *,
    post_notification: Callable[[NotifyRequest], int],
    new_notification_id: Callable[[], int],
) -> DaemonResponse:
    try:
        os_id = int(post_notification(notify) or 0)
    except NotifyFailed as e:
        logger.warning("notification backend failed: %s", e)
        return error_response(f"notification failed: {e}", code="notify_failed", type="notify")

    notification_id = os_id if os_id > 0 else new_notification_id()
    logger.info("notification posted: id=%s title=%r", notification_id, notify.title)
    return DaemonResponse(type="notify", notify=NotifyResult(success=True, notification_id=notification_id))


def try_handle_notify_op(
    type: str,
    notify: Optional[NotifyRequest],
    *,
    post_notification: Callable[[NotifyRequest], int],
    new_notification_id: Callable[[], int],
) -> Optional[DaemonResponse]:
    if type != "notify":
        return None
    if notify is None:
        return error_response("missing notify payload", code="invalid_request", type="notify")
    return handle_notify(notify, post_notification=post_notification, new_notification_id=new_notification_id)
