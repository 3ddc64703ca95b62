from .ipc import (
    PROTOCOL_VERSION,
    DaemonRequest,
    DaemonResponse,
    FocusTarget,
    MessageType,
    NotifyRequest,
    NotifyResult,
    PingResult,
    error_response,
    new_request,
)
from .settings import DaemonSettings, DesktopSettings, FocusSettings, Settings

__all__ = [
    "PROTOCOL_VERSION",
    "DaemonRequest",
    "DaemonResponse",
    "DaemonSettings",
    "DesktopSettings",
    "FocusSettings",
    "FocusTarget",
    "MessageType",
    "NotifyRequest",
    "NotifyResult",
    "PingResult",
    "Settings",
    "error_response",
    "new_request",
]
