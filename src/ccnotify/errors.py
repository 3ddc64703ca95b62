"""Error taxonomy shared by the client, launcher, daemon and focus engine."""

from __future__ import annotations

from typing import Optional


class CcnotifyError(Exception):
    """Base class for every error raised by ccnotify."""


# ---------------------------------------------------------------------------
# Daemon transport / protocol
# ---------------------------------------------------------------------------


class TransportError(CcnotifyError):
    """Connect, timeout or socket I/O failure talking to the daemon."""


class ConnectFailed(TransportError):
    pass


class RequestTimeout(TransportError):
    pass


class ProtocolError(CcnotifyError):
    """Undecodable message, malformed payload or incompatible peer."""


class VersionMismatch(ProtocolError):
    def __init__(self, client_version: str, daemon_version: str) -> None:
        self.client_version = str(client_version or "")
        self.daemon_version = str(daemon_version or "")
        super().__init__(
            f"protocol version mismatch: client={self.client_version or '?'} daemon={self.daemon_version or '?'}"
            " (restart the daemon after upgrading)"
        )


class DaemonUnavailable(CcnotifyError):
    """No daemon endpoint, or the daemon does not answer a ping."""


class EndpointMissing(DaemonUnavailable):
    pass


class DaemonReportedError(CcnotifyError):
    """The daemon answered with an error response."""

    def __init__(self, message: str, *, code: str = "") -> None:
        self.code = str(code or "")
        super().__init__(message)


class LaunchFailed(CcnotifyError):
    """Daemon binary not found, spawn failed, or readiness never reached."""


# ---------------------------------------------------------------------------
# Multiplexer resolution
# ---------------------------------------------------------------------------


class DetectionFailed(CcnotifyError):
    """No terminal multiplexer owns the current session."""


class TargetUnavailable(CcnotifyError):
    """A multiplexer was detected but its pane/tab target could not be extracted."""

    def __init__(self, multiplexer: str, reason: str) -> None:
        self.multiplexer = multiplexer
        self.reason = reason
        super().__init__(f"{multiplexer} detected but target unavailable: {reason}")


# ---------------------------------------------------------------------------
# Window focus
# ---------------------------------------------------------------------------


class FocusMethodError(CcnotifyError):
    """A single focus method failed; the chain moves on to the next one."""


class ToolNotInstalled(FocusMethodError):
    def __init__(self, tool: str) -> None:
        self.tool = tool
        super().__init__(f"{tool} not installed")


class NoMatchingWindow(FocusMethodError):
    pass


class EvalBlocked(FocusMethodError):
    """GNOME Shell refused Eval (unsafe mode / development tools disabled)."""


class FocusExhausted(CcnotifyError):
    def __init__(self, last_error: Optional[BaseException], *, attempted: int = 0) -> None:
        self.last_error = last_error
        self.attempted = int(attempted)
        super().__init__(f"all focus methods failed, last error: {last_error}")


# ---------------------------------------------------------------------------
# Notification backend
# ---------------------------------------------------------------------------


class NotifyFailed(CcnotifyError):
    """The OS notification service rejected or never acknowledged a notification."""
