"""Daemon IPC contracts (newline-delimited JSON over a local AF_UNIX socket).

Compatibility rules:
- Unknown fields are ignored so older daemons accept newer, additive requests.
- `version` must match PROTOCOL_VERSION exactly; mismatched peers are rejected
  with an explicit `version_mismatch` error response.
"""

from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

PROTOCOL_VERSION = "1.0"

MessageType = Literal["notify", "ping", "stop"]


class FocusTarget(BaseModel):
    """Where a click on the notification should take the user.

    Resolved in the client process: the daemon's own environment does not
    describe the terminal the request came from.
    """

    terminal: str = ""
    multiplexer: str = ""
    target: str = ""
    activate_argv: List[str] = Field(default_factory=list)
    click_enabled: bool = True

    model_config = ConfigDict(extra="ignore")


class NotifyRequest(BaseModel):
    title: str
    body: str = ""
    focus_target: str = Field(default="", description="Terminal identifier (empty = auto-detect).")
    timeout: int = Field(default=0, description="Auto-dismiss hint in seconds; <= 0 means no hint.")
    focus: Optional[FocusTarget] = None

    model_config = ConfigDict(extra="ignore")

    @field_validator("title")
    @classmethod
    def _title_not_empty(cls, v: str) -> str:
        if not str(v or "").strip():
            raise ValueError("title must not be empty")
        return v


class NotifyResult(BaseModel):
    success: bool
    notification_id: int = 0

    model_config = ConfigDict(extra="ignore")


class PingResult(BaseModel):
    version: str
    uptime: int = Field(default=0, ge=0, description="Seconds since the daemon started.")

    model_config = ConfigDict(extra="ignore")


class DaemonRequest(BaseModel):
    type: MessageType
    version: str
    notify: Optional[NotifyRequest] = None

    model_config = ConfigDict(extra="ignore")

    @model_validator(mode="after")
    def _payload_matches_type(self) -> "DaemonRequest":
        if self.type == "notify":
            if self.notify is None:
                raise ValueError("missing notify payload")
        elif self.notify is not None:
            # ping/stop carry no payload; a stray one is dropped.
            self.notify = None
        return self


class DaemonResponse(BaseModel):
    type: Optional[MessageType] = None
    notify: Optional[NotifyResult] = None
    ping: Optional[PingResult] = None
    error: str = ""
    code: str = ""

    model_config = ConfigDict(extra="ignore")

    @model_validator(mode="after")
    def _exactly_one_outcome(self) -> "DaemonResponse":
        has_payload = self.notify is not None or self.ping is not None
        has_error = bool(self.error)
        if has_payload and has_error:
            raise ValueError("response carries both a payload and an error")
        if not has_payload and not has_error:
            raise ValueError("response carries neither a payload nor an error")
        if self.notify is not None and self.ping is not None:
            raise ValueError("response carries more than one payload")
        return self

    @property
    def ok(self) -> bool:
        return not self.error


def new_request(type: MessageType, notify: Optional[NotifyRequest] = None) -> DaemonRequest:
    return DaemonRequest(type=type, version=PROTOCOL_VERSION, notify=notify)


def error_response(message: str, *, code: str = "error", type: Optional[MessageType] = None) -> DaemonResponse:
    return DaemonResponse(type=type, error=str(message or code or "error"), code=str(code or ""))
