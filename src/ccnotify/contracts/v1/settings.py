"""User settings contracts (loaded from config.yaml)."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR"]


class DesktopSettings(BaseModel):
    enabled: bool = True
    click_to_focus: bool = True
    app_name: str = "ccnotify"
    app_icon: str = ""
    timeout_seconds: int = Field(default=30, description="Auto-dismiss hint; <= 0 disables the hint.")
    terminal: str = Field(default="", description="Override the auto-detected terminal name.")

    model_config = ConfigDict(extra="ignore")


class DaemonSettings(BaseModel):
    connect_timeout_seconds: float = Field(default=5.0, gt=0)
    request_timeout_seconds: float = Field(default=30.0, gt=0)
    connection_deadline_seconds: float = Field(default=30.0, gt=0)
    idle_timeout_seconds: float = Field(default=300.0, ge=0, description="0 disables idle auto-shutdown.")
    startup_wait_seconds: float = Field(default=5.0, gt=0)
    poll_interval_seconds: float = Field(default=0.1, gt=0)

    model_config = ConfigDict(extra="ignore")


class FocusSettings(BaseModel):
    command_timeout_seconds: float = Field(default=5.0, gt=0)

    model_config = ConfigDict(extra="ignore")


class Settings(BaseModel):
    v: int = 1
    desktop: DesktopSettings = Field(default_factory=DesktopSettings)
    daemon: DaemonSettings = Field(default_factory=DaemonSettings)
    focus: FocusSettings = Field(default_factory=FocusSettings)
    log_level: LogLevel = "INFO"

    model_config = ConfigDict(extra="ignore")
