"""Click-to-focus: what runs when the user clicks a notification."""

from __future__ import annotations

import logging
import os
from typing import Mapping, Optional, Sequence

from ..contracts.v1 import FocusTarget
from ..errors import DetectionFailed, FocusExhausted, TargetUnavailable
from ..util.proc import CommandRunner, default_runner
from .focus import FocusMethod, try_focus
from .multiplexer import resolve_target
from .terminal import detect_terminal_name

logger = logging.getLogger("ccnotify.focus_action")


def build_focus_target(
    *,
    terminal_override: str = "",
    env: Optional[Mapping[str, str]] = None,
    runner: Optional[CommandRunner] = None,
) -> FocusTarget:
    """Capture the click destination for a notification sent from this process.

    A detected multiplexer whose target cannot be extracted disables the click
    action instead of degrading to "focus the terminal window", which would
    land in the wrong pane.
    """
    environ = os.environ if env is None else env
    terminal = str(terminal_override or "").strip() or detect_terminal_name(environ)
    try:
        mux = resolve_target(environ, runner=runner)
    except DetectionFailed:
        return FocusTarget(terminal=terminal)
    except TargetUnavailable as e:
        logger.warning("click-to-focus disabled: %s", e)
        return FocusTarget(terminal=terminal, multiplexer=e.multiplexer, click_enabled=False)
    return FocusTarget(
        terminal=terminal,
        multiplexer=mux.name,
        target=mux.target,
        activate_argv=list(mux.activate_argv),
    )


def run_focus_action(
    focus: FocusTarget,
    *,
    runner: Optional[CommandRunner] = None,
    methods: Optional[Sequence[FocusMethod]] = None,
) -> bool:
    """Switch the multiplexer pane (if any), then raise the terminal window.

    Never raises: a failed focus must not affect the notification itself.
    """
    if not focus.click_enabled:
        logger.info("click action disabled for this notification (multiplexer=%s)", focus.multiplexer or "-")
        return False
    r = runner or default_runner()

    if focus.activate_argv:
        res = r.run(focus.activate_argv)
        if res.ok:
            logger.info("switched %s to %s", focus.multiplexer or "multiplexer", focus.target or "?")
        else:
            logger.warning("%s switch failed: %s", focus.multiplexer or "multiplexer", res.describe())

    terminal = focus.terminal or "Terminal"
    try:
        try_focus(terminal, methods=methods, runner=r)
    except FocusExhausted as e:
        logger.warning("focus failed for %r: %s", terminal, e)
        return False
    return True
