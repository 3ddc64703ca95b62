"""Terminal multiplexer detection and click-target extraction.

Handlers are an ordered tuple; the first whose detect() is true wins and no
later handler is consulted, even if its target extraction fails. Detection
reads environment variables only.
"""

from __future__ import annotations

import logging
import os
import re
import shlex
from dataclasses import dataclass, field, replace
from typing import Callable, Dict, List, Mapping, Optional, Tuple

from ..errors import DetectionFailed, TargetUnavailable
from ..util.proc import CommandRunner, default_runner
from .terminal import detect_terminal_name

logger = logging.getLogger("ccnotify.multiplexer")

Env = Mapping[str, str]


@dataclass(frozen=True)
class MultiplexerTarget:
    name: str
    target: str
    activate_argv: Tuple[str, ...]
    terminal: str = ""
    session: str = ""

    @property
    def activate_command(self) -> str:
        return shlex.join(self.activate_argv)


@dataclass(frozen=True)
class MultiplexerHandler:
    name: str
    detect: Callable[[Env], bool]
    build_target: Callable[[Env, CommandRunner], MultiplexerTarget]
    binaries: Tuple[str, ...] = field(default_factory=tuple)


def _tool_path(runner: CommandRunner, name: str) -> str:
    # Click actions run from the daemon, whose PATH may differ; pin the binary.
    return runner.which(name) or name


# --- tmux ---


def is_tmux(env: Env) -> bool:
    return bool(env.get("TMUX"))


def tmux_socket_path(env: Env) -> str:
    """Socket path from $TMUX ("/tmp/tmux-1000/default,12345,0")."""
    raw = str(env.get("TMUX") or "")
    return raw.split(",", 1)[0] if raw else ""


def build_tmux_target(env: Env, runner: CommandRunner) -> MultiplexerTarget:
    pane = str(env.get("TMUX_PANE") or "").strip()
    if not pane:
        res = runner.run(["tmux", "display-message", "-p", "#{pane_id}"])
        if not res.ok:
            raise TargetUnavailable("tmux", res.describe())
        pane = res.stdout.strip()
    if not pane:
        raise TargetUnavailable("tmux", "empty pane id")

    argv: List[str] = [_tool_path(runner, "tmux")]
    sock = tmux_socket_path(env)
    if sock:
        argv.extend(["-S", sock])
    argv.extend(["select-window", "-t", pane, ";", "select-pane", "-t", pane])
    return MultiplexerTarget(name="tmux", target=pane, activate_argv=tuple(argv), session=sock)


# --- zellij ---


def is_zellij(env: Env) -> bool:
    return bool(env.get("ZELLIJ"))


_KDL_ATTR_CACHE: Dict[str, "re.Pattern[str]"] = {}


def extract_kdl_string_attr(line: str, key: str) -> str:
    """Value of key="value" on a KDL node line, or ""."""
    pat = _KDL_ATTR_CACHE.get(key)
    if pat is None:
        pat = re.compile(r'(?:^|\s)' + re.escape(key) + r'="((?:[^"\\]|\\.)*)"')
        _KDL_ATTR_CACHE[key] = pat
    m = pat.search(line)
    if not m:
        return ""
    return m.group(1).replace('\\"', '"').replace("\\\\", "\\")


def parse_active_tab_name(layout: str) -> str:
    """Name of the focused tab in `zellij action dump-layout` output."""
    for line in str(layout or "").splitlines():
        s = line.strip()
        if not s.startswith("tab "):
            continue
        if not re.search(r"(?:^|\s)focus=true(?:\s|$|\{)", s):
            continue
        name = extract_kdl_string_attr(s, "name")
        if name:
            return name
    return ""


def build_zellij_target(env: Env, runner: CommandRunner) -> MultiplexerTarget:
    session = str(env.get("ZELLIJ_SESSION_NAME") or "").strip()
    if not session:
        raise TargetUnavailable("zellij", "ZELLIJ_SESSION_NAME not set")
    zellij = _tool_path(runner, "zellij")
    res = runner.run([zellij, "action", "dump-layout"])
    if not res.ok:
        raise TargetUnavailable("zellij", res.describe())
    tab = parse_active_tab_name(res.stdout)
    if not tab:
        raise TargetUnavailable("zellij", "no focused tab in dump-layout output")
    return MultiplexerTarget(
        name="zellij",
        target=tab,
        activate_argv=(zellij, "-s", session, "action", "go-to-tab-name", tab),
        session=session,
    )


# --- wezterm ---


def is_wezterm(env: Env) -> bool:
    return bool(env.get("WEZTERM_PANE"))


def build_wezterm_target(env: Env, runner: CommandRunner) -> MultiplexerTarget:
    pane = str(env.get("WEZTERM_PANE") or "").strip()
    if not pane:
        raise TargetUnavailable("wezterm", "WEZTERM_PANE not set")
    sock = str(env.get("WEZTERM_UNIX_SOCKET") or "").strip()
    argv = [_tool_path(runner, "wezterm"), "cli", "activate-pane", "--pane-id", pane]
    if sock:
        argv.extend(["--unix-socket", sock])
    return MultiplexerTarget(name="wezterm", target=pane, activate_argv=tuple(argv), session=sock)


# --- kitty ---


def is_kitty(env: Env) -> bool:
    # KITTY_LISTEN_ON is only set when remote control is configured.
    return bool(env.get("KITTY_WINDOW_ID")) and bool(env.get("KITTY_LISTEN_ON"))


def build_kitty_target(env: Env, runner: CommandRunner) -> MultiplexerTarget:
    window_id = str(env.get("KITTY_WINDOW_ID") or "").strip()
    listen_on = str(env.get("KITTY_LISTEN_ON") or "").strip()
    if not window_id:
        raise TargetUnavailable("kitty", "KITTY_WINDOW_ID not set")
    if not listen_on:
        raise TargetUnavailable("kitty", "KITTY_LISTEN_ON not set")
    return MultiplexerTarget(
        name="kitty",
        target=window_id,
        activate_argv=(_tool_path(runner, "kitten"), "@", "--to", listen_on, "focus-window", "--match", f"id:{window_id}"),
        session=listen_on,
    )


MULTIPLEXER_HANDLERS: Tuple[MultiplexerHandler, ...] = (
    MultiplexerHandler("tmux", is_tmux, build_tmux_target, ("tmux",)),
    MultiplexerHandler("zellij", is_zellij, build_zellij_target, ("zellij",)),
    MultiplexerHandler("wezterm", is_wezterm, build_wezterm_target, ("wezterm",)),
    MultiplexerHandler("kitty", is_kitty, build_kitty_target, ("kitten",)),
)


def detect_multiplexer(
    env: Optional[Env] = None,
    *,
    handlers: Optional[Tuple[MultiplexerHandler, ...]] = None,
) -> Optional[MultiplexerHandler]:
    environ = os.environ if env is None else env
    for handler in MULTIPLEXER_HANDLERS if handlers is None else handlers:
        if handler.detect(environ):
            return handler
    return None


def resolve_target(
    env: Optional[Env] = None,
    *,
    runner: Optional[CommandRunner] = None,
    handlers: Optional[Tuple[MultiplexerHandler, ...]] = None,
) -> MultiplexerTarget:
    """Resolve the pane/tab the current process runs in.

    Raises:
        DetectionFailed: no handler detected a multiplexer.
        TargetUnavailable: the first detected handler could not build a target.
    """
    environ = os.environ if env is None else env
    handler = detect_multiplexer(environ, handlers=handlers)
    if handler is None:
        raise DetectionFailed("no terminal multiplexer detected")
    r = runner or default_runner()
    try:
        target = handler.build_target(environ, r)
    except TargetUnavailable:
        raise
    except Exception as e:
        raise TargetUnavailable(handler.name, f"{type(e).__name__}: {e}") from e
    logger.debug("multiplexer=%s target=%s", handler.name, target.target)
    if not target.terminal:
        target = replace(target, terminal=detect_terminal_name(environ))
    return target
