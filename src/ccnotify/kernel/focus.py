"""Window focus fallback chain for Linux desktops.

Each FocusMethod tries one technique (GNOME Shell extension or Eval over
D-Bus, a compositor CLI, or an X11 tool) to raise the window of a terminal.
try_focus() walks the chain in order and stops at the first success. A method
either succeeds or raises a FocusMethodError without touching window state.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from ..errors import (
    EvalBlocked,
    FocusExhausted,
    FocusMethodError,
    NoMatchingWindow,
    ToolNotInstalled,
)
from ..util.proc import CommandResult, CommandRunner, default_runner
from .terminal import (
    desktop_app_id,
    escape_js,
    kde_window_class,
    title_search_term,
    wayland_app_id,
    x11_window_class,
)

logger = logging.getLogger("ccnotify.focus")

ActivateFn = Callable[[str, CommandRunner], None]

GNOME_SHELL_DEST = "org.gnome.Shell"
AWBT_PATH = "/de/lucaswerkmeister/ActivateWindowByTitle"
AWBT_IFACE = "de.lucaswerkmeister.ActivateWindowByTitle"

EVAL_BLOCKED_HINT = (
    "Shell.Eval blocked (GNOME 41+ security): enable development tools / unsafe mode "
    "or install the activate-window-by-title extension"
)


@dataclass(frozen=True)
class FocusMethod:
    name: str
    activate: ActivateFn


def _require(runner: CommandRunner, tool: str) -> None:
    if not runner.which(tool):
        raise ToolNotInstalled(tool)


def _check(res: CommandResult, what: str) -> CommandResult:
    if res.not_found:
        raise ToolNotInstalled(res.argv[0] if res.argv else what)
    if not res.ok:
        raise FocusMethodError(f"{what}: {res.describe()}")
    return res


def _first_window_id(output: str) -> str:
    for line in str(output or "").splitlines():
        s = line.strip()
        if s:
            return s
    return ""


# --- GNOME Shell ---


def activate_window_by_title(terminal: str, runner: CommandRunner) -> None:
    """activate-window-by-title extension; works without unsafe mode (GNOME 42+)."""
    _require(runner, "busctl")
    term = title_search_term(terminal)
    res = runner.run(
        ["busctl", "--user", "call", GNOME_SHELL_DEST, AWBT_PATH, AWBT_IFACE, "activateBySubstring", "s", term]
    )
    if res.not_found:
        raise ToolNotInstalled("busctl")
    if not res.ok:
        out = res.output
        if "UnknownObject" in out or "UnknownMethod" in out or "ServiceUnknown" in out or "No such" in out:
            raise ToolNotInstalled("activate-window-by-title extension")
        raise FocusMethodError(f"activate-window-by-title: {res.describe()}")
    # Reply is "b true" / "b false".
    if res.stdout.strip().endswith("false"):
        raise NoMatchingWindow(f"no window with title containing {term!r}")


def _gnome_eval(runner: CommandRunner, js: str) -> str:
    _require(runner, "gdbus")
    res = runner.run(
        [
            "gdbus",
            "call",
            "--session",
            "--dest",
            GNOME_SHELL_DEST,
            "--object-path",
            "/org/gnome/Shell",
            "--method",
            "org.gnome.Shell.Eval",
            js,
        ]
    )
    _check(res, "gdbus Eval")
    return res.stdout


def _eval_succeeded(output: str, miss_marker: str, what: str) -> None:
    # Eval returns "(true, '...')" when allowed and "(false, '')" when blocked.
    out = str(output or "")
    if miss_marker in out:
        raise NoMatchingWindow(what)
    if "activated" in out:
        return
    if "false" in out:
        raise EvalBlocked(EVAL_BLOCKED_HINT)
    raise FocusMethodError(f"unexpected Shell.Eval reply: {out.strip()}")


def gnome_shell_eval_by_title(terminal: str, runner: CommandRunner) -> None:
    term = escape_js(title_search_term(terminal))
    js = (
        "(function() {"
        " let start = Date.now();"
        " for (let actor of global.get_window_actors()) {"
        "  let win = actor.get_meta_window(); let title = win.get_title() || '';"
        f"  if (title.indexOf('{term}') !== -1) {{ win.activate(start); return 'activated'; }}"
        " }"
        " return 'no matching window';"
        "})()"
    )
    _eval_succeeded(_gnome_eval(runner, js), "no matching window", f"no window with title containing {term!r}")


def gnome_shell_eval_by_app(terminal: str, runner: CommandRunner) -> None:
    app_id = escape_js(desktop_app_id(terminal))
    js = (
        "(function() {"
        f" let app = Shell.AppSystem.get_default().lookup_app('{app_id}');"
        " if (app) { app.activate(); return 'activated'; }"
        " return 'app not found';"
        "})()"
    )
    _eval_succeeded(_gnome_eval(runner, js), "app not found", f"app {app_id!r} not found via Shell.Eval")


def gnome_focus_app(terminal: str, runner: CommandRunner) -> None:
    """org.gnome.Shell.FocusApp (GNOME 45+)."""
    _require(runner, "gdbus")
    res = runner.run(
        [
            "gdbus",
            "call",
            "--session",
            "--dest",
            GNOME_SHELL_DEST,
            "--object-path",
            "/org/gnome/Shell",
            "--method",
            "org.gnome.Shell.FocusApp",
            desktop_app_id(terminal),
        ]
    )
    _check(res, "gdbus FocusApp")


# --- wlroots / compositors ---


def wlrctl_focus(terminal: str, runner: CommandRunner) -> None:
    _require(runner, "wlrctl")
    res = runner.run(["wlrctl", "toplevel", "focus", f"app_id:{wayland_app_id(terminal)}"])
    if res.ok:
        return
    res = runner.run(["wlrctl", "toplevel", "focus", f"title:{title_search_term(terminal)}"])
    if res.timed_out or res.not_found:
        _check(res, "wlrctl")
    if not res.ok:
        raise NoMatchingWindow(f"wlrctl found no toplevel for {terminal!r}")


def _sway_criteria(terminal: str) -> str:
    app_id = wayland_app_id(terminal).replace('"', '\\"')
    cls = x11_window_class(terminal).replace('"', '\\"')
    return f'[app_id="(?i)^{app_id}$"] focus' if app_id else f'[class="{cls}"] focus'


def swaymsg_focus(terminal: str, runner: CommandRunner) -> None:
    _require(runner, "swaymsg")
    res = runner.run(["swaymsg", "--raw", _sway_criteria(terminal)])
    _check(res, "swaymsg")
    try:
        replies = json.loads(res.stdout or "[]")
    except ValueError:
        replies = []
    if isinstance(replies, list) and replies and all(isinstance(r, dict) and r.get("success") for r in replies):
        return
    raise NoMatchingWindow(f"swaymsg matched no window for {terminal!r}")


def hyprctl_focus(terminal: str, runner: CommandRunner) -> None:
    _require(runner, "hyprctl")
    res = runner.run(["hyprctl", "dispatch", "focuswindow", f"class:^({wayland_app_id(terminal)})$"])
    _check(res, "hyprctl")
    if res.stdout.strip().lower() != "ok":
        raise NoMatchingWindow(f"hyprctl: {res.output or 'no matching window'}")


# --- KDE / X11 ---


def kdotool_focus(terminal: str, runner: CommandRunner) -> None:
    _require(runner, "kdotool")
    res = runner.run(["kdotool", "search", "--class", kde_window_class(terminal)])
    if res.timed_out:
        _check(res, "kdotool search")
    window_id = _first_window_id(res.stdout) if res.ok else ""
    if not window_id:
        raise NoMatchingWindow("no windows found via kdotool")
    _check(runner.run(["kdotool", "windowactivate", window_id]), "kdotool windowactivate")


def xdotool_focus(terminal: str, runner: CommandRunner) -> None:
    """X11 sessions (XFCE, MATE, Cinnamon, i3, X11 GNOME/KDE)."""
    _require(runner, "xdotool")
    res = runner.run(["xdotool", "search", "--class", x11_window_class(terminal)])
    window_id = _first_window_id(res.stdout) if res.ok else ""
    if not window_id:
        res = runner.run(["xdotool", "search", "--name", title_search_term(terminal)])
        window_id = _first_window_id(res.stdout) if res.ok else ""
    if res.timed_out:
        _check(res, "xdotool search")
    if not window_id:
        raise NoMatchingWindow("no windows found via xdotool")
    _check(runner.run(["xdotool", "windowactivate", window_id]), "xdotool windowactivate")


FOCUS_METHODS: Tuple[FocusMethod, ...] = (
    FocusMethod("activate-window-by-title extension", activate_window_by_title),
    FocusMethod("GNOME Shell Eval (by window title)", gnome_shell_eval_by_title),
    FocusMethod("GNOME Shell Eval (by app)", gnome_shell_eval_by_app),
    FocusMethod("GNOME Shell FocusApp", gnome_focus_app),
    FocusMethod("wlrctl", wlrctl_focus),
    FocusMethod("swaymsg", swaymsg_focus),
    FocusMethod("hyprctl", hyprctl_focus),
    FocusMethod("kdotool", kdotool_focus),
    FocusMethod("xdotool", xdotool_focus),
)


def method_names(methods: Optional[Sequence[FocusMethod]] = None) -> List[str]:
    return [m.name for m in (FOCUS_METHODS if methods is None else methods)]


def try_focus(
    terminal: str,
    *,
    methods: Optional[Sequence[FocusMethod]] = None,
    runner: Optional[CommandRunner] = None,
) -> str:
    """Focus the terminal's window; returns the name of the method that worked.

    Raises FocusExhausted (carrying the last method's error) if none did.
    """
    r = runner or default_runner()
    chain = FOCUS_METHODS if methods is None else methods
    last_err: Optional[BaseException] = None
    attempted = 0
    for method in chain:
        attempted += 1
        try:
            method.activate(terminal, r)
        except FocusMethodError as e:
            last_err = e
            logger.debug("focus method %r failed: %s", method.name, e)
            continue
        except Exception as e:
            last_err = e
            logger.debug("focus method %r crashed: %s", method.name, e, exc_info=True)
            continue
        logger.info("focused %r via %s", terminal, method.name)
        return method.name
    raise FocusExhausted(last_err, attempted=attempted)


FOCUS_TOOLS = ("wlrctl", "swaymsg", "hyprctl", "kdotool", "xdotool", "gdbus", "busctl")


def detect_available_tools(runner: Optional[CommandRunner] = None) -> Dict[str, bool]:
    """Which focus techniques are installed/reachable; never focuses anything."""
    r = runner or default_runner()
    tools: Dict[str, bool] = {tool: bool(r.which(tool)) for tool in FOCUS_TOOLS}
    ext = False
    if tools.get("busctl"):
        res = r.run(["busctl", "--user", "introspect", GNOME_SHELL_DEST, AWBT_PATH])
        ext = res.ok and "activateBySubstring" in res.stdout
    tools["activate-window-by-title"] = ext
    return tools
