"""Terminal name detection and per-tool window identifiers.

Each focus technique matches windows differently (.desktop app id, wlroots
app_id, X11 WM_CLASS, window title). The tables below translate one terminal
name into each of those; unknown names fall through to a derived default.
"""

from __future__ import annotations

import os
from typing import Dict, Mapping, Optional

_VSCODE = ("code", "vscode", "visual studio code")


def _table(base: Dict[str, str]) -> Dict[str, str]:
    out = dict(base)
    if "code" in base:
        for alias in _VSCODE:
            out[alias] = base["code"]
    return out


DESKTOP_APP_IDS = _table(
    {
        "code": "code.desktop",
        "gnome-terminal": "org.gnome.Terminal.desktop",
        "konsole": "org.kde.konsole.desktop",
        "alacritty": "Alacritty.desktop",
        "kitty": "kitty.desktop",
        "wezterm": "org.wezfurlong.wezterm.desktop",
        "tilix": "com.gexperts.Tilix.desktop",
        "terminator": "terminator.desktop",
        "ghostty": "com.mitchellh.ghostty.desktop",
    }
)

WAYLAND_APP_IDS = _table(
    {
        "code": "code",
        "alacritty": "Alacritty",
        "kitty": "kitty",
        "wezterm": "org.wezfurlong.wezterm",
        "gnome-terminal": "org.gnome.Terminal",
        "konsole": "org.kde.konsole",
        "ghostty": "com.mitchellh.ghostty",
        "foot": "foot",
    }
)

KDE_WINDOW_CLASSES = _table(
    {
        "code": "code",
        "alacritty": "Alacritty",
        "kitty": "kitty",
        "wezterm": "org.wezfurlong.wezterm",
        "gnome-terminal": "gnome-terminal-server",
        "konsole": "konsole",
    }
)

X11_WINDOW_CLASSES = _table(
    {
        "code": "Code",
        "alacritty": "Alacritty",
        "kitty": "kitty",
        "wezterm": "org.wezfurlong.wezterm",
        "gnome-terminal": "Gnome-terminal",
        "konsole": "konsole",
        "xfce4-terminal": "Xfce4-terminal",
        "mate-terminal": "Mate-terminal",
        "tilix": "Tilix",
        "terminator": "Terminator",
    }
)

TITLE_SEARCH_TERMS = _table(
    {
        "code": "Visual Studio Code",
        "gnome-terminal": "Terminal",
    }
)


def _key(terminal: str) -> str:
    return str(terminal or "").strip().lower()


def desktop_app_id(terminal: str) -> str:
    k = _key(terminal)
    return DESKTOP_APP_IDS.get(k) or f"{k}.desktop"


def wayland_app_id(terminal: str) -> str:
    k = _key(terminal)
    return WAYLAND_APP_IDS.get(k) or k


def kde_window_class(terminal: str) -> str:
    k = _key(terminal)
    return KDE_WINDOW_CLASSES.get(k) or k


def x11_window_class(terminal: str) -> str:
    # xdotool matches WM_CLASS case-sensitively; keep the caller's spelling.
    return X11_WINDOW_CLASSES.get(_key(terminal)) or str(terminal or "")


def title_search_term(terminal: str) -> str:
    return TITLE_SEARCH_TERMS.get(_key(terminal)) or str(terminal or "")


def detect_terminal_name(env: Optional[Mapping[str, str]] = None) -> str:
    """Best-effort name of the terminal emulator hosting this process."""
    environ = os.environ if env is None else env
    term_program = str(environ.get("TERM_PROGRAM") or "").strip()
    if term_program:
        if term_program.lower() == "vscode":
            return "Code"
        return term_program
    if environ.get("VSCODE_INJECTION") or environ.get("VSCODE_GIT_IPC_HANDLE"):
        return "Code"
    if environ.get("KITTY_WINDOW_ID"):
        return "kitty"
    if environ.get("WEZTERM_PANE"):
        return "WezTerm"
    if environ.get("KONSOLE_VERSION"):
        return "konsole"
    if environ.get("GNOME_TERMINAL_SCREEN") or environ.get("GNOME_TERMINAL_SERVICE"):
        return "gnome-terminal"
    if environ.get("ALACRITTY_WINDOW_ID") or environ.get("ALACRITTY_SOCKET"):
        return "Alacritty"
    return "Terminal"


_JS_ESCAPES = {
    "\\": "\\\\",
    "'": "\\'",
    '"': '\\"',
    "\n": "\\n",
    "\r": "\\r",
    "\x00": "\\x00",
    "\u2028": "\\u2028",
    "\u2029": "\\u2029",
}


def escape_js(s: str) -> str:
    """Escape for interpolation into a single-quoted JavaScript string."""
    return "".join(_JS_ESCAPES.get(ch, ch) for ch in str(s or ""))
