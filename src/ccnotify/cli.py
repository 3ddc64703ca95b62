"""ccnotify command line."""

from __future__ import annotations

import argparse
import json
import sys
from typing import Any, Dict, List, Optional

import yaml

from . import __version__, daemon_main
from .contracts.v1 import PROTOCOL_VERSION, Settings
from .daemon.client import is_running
from .daemon.server import serve_forever
from .errors import CcnotifyError, DetectionFailed, FocusExhausted, TargetUnavailable
from .kernel.focus import detect_available_tools, method_names, try_focus
from .kernel.multiplexer import resolve_target
from .kernel.settings import load_settings, save_settings
from .kernel.terminal import detect_terminal_name
from .notifier.delivery import deliver
from .paths import config_path, resolve_endpoint
from .util.obslog import setup_root_json_logging
from .util.proc import CommandRunner


def _print_json(obj: Any) -> None:
    print(json.dumps(obj, ensure_ascii=False, indent=2))


def _setup_cli_logging(settings: Settings) -> None:
    setup_root_json_logging(component="cli", level=settings.log_level)


def run_daemon() -> int:
    settings = load_settings()
    ep = resolve_endpoint()
    setup_root_json_logging(component="daemon", level=settings.log_level, force=True, log_path=ep.log_path)
    return serve_forever(ep, settings)


def cmd_notify(args: argparse.Namespace) -> int:
    settings = load_settings()
    _setup_cli_logging(settings)
    if args.terminal:
        settings = settings.model_copy(
            update={"desktop": settings.desktop.model_copy(update={"terminal": args.terminal})}
        )
    try:
        res = deliver(args.title, args.body or "", settings, use_daemon=not args.direct)
    except CcnotifyError as e:
        print(f"ccnotify: notification failed: {e}", file=sys.stderr)
        return 1
    if args.json:
        _print_json({"via": res.via, "notification_id": res.notification_id})
    return 0


def cmd_daemon(args: argparse.Namespace) -> int:
    _setup_cli_logging(load_settings())
    return daemon_main.main([args.action])


def cmd_focus(args: argparse.Namespace) -> int:
    settings = load_settings()
    _setup_cli_logging(settings)
    if args.list:
        for name in method_names():
            print(name)
        return 0
    terminal = args.terminal or settings.desktop.terminal or detect_terminal_name()
    runner = CommandRunner(timeout_s=settings.focus.command_timeout_seconds)
    try:
        used = try_focus(terminal, runner=runner)
    except FocusExhausted as e:
        print(f"ccnotify: {e}", file=sys.stderr)
        return 1
    print(f"focused {terminal} via {used}")
    return 0


def _multiplexer_report(runner: CommandRunner) -> Dict[str, Any]:
    try:
        t = resolve_target(runner=runner)
    except DetectionFailed:
        return {"detected": None}
    except TargetUnavailable as e:
        return {"detected": e.multiplexer, "error": e.reason}
    return {"detected": t.name, "target": t.target, "activate": t.activate_command}


def cmd_doctor(args: argparse.Namespace) -> int:
    settings = load_settings()
    _setup_cli_logging(settings)
    ep = resolve_endpoint()
    runner = CommandRunner(timeout_s=settings.focus.command_timeout_seconds)
    _print_json(
        {
            "version": __version__,
            "protocol": PROTOCOL_VERSION,
            "config": str(config_path()),
            "socket": str(ep.socket_path),
            "pid_file": str(ep.pid_file_path),
            "daemon_running": is_running(endpoint=ep),
            "terminal": settings.desktop.terminal or detect_terminal_name(),
            "multiplexer": _multiplexer_report(runner),
            "focus_tools": detect_available_tools(runner),
            "notify_send": bool(runner.which("notify-send")),
        }
    )
    return 0


def cmd_config(args: argparse.Namespace) -> int:
    p = config_path()
    if args.path:
        print(p)
        return 0
    if args.init:
        if p.exists() and not args.force:
            print(f"ccnotify: {p} already exists (use --force to overwrite)", file=sys.stderr)
            return 1
        save_settings(Settings(), p)
        print(f"wrote {p}")
        return 0
    print(yaml.safe_dump(load_settings().model_dump(), sort_keys=False, allow_unicode=True), end="")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="ccnotify", description="Desktop notifications with click-to-focus")
    parser.add_argument("--version", action="version", version=f"ccnotify {__version__}")
    parser.add_argument("--daemon", action="store_true", help="Run the notification daemon in the foreground")
    sub = parser.add_subparsers(dest="command")

    p_notify = sub.add_parser("notify", help="Show a notification")
    p_notify.add_argument("title")
    p_notify.add_argument("body", nargs="?", default="")
    p_notify.add_argument("--terminal", default="", help="Terminal to focus on click (default: auto-detect)")
    p_notify.add_argument("--direct", action="store_true", help="Skip the daemon (no click-to-focus)")
    p_notify.add_argument("--json", action="store_true", help="Print the delivery result as JSON")
    p_notify.set_defaults(func=cmd_notify)

    p_daemon = sub.add_parser("daemon", help="Manage the daemon")
    p_daemon.add_argument("action", choices=["start", "stop", "status"])
    p_daemon.set_defaults(func=cmd_daemon)

    p_focus = sub.add_parser("focus", help="Focus the terminal window now")
    p_focus.add_argument("--terminal", default="")
    p_focus.add_argument("--list", action="store_true", help="List focus methods in the order they are tried")
    p_focus.set_defaults(func=cmd_focus)

    p_doctor = sub.add_parser("doctor", help="Report endpoint, daemon, multiplexer and focus tool status")
    p_doctor.set_defaults(func=cmd_doctor)

    p_config = sub.add_parser("config", help="Show or create the config file")
    p_config.add_argument("--init", action="store_true", help="Write a config file with default values")
    p_config.add_argument("--force", action="store_true")
    p_config.add_argument("--path", action="store_true", help="Print the config file path")
    p_config.set_defaults(func=cmd_config)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.daemon:
        return run_daemon()
    func = getattr(args, "func", None)
    if func is None:
        parser.print_help()
        return 2
    return int(func(args))
