import unittest
from dataclasses import replace


class _FakeRunner:
    """Answers run() by argv prefix; which() finds nothing so argv keeps bare tool names."""

    def __init__(self, responses=None) -> None:
        self.responses = list(responses or [])
        self.calls = []

    def which(self, name):
        return None

    def run(self, argv, *, timeout_s=None):
        from ccnotify.util.proc import CommandResult

        args = tuple(str(a) for a in argv)
        self.calls.append(args)
        for prefix, result in self.responses:
            if args[: len(prefix)] == tuple(prefix):
                return replace(result, argv=args)
        return CommandResult(argv=args, returncode=1, stderr="unexpected call")


def _ok(stdout: str = ""):
    from ccnotify.util.proc import CommandResult

    return CommandResult(argv=(), returncode=0, stdout=stdout)


ZELLIJ_LAYOUT = """layout {
    cwd "/home/dev/project"
    tab name="editor" hide_floating_panes=true {
        pane command="nvim"
    }
    tab name="build" focus=true hide_floating_panes=true {
        pane
    }
    tab name="logs" {
        pane
    }
}
"""


class TestZellij(unittest.TestCase):
    def test_focused_tab_name_extracted(self) -> None:
        from ccnotify.kernel.multiplexer import resolve_target

        runner = _FakeRunner([(("zellij", "action", "dump-layout"), _ok(ZELLIJ_LAYOUT))])
        t = resolve_target({"ZELLIJ": "0", "ZELLIJ_SESSION_NAME": "work"}, runner=runner)
        self.assertEqual(t.name, "zellij")
        self.assertEqual(t.target, "build")
        self.assertEqual(t.activate_argv, ("zellij", "-s", "work", "action", "go-to-tab-name", "build"))
        self.assertEqual(t.activate_command, "zellij -s work action go-to-tab-name build")

    def test_no_focused_tab_is_target_unavailable(self) -> None:
        from ccnotify.errors import TargetUnavailable
        from ccnotify.kernel.multiplexer import resolve_target

        layout = ZELLIJ_LAYOUT.replace(" focus=true", "")
        runner = _FakeRunner([(("zellij", "action", "dump-layout"), _ok(layout))])
        with self.assertRaises(TargetUnavailable) as ctx:
            resolve_target({"ZELLIJ": "0", "ZELLIJ_SESSION_NAME": "work"}, runner=runner)
        self.assertEqual(ctx.exception.multiplexer, "zellij")

    def test_missing_session_is_target_unavailable(self) -> None:
        from ccnotify.errors import TargetUnavailable
        from ccnotify.kernel.multiplexer import resolve_target

        with self.assertRaises(TargetUnavailable):
            resolve_target({"ZELLIJ": "0"}, runner=_FakeRunner())

    def test_quoted_tab_names(self) -> None:
        from ccnotify.kernel.multiplexer import parse_active_tab_name

        layout = 'tab name="say \\"hi\\"" focus=true {\n'
        self.assertEqual(parse_active_tab_name(layout), 'say "hi"')
        self.assertEqual(parse_active_tab_name('tab name="unfocused" focus=false {\n'), "")


class TestTmuxWeztermKitty(unittest.TestCase):
    def test_tmux_target_from_env(self) -> None:
        from ccnotify.kernel.multiplexer import resolve_target

        runner = _FakeRunner()
        t = resolve_target({"TMUX": "/tmp/tmux-1000/default,4242,0", "TMUX_PANE": "%7"}, runner=runner)
        self.assertEqual(t.name, "tmux")
        self.assertEqual(t.target, "%7")
        self.assertEqual(
            t.activate_argv,
            ("tmux", "-S", "/tmp/tmux-1000/default", "select-window", "-t", "%7", ";", "select-pane", "-t", "%7"),
        )
        self.assertEqual(runner.calls, [])

    def test_tmux_pane_queried_when_env_missing(self) -> None:
        from ccnotify.kernel.multiplexer import resolve_target

        runner = _FakeRunner([(("tmux", "display-message"), _ok("%2\n"))])
        t = resolve_target({"TMUX": "/tmp/tmux-1000/default,1,0"}, runner=runner)
        self.assertEqual(t.target, "%2")

    def test_wezterm_with_socket(self) -> None:
        from ccnotify.kernel.multiplexer import resolve_target

        t = resolve_target({"WEZTERM_PANE": "3", "WEZTERM_UNIX_SOCKET": "/run/user/1000/wezterm/sock"}, runner=_FakeRunner())
        self.assertEqual(
            t.activate_argv,
            ("wezterm", "cli", "activate-pane", "--pane-id", "3", "--unix-socket", "/run/user/1000/wezterm/sock"),
        )
        self.assertEqual(t.terminal, "WezTerm")

    def test_kitty_needs_remote_control(self) -> None:
        from ccnotify.errors import DetectionFailed
        from ccnotify.kernel.multiplexer import resolve_target

        with self.assertRaises(DetectionFailed):
            resolve_target({"KITTY_WINDOW_ID": "1"}, runner=_FakeRunner())

        t = resolve_target({"KITTY_WINDOW_ID": "1", "KITTY_LISTEN_ON": "unix:/tmp/kitty"}, runner=_FakeRunner())
        self.assertEqual(t.activate_argv, ("kitten", "@", "--to", "unix:/tmp/kitty", "focus-window", "--match", "id:1"))
        self.assertEqual(t.terminal, "kitty")


class TestResolutionOrder(unittest.TestCase):
    def test_nothing_detected(self) -> None:
        from ccnotify.errors import DetectionFailed
        from ccnotify.kernel.multiplexer import resolve_target

        with self.assertRaises(DetectionFailed):
            resolve_target({"TERM_PROGRAM": "kitty"}, runner=_FakeRunner())

    def test_first_detected_wins_even_when_it_fails(self) -> None:
        from ccnotify.errors import TargetUnavailable
        from ccnotify.kernel.multiplexer import resolve_target

        runner = _FakeRunner([(("zellij", "action", "dump-layout"), _ok(ZELLIJ_LAYOUT))])
        env = {"TMUX": "/tmp/tmux-1000/default,1,0", "ZELLIJ": "0", "ZELLIJ_SESSION_NAME": "work"}
        with self.assertRaises(TargetUnavailable) as ctx:
            resolve_target(env, runner=runner)
        self.assertEqual(ctx.exception.multiplexer, "tmux")
        self.assertFalse(any(c[0] == "zellij" for c in runner.calls))

    def test_handler_crash_wrapped(self) -> None:
        from ccnotify.errors import TargetUnavailable
        from ccnotify.kernel.multiplexer import MultiplexerHandler, resolve_target

        def _boom(env, runner):
            raise KeyError("pane")

        handlers = (MultiplexerHandler("fake", lambda env: True, _boom),)
        with self.assertRaises(TargetUnavailable) as ctx:
            resolve_target({}, runner=_FakeRunner(), handlers=handlers)
        self.assertEqual(ctx.exception.multiplexer, "fake")


if __name__ == "__main__":
    unittest.main()
