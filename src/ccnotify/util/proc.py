"""External command invocation behind a narrow run-and-interpret interface.

Focus methods and multiplexer handlers never call subprocess directly; they
take a CommandRunner so tests can substitute a fake.
"""

from __future__ import annotations

import shutil
import subprocess
from dataclasses import dataclass
from typing import Optional, Sequence

DEFAULT_TIMEOUT_S = 5.0


@dataclass(frozen=True)
class CommandResult:
    argv: tuple[str, ...]
    returncode: int
    stdout: str = ""
    stderr: str = ""
    not_found: bool = False
    timed_out: bool = False

    @property
    def ok(self) -> bool:
        return self.returncode == 0 and not self.not_found and not self.timed_out

    @property
    def output(self) -> str:
        """Combined stdout/stderr, trimmed."""
        parts = [p.strip() for p in (self.stdout, self.stderr) if p and p.strip()]
        return "\n".join(parts)

    def describe(self) -> str:
        name = self.argv[0] if self.argv else "?"
        if self.not_found:
            return f"command not found: {name}"
        if self.timed_out:
            return f"{name} timed out"
        out = self.output
        return f"{name} exited {self.returncode}" + (f": {out}" if out else "")


class CommandRunner:
    def __init__(self, *, timeout_s: float = DEFAULT_TIMEOUT_S) -> None:
        self.timeout_s = float(timeout_s)

    def which(self, name: str) -> Optional[str]:
        return shutil.which(name)

    def run(self, argv: Sequence[str], *, timeout_s: Optional[float] = None) -> CommandResult:
        args = tuple(str(a) for a in argv)
        limit = self.timeout_s if timeout_s is None else float(timeout_s)
        try:
            p = subprocess.run(
                list(args),
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                timeout=limit,
                check=False,
            )
        except FileNotFoundError:
            return CommandResult(argv=args, returncode=127, not_found=True)
        except subprocess.TimeoutExpired as e:
            return CommandResult(
                argv=args,
                returncode=-1,
                stdout=_text(e.stdout),
                stderr=_text(e.stderr),
                timed_out=True,
            )
        except OSError as e:
            return CommandResult(argv=args, returncode=126, stderr=str(e))
        return CommandResult(argv=args, returncode=int(p.returncode), stdout=p.stdout or "", stderr=p.stderr or "")


def _text(raw: object) -> str:
    if raw is None:
        return ""
    if isinstance(raw, bytes):
        return raw.decode("utf-8", errors="replace")
    return str(raw)


_DEFAULT_RUNNER: Optional[CommandRunner] = None


def default_runner() -> CommandRunner:
    global _DEFAULT_RUNNER
    if _DEFAULT_RUNNER is None:
        _DEFAULT_RUNNER = CommandRunner()
    return _DEFAULT_RUNNER
