"""Full restart: re-run the original command line in a fresh process.

An in-process rebuild cannot pick up edits to the hook code itself, so the
full restart mode replaces it. Two backends exist:

- ``exec``: replace the current process image (POSIX only). There is no
  overlap and no gap, the pid is kept.
- ``spawn``: start a new process, then exit. For a brief moment both
  processes exist; the old one has already released its children.
"""

from __future__ import annotations

import os
import subprocess
import sys
from collections.abc import Iterable, Sequence

from ..utils import console
from .process_guard import ProcessGuard


def original_command() -> list[str]:
    """The interpreter plus the arguments this process was started with."""
    argv = getattr(sys, "orig_argv", None)
    if argv:
        return [sys.executable, *argv[1:]]
    return [sys.executable, *sys.argv]


class Restarter:
    """Restarts the current process with its original command line."""

    def __init__(self, command: Sequence[str] | None = None, use_exec: bool | None = None) -> None:
        self.command = list(command) if command is not None else original_command()
        self.use_exec = os.name == "posix" if use_exec is None else use_exec

    async def restart(self, guards: Iterable[ProcessGuard] = ()) -> None:
        """Release *guards*, then restart. Does not return."""
        for guard in guards:
            await guard.release()

        console.print("[cyan]Change detected, restarting...[/cyan]")
        console.file.flush()
        sys.stdout.flush()
        sys.stderr.flush()

        if self.use_exec:
            os.execv(self.command[0], self.command)
        subprocess.Popen(self.command)
        raise SystemExit(0)
