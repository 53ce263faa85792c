"""Mutable command lines handed to hooks before a process is started."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path


@dataclass
class Invocation:
    """A command line: program, arguments, extra environment, directory."""

    program: str
    args: list[str] = field(default_factory=list)
    env: dict[str, str] = field(default_factory=dict)
    cwd: Path | None = None

    @property
    def argv(self) -> list[str]:
        return [self.program, *self.args]

    def arg(self, *values: str | Path) -> "Invocation":
        self.args.extend(str(v) for v in values)
        return self
