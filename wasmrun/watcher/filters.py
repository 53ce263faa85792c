"""Which changed paths may trigger a rebuild."""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path

from ..utils import is_relative_to


class PathFilter:
    """Rejects paths a rebuild would itself touch, and hidden files.

    A path is ignored when it lies under one of the ignored directories
    (the build output and the toolchain's target directory) or when its
    final component starts with ``.``.
    """

    def __init__(self, ignored_dirs: Iterable[Path] = ()) -> None:
        self.ignored_dirs = [Path(p).resolve() for p in ignored_dirs]

    def is_relevant(self, path: Path) -> bool:
        if path.name.startswith("."):
            return False
        resolved = path.resolve()
        return not any(is_relative_to(resolved, ignored) for ignored in self.ignored_dirs)

