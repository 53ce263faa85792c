"""Filesystem events as seen by the watch loops."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from watchdog.events import (
    EVENT_TYPE_CREATED,
    EVENT_TYPE_DELETED,
    EVENT_TYPE_MODIFIED,
    EVENT_TYPE_MOVED,
    FileSystemEvent,
)


class WatchEventKind(str, Enum):
    CREATED = "created"
    MODIFIED = "modified"
    REMOVED = "removed"
    RENAMED = "renamed"
    RESCAN = "rescan"


@dataclass(frozen=True)
class WatchEvent:
    """One change under a watched root. ``dest_path`` is set for renames only."""

    kind: WatchEventKind
    path: Path
    dest_path: Path | None = None

    @property
    def paths(self) -> tuple[Path, ...]:
        if self.dest_path is None:
            return (self.path,)
        return (self.path, self.dest_path)


_KINDS = {
    EVENT_TYPE_CREATED: WatchEventKind.CREATED,
    EVENT_TYPE_MODIFIED: WatchEventKind.MODIFIED,
    EVENT_TYPE_DELETED: WatchEventKind.REMOVED,
    EVENT_TYPE_MOVED: WatchEventKind.RENAMED,
}


def _as_path(raw: str | bytes) -> Path:
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8", errors="replace")
    return Path(raw)


def from_watchdog(event: FileSystemEvent) -> WatchEvent | None:
    """Translate a watchdog event, or return ``None`` for events we ignore.

    Directory "modified" events only echo changes to their children, which
    arrive as events of their own, so they are dropped. Open/close
    notifications are dropped too.
    """
    kind = _KINDS.get(event.event_type)
    if kind is None:
        return None
    if event.is_directory and kind is WatchEventKind.MODIFIED:
        return None

    dest = getattr(event, "dest_path", "") if kind is WatchEventKind.RENAMED else ""
    return WatchEvent(
        kind=kind,
        path=_as_path(event.src_path),
        dest_path=_as_path(dest) if dest else None,
    )
