"""Debounced filesystem watching.

A :class:`DebouncedWatcher` owns one watchdog observer and one event
queue. The observer thread only pushes translated events onto the queue;
all coalescing happens on the event loop, so every batch is delivered in
arrival order and one at a time.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Callable
from pathlib import Path

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from ..errors import WatchInitError
from ..utils import is_relative_to
from .events import WatchEvent, WatchEventKind, from_watchdog
from .filters import PathFilter

DEFAULT_DEBOUNCE_SECONDS = 2.0


class _ForwardingHandler(FileSystemEventHandler):
    def __init__(self, watcher: DebouncedWatcher) -> None:
        super().__init__()
        self.watcher = watcher

    def on_any_event(self, event: FileSystemEvent) -> None:
        translated = from_watchdog(event)
        if translated is not None:
            self.watcher.push(translated)


class DebouncedWatcher:
    """Turns bursts of filesystem events into single change signals.

    Roots are registered with :meth:`watch` (directories recursively or not,
    single files by scheduling their parent and matching the exact path).
    Events are filtered by the :class:`PathFilter` and by the registered
    roots before they reach the queue.

    Attributes:
        name: Label used in messages ("frontend", "backend").
        delay: Quiet period, in seconds, required after the last event.
    """

    def __init__(
        self,
        name: str,
        path_filter: PathFilter | None = None,
        delay: float = DEFAULT_DEBOUNCE_SECONDS,
        observer_factory: Callable[[], Observer] = Observer,
    ) -> None:
        if delay <= 0:
            raise ValueError("debounce delay must be positive")
        self.name = name
        self.delay = delay
        self.path_filter = path_filter or PathFilter()
        self._observer_factory = observer_factory
        self._observer = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._queue: asyncio.Queue[WatchEvent] | None = None
        self._dirs: dict[Path, bool] = {}
        self._files: set[Path] = set()

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def watch(self, path: str | Path, recursive: bool = True) -> bool:
        """Register a watch root.

        Returns:
            ``False`` if *path* does not exist and was skipped.
        """
        path = Path(path).resolve()
        if path.is_dir():
            self._dirs[path] = self._dirs.get(path, False) or recursive
        elif path.exists():
            self._files.add(path)
        else:
            return False
        if self.running:
            self._schedule(*self._schedule_entry(path))
            self.request_rescan()
        return True

    @property
    def roots(self) -> list[Path]:
        return sorted([*self._dirs, *self._files])

    @property
    def running(self) -> bool:
        return self._observer is not None

    def _schedule_entry(self, path: Path) -> tuple[Path, bool]:
        if path in self._dirs:
            return path, self._dirs[path]
        return path.parent, False

    def _schedule(self, directory: Path, recursive: bool) -> None:
        handler = _ForwardingHandler(self)
        try:
            self._observer.schedule(handler, str(directory), recursive=recursive)
        except OSError as exc:
            raise WatchInitError(f"could not watch `{directory}`: {exc}") from exc

    def _schedules(self) -> dict[Path, bool]:
        schedules: dict[Path, bool] = {}
        for path in [*self._dirs, *self._files]:
            directory, recursive = self._schedule_entry(path)
            schedules[directory] = schedules.get(directory, False) or recursive
        return schedules

    def _in_roots(self, path: Path) -> bool:
        if path in self._files:
            return True
        for directory, recursive in self._dirs.items():
            if recursive and is_relative_to(path, directory):
                return True
            if path == directory or path.parent == directory:
                return True
        return False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Start the observer thread. Must be called from the event loop.

        Raises:
            WatchInitError: If nothing is registered or the observer fails.
        """
        if self.running:
            return
        if not self._dirs and not self._files:
            raise WatchInitError(f"{self.name} watcher has no existing path to watch")

        self._loop = asyncio.get_running_loop()
        self._queue = asyncio.Queue()
        try:
            self._observer = self._observer_factory()
        except OSError as exc:
            raise WatchInitError(f"could not create {self.name} watcher: {exc}") from exc

        try:
            for directory, recursive in self._schedules().items():
                self._schedule(directory, recursive)
            self._observer.start()
        except WatchInitError:
            self._observer = None
            raise
        except OSError as exc:
            self._observer = None
            raise WatchInitError(f"could not start {self.name} watcher: {exc}") from exc

    def stop(self) -> None:
        if self._observer is None:
            return
        observer, self._observer = self._observer, None
        observer.stop()
        observer.join(timeout=5)

    async def __aenter__(self) -> DebouncedWatcher:
        self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.stop()

    # ------------------------------------------------------------------
    # Delivery
    # ------------------------------------------------------------------

    def accepts(self, event: WatchEvent) -> bool:
        if event.kind is WatchEventKind.RESCAN:
            return True
        relevant = [p for p in event.paths if self.path_filter.is_relevant(p)]
        return any(self._in_roots(p.resolve()) for p in relevant)

    def push(self, event: WatchEvent) -> None:
        """Queue *event* if it is relevant. Safe to call from any thread."""
        if self._loop is None or self._queue is None:
            return
        if not self.accepts(event):
            return
        self._loop.call_soon_threadsafe(self._queue.put_nowait, event)

    def request_rescan(self) -> None:
        """Force a change signal. Registering a root on a running watcher does this."""
        root = self.roots[0] if self.roots else Path.cwd()
        self.push(WatchEvent(WatchEventKind.RESCAN, root))

    async def next_batch(self) -> list[WatchEvent]:
        """Wait for a change, then for the quiet period; return the burst."""
        if self._queue is None:
            raise WatchInitError(f"{self.name} watcher is not started")

        batch = [await self._queue.get()]
        while True:
            try:
                event = await asyncio.wait_for(self._queue.get(), timeout=self.delay)
            except asyncio.TimeoutError:
                return batch
            batch.append(event)

    async def changes(self) -> AsyncIterator[list[WatchEvent]]:
        while True:
            yield await self.next_batch()
