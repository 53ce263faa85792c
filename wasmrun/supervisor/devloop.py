"""The ``serve`` command: initial build, then serving and watching.

State machine::

    INIT -> INITIAL_BUILD -> RUNNING <-> REBUILDING
                                |
                                v
                             STOPPED   (fatal error or a task returned)

Two modes exist. In embedded mode the dev server and the frontend watch
loop run side by side. In external backend mode there is no server; the
frontend watch loop rebuilds the frontend and the backend watch loop
respawns the backend process.

The tasks are joined fail-fast: the first one to finish ends ``serve``.
Before the error propagates the other tasks are cancelled and awaited,
watchers are stopped and every child process is killed and reaped.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Coroutine
from enum import Enum
from typing import Any

from ..errors import DevLoopError, MissingBackendError, RebuildError
from ..hooks import call_hook
from ..pipeline import BuildPipeline
from ..profile import BuildProfile
from ..utils import print_error
from ..watcher.debounce import DebouncedWatcher
from ..watcher.filters import PathFilter
from .process_guard import ProcessGuard
from .restart import Restarter
from .server import DevServer, create_app


class ServeMode(str, Enum):
    EMBEDDED = "embedded"
    EXTERNAL_BACKEND = "external-backend"


class DevLoopState(str, Enum):
    INIT = "init"
    INITIAL_BUILD = "initial-build"
    RUNNING = "running"
    REBUILDING = "rebuilding"
    STOPPED = "stopped"


class DevLoop:
    """Runs ``serve`` for one :class:`BuildPipeline`.

    Attributes:
        pipeline: Shared with the ``build`` command; also carries the hooks,
            the context and the settings.
        mode: Embedded server or external backend.
        state: Current :class:`DevLoopState`.
        backend_guard: Owns the backend process in external backend mode.
        server: The embedded dev server once its socket is bound.
    """

    def __init__(
        self,
        pipeline: BuildPipeline,
        mode: ServeMode = ServeMode.EMBEDDED,
        restarter: Restarter | None = None,
        watcher_factory: Callable[..., DebouncedWatcher] = DebouncedWatcher,
    ) -> None:
        self.pipeline = pipeline
        self.mode = mode
        self.state = DevLoopState.INIT
        self.restarter = restarter
        if self.restarter is None and pipeline.settings.full_restart:
            self.restarter = Restarter()
        self._watcher_factory = watcher_factory
        self.backend_guard = ProcessGuard("backend")
        self.server: DevServer | None = None
        self.watchers: list[DebouncedWatcher] = []
        self._lock = asyncio.Lock()

    @property
    def hooks(self):
        return self.pipeline.hooks

    @property
    def context(self):
        return self.pipeline.context

    @property
    def guards(self) -> list[ProcessGuard]:
        return [self.backend_guard]

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    async def run(self, serve_args: Any) -> None:
        """Run until a fatal error.

        Raises:
            MissingBackendError: External backend mode without a backend
                unit. Raised before anything is built or watched.
            DevLoopError: A joined task returned without an error.
            WasmRunError: Initial build, bind or watcher start failed, or a
                joined task failed.
        """
        if self.mode is ServeMode.EXTERNAL_BACKEND and self.context.backend is None:
            raise MissingBackendError(
                "external backend mode needs a backend unit, but none is configured"
            )

        self.state = DevLoopState.INITIAL_BUILD
        await self.pipeline.build(BuildProfile.DEV, serve_args.build_args)

        try:
            if self.mode is ServeMode.EMBEDDED:
                tasks = await self._start_embedded(serve_args)
            else:
                tasks = await self._start_external_backend(serve_args)
            self.state = DevLoopState.RUNNING
            await self._join(tasks)
        finally:
            await self.shutdown()

    async def _start_embedded(self, serve_args: Any) -> dict[str, Callable[[], Coroutine[Any, Any, None]]]:
        app = await create_app(serve_args, self.hooks, self.pipeline.env)
        server = DevServer(app, serve_args.ip, serve_args.port, log=serve_args.log)
        server.bind()
        self.server = server

        watcher = await self._create_watcher("frontend", self.hooks.watch, serve_args)
        rebuild = self._rebuild_action(serve_args)
        return {
            "server": server.serve,
            "frontend watcher": lambda: self._watch_loop(watcher, rebuild),
        }

    async def _start_external_backend(self, serve_args: Any) -> dict[str, Callable[[], Coroutine[Any, Any, None]]]:
        frontend = await self._create_watcher("frontend", self.hooks.frontend_watch, serve_args)
        backend = await self._create_watcher("backend", self.hooks.backend_watch, serve_args)
        await self.respawn_backend(serve_args)

        rebuild = self._rebuild_action(serve_args)
        if self.restarter is not None:
            respawn = rebuild
        else:
            async def respawn() -> None:
                await self.respawn_backend(serve_args)

        return {
            "frontend watcher": lambda: self._watch_loop(frontend, rebuild),
            "backend watcher": lambda: self._watch_loop(backend, respawn),
        }

    # ------------------------------------------------------------------
    # Watchers
    # ------------------------------------------------------------------

    async def _create_watcher(
        self, name: str, setup: Callable[..., Any], serve_args: Any
    ) -> DebouncedWatcher:
        path_filter = PathFilter(
            [serve_args.build_args.output_path(self.context), self.context.target_directory]
        )
        watcher = self._watcher_factory(
            name, path_filter=path_filter, delay=self.pipeline.settings.debounce_seconds
        )
        await call_hook(setup, serve_args, watcher, self.pipeline.env)
        watcher.start()
        self.watchers.append(watcher)
        return watcher

    async def _watch_loop(self, watcher: DebouncedWatcher, action: Callable[[], Awaitable[None]]) -> None:
        async for _ in watcher.changes():
            try:
                await action()
            except Exception as exc:
                print_error(str(RebuildError(watcher.name, exc)))

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    def _rebuild_action(self, serve_args: Any) -> Callable[[], Awaitable[None]]:
        if self.restarter is not None:
            restarter = self.restarter

            async def restart() -> None:
                await self.shutdown()
                await restarter.restart(self.guards)

            return restart

        async def rebuild() -> None:
            await self.rebuild_frontend(serve_args)

        return rebuild

    async def rebuild_frontend(self, serve_args: Any) -> None:
        async with self._lock:
            self.state = DevLoopState.REBUILDING
            try:
                await self.pipeline.build(BuildProfile.DEV, serve_args.build_args, announce=False)
            finally:
                self.state = DevLoopState.RUNNING

    async def respawn_backend(self, serve_args: Any) -> None:
        """Kill the backend process, then start it again.

        Waits for a pending frontend rebuild to finish first.
        """
        async with self._lock:
            invocation = await call_hook(self.hooks.backend_command, serve_args, self.pipeline.env)
            await self.backend_guard.spawn(invocation)

    # ------------------------------------------------------------------
    # Join and shutdown
    # ------------------------------------------------------------------

    async def _join(self, factories: dict[str, Callable[[], Coroutine[Any, Any, None]]]) -> None:
        tasks = [asyncio.create_task(factory(), name=name) for name, factory in factories.items()]
        try:
            done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)

        for task in done:
            exc = task.exception()
            if exc is not None:
                raise exc
        finished = ", ".join(sorted(task.get_name() for task in done))
        raise DevLoopError(f"server and watcher unexpectedly exited ({finished} returned)")

    async def shutdown(self) -> None:
        """Close the server socket and stop every watcher, then kill every child."""
        self.state = DevLoopState.STOPPED
        if self.server is not None:
            self.server.close()
            self.server = None
        for watcher in self.watchers:
            watcher.stop()
        self.watchers.clear()
        for guard in self.guards:
            await guard.release()
