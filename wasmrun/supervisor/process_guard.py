"""Ownership of one child process at a time."""

from __future__ import annotations

import asyncio
import os

from ..errors import WasmRunError
from ..invocation import Invocation


class ProcessGuard:
    """Owns at most one child process and kills it when released.

    Replacing the child with :meth:`spawn` first kills and reaps the
    current one, so there is a short gap with no child running
    but never two children or an orphan.

    Usable as an async context manager; leaving the block releases the
    child whatever the exit path.
    """

    def __init__(self, name: str = "process") -> None:
        self.name = name
        self.process: asyncio.subprocess.Process | None = None

    @property
    def pid(self) -> int | None:
        return self.process.pid if self.process is not None else None

    @property
    def running(self) -> bool:
        return self.process is not None and self.process.returncode is None

    async def spawn(self, invocation: Invocation) -> asyncio.subprocess.Process:
        """Release the current child, then start *invocation*.

        Raises:
            WasmRunError: If the program cannot be started.
        """
        await self.release()
        env = {**os.environ, **invocation.env} if invocation.env else None
        try:
            process = await asyncio.create_subprocess_exec(
                *invocation.argv,
                cwd=str(invocation.cwd) if invocation.cwd else None,
                env=env,
            )
        except OSError as exc:
            raise WasmRunError(f"could not start {self.name} `{invocation.program}`: {exc}") from exc
        self.process = process
        return process

    async def release(self) -> int | None:
        """Kill the child (if still running) and wait for it.

        Returns:
            The child's return code, or ``None`` if there was no child.
        """
        process, self.process = self.process, None
        if process is None:
            return None
        if process.returncode is None:
            try:
                process.kill()
            except ProcessLookupError:
                pass
        return await process.wait()

    async def __aenter__(self) -> ProcessGuard:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.release()
