"""Tests for ProcessGuard (wasmrun.supervisor.process_guard).

These spawn real short-lived Python children.
"""

from __future__ import annotations

import os
import sys

import pytest

from wasmrun.errors import WasmRunError
from wasmrun.invocation import Invocation
from wasmrun.supervisor.process_guard import ProcessGuard

SLEEPER = Invocation(sys.executable, ["-c", "import time; time.sleep(60)"])


def _alive(pid: int) -> bool:
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        return True
    return True


pytestmark = pytest.mark.skipif(sys.platform == "win32", reason="uses POSIX process probing")


class TestProcessGuard:
    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_release_kills_and_reaps(self):
        guard = ProcessGuard("backend")
        process = await guard.spawn(SLEEPER)
        assert guard.running
        assert guard.pid == process.pid

        returncode = await guard.release()

        assert returncode is not None and returncode != 0
        assert process.returncode is not None
        assert not guard.running
        assert guard.pid is None
        assert not _alive(process.pid)

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_spawn_replaces_old_child_first(self):
        guard = ProcessGuard("backend")
        first = await guard.spawn(SLEEPER)
        second = await guard.spawn(SLEEPER)
        try:
            assert first.returncode is not None
            assert second.returncode is None
            assert guard.pid == second.pid
        finally:
            await guard.release()

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_context_manager_releases_on_error(self):
        with pytest.raises(RuntimeError):
            async with ProcessGuard() as guard:
                process = await guard.spawn(SLEEPER)
                raise RuntimeError("boom")
        assert process.returncode is not None

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_release_after_exit(self):
        guard = ProcessGuard()
        await guard.spawn(Invocation(sys.executable, ["-c", "raise SystemExit(4)"]))
        await guard.process.wait()
        assert await guard.release() == 4

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_release_without_child(self):
        assert await ProcessGuard().release() is None

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_env_and_cwd(self, tmp_path):
        marker = tmp_path / "out.txt"
        guard = ProcessGuard()
        invocation = Invocation(
            sys.executable,
            ["-c", "import os, pathlib; pathlib.Path('out.txt').write_text(os.environ['WASMRUN_X'])"],
            env={"WASMRUN_X": "42"},
            cwd=tmp_path,
        )
        process = await guard.spawn(invocation)
        await process.wait()
        await guard.release()
        assert marker.read_text() == "42"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_missing_program(self):
        with pytest.raises(WasmRunError, match="could not start backend"):
            await ProcessGuard("backend").spawn(Invocation("wasmrun-no-such-program"))
