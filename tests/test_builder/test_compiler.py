"""Unit tests for the compiler step (wasmrun.builder.compiler)."""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import pytest

from wasmrun.builder.compiler import WASM_TARGET, Compiler
from wasmrun.errors import CompileError
from wasmrun.profile import BuildProfile
from wasmrun.project import ProjectContext


class TestCompilerInvocation:
    @pytest.mark.unit
    def test_dev(self, context: ProjectContext):
        invocation = Compiler().invocation(context.frontend, BuildProfile.DEV)
        assert invocation.argv == [
            "cargo",
            "build",
            "--lib",
            "--target",
            WASM_TARGET,
            "--manifest-path",
            str(context.frontend.manifest_path),
        ]
        assert invocation.cwd == context.frontend.directory

    @pytest.mark.unit
    @pytest.mark.parametrize("profile", [BuildProfile.RELEASE, BuildProfile.PROFILING])
    def test_optimized_profiles_use_release(self, context: ProjectContext, profile):
        invocation = Compiler().invocation(context.frontend, profile)
        assert invocation.args[-1] == "--release"

    @pytest.mark.unit
    def test_artifact_path(self, context: ProjectContext):
        path = Compiler.artifact_path(context, context.frontend, BuildProfile.PROFILING)
        assert path == context.target_directory / WASM_TARGET / "release" / "frontend.wasm"


class TestCompilerRun:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_success_does_not_capture(self, context: ProjectContext):
        compiler = Compiler()
        invocation = compiler.invocation(context.frontend, BuildProfile.DEV)
        invocation.env["RUSTFLAGS"] = "--cfg=web_sys_unstable_apis"
        mock = AsyncMock(return_value=(0, "", ""))
        with patch("wasmrun.builder.compiler.run_command", mock):
            await compiler.run(invocation)
        assert mock.call_args.kwargs["capture"] is False
        assert mock.call_args.kwargs["env"] == {"RUSTFLAGS": "--cfg=web_sys_unstable_apis"}

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_exit_code(self, context: ProjectContext):
        compiler = Compiler()
        with patch("wasmrun.builder.compiler.run_command", AsyncMock(return_value=(101, "", ""))):
            with pytest.raises(CompileError) as exc_info:
                await compiler.run(compiler.invocation(context.frontend, BuildProfile.DEV))
        assert exc_info.value.exit_code == 101
        assert exc_info.value.signal is None
        assert "exit with code 101" in str(exc_info.value)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_signal(self, context: ProjectContext):
        compiler = Compiler()
        with patch("wasmrun.builder.compiler.run_command", AsyncMock(return_value=(-9, "", ""))):
            with pytest.raises(CompileError) as exc_info:
                await compiler.run(compiler.invocation(context.frontend, BuildProfile.DEV))
        assert exc_info.value.signal == 9
        assert "terminated by signal 9" in str(exc_info.value)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_missing_cargo(self, context: ProjectContext):
        compiler = Compiler(cargo_binary="no-such-cargo")
        with pytest.raises(CompileError, match="could not be started"):
            await compiler.run(compiler.invocation(context.frontend, BuildProfile.DEV))

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_announce_echoes_command_line(self, context: ProjectContext, capsys):
        compiler = Compiler()
        invocation = compiler.invocation(context.frontend, BuildProfile.DEV)
        with patch("wasmrun.builder.compiler.run_command", AsyncMock(return_value=(0, "", ""))):
            await compiler.run(invocation)
            assert "Running cargo build" in capsys.readouterr().err
            await compiler.run(invocation, announce=False)
        assert capsys.readouterr().err == ""
