"""Compiler invocation: ``cargo build`` for the ``wasm32-unknown-unknown`` target."""

from __future__ import annotations

from pathlib import Path

from ..errors import CompileError
from ..invocation import Invocation
from ..profile import BuildProfile
from ..project import Package, ProjectContext
from ..utils import console, run_command

WASM_TARGET = "wasm32-unknown-unknown"


class Compiler:
    """Builds the frontend library with cargo.

    Compiler output is not captured: diagnostics reach the terminal verbatim.
    """

    def __init__(self, cargo_binary: str = "cargo") -> None:
        self.cargo_binary = cargo_binary

    def invocation(self, package: Package, profile: BuildProfile) -> Invocation:
        """Return the command line for *package*, ready for ``pre_build`` to edit."""
        invocation = Invocation(program=self.cargo_binary, cwd=package.directory)
        invocation.arg("build", "--lib", "--target", WASM_TARGET, "--manifest-path", package.manifest_path)
        if profile.is_optimized:
            invocation.arg("--release")
        return invocation

    async def run(self, invocation: Invocation, announce: bool = True) -> None:
        """Run the compiler. *announce* echoes the command line first.

        Raises:
            CompileError: On a non-zero exit or signal termination. The error
                records which one happened.
        """
        if announce:
            console.print(f"[dim]Running {' '.join(invocation.argv)}[/dim]")
        try:
            returncode, _, _ = await run_command(
                invocation.argv,
                cwd=invocation.cwd,
                env=invocation.env or None,
                capture=False,
            )
        except FileNotFoundError as exc:
            raise CompileError() from exc

        if returncode < 0:
            raise CompileError(signal=-returncode)
        if returncode != 0:
            raise CompileError(exit_code=returncode)

    @staticmethod
    def artifact_path(context: ProjectContext, package: Package, profile: BuildProfile) -> Path:
        """Where cargo writes the compiled module for *profile*."""
        return (
            context.target_directory
            / WASM_TARGET
            / profile.target_subdir
            / f"{package.artifact_name}.wasm"
        )
