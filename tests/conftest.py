"""Shared pytest fixtures for the wasmrun test suite.

Provides reusable fixtures for:
- A fake cargo workspace on disk and its ``cargo metadata`` document
- A ready-made ProjectContext and Settings
- Stub compiler / binding generator / optimizer that never run a tool,
  and a factory for pipelines wired to them
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any

import pytest

from wasmrun.builder.bindgen import BindgenOutput
from wasmrun.config import Settings
from wasmrun.hooks import Hooks
from wasmrun.invocation import Invocation
from wasmrun.pipeline import BuildPipeline
from wasmrun.profile import BuildProfile
from wasmrun.project import Package, ProjectContext

FAKE_JS = "export default async function init() {}\n"
FAKE_WASM = b"\x00asm\x01\x00\x00\x00"


# ---------------------------------------------------------------------------
# Workspace
# ---------------------------------------------------------------------------


def _write_crate(root: Path, name: str) -> Path:
    crate = root / name
    (crate / "src").mkdir(parents=True)
    (crate / "Cargo.toml").write_text(f'[package]\nname = "{name}"\n', encoding="utf-8")
    (crate / "src" / "lib.rs").write_text("", encoding="utf-8")
    return crate


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """Workspace with a ``frontend``, a ``shared`` and a ``server`` crate."""
    root = tmp_path / "workspace"
    root.mkdir()
    for name in ("frontend", "shared", "server"):
        _write_crate(root, name)
    (root / "target").mkdir()
    return root


@pytest.fixture
def cargo_metadata(workspace: Path) -> dict[str, Any]:
    """``cargo metadata --format-version 1 --no-deps`` output for ``workspace``."""

    def package(name: str, deps: list[str]) -> dict[str, Any]:
        return {
            "name": name,
            "id": f"{name} 0.1.0 (path+file://{workspace / name})",
            "manifest_path": str(workspace / name / "Cargo.toml"),
            "dependencies": [{"name": dep} for dep in deps],
        }

    packages = [
        package("frontend", ["shared", "wasm-bindgen"]),
        package("shared", ["serde"]),
        package("server", ["shared"]),
    ]
    return {
        "packages": packages,
        "workspace_members": [p["id"] for p in packages],
        "workspace_root": str(workspace),
        "target_directory": str(workspace / "target"),
    }


@pytest.fixture
def context(cargo_metadata: dict[str, Any]) -> ProjectContext:
    return ProjectContext.from_metadata(cargo_metadata, frontend="frontend", backend="server")


@pytest.fixture
def frontend_only_context(cargo_metadata: dict[str, Any]) -> ProjectContext:
    return ProjectContext.from_metadata(cargo_metadata, frontend="frontend")


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        debounce_seconds=0.2,
        cache_dir=tmp_path / "cache",
        download_wasm_opt=False,
    )


# ---------------------------------------------------------------------------
# Toolchain stubs
# ---------------------------------------------------------------------------


class StubCompiler:
    """Records invocations; plays back scripted outcomes, one per run.

    An outcome of ``None`` is a successful compile, an exception is raised
    as if cargo had failed. Once the script is exhausted every run succeeds.
    When a *gate* is given each run waits for it first.
    """

    def __init__(self, outcomes=(), gate: asyncio.Event | None = None) -> None:
        self.outcomes = list(outcomes)
        self.gate = gate
        self.invocations: list[Invocation] = []

    def invocation(self, package: Package, profile: BuildProfile) -> Invocation:
        invocation = Invocation(program="cargo", cwd=package.directory)
        invocation.arg("build", "--lib")
        if profile.is_optimized:
            invocation.arg("--release")
        return invocation

    async def run(self, invocation: Invocation, announce: bool = True) -> None:
        self.invocations.append(invocation)
        if self.gate is not None:
            await self.gate.wait()
        outcome = self.outcomes.pop(0) if self.outcomes else None
        if outcome is not None:
            raise outcome

    @staticmethod
    def artifact_path(context: ProjectContext, package: Package, profile: BuildProfile) -> Path:
        return context.target_directory / f"{package.artifact_name}.wasm"


class StubBindgen:
    def __init__(self, js: str = FAKE_JS, wasm: bytes = FAKE_WASM) -> None:
        self.js = js
        self.wasm = wasm
        self.calls: list[tuple[Path, BuildProfile]] = []

    async def generate(self, wasm_path: Path, profile: BuildProfile) -> BindgenOutput:
        self.calls.append((wasm_path, profile))
        return BindgenOutput(js=self.js, wasm=self.wasm)


class StubOptimizer:
    def __init__(self) -> None:
        self.calls: list[BuildProfile] = []

    async def optimize(self, wasm_bin: bytes, profile: BuildProfile) -> bytes:
        self.calls.append(profile)
        return wasm_bin + b"-opt"


@pytest.fixture
def fake_js() -> str:
    return FAKE_JS


@pytest.fixture
def fake_wasm() -> bytes:
    return FAKE_WASM


@pytest.fixture
def make_compiler():
    """Factory: ``make_compiler(CompileError(...), None, gate=event)``."""

    def factory(*outcomes, gate: asyncio.Event | None = None) -> StubCompiler:
        return StubCompiler(outcomes, gate=gate)

    return factory


@pytest.fixture
def stub_compiler() -> StubCompiler:
    return StubCompiler()


@pytest.fixture
def stub_bindgen() -> StubBindgen:
    return StubBindgen()


@pytest.fixture
def stub_optimizer() -> StubOptimizer:
    return StubOptimizer()


@pytest.fixture
def make_pipeline(context: ProjectContext, settings: Settings, stub_bindgen, stub_optimizer):
    """Factory for a BuildPipeline wired to the toolchain stubs."""

    def factory(context=context, settings=settings, hooks=None, compiler=None) -> BuildPipeline:
        return BuildPipeline(
            context,
            settings,
            hooks or Hooks(),
            compiler=compiler or StubCompiler(),
            bindgen=stub_bindgen,
            optimizer=stub_optimizer,
        )

    return factory
