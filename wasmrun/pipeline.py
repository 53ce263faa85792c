"""Build pipeline.

Runs one build profile to completion:

1. resolve the effective profile (``--profiling`` upgrades to PROFILING)
2. ``pre_build`` hook, which may edit the compiler command line
3. compile the frontend unit to WASM
4. generate JS bindings and the transformed binary
5. recreate the output directory from scratch
6. optimize the binary (RELEASE and PROFILING only)
7. ``post_build`` hook, which writes the artifacts

The output directory is owned by the pipeline: nothing may rely on what a
previous build left in it.
"""

from __future__ import annotations

import time
from pathlib import Path
from typing import Any

from .builder.bindgen import BindingGenerator
from .builder.compiler import Compiler
from .builder.optimizer import Optimizer
from .builder.prebuilt import WasmOptLocator
from .config import Settings
from .errors import ConfigurationError, WasmRunError
from .hooks import HookEnv, Hooks, call_hook
from .profile import BuildProfile
from .project import ProjectContext
from .utils import console, format_duration, is_relative_to, print_success, recreate_dir


class BuildPipeline:
    """Drives the toolchain for the frontend unit of a :class:`ProjectContext`.

    Attributes:
        context: The workspace being built.
        settings: Shared tunables.
        hooks: The hook set; defaults fill in whatever was not overridden.
    """

    def __init__(
        self,
        context: ProjectContext,
        settings: Settings,
        hooks: Hooks,
        compiler: Compiler | None = None,
        bindgen: BindingGenerator | None = None,
        optimizer: Optimizer | None = None,
    ) -> None:
        self.context = context
        self.settings = settings
        self.hooks = hooks
        self.compiler = compiler or Compiler()
        self.bindgen = bindgen or BindingGenerator()
        self.optimizer = optimizer or Optimizer(
            WasmOptLocator(settings.cache_dir, download=settings.download_wasm_opt),
            retries=settings.optimizer_retries,
            backoff_min_ms=settings.backoff_min_ms,
            backoff_max_ms=settings.backoff_max_ms,
        )

    @property
    def env(self) -> HookEnv:
        return HookEnv(context=self.context, settings=self.settings)

    async def build(self, profile: BuildProfile, args: Any, announce: bool = True) -> Path:
        """Build *profile* with the given build arguments.

        Args:
            profile: Requested profile.
            args: Any object satisfying the ``BuildArgs`` capability set.
            announce: Print progress and a success line. The dev loop turns it
                off for rebuilds.

        Returns:
            The output directory.

        Raises:
            CompileError, BindingError, OptimizationError, StyleError: From
                the matching step. Each one aborts the build.
        """
        started = time.monotonic()
        effective = profile.effective(args.profiling)
        env = self.env
        package = self.context.frontend

        invocation = self.compiler.invocation(package, effective)
        await call_hook(self.hooks.pre_build, args, effective, invocation, env)
        await self.compiler.run(invocation, announce=announce)

        wasm_path = self.compiler.artifact_path(self.context, package, effective)
        output = await self.bindgen.generate(wasm_path, effective)

        build_path = Path(args.output_path(self.context))
        self._prepare_build_path(build_path)

        wasm_bin = output.wasm
        if effective.is_optimized:
            if announce:
                console.print(f"[dim]Optimizing {package.artifact_name}.wasm ({effective.value})[/dim]")
            wasm_bin = await self.optimizer.optimize(wasm_bin, effective)

        await call_hook(self.hooks.post_build, args, effective, output.js, wasm_bin, env)

        if announce:
            print_success(
                f"Built {package.name} ({effective.value}) into {build_path} "
                f"in {format_duration(time.monotonic() - started)}"
            )
        return build_path

    def _prepare_build_path(self, build_path: Path) -> None:
        root = self.context.workspace_root.resolve()
        if is_relative_to(root, build_path.resolve()):
            raise ConfigurationError(
                f"refusing to use `{build_path}` as build directory: it contains the workspace"
            )
        try:
            recreate_dir(build_path)
        except OSError as exc:
            raise WasmRunError(f"could not create build directory `{build_path}`: {exc}") from exc
