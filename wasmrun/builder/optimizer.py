"""WASM optimization through ``wasm-opt``.

Concurrent builds sharing one toolchain cache can make ``wasm-opt`` fail
with a couple of well-known messages. Those failures are retried after a
random pause so competing processes restart at different times; anything
else is fatal immediately.
"""

from __future__ import annotations

import asyncio
import random
import tempfile
from pathlib import Path

from ..errors import OptimizationError
from ..profile import OPTIMIZER_LEVELS, BuildProfile
from ..utils import print_warning, run_command
from .prebuilt import WasmOptLocator

TRANSIENT_SIGNATURES: tuple[str, ...] = (
    "Directory not empty",
    "binary does not exist",
)


def is_transient_failure(message: str) -> bool:
    """Return ``True`` if *message* matches a cache-contention signature."""
    return any(signature in message for signature in TRANSIENT_SIGNATURES)


class Optimizer:
    """Runs ``wasm-opt`` with profile-dependent levels and bounded retries."""

    def __init__(
        self,
        locator: WasmOptLocator,
        retries: int = 3,
        backoff_min_ms: int = 1000,
        backoff_max_ms: int = 5000,
    ) -> None:
        self.locator = locator
        self.retries = retries
        self.backoff_min_ms = backoff_min_ms
        self.backoff_max_ms = backoff_max_ms

    def backoff_delay_ms(self) -> float:
        """Uniform sample in ``[backoff_min_ms, backoff_max_ms)``."""
        return self.backoff_min_ms + random.random() * (self.backoff_max_ms - self.backoff_min_ms)

    @staticmethod
    def command(binary: Path, profile: BuildProfile, input_path: Path, output_path: Path) -> list[str]:
        levels = OPTIMIZER_LEVELS[profile]
        cmd = [
            str(binary),
            "-O",
            "-ol",
            str(levels.optimization_level),
            "-s",
            str(levels.shrink_level),
        ]
        if levels.debug_info:
            cmd.append("-g")
        cmd.extend(["-o", str(output_path), str(input_path)])
        return cmd

    async def optimize(self, wasm_bin: bytes, profile: BuildProfile) -> bytes:
        """Optimize *wasm_bin* for *profile* (which must not be ``DEV``).

        Raises:
            OptimizationError: On a permanent failure, or once the retry
                budget for transient failures is exhausted.
        """
        if profile not in OPTIMIZER_LEVELS:
            raise ValueError(f"profile {profile.value} is not optimized")

        retries_done = 0
        while True:
            try:
                return await self._run_once(wasm_bin, profile)
            except OptimizationError as exc:
                if not exc.transient:
                    raise
                if retries_done >= self.retries:
                    raise OptimizationError(
                        f"wasm-opt still failing after {retries_done} retries: {exc}",
                        transient=False,
                        stderr=exc.stderr,
                    ) from exc
                retries_done += 1
                delay_ms = self.backoff_delay_ms()
                print_warning(
                    f"wasm-opt hit a cache conflict, retrying in {delay_ms / 1000:.1f}s "
                    f"({retries_done}/{self.retries})"
                )
                await asyncio.sleep(delay_ms / 1000)

    async def _run_once(self, wasm_bin: bytes, profile: BuildProfile) -> bytes:
        binary = await self.locator.resolve()
        with tempfile.TemporaryDirectory(prefix="wasmrun-opt-") as tmp:
            input_path = Path(tmp) / "input.wasm"
            output_path = Path(tmp) / "output.wasm"
            input_path.write_bytes(wasm_bin)

            try:
                returncode, stdout, stderr = await run_command(
                    self.command(binary, profile, input_path, output_path),
                    env=self.locator.library_env(binary),
                )
            except FileNotFoundError as exc:
                raise OptimizationError(f"could not run `{binary}`: {exc}") from exc

            if returncode != 0:
                message = stderr or stdout or f"exit code {returncode}"
                raise OptimizationError(
                    f"command `wasm-opt` failed:\n{message}",
                    transient=is_transient_failure(message),
                    stderr=stderr,
                )
            if not output_path.is_file():
                raise OptimizationError("command `wasm-opt` produced no output")
            return output_path.read_bytes()
