"""Build profiles and the toolchain parameters derived from them."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class BuildProfile(str, Enum):
    """A build profile for the WASM binary.

    ``DEV``: no ``--release``, no optimization.
    ``RELEASE``: ``--release``, optimized, debug info stripped.
    ``PROFILING``: ``--release``, optimized, debug info retained.
    """

    DEV = "dev"
    RELEASE = "release"
    PROFILING = "profiling"

    @property
    def is_optimized(self) -> bool:
        return self is not BuildProfile.DEV

    @property
    def target_subdir(self) -> str:
        """Directory name under ``<target>/wasm32-unknown-unknown/``."""
        return "debug" if self is BuildProfile.DEV else "release"

    @property
    def keeps_debug_info(self) -> bool:
        return self is not BuildProfile.RELEASE

    def effective(self, profiling: bool) -> "BuildProfile":
        """Resolve the profile actually built.

        A profiling flag always upgrades to ``PROFILING`` and never downgrades.
        """
        return BuildProfile.PROFILING if profiling else self


@dataclass(frozen=True)
class OptimizerLevels:
    """``wasm-opt`` settings for one profile."""

    shrink_level: int
    optimization_level: int
    debug_info: bool


OPTIMIZER_LEVELS: dict[BuildProfile, OptimizerLevels] = {
    BuildProfile.RELEASE: OptimizerLevels(shrink_level=1, optimization_level=2, debug_info=False),
    BuildProfile.PROFILING: OptimizerLevels(shrink_level=0, optimization_level=2, debug_info=True),
}
