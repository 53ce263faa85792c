"""wasmrun: build and development orchestrator for WASM frontends.

Key classes:
    WasmRun        - the ``build`` / ``serve`` application object
    BuildPipeline  - compile, bind, optimize, post-build
    Hooks          - the overridable extension points
    DevLoop        - initial build, then serving and watching
"""

from .args import BuildArgs, DefaultBuildArgs, DefaultServeArgs, ServeArgs
from .cli import WasmRun
from .config import Settings
from .errors import (
    BindingError,
    CompileError,
    ConfigurationError,
    DevLoopError,
    MetadataError,
    MissingBackendError,
    OptimizationError,
    RebuildError,
    ServeError,
    StyleError,
    WasmRunError,
    WatchInitError,
)
from .hooks import HookEnv, Hooks
from .invocation import Invocation
from .pipeline import BuildPipeline
from .profile import BuildProfile
from .project import Package, ProjectContext
from .supervisor.devloop import DevLoop, ServeMode

__version__ = "0.1.0"

__all__ = [
    # Application
    "WasmRun",
    "Settings",
    # Pipeline
    "BuildPipeline",
    "BuildProfile",
    "Hooks",
    "HookEnv",
    "Invocation",
    # Arguments
    "BuildArgs",
    "ServeArgs",
    "DefaultBuildArgs",
    "DefaultServeArgs",
    # Project
    "Package",
    "ProjectContext",
    # Dev loop
    "DevLoop",
    "ServeMode",
    # Errors
    "WasmRunError",
    "ConfigurationError",
    "MetadataError",
    "CompileError",
    "BindingError",
    "OptimizationError",
    "StyleError",
    "WatchInitError",
    "ServeError",
    "MissingBackendError",
    "DevLoopError",
    "RebuildError",
]
