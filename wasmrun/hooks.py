"""Hooks: the named extension points of the pipeline and the dev loop.

Every hook has a documented default. Supplying a hook *replaces* the default
entirely; the default and the override are never both run.

========================  =====================================================
Hook                      Default
========================  =====================================================
``pre_build``             Nothing. May mutate the compiler :class:`Invocation`.
``post_build``            Write ``app.js`` / ``app_bg.wasm``, copy ``static/``,
                          copy or render ``index.html``, transpile SASS when
                          enabled.
``serve``                 Serve the output directory, falling back to
                          ``index.html`` for unknown paths.
``watch``                 Watch the frontend unit (embedded server mode).
``frontend_watch``        Same as ``watch`` (external backend mode).
``backend_watch``         Watch the backend unit and its workspace deps.
``backend_command``       ``cargo run --manifest-path <backend>/Cargo.toml``.
========================  =====================================================
"""

from __future__ import annotations

import inspect
from collections.abc import Callable, Mapping
from dataclasses import dataclass, fields
from typing import TYPE_CHECKING, Any

from .builder.styles import build_sass_from_dirs
from .builder.templates import render_default_index
from .config import Settings
from .errors import ConfigurationError, MissingBackendError
from .invocation import Invocation
from .profile import BuildProfile
from .project import Package, ProjectContext
from .utils import copy_tree_contents

if TYPE_CHECKING:
    from starlette.applications import Starlette

    from .watcher.debounce import DebouncedWatcher

SCRIPT_NAME = "app.js"
BINARY_NAME = "app_bg.wasm"
INDEX_NAME = "index.html"


@dataclass(frozen=True)
class HookEnv:
    """What every hook receives besides its own arguments."""

    context: ProjectContext
    settings: Settings


# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------


def default_pre_build(args: Any, profile: BuildProfile, invocation: Invocation, env: HookEnv) -> None:
    return None


def default_post_build(
    args: Any, profile: BuildProfile, wasm_js: str, wasm_bin: bytes, env: HookEnv
) -> None:
    build_path = args.output_path(env.context)
    (build_path / SCRIPT_NAME).write_text(wasm_js, encoding="utf-8")
    (build_path / BINARY_NAME).write_bytes(wasm_bin)

    unit_dir = env.context.frontend.directory
    static_dir = unit_dir / "static"
    if static_dir.is_dir():
        copy_tree_contents(static_dir, build_path)

    index_path = build_path / INDEX_NAME
    if not index_path.exists():
        source_index = unit_dir / INDEX_NAME
        if source_index.is_file():
            index_path.write_bytes(source_index.read_bytes())
        else:
            index_path.write_text(render_default_index(SCRIPT_NAME), encoding="utf-8")

    if env.settings.sass:
        build_sass_from_dirs(args, profile, env.context, build_path)


def default_serve(serve_args: Any, app: "Starlette", env: HookEnv) -> None:
    from .supervisor.server import add_static_routes

    add_static_routes(app, serve_args.build_args.output_path(env.context), INDEX_NAME)


def _watch_package(watcher: "DebouncedWatcher", package: Package) -> None:
    watcher.watch(package.manifest_path, recursive=False)
    watcher.watch(package.src_dir, recursive=True)


def default_watch(serve_args: Any, watcher: "DebouncedWatcher", env: HookEnv) -> None:
    frontend = env.context.frontend
    watcher.watch(frontend.directory / INDEX_NAME, recursive=False)
    watcher.watch(frontend.directory / "static", recursive=True)
    for package in [frontend, *env.context.workspace_dependencies(frontend)]:
        _watch_package(watcher, package)


def default_backend_watch(serve_args: Any, watcher: "DebouncedWatcher", env: HookEnv) -> None:
    backend = env.context.backend
    if backend is None:
        raise MissingBackendError("no backend unit is configured")
    for package in [backend, *env.context.workspace_dependencies(backend)]:
        _watch_package(watcher, package)


def default_backend_command(serve_args: Any, env: HookEnv) -> Invocation:
    backend = env.context.backend
    if backend is None:
        raise MissingBackendError("no backend unit is configured")
    return Invocation(
        program="cargo",
        args=["run", "--manifest-path", str(backend.manifest_path)],
        cwd=env.context.workspace_root,
    )


# ---------------------------------------------------------------------------
# Hook set
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Hooks:
    """The set of hooks used by one application.

    Pass only the hooks you want to replace; every other one keeps its
    default. Hooks may be plain functions or coroutine functions.
    """

    pre_build: Callable[..., Any] = default_pre_build
    post_build: Callable[..., Any] = default_post_build
    serve: Callable[..., Any] = default_serve
    watch: Callable[..., Any] = default_watch
    frontend_watch: Callable[..., Any] = default_watch
    backend_watch: Callable[..., Any] = default_backend_watch
    backend_command: Callable[..., Any] = default_backend_command

    def __post_init__(self) -> None:
        for hook in fields(self):
            if not callable(getattr(self, hook.name)):
                raise ConfigurationError(f"hook `{hook.name}` must be callable")

    def is_overridden(self, name: str) -> bool:
        """``True`` when *name* is bound to something other than its default."""
        defaults = {f.name: f.default for f in fields(self)}
        if name not in defaults:
            raise ConfigurationError(f"unknown hook `{name}`")
        return getattr(self, name) is not defaults[name]

    @classmethod
    def from_mapping(cls, overrides: Mapping[str, Callable[..., Any]]) -> "Hooks":
        """Build a hook set from ``{name: callable}``.

        Raises:
            ConfigurationError: On unknown hook names.
        """
        unknown = sorted(set(overrides) - set(HOOK_NAMES))
        if unknown:
            raise ConfigurationError(
                f"invalid hook name(s): {', '.join(unknown)}; expected one of {', '.join(HOOK_NAMES)}"
            )
        return cls(**dict(overrides))


HOOK_NAMES: tuple[str, ...] = tuple(f.name for f in fields(Hooks))


async def call_hook(hook: Callable[..., Any], *args: Any) -> Any:
    """Call a hook, awaiting the result when it is a coroutine."""
    result = hook(*args)
    if inspect.isawaitable(result):
        result = await result
    return result
