"""Command-line application object.

An embedding application creates one :class:`WasmRun`, registers the hooks
and extra commands it needs, and hands control to :meth:`WasmRun.main`::

    app = WasmRun("my-frontend")

    @app.hook("post_build")
    def post_build(args, profile, wasm_js, wasm_bin, env):
        ...

    if __name__ == "__main__":
        raise SystemExit(app.main())

Every declaration error (unknown or duplicate hook, duplicate command,
mismatching argument types, SASS without libsass) raises
:class:`ConfigurationError` immediately, before any command runs.
"""

from __future__ import annotations

import argparse
import asyncio
import dataclasses
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from .args import DefaultBuildArgs, DefaultServeArgs, check_args_types
from .builder.styles import ensure_sass_available
from .config import Settings
from .errors import ConfigurationError, WasmRunError
from .hooks import HOOK_NAMES, Hooks, call_hook
from .pipeline import BuildPipeline
from .profile import BuildProfile
from .project import MetadataProvider, ProjectContext
from .supervisor.devloop import DevLoop, ServeMode
from .utils import console, print_summary_table

RESERVED_COMMANDS = ("build", "serve")


@dataclass(frozen=True)
class UserCommand:
    """A command declared by the embedding application."""

    name: str
    handler: Callable[[argparse.Namespace, ProjectContext], Any]
    help: str = ""
    configure: Callable[[argparse.ArgumentParser], None] | None = None


class WasmRun:
    """The ``build`` / ``serve`` application for one frontend unit.

    Args:
        package: Name of the frontend unit compiled to WASM.
        backend: Optional backend unit, required for the external backend mode.
        mode: How ``serve`` runs (embedded server or external backend).
        hooks: Initial hook set; :meth:`hook` adds to it.
        build_args_type: Type of the ``build`` arguments.
        serve_args_type: Type of the ``serve`` arguments. Its ``build_args``
            must be declared as *build_args_type*.
        settings: Defaults to :meth:`Settings.from_env`.
        default_build_path: Called with the context to pick the default
            output directory instead of ``<workspace>/build``.
    """

    def __init__(
        self,
        package: str,
        backend: str | None = None,
        mode: ServeMode = ServeMode.EMBEDDED,
        hooks: Hooks | None = None,
        build_args_type: type = DefaultBuildArgs,
        serve_args_type: type = DefaultServeArgs,
        settings: Settings | None = None,
        default_build_path: Callable[[ProjectContext], Path] | None = None,
        metadata_provider: MetadataProvider | None = None,
        prog: str | None = None,
        description: str | None = None,
    ) -> None:
        check_args_types(build_args_type, serve_args_type)
        self.package = package
        self.backend = backend
        self.mode = ServeMode(mode)
        self.build_args_type = build_args_type
        self.serve_args_type = serve_args_type
        self.settings = settings or Settings.from_env()
        if self.settings.sass:
            ensure_sass_available()
        self.default_build_path = default_build_path
        self.metadata_provider = metadata_provider or MetadataProvider()
        self.prog = prog
        self.description = description or f"Build and serve the {package} WASM frontend"

        self._base_hooks = hooks or Hooks()
        self._overrides: dict[str, Callable[..., Any]] = {}
        self.commands: dict[str, UserCommand] = {}

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def hook(self, name: str) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
        """Decorator registering *fn* as the ``name`` hook.

        Raises:
            ConfigurationError: Unknown name, or the hook is already set.
        """
        if name not in HOOK_NAMES:
            raise ConfigurationError(
                f"invalid hook name `{name}`; expected one of {', '.join(HOOK_NAMES)}"
            )
        if name in self._overrides or self._base_hooks.is_overridden(name):
            raise ConfigurationError(f"hook `{name}` is already registered")

        def register(fn: Callable[..., Any]) -> Callable[..., Any]:
            if not callable(fn):
                raise ConfigurationError(f"hook `{name}` must be callable")
            self._overrides[name] = fn
            return fn

        return register

    def command(
        self,
        name: str,
        help: str = "",
        configure: Callable[[argparse.ArgumentParser], None] | None = None,
    ) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
        """Decorator declaring an extra subcommand.

        The handler is called with the parsed namespace and the
        :class:`ProjectContext`. It may be a coroutine function.
        """
        if name in RESERVED_COMMANDS:
            raise ConfigurationError(f"command name `{name}` is reserved")
        if name in self.commands:
            raise ConfigurationError(f"command `{name}` is already registered")

        def register(handler: Callable[..., Any]) -> Callable[..., Any]:
            self.commands[name] = UserCommand(name, handler, help, configure)
            return handler

        return register

    @property
    def hooks(self) -> Hooks:
        return dataclasses.replace(self._base_hooks, **self._overrides)

    # ------------------------------------------------------------------
    # Parsing
    # ------------------------------------------------------------------

    def build_parser(self) -> argparse.ArgumentParser:
        parser = argparse.ArgumentParser(prog=self.prog, description=self.description)
        subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")
        subparsers.required = True

        build = subparsers.add_parser("build", help="Build the WASM application (release)")
        self.build_args_type.add_arguments(build, self.settings)

        serve = subparsers.add_parser(
            "serve", help="Start a development server that rebuilds on change"
        )
        self.serve_args_type.add_arguments(serve, self.settings)

        for command in self.commands.values():
            sub = subparsers.add_parser(command.name, help=command.help)
            if command.configure is not None:
                command.configure(sub)
        return parser

    # ------------------------------------------------------------------
    # Running
    # ------------------------------------------------------------------

    async def load_context(self) -> ProjectContext:
        return await self.metadata_provider.load(
            frontend=self.package,
            backend=self.backend,
            default_build_path=self.default_build_path,
            build_dir_name=self.settings.build_dir_name,
        )

    def create_pipeline(self, context: ProjectContext) -> BuildPipeline:
        return BuildPipeline(context, self.settings, self.hooks)

    @staticmethod
    def parse_command_args(args_type: type, namespace: argparse.Namespace) -> Any:
        """Build the typed arguments of a command from the parsed namespace.

        Raises:
            ConfigurationError: A value is rejected by the arguments type.
        """
        try:
            return args_type.from_namespace(namespace)
        except ValidationError as exc:
            problems = "; ".join(
                f"{'.'.join(str(part) for part in error['loc']) or 'value'}: {error['msg']}"
                for error in exc.errors()
            )
            raise ConfigurationError(f"invalid `{namespace.command}` arguments: {problems}") from exc

    async def run_async(self, argv: Sequence[str] | None = None) -> None:
        """Parse *argv* and run the selected command."""
        namespace = self.build_parser().parse_args(argv)

        if namespace.command == "build":
            args = self.parse_command_args(self.build_args_type, namespace)
            context = await self.load_context()
            build_path = await self.create_pipeline(context).build(BuildProfile.RELEASE, args)
            print_summary_table(
                {
                    entry.name: f"{entry.stat().st_size:,} bytes" if entry.is_file() else "directory"
                    for entry in sorted(build_path.iterdir())
                },
                title=f"Build output ({build_path})",
            )
        elif namespace.command == "serve":
            args = self.parse_command_args(self.serve_args_type, namespace)
            context = await self.load_context()
            await DevLoop(self.create_pipeline(context), mode=self.mode).run(args)
        else:
            command = self.commands[namespace.command]
            await call_hook(command.handler, namespace, await self.load_context())

    def main(self, argv: Sequence[str] | None = None) -> int:
        """Run the CLI and return the process exit code."""
        try:
            asyncio.run(self.run_async(argv))
        except WasmRunError as exc:
            console.print(f"[bold red]Error:[/bold red] {exc}", highlight=False)
            return 1
        except KeyboardInterrupt:
            console.print("[yellow]Interrupted.[/yellow]")
            return 130
        return 0
