"""Command arguments and the capability interfaces the pipeline relies on.

The pipeline never looks at a concrete argument type. Anything that
satisfies :class:`BuildArgs` (or :class:`ServeArgs` for ``serve``) can be
passed through it, so an embedding application may substitute its own types
with extra flags. The defaults are Pydantic models populated from
``argparse``.
"""

from __future__ import annotations

import argparse
import typing
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from pydantic import BaseModel, Field

from .config import Settings
from .errors import ConfigurationError
from .project import ProjectContext


@runtime_checkable
class BuildArgs(Protocol):
    """Capability set for the ``build`` command."""

    profiling: bool

    def output_path(self, context: ProjectContext) -> Path:
        """Directory the pipeline owns and recreates on every build."""
        ...

    @classmethod
    def add_arguments(cls, parser: argparse.ArgumentParser, settings: Settings) -> None: ...

    @classmethod
    def from_namespace(cls, namespace: argparse.Namespace) -> "BuildArgs": ...


@runtime_checkable
class ServeArgs(Protocol):
    """Capability set for the ``serve`` command."""

    log: bool
    ip: str
    port: int
    build_args: Any

    @classmethod
    def add_arguments(cls, parser: argparse.ArgumentParser, settings: Settings) -> None: ...

    @classmethod
    def from_namespace(cls, namespace: argparse.Namespace) -> "ServeArgs": ...


class DefaultBuildArgs(BaseModel):
    """Build arguments."""

    build_path: Path | None = Field(default=None, description="Build directory output")
    profiling: bool = Field(
        default=False, description="Create a profiling build. Enable optimizations and debug info."
    )

    def output_path(self, context: ProjectContext) -> Path:
        return self.build_path if self.build_path is not None else context.build_path

    @classmethod
    def add_arguments(cls, parser: argparse.ArgumentParser, settings: Settings) -> None:
        parser.add_argument(
            "--build-path",
            type=Path,
            default=None,
            help="Build directory output (default: <workspace>/%s)" % settings.build_dir_name,
        )
        parser.add_argument(
            "--profiling",
            action="store_true",
            help="Create a profiling build. Enable optimizations and debug info.",
        )

    @classmethod
    def from_namespace(cls, namespace: argparse.Namespace) -> "DefaultBuildArgs":
        return cls(build_path=namespace.build_path, profiling=namespace.profiling)


class DefaultServeArgs(BaseModel):
    """Serve arguments."""

    log: bool = Field(default=False, description="Activate HTTP logs")
    ip: str = Field(default="127.0.0.1", description="IP address to bind")
    port: int = Field(default=3000, ge=0, le=65535)
    build_args: DefaultBuildArgs = Field(default_factory=DefaultBuildArgs)

    @classmethod
    def add_arguments(cls, parser: argparse.ArgumentParser, settings: Settings) -> None:
        parser.add_argument("--log", action="store_true", help="Activate HTTP logs")
        parser.add_argument(
            "--ip",
            default=settings.default_ip,
            help="IP address to bind. Use 0.0.0.0 to expose the server to your network.",
        )
        parser.add_argument(
            "--port", "-p", type=int, default=settings.default_port, help="Port number"
        )
        nested_build_args_type(cls).add_arguments(parser, settings)

    @classmethod
    def from_namespace(cls, namespace: argparse.Namespace) -> "DefaultServeArgs":
        build_type = nested_build_args_type(cls)
        return cls(
            log=namespace.log,
            ip=namespace.ip,
            port=namespace.port,
            build_args=build_type.from_namespace(namespace),
        )


def nested_build_args_type(serve_type: type) -> type:
    """Return the declared type of ``serve_type.build_args``.

    Raises:
        ConfigurationError: If the serve type does not declare ``build_args``.
    """
    fields = getattr(serve_type, "model_fields", None)
    if fields and "build_args" in fields:
        annotation = fields["build_args"].annotation
    else:
        try:
            annotation = typing.get_type_hints(serve_type).get("build_args")
        except NameError as exc:
            raise ConfigurationError(
                f"could not resolve annotations of `{serve_type.__name__}`: {exc}"
            ) from exc
    if not isinstance(annotation, type):
        raise ConfigurationError(
            f"`{serve_type.__name__}` must declare a concrete `build_args` type"
        )
    return annotation


def check_args_types(build_type: type, serve_type: type) -> None:
    """Verify the two command types can flow through the pipeline together.

    The type the serve command nests for its own build must be exactly the
    build command's type, so hooks always receive the type the application
    declared, whichever command is running.

    Raises:
        ConfigurationError: On any mismatch.
    """
    for kind, declared, needed in (
        ("build", build_type, ("output_path", "add_arguments", "from_namespace")),
        ("serve", serve_type, ("add_arguments", "from_namespace")),
    ):
        missing = [name for name in needed if not callable(getattr(declared, name, None))]
        if missing:
            raise ConfigurationError(
                f"`{declared.__name__}` cannot be used for the `{kind}` command: "
                f"missing {', '.join(missing)}"
            )

    nested = nested_build_args_type(serve_type)
    if nested is not build_type:
        raise ConfigurationError(
            f"invalid type for the `build` command: `{serve_type.__name__}.build_args` is "
            f"`{nested.__name__}` but the build command uses `{build_type.__name__}`; "
            "both must be the same type"
        )
