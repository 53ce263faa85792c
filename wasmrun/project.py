"""Workspace metadata and the process-wide project context.

The :class:`ProjectContext` is built exactly once at startup from
``cargo metadata`` output and then handed explicitly to every component.
It is a frozen Pydantic model: assigning to it after construction raises.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from .errors import MetadataError
from .utils import run_command


class Package(BaseModel):
    """A buildable unit of the workspace."""

    model_config = ConfigDict(frozen=True)

    name: str
    id: str = ""
    manifest_path: Path
    dependencies: tuple[str, ...] = ()

    @property
    def directory(self) -> Path:
        return self.manifest_path.parent

    @property
    def src_dir(self) -> Path:
        return self.directory / "src"

    @property
    def artifact_name(self) -> str:
        """File stem of the compiled library (``-`` is not allowed there)."""
        return self.name.replace("-", "_")


class ProjectContext(BaseModel):
    """Write-once record of the workspace this invocation operates on.

    Attributes:
        workspace_root: Root directory of the workspace.
        target_directory: The toolchain's intermediate build/cache directory.
        packages: Every workspace member.
        frontend: The unit compiled to WASM.
        backend: Optional unit run as an external backend in ``serve``.
        build_path: Default output directory when the command line gives none.
    """

    model_config = ConfigDict(frozen=True)

    workspace_root: Path
    target_directory: Path
    packages: tuple[Package, ...] = Field(default_factory=tuple)
    frontend: Package
    backend: Package | None = None
    build_path: Path

    def package(self, name: str) -> Package:
        """Look up a workspace member by name."""
        for package in self.packages:
            if package.name == name:
                return package
        raise MetadataError(
            f"package `{name}` is not a member of the workspace at {self.workspace_root}"
        )

    def workspace_dependencies(self, package: Package) -> list[Package]:
        """Return the workspace-internal dependencies of *package*, transitively.

        The package itself is not included. Order is breadth-first and stable.
        """
        members = {p.name: p for p in self.packages}
        seen = {package.name}
        order: list[Package] = []
        queue = list(package.dependencies)
        while queue:
            name = queue.pop(0)
            if name in seen or name not in members:
                continue
            seen.add(name)
            dep = members[name]
            order.append(dep)
            queue.extend(dep.dependencies)
        return order

    @classmethod
    def from_metadata(
        cls,
        metadata: dict[str, Any],
        frontend: str,
        backend: str | None = None,
        default_build_path: Callable[["ProjectContext"], Path] | None = None,
        build_dir_name: str = "build",
    ) -> "ProjectContext":
        """Build the context from parsed ``cargo metadata`` JSON.

        Raises:
            MetadataError: If the document is malformed or a named unit is
                not a workspace member.
        """
        try:
            workspace_root = Path(metadata["workspace_root"])
            target_directory = Path(metadata["target_directory"])
            members = set(metadata.get("workspace_members", []))
            raw_packages = metadata["packages"]
        except (KeyError, TypeError) as exc:
            raise MetadataError(f"malformed workspace metadata: missing {exc}") from exc

        packages = tuple(
            Package(
                name=raw["name"],
                id=raw.get("id", ""),
                manifest_path=Path(raw["manifest_path"]),
                dependencies=tuple(dep["name"] for dep in raw.get("dependencies", [])),
            )
            for raw in raw_packages
            if not members or raw.get("id") in members
        )
        by_name = {p.name: p for p in packages}

        if frontend not in by_name:
            raise MetadataError(
                f"package `{frontend}` is not a member of the workspace at {workspace_root}"
            )
        if backend is not None and backend not in by_name:
            raise MetadataError(
                f"backend package `{backend}` is not a member of the workspace at {workspace_root}"
            )

        context = cls(
            workspace_root=workspace_root,
            target_directory=target_directory,
            packages=packages,
            frontend=by_name[frontend],
            backend=by_name[backend] if backend else None,
            build_path=workspace_root / build_dir_name,
        )
        if default_build_path is not None:
            context = context.model_copy(update={"build_path": Path(default_build_path(context))})
        return context


class MetadataProvider:
    """Reads workspace metadata through ``cargo metadata``."""

    def __init__(self, cargo_binary: str = "cargo") -> None:
        self.cargo_binary = cargo_binary

    async def fetch(self, cwd: str | Path | None = None) -> dict[str, Any]:
        """Run ``cargo metadata`` and return the parsed document.

        Raises:
            MetadataError: If cargo is missing, fails, or prints invalid JSON.
        """
        cmd = [self.cargo_binary, "metadata", "--format-version", "1", "--no-deps"]
        try:
            returncode, stdout, stderr = await run_command(cmd, cwd=cwd)
        except FileNotFoundError as exc:
            raise MetadataError(
                f"`{self.cargo_binary}` not found: this tool must run inside a cargo workspace"
            ) from exc

        if returncode != 0:
            raise MetadataError(f"could not read workspace metadata:\n{stderr}")
        try:
            data = json.loads(stdout)
        except json.JSONDecodeError as exc:
            raise MetadataError(f"invalid workspace metadata: {exc}") from exc
        if not isinstance(data, dict):
            raise MetadataError("invalid workspace metadata: expected a JSON object")
        return data

    async def load(
        self,
        frontend: str,
        backend: str | None = None,
        cwd: str | Path | None = None,
        default_build_path: Callable[[ProjectContext], Path] | None = None,
        build_dir_name: str = "build",
    ) -> ProjectContext:
        """Fetch metadata and build the :class:`ProjectContext`."""
        metadata = await self.fetch(cwd)
        return ProjectContext.from_metadata(
            metadata,
            frontend=frontend,
            backend=backend,
            default_build_path=default_build_path,
            build_dir_name=build_dir_name,
        )
