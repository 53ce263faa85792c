"""Locate ``wasm-opt``, downloading a prebuilt binaryen release when needed."""

from __future__ import annotations

import asyncio
import os
import platform
import shutil
import stat
import tarfile
import tempfile
from pathlib import Path, PurePosixPath

import httpx

from ..errors import OptimizationError
from ..utils import console

BINARYEN_VERSION = "116"
RELEASE_URL = (
    "https://github.com/WebAssembly/binaryen/releases/download/"
    "version_{version}/binaryen-version_{version}-{arch}-{os}.tar.gz"
)

_ARCHES = {"x86_64": "x86_64", "amd64": "x86_64", "arm64": "arm64", "aarch64": "aarch64"}
_SYSTEMS = {"Linux": "linux", "Darwin": "macos", "Windows": "windows"}


def release_url(version: str = BINARYEN_VERSION, system: str | None = None, machine: str | None = None) -> str:
    """Return the binaryen tarball URL for the host (or the given) platform.

    Raises:
        OptimizationError: If no prebuilt release exists for the platform.
    """
    system = system or platform.system()
    machine = (machine or platform.machine()).lower()
    os_name = _SYSTEMS.get(system)
    arch = _ARCHES.get(machine)
    if os_name is None or arch is None:
        raise OptimizationError(
            f"no prebuilt wasm-opt for {system}/{machine}; install binaryen and put wasm-opt on PATH"
        )
    if os_name == "macos" and arch == "aarch64":
        arch = "arm64"
    if os_name == "linux" and arch == "arm64":
        arch = "aarch64"
    return RELEASE_URL.format(version=version, arch=arch, os=os_name)


def _extract_tools(archive: Path, dest: Path) -> None:
    """Extract ``bin/`` and ``lib/`` of a binaryen tarball into *dest*."""
    with tarfile.open(archive, "r:gz") as tar:
        for member in tar.getmembers():
            if not member.isfile():
                continue
            parts = PurePosixPath(member.name).parts[1:]
            if not parts or parts[0] not in ("bin", "lib") or ".." in parts:
                continue
            target = dest.joinpath(*parts)
            target.parent.mkdir(parents=True, exist_ok=True)
            source = tar.extractfile(member)
            if source is None:
                continue
            with source, open(target, "wb") as out:
                shutil.copyfileobj(source, out)
            if parts[0] == "bin":
                target.chmod(target.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)


class WasmOptLocator:
    """Finds a usable ``wasm-opt`` binary.

    Lookup order: ``PATH``, then the download cache, then (if allowed) a
    fresh download of the binaryen release into the cache.
    """

    def __init__(
        self,
        cache_dir: Path,
        download: bool = True,
        version: str = BINARYEN_VERSION,
        binary: str = "wasm-opt",
    ) -> None:
        self.cache_dir = Path(cache_dir)
        self.download_allowed = download
        self.version = version
        self.binary = binary

    @property
    def install_dir(self) -> Path:
        return self.cache_dir / f"binaryen-version_{self.version}"

    @property
    def cached_binary(self) -> Path:
        suffix = ".exe" if os.name == "nt" else ""
        return self.install_dir / "bin" / f"wasm-opt{suffix}"

    def library_env(self, binary: Path) -> dict[str, str]:
        """Extra environment needed to run *binary* (macOS dylib lookup)."""
        lib_dir = binary.parent.parent / "lib"
        if platform.system() == "Darwin" and lib_dir.is_dir():
            return {"DYLD_LIBRARY_PATH": str(lib_dir)}
        return {}

    async def resolve(self) -> Path:
        """Return the path of a runnable ``wasm-opt``.

        Raises:
            OptimizationError: If none is available and downloading is off or fails.
        """
        found = shutil.which(self.binary)
        if found:
            return Path(found)
        if self.cached_binary.is_file():
            return self.cached_binary
        if not self.download_allowed:
            raise OptimizationError(
                f"`{self.binary}` not found on PATH and downloading is disabled"
            )
        return await self.download()

    async def download(self) -> Path:
        """Download and unpack the binaryen release into the cache."""
        url = release_url(self.version)
        console.print(f"Downloading wasm-opt from [cyan]{url}[/cyan]...")
        self.cache_dir.mkdir(parents=True, exist_ok=True)

        with tempfile.TemporaryDirectory(prefix="wasmrun-binaryen-", dir=self.cache_dir) as tmp:
            archive = Path(tmp) / "binaryen.tar.gz"
            try:
                async with httpx.AsyncClient(
                    timeout=httpx.Timeout(60.0, connect=10.0), follow_redirects=True
                ) as client:
                    async with client.stream("GET", url) as response:
                        response.raise_for_status()
                        with open(archive, "wb") as out:
                            async for chunk in response.aiter_bytes():
                                out.write(chunk)
            except httpx.HTTPError as exc:
                raise OptimizationError(f"could not download binaryen from {url}: {exc}") from exc

            staging = Path(tmp) / "unpacked"
            loop = asyncio.get_running_loop()
            try:
                await loop.run_in_executor(None, _extract_tools, archive, staging)
            except tarfile.TarError as exc:
                raise OptimizationError(f"invalid binaryen archive from {url}: {exc}") from exc

            if self.install_dir.exists():
                shutil.rmtree(self.install_dir)
            shutil.move(str(staging), str(self.install_dir))

        if not self.cached_binary.is_file():
            raise OptimizationError(f"binaryen archive from {url} contains no wasm-opt")
        return self.cached_binary
