"""Shared utility functions for wasmrun.

Provides async command execution, file-system helpers for the output
directory, and Rich-based console reporting.
"""

from __future__ import annotations

import asyncio
import os
import shutil
from collections.abc import Mapping, Sequence
from pathlib import Path

from rich.console import Console
from rich.table import Table

# Diagnostics go to stderr so that stdout stays usable by user commands.
console = Console(stderr=True)

# ---------------------------------------------------------------------------
# Async command execution
# ---------------------------------------------------------------------------


async def run_command(
    cmd: Sequence[str | os.PathLike[str]],
    cwd: str | Path | None = None,
    capture: bool = True,
    env: Mapping[str, str] | None = None,
) -> tuple[int, str, str]:
    """Run a command asynchronously.

    Args:
        cmd: Program followed by its arguments.
        cwd: Working directory for the child process.
        capture: Whether to capture stdout/stderr (if ``False`` they inherit
            the parent's streams so toolchain diagnostics show verbatim).
        env: Optional extra environment variables merged on top of ``os.environ``.

    Returns:
        A ``(returncode, stdout, stderr)`` tuple. A negative return code means
        the child was terminated by that signal number. If *capture* is
        ``False`` the stdout/stderr strings are empty.

    Raises:
        FileNotFoundError: If the program does not exist.
    """
    merged_env: dict[str, str] | None = None
    if env:
        merged_env = {**os.environ, **env}

    stdout_pipe = asyncio.subprocess.PIPE if capture else None
    stderr_pipe = asyncio.subprocess.PIPE if capture else None

    process = await asyncio.create_subprocess_exec(
        *[str(part) for part in cmd],
        stdout=stdout_pipe,
        stderr=stderr_pipe,
        cwd=str(cwd) if cwd else None,
        env=merged_env,
    )

    try:
        stdout_bytes, stderr_bytes = await process.communicate()
    except asyncio.CancelledError:
        if process.returncode is None:
            process.kill()
            await process.wait()
        raise

    stdout_str = (stdout_bytes or b"").decode("utf-8", errors="replace").strip()
    stderr_str = (stderr_bytes or b"").decode("utf-8", errors="replace").strip()
    returncode = process.returncode if process.returncode is not None else -1
    return (returncode, stdout_str, stderr_str)


# ---------------------------------------------------------------------------
# File-system helpers
# ---------------------------------------------------------------------------


def is_relative_to(path: Path, parent: Path) -> bool:
    """Return ``True`` if *path* equals *parent* or lives below it."""
    try:
        path.relative_to(parent)
    except ValueError:
        return False
    return True


def recreate_dir(path: str | Path) -> Path:
    """Remove *path* if it exists and create it again, empty.

    Args:
        path: Directory path.

    Returns:
        The ``Path`` object.
    """
    dir_path = Path(path)
    if dir_path.is_dir():
        shutil.rmtree(dir_path)
    elif dir_path.exists():
        dir_path.unlink()
    dir_path.mkdir(parents=True)
    return dir_path


def copy_tree_contents(src: str | Path, dest: str | Path) -> list[Path]:
    """Copy the *content* of ``src`` into ``dest`` (not ``src`` itself).

    Existing files in ``dest`` are overwritten.

    Returns:
        The top-level entries created in ``dest``.
    """
    src_path = Path(src)
    dest_path = Path(dest)
    dest_path.mkdir(parents=True, exist_ok=True)

    created: list[Path] = []
    for entry in sorted(src_path.iterdir()):
        target = dest_path / entry.name
        if entry.is_dir():
            shutil.copytree(entry, target, dirs_exist_ok=True)
        else:
            shutil.copy2(entry, target)
        created.append(target)
    return created


# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------


def format_duration(seconds: float) -> str:
    """Format a duration in seconds to a human-readable string.

    Examples::

        format_duration(3.7)    -> "3.7s"
        format_duration(65.2)   -> "1m 5s"
    """
    if seconds < 0:
        return "0.0s"

    minutes = int(seconds // 60)
    secs = seconds % 60
    if minutes > 0:
        return f"{minutes}m {int(secs)}s"
    return f"{secs:.1f}s"


# ---------------------------------------------------------------------------
# Rich output helpers
# ---------------------------------------------------------------------------


def print_summary_table(data: dict[str, str], title: str = "Summary") -> None:
    """Print a two-column key/value summary table."""
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("Item", style="dim", no_wrap=True)
    table.add_column("Value")

    for key, value in data.items():
        table.add_row(key, str(value))

    console.print(table)


def print_success(message: str) -> None:
    """Print a green success message."""
    console.print(f"[bold green]{message}[/bold green]")


def print_error(message: str) -> None:
    """Print a red error message."""
    console.print(f"[bold red]{message}[/bold red]", highlight=False)


def print_warning(message: str) -> None:
    """Print a yellow warning message."""
    console.print(f"[bold yellow]{message}[/bold yellow]")


def print_server_banner(ip: str, port: int) -> None:
    """Announce the development server address (printed once per serve)."""
    console.print(f"Development server started: [bold cyan]http://{ip}:{port}[/bold cyan]")
