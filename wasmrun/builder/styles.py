"""SASS/SCSS transpilation into the build directory.

Every ``*.sass`` / ``*.scss`` file found in the lookup directories is
compiled to ``<build>/<relative path>.css``. Partials (names starting with
``_``) are only imported by other files and never written out.
"""

from __future__ import annotations

import importlib.util
from pathlib import Path
from typing import Any

from ..errors import ConfigurationError, StyleError
from ..profile import BuildProfile
from ..project import ProjectContext

STYLE_CANDIDATES: tuple[str, ...] = ("assets", "styles", "css", "sass")
SASS_SUFFIXES: tuple[str, ...] = (".sass", ".scss")


def ensure_sass_available() -> None:
    """Fail early when SASS support is enabled but ``libsass`` is missing."""
    if importlib.util.find_spec("sass") is None:
        raise ConfigurationError(
            "SASS support is enabled but libsass is not installed: pip install 'wasmrun[sass]'"
        )


def default_sass_lookup_directories(context: ProjectContext) -> list[Path]:
    package_dir = context.frontend.directory
    return [package_dir / name for name in STYLE_CANDIDATES if (package_dir / name).is_dir()]


def default_sass_output_style(profile: BuildProfile) -> str:
    return "compressed" if profile.is_optimized else "nested"


def iter_sass_sources(input_dir: Path) -> list[Path]:
    """Return the compilable style sources under *input_dir*, sorted."""
    return sorted(
        path
        for path in input_dir.rglob("*")
        if path.is_file() and path.suffix in SASS_SUFFIXES and not path.name.startswith("_")
    )


def css_output_path(source: Path, input_dir: Path, build_path: Path) -> Path:
    return (build_path / source.relative_to(input_dir)).with_suffix(".css")


def build_sass_from_dir(input_dir: Path, build_path: Path, output_style: str) -> list[Path]:
    """Transpile every source of *input_dir* into *build_path*.

    Returns:
        The CSS files written.

    Raises:
        StyleError: If a file fails to compile.
    """
    import sass

    written: list[Path] = []
    for source in iter_sass_sources(input_dir):
        css_path = css_output_path(source, input_dir, build_path)
        try:
            css = sass.compile(filename=str(source), output_style=output_style)
        except sass.CompileError as exc:
            raise StyleError(
                f"could not convert SASS file `{source}` to `{css_path}`: {exc}"
            ) from exc
        css_path.parent.mkdir(parents=True, exist_ok=True)
        css_path.write_text(css, encoding="utf-8")
        written.append(css_path)
    return written


def build_sass_from_dirs(
    args: Any, profile: BuildProfile, context: ProjectContext, build_path: Path
) -> list[Path]:
    """Run the SASS step for a build.

    Argument types may customise it by defining
    ``sass_lookup_directories(context, profile)`` and/or
    ``sass_output_style(profile)``.
    """
    lookup = getattr(args, "sass_lookup_directories", None)
    directories = lookup(context, profile) if lookup else default_sass_lookup_directories(context)
    style_for = getattr(args, "sass_output_style", None)
    output_style = style_for(profile) if style_for else default_sass_output_style(profile)

    written: list[Path] = []
    for directory in directories:
        written.extend(build_sass_from_dir(Path(directory), build_path, output_style))
    return written
