"""Jinja2 rendering of the default entry document."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, select_autoescape

_DEFAULT_TEMPLATE_DIR = Path(__file__).parent / "templates"
INDEX_TEMPLATE = "index.html.j2"


@lru_cache(maxsize=1)
def _environment() -> Environment:
    return Environment(
        loader=FileSystemLoader(str(_DEFAULT_TEMPLATE_DIR)),
        autoescape=select_autoescape(["html", "j2"]),
        keep_trailing_newline=True,
        trim_blocks=True,
        lstrip_blocks=True,
    )


def render_template(name: str, context: dict[str, Any]) -> str:
    return _environment().get_template(name).render(**context)


def render_default_index(script_name: str, base_url: str = "/", title: str | None = None) -> str:
    """Render the ``index.html`` used when the unit ships none.

    The page contains a ``<script type="module">`` that imports the generated
    script and calls its default export to initialise the WASM module.
    """
    return render_template(
        INDEX_TEMPLATE,
        {"script_name": script_name, "base_url": base_url, "title": title},
    )
