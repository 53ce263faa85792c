"""Binding generation through the ``wasm-bindgen`` CLI."""

from __future__ import annotations

import tempfile
from dataclasses import dataclass
from pathlib import Path

from ..errors import BindingError
from ..profile import BuildProfile
from ..utils import run_command

OUT_NAME = "app"


@dataclass
class BindgenOutput:
    """The companion script and the transformed binary."""

    js: str
    wasm: bytes


class BindingGenerator:
    """Runs ``wasm-bindgen`` in web-module mode on a compiled binary."""

    def __init__(self, binary: str = "wasm-bindgen") -> None:
        self.binary = binary

    def command(self, wasm_path: Path, out_dir: Path, profile: BuildProfile) -> list[str]:
        cmd = [
            self.binary,
            str(wasm_path),
            "--out-dir",
            str(out_dir),
            "--out-name",
            OUT_NAME,
            "--target",
            "web",
            "--no-typescript",
        ]
        if profile.keeps_debug_info:
            cmd.append("--debug")
        return cmd

    async def generate(self, wasm_path: Path, profile: BuildProfile) -> BindgenOutput:
        """Generate bindings for *wasm_path*.

        Raises:
            BindingError: If the input is missing, the tool fails, or it
                produces no output.
        """
        if not wasm_path.is_file():
            raise BindingError(f"compiled binary not found: {wasm_path}")

        with tempfile.TemporaryDirectory(prefix="wasmrun-bindgen-") as tmp:
            out_dir = Path(tmp)
            try:
                returncode, _, stderr = await run_command(
                    self.command(wasm_path, out_dir, profile)
                )
            except FileNotFoundError as exc:
                raise BindingError(
                    f"`{self.binary}` not found. Install it with `cargo install wasm-bindgen-cli`."
                ) from exc

            if returncode != 0:
                raise BindingError(f"could not generate WASM bindgen file:\n{stderr}")

            js_path = out_dir / f"{OUT_NAME}.js"
            wasm_out = out_dir / f"{OUT_NAME}_bg.wasm"
            if not js_path.is_file() or not wasm_out.is_file():
                raise BindingError(f"`{self.binary}` did not produce {js_path.name} and {wasm_out.name}")

            return BindgenOutput(
                js=js_path.read_text(encoding="utf-8"),
                wasm=wasm_out.read_bytes(),
            )
