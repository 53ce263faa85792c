"""wasmrun builder module.

Wraps the external toolchain the build pipeline drives. Each step is a
subprocess whose failure maps to one error type.

Key classes:
    Compiler           - ``cargo build`` for the wasm32 target
    BindingGenerator   - ``wasm-bindgen`` in web-module mode
    Optimizer          - ``wasm-opt`` with transient-failure retries
    WasmOptLocator     - PATH lookup or prebuilt binaryen download
"""

from .bindgen import BindgenOutput, BindingGenerator
from .compiler import WASM_TARGET, Compiler
from .optimizer import TRANSIENT_SIGNATURES, Optimizer, is_transient_failure
from .prebuilt import WasmOptLocator, release_url
from .styles import build_sass_from_dir, build_sass_from_dirs, ensure_sass_available
from .templates import render_default_index

__all__ = [
    # Compilation
    "Compiler",
    "WASM_TARGET",
    # Bindings
    "BindingGenerator",
    "BindgenOutput",
    # Optimization
    "Optimizer",
    "TRANSIENT_SIGNATURES",
    "is_transient_failure",
    "WasmOptLocator",
    "release_url",
    # Post-build helpers
    "build_sass_from_dir",
    "build_sass_from_dirs",
    "ensure_sass_available",
    "render_default_index",
]
