"""Entry point for ``python -m wasmrun`` and the ``wasmrun`` script.

For projects that need no custom hooks::

    wasmrun --package my-frontend build
    wasmrun --package my-frontend serve --port 8080
    wasmrun --package my-frontend --backend my-server serve
"""

from __future__ import annotations

import argparse
import sys
from collections.abc import Sequence

from .cli import WasmRun
from .supervisor.devloop import ServeMode

HELP_FLAGS = ("-h", "--help")


def main(argv: Sequence[str] | None = None) -> int:
    """CLI entry point."""
    # Help is left to the application parser once --package is known.
    parser = argparse.ArgumentParser(
        prog="wasmrun",
        add_help=False,
        description="Build and serve a Rust/WASM frontend.",
        epilog="commands: build, serve. Run `wasmrun --package NAME COMMAND --help` for details.",
    )
    parser.add_argument("--package", help="Frontend unit to compile to WASM (required)")
    parser.add_argument("--backend", default=None, help="Backend unit run by `serve`")

    args, rest = parser.parse_known_args(argv)
    if args.package is None:
        if any(flag in rest for flag in HELP_FLAGS):
            parser.print_help()
            return 0
        parser.error("the following arguments are required: --package")

    mode = ServeMode.EXTERNAL_BACKEND if args.backend else ServeMode.EMBEDDED
    app = WasmRun(args.package, backend=args.backend, mode=mode, prog="wasmrun")
    return app.main(rest)


if __name__ == "__main__":
    sys.exit(main())
