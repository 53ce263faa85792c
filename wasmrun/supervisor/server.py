"""Embedded development server.

The application is a bare Starlette instance populated by the ``serve``
hook; the default hook only adds :func:`add_static_routes`. The server is
uvicorn running on a socket bound up front, so an address already in use
is reported as a :class:`ServeError` before any task starts.
"""

from __future__ import annotations

import logging
import socket
from pathlib import Path
from typing import Any

import uvicorn
from rich.logging import RichHandler
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import FileResponse, PlainTextResponse, Response

from ..errors import ServeError
from ..hooks import Hooks, HookEnv, call_hook
from ..utils import console, is_relative_to, print_server_banner

UVICORN_LOGGERS = ("uvicorn", "uvicorn.access")

MEDIA_TYPES = {
    ".wasm": "application/wasm",
    ".js": "text/javascript",
}


def add_static_routes(app: Starlette, build_path: Path, index_name: str = "index.html") -> None:
    """Serve *build_path* on every GET path.

    Unknown paths fall back to the entry document so client-side routing
    works. Paths escaping *build_path* are answered with 404.
    """
    root = Path(build_path).resolve()

    async def serve_build(request: Request) -> Response:
        relative = request.path_params.get("path", "")
        target = (root / relative).resolve()
        if not is_relative_to(target, root):
            return PlainTextResponse("Not Found", status_code=404)
        if target.is_dir():
            target = target / index_name
        if not target.is_file():
            target = root / index_name
        if not target.is_file():
            return PlainTextResponse("Not Found", status_code=404)
        return FileResponse(target, media_type=MEDIA_TYPES.get(target.suffix))

    app.router.add_route("/{path:path}", serve_build, methods=["GET", "HEAD"])


async def create_app(serve_args: Any, hooks: Hooks, env: HookEnv) -> Starlette:
    """Build the application and let the ``serve`` hook populate it."""
    app = Starlette()
    await call_hook(hooks.serve, serve_args, app, env)
    return app


def bind_socket(ip: str, port: int) -> socket.socket:
    """Bind a listening TCP socket.

    Raises:
        ServeError: If the address cannot be bound.
    """
    family = socket.AF_INET6 if ":" in ip else socket.AF_INET
    sock = socket.socket(family, socket.SOCK_STREAM)
    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind((ip, port))
    except OSError as exc:
        sock.close()
        raise ServeError(f"could not bind http://{ip}:{port}: {exc}") from exc
    return sock


def configure_logging(access_log: bool) -> None:
    """Route uvicorn's loggers through rich.

    Without *access_log* only warnings and errors are shown.
    """
    handler = RichHandler(console=console, show_path=False)
    level = logging.INFO if access_log else logging.WARNING
    for name in UVICORN_LOGGERS:
        logger = logging.getLogger(name)
        logger.handlers = [handler]
        logger.setLevel(level)
        logger.propagate = False


class DevServer:
    """uvicorn serving *app* on ``ip:port``."""

    def __init__(self, app: Starlette, ip: str, port: int, log: bool = False) -> None:
        self.app = app
        self.ip = ip
        self.port = port
        self.log = log
        self._socket: socket.socket | None = None

    def bind(self) -> None:
        if self._socket is None:
            self._socket = bind_socket(self.ip, self.port)
            self.port = self._socket.getsockname()[1]

    async def serve(self) -> None:
        """Run until the server stops. Binds first if :meth:`bind` was not called."""
        self.bind()
        configure_logging(self.log)
        config = uvicorn.Config(
            self.app,
            log_config=None,
            access_log=self.log,
            lifespan="off",
        )
        server = uvicorn.Server(config)
        print_server_banner(self.ip, self.port)
        try:
            await server.serve(sockets=[self._socket])
        finally:
            self.close()

    def close(self) -> None:
        if self._socket is not None:
            self._socket.close()
            self._socket = None
