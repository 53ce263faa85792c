"""wasmrun supervisor module.

Everything that keeps running after the initial build of ``serve``.

Key classes:
    DevLoop       - initial build, then fail-fast join of server and watchers
    DevServer     - uvicorn on a pre-bound socket serving a Starlette app
    ProcessGuard  - owns (and always reaps) one child process
    Restarter     - full restart by exec or spawn-then-exit
"""

from .devloop import DevLoop, DevLoopState, ServeMode
from .process_guard import ProcessGuard
from .restart import Restarter, original_command
from .server import DevServer, add_static_routes, bind_socket, configure_logging, create_app

__all__ = [
    # Dev loop
    "DevLoop",
    "DevLoopState",
    "ServeMode",
    # Processes
    "ProcessGuard",
    "Restarter",
    "original_command",
    # Server
    "DevServer",
    "add_static_routes",
    "bind_socket",
    "configure_logging",
    "create_app",
]
