"""wasmrun watcher module.

Turns raw watchdog notifications into debounced change signals for the
frontend and backend watch loops.

Key classes:
    DebouncedWatcher  - observer, filter and quiet-period coalescing
    PathFilter        - ignores build output, toolchain cache and dotfiles
    WatchEvent        - one translated filesystem change
"""

from .debounce import DEFAULT_DEBOUNCE_SECONDS, DebouncedWatcher
from .events import WatchEvent, WatchEventKind, from_watchdog
from .filters import PathFilter

__all__ = [
    # Watching
    "DebouncedWatcher",
    "DEFAULT_DEBOUNCE_SECONDS",
    # Filtering
    "PathFilter",
    # Events
    "WatchEvent",
    "WatchEventKind",
    "from_watchdog",
]
