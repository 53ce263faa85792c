"""Exception hierarchy shared by the pipeline, the watchers and the CLI."""

from __future__ import annotations


class WasmRunError(Exception):
    """Base class for every error reported to the user."""


class ConfigurationError(WasmRunError):
    """Invalid hook, argument or command declaration.

    Raised while the application object is being constructed, never while a
    hook is running.
    """


class MetadataError(WasmRunError):
    """The workspace metadata could not be read or the unit is unknown."""


class CompileError(WasmRunError):
    """The compiler exited unsuccessfully."""

    def __init__(self, exit_code: int | None = None, signal: int | None = None) -> None:
        self.exit_code = exit_code
        self.signal = signal
        if signal is not None:
            message = f"build process has been terminated by signal {signal}"
        elif exit_code is not None:
            message = f"build process exit with code {exit_code}"
        else:
            message = "build process could not be started"
        super().__init__(message)


class BindingError(WasmRunError):
    """The binding generator failed or produced no output."""


class OptimizationError(WasmRunError):
    """``wasm-opt`` failed.

    ``transient`` is set when the failure matches a known cache-contention
    signature and the call may succeed if retried.
    """

    def __init__(self, message: str, transient: bool = False, stderr: str = "") -> None:
        self.transient = transient
        self.stderr = stderr
        super().__init__(message)


class StyleError(WasmRunError):
    """A SASS/SCSS file could not be transpiled."""


class WatchInitError(WasmRunError):
    """The filesystem watcher could not be created or started."""


class ServeError(WasmRunError):
    """The development server could not be bound."""


class MissingBackendError(WasmRunError):
    """External backend mode was requested but no backend unit is configured."""


class DevLoopError(WasmRunError):
    """One of the joined serve/watch tasks returned."""


class RebuildError(WasmRunError):
    """A rebuild triggered by a file change failed.

    Only ever printed; the watch loop keeps running on the last good output.
    """

    def __init__(self, watcher: str, cause: BaseException) -> None:
        self.watcher = watcher
        self.cause = cause
        super().__init__(f"{watcher} rebuild failed: {cause}")
