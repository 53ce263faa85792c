"""wasmrun configuration.

Centralised, typed settings for the build pipeline and the development loop.
All settings use Pydantic v2 models so they are validated at construction time
and can be serialised to/from JSON or read from environment variables.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, model_validator


def _default_cache_dir() -> Path:
    base = os.environ.get("XDG_CACHE_HOME")
    if base:
        return Path(base) / "wasmrun"
    return Path.home() / ".cache" / "wasmrun"


def _env_flag(name: str) -> bool | None:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return None
    return raw.strip().lower() in ("1", "true", "yes", "on")


class Settings(BaseModel):
    """Tuning knobs shared by every command.

    Instances are created once by the CLI entry point (usually through
    :meth:`from_env`) and then passed explicitly to the pipeline and the
    development loop.
    """

    debounce_seconds: float = Field(
        default=2.0, gt=0, description="Quiet period before a change signal is delivered"
    )
    optimizer_retries: int = Field(
        default=3, ge=0, description="Retries for transient wasm-opt failures"
    )
    backoff_min_ms: int = Field(default=1000, ge=0)
    backoff_max_ms: int = Field(default=5000, ge=1)
    default_ip: str = Field(default="127.0.0.1")
    default_port: int = Field(default=3000, ge=1, le=65535)
    build_dir_name: str = Field(default="build", min_length=1)
    sass: bool = Field(default=False, description="Transpile SASS/SCSS in the default post-build")
    full_restart: bool = Field(
        default=False, description="Re-execute the whole process instead of rebuilding in place"
    )
    download_wasm_opt: bool = Field(
        default=True, description="Fetch a prebuilt wasm-opt when none is found on PATH"
    )
    cache_dir: Path = Field(default_factory=_default_cache_dir)

    @model_validator(mode="after")
    def _check_backoff(self) -> "Settings":
        if self.backoff_max_ms <= self.backoff_min_ms:
            raise ValueError("backoff_max_ms must be greater than backoff_min_ms")
        return self

    # ------------------------------------------------------------------
    # Serialisation helpers
    # ------------------------------------------------------------------

    def save(self, path: Path) -> Path:
        """Persist the settings to a JSON file.

        Args:
            path: Destination file. Parent directories are created.

        Returns:
            The path where the file was written.
        """
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(self.model_dump_json(indent=2), encoding="utf-8")
        return target

    @classmethod
    def load(cls, path: Path) -> "Settings":
        """Load previously-saved settings from JSON."""
        raw = Path(path).read_text(encoding="utf-8")
        return cls.model_validate_json(raw)

    @classmethod
    def from_env(cls) -> "Settings":
        """Build ``Settings`` from environment variables.

        Recognised variables (all optional):
            WASMRUN_DEBOUNCE_SECONDS, WASMRUN_OPTIMIZER_RETRIES, WASMRUN_IP,
            WASMRUN_PORT, WASMRUN_BUILD_DIR, WASMRUN_SASS, WASMRUN_FULL_RESTART,
            WASMRUN_DOWNLOAD_WASM_OPT, WASMRUN_CACHE_DIR.
        """
        kwargs: dict[str, Any] = {}
        if os.environ.get("WASMRUN_DEBOUNCE_SECONDS"):
            kwargs["debounce_seconds"] = float(os.environ["WASMRUN_DEBOUNCE_SECONDS"])
        if os.environ.get("WASMRUN_OPTIMIZER_RETRIES"):
            kwargs["optimizer_retries"] = int(os.environ["WASMRUN_OPTIMIZER_RETRIES"])
        if os.environ.get("WASMRUN_IP"):
            kwargs["default_ip"] = os.environ["WASMRUN_IP"]
        if os.environ.get("WASMRUN_PORT"):
            kwargs["default_port"] = int(os.environ["WASMRUN_PORT"])
        if os.environ.get("WASMRUN_BUILD_DIR"):
            kwargs["build_dir_name"] = os.environ["WASMRUN_BUILD_DIR"]
        if os.environ.get("WASMRUN_CACHE_DIR"):
            kwargs["cache_dir"] = Path(os.environ["WASMRUN_CACHE_DIR"])

        for env_name, field_name in (
            ("WASMRUN_SASS", "sass"),
            ("WASMRUN_FULL_RESTART", "full_restart"),
            ("WASMRUN_DOWNLOAD_WASM_OPT", "download_wasm_opt"),
        ):
            flag = _env_flag(env_name)
            if flag is not None:
                kwargs[field_name] = flag

        return cls(**kwargs)
