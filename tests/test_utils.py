"""Unit tests for utility functions (wasmrun.utils).

Tests cover:
- run_command (success, failure, signal, env vars, capture=False)
- is_relative_to
- recreate_dir / copy_tree_contents (use tmp_path)
- format_duration
- Rich output helpers
"""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

from wasmrun.utils import (
    copy_tree_contents,
    format_duration,
    is_relative_to,
    print_error,
    print_server_banner,
    print_success,
    print_summary_table,
    print_warning,
    recreate_dir,
    run_command,
)

PY = sys.executable


# ---------------------------------------------------------------------------
# run_command
# ---------------------------------------------------------------------------


class TestRunCommand:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_successful_command(self):
        returncode, stdout, stderr = await run_command([PY, "-c", "print('hello')"])
        assert returncode == 0
        assert stdout == "hello"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_failed_command(self):
        returncode, _, _ = await run_command([PY, "-c", "import sys; sys.exit(3)"])
        assert returncode == 3

    @pytest.mark.unit
    @pytest.mark.asyncio
    @pytest.mark.skipif(sys.platform == "win32", reason="POSIX signals")
    async def test_signal_gives_negative_returncode(self):
        returncode, _, _ = await run_command(
            [PY, "-c", "import os, signal; os.kill(os.getpid(), signal.SIGTERM)"]
        )
        assert returncode == -15

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_env_is_merged(self):
        returncode, stdout, _ = await run_command(
            [PY, "-c", "import os; print(os.environ['WASMRUN_TEST'], 'PATH' in os.environ)"],
            env={"WASMRUN_TEST": "value"},
        )
        assert returncode == 0
        assert stdout == "value True"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_capture_false_returns_empty_strings(self):
        returncode, stdout, stderr = await run_command([PY, "-c", "pass"], capture=False)
        assert (returncode, stdout, stderr) == (0, "", "")

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_missing_program(self):
        with pytest.raises(FileNotFoundError):
            await run_command(["wasmrun-definitely-not-a-program"])


# ---------------------------------------------------------------------------
# File-system helpers
# ---------------------------------------------------------------------------


class TestIsRelativeTo:
    @pytest.mark.unit
    def test_child(self, tmp_path: Path):
        assert is_relative_to(tmp_path / "a" / "b", tmp_path)

    @pytest.mark.unit
    def test_same_path(self, tmp_path: Path):
        assert is_relative_to(tmp_path, tmp_path)

    @pytest.mark.unit
    def test_sibling_prefix_is_not_child(self, tmp_path: Path):
        assert not is_relative_to(tmp_path / "build-old", tmp_path / "build")


class TestRecreateDir:
    @pytest.mark.unit
    def test_removes_previous_content(self, tmp_path: Path):
        target = tmp_path / "build"
        (target / "nested").mkdir(parents=True)
        (target / "nested" / "stale.txt").write_text("old")
        recreate_dir(target)
        assert target.is_dir()
        assert list(target.iterdir()) == []

    @pytest.mark.unit
    def test_creates_missing_parents(self, tmp_path: Path):
        target = recreate_dir(tmp_path / "a" / "b")
        assert target.is_dir()

    @pytest.mark.unit
    def test_replaces_file(self, tmp_path: Path):
        target = tmp_path / "build"
        target.write_text("not a dir")
        recreate_dir(target)
        assert target.is_dir()


class TestCopyTreeContents:
    @pytest.mark.unit
    def test_copies_content_not_directory(self, tmp_path: Path):
        src = tmp_path / "static"
        (src / "img").mkdir(parents=True)
        (src / "robots.txt").write_text("User-agent: *")
        (src / "img" / "logo.svg").write_text("<svg/>")
        dest = tmp_path / "build"

        created = copy_tree_contents(src, dest)

        assert (dest / "robots.txt").read_text() == "User-agent: *"
        assert (dest / "img" / "logo.svg").exists()
        assert not (dest / "static").exists()
        assert sorted(p.name for p in created) == ["img", "robots.txt"]

    @pytest.mark.unit
    def test_merges_into_existing(self, tmp_path: Path):
        src = tmp_path / "static"
        (src / "img").mkdir(parents=True)
        (src / "img" / "a.png").write_bytes(b"a")
        dest = tmp_path / "build"
        (dest / "img").mkdir(parents=True)
        (dest / "img" / "b.png").write_bytes(b"b")

        copy_tree_contents(src, dest)

        assert sorted(p.name for p in (dest / "img").iterdir()) == ["a.png", "b.png"]


# ---------------------------------------------------------------------------
# Formatting / output
# ---------------------------------------------------------------------------


class TestFormatDuration:
    @pytest.mark.unit
    def test_seconds(self):
        assert format_duration(3.7) == "3.7s"

    @pytest.mark.unit
    def test_minutes(self):
        assert format_duration(65.2) == "1m 5s"

    @pytest.mark.unit
    def test_negative(self):
        assert format_duration(-1) == "0.0s"


class TestOutputHelpers:
    @pytest.mark.unit
    def test_print_helpers_do_not_raise(self):
        print_success("built")
        print_error("failed")
        print_warning("careful")
        print_summary_table({"app.js": "12 bytes"}, title="Build output")

    @pytest.mark.unit
    def test_server_banner(self, capsys):
        print_server_banner("127.0.0.1", 3000)
        captured = capsys.readouterr()
        assert "Development server started" in captured.err
        assert "http://127.0.0.1:3000" in captured.err
