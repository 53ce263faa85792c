"""Unit tests for watchdog event translation and path filtering."""

from __future__ import annotations

from pathlib import Path

import pytest
from watchdog.events import (
    DirModifiedEvent,
    FileClosedEvent,
    FileCreatedEvent,
    FileDeletedEvent,
    FileModifiedEvent,
    FileMovedEvent,
)

from wasmrun.watcher.events import WatchEvent, WatchEventKind, from_watchdog
from wasmrun.watcher.filters import PathFilter


class TestFromWatchdog:
    @pytest.mark.unit
    @pytest.mark.parametrize(
        "event_type, kind",
        [
            (FileCreatedEvent, WatchEventKind.CREATED),
            (FileModifiedEvent, WatchEventKind.MODIFIED),
            (FileDeletedEvent, WatchEventKind.REMOVED),
        ],
    )
    def test_simple_kinds(self, event_type, kind):
        event = from_watchdog(event_type("/ws/src/lib.rs"))
        assert event == WatchEvent(kind, Path("/ws/src/lib.rs"))

    @pytest.mark.unit
    def test_rename_keeps_both_ends(self):
        event = from_watchdog(FileMovedEvent("/ws/src/a.rs", "/ws/src/b.rs"))
        assert event.kind is WatchEventKind.RENAMED
        assert event.paths == (Path("/ws/src/a.rs"), Path("/ws/src/b.rs"))

    @pytest.mark.unit
    def test_directory_modified_is_dropped(self):
        assert from_watchdog(DirModifiedEvent("/ws/src")) is None

    @pytest.mark.unit
    def test_close_is_dropped(self):
        assert from_watchdog(FileClosedEvent("/ws/src/lib.rs")) is None


class TestPathFilter:
    @pytest.fixture
    def path_filter(self, tmp_path: Path) -> PathFilter:
        return PathFilter([tmp_path / "build", tmp_path / "target"])

    @pytest.mark.unit
    def test_source_is_relevant(self, path_filter, tmp_path: Path):
        assert path_filter.is_relevant(tmp_path / "src" / "lib.rs")

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "relative",
        ["build/app.js", "build", "target/wasm32-unknown-unknown/debug/app.wasm", "target"],
    )
    def test_output_and_cache_are_ignored(self, path_filter, tmp_path: Path, relative):
        assert not path_filter.is_relevant(tmp_path / relative)

    @pytest.mark.unit
    @pytest.mark.parametrize("name", [".lib.rs.swp", ".git", ".DS_Store"])
    def test_dotfiles_are_ignored(self, path_filter, tmp_path: Path, name):
        assert not path_filter.is_relevant(tmp_path / "src" / name)

    @pytest.mark.unit
    def test_only_final_component_matters(self, path_filter, tmp_path: Path):
        assert path_filter.is_relevant(tmp_path / ".config" / "src" / "lib.rs")

    @pytest.mark.unit
    def test_similar_prefix_is_not_ignored(self, path_filter, tmp_path: Path):
        assert path_filter.is_relevant(tmp_path / "build-tools" / "gen.rs")
