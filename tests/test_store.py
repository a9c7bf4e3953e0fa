# tests/test_store.py
"""
Tests for the JSON implementation of the HistoryBackend Protocol.

History is advisory: unreadable files read as empty and write failures are
logged, never raised.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest

from beam_cli.store import HistoryStore


@pytest.fixture
def history_path(tmp_path: Path) -> Path:
    return tmp_path / "state" / "history.json"


@pytest.fixture
def store(history_path: Path) -> HistoryStore:
    return HistoryStore(history_path)


# ----------------------------------------------------------------
# Reading
# ----------------------------------------------------------------


def test_missing_file_loads_empty(store: HistoryStore) -> None:
    assert store.load() == {}
    assert store.last_run("anything") == 0


@pytest.mark.parametrize("content", ["{not json", "[1, 2]", '"text"', ""])
def test_corrupt_file_loads_empty(
    store: HistoryStore, history_path: Path, content: str
) -> None:
    history_path.parent.mkdir(parents=True)
    history_path.write_text(content, encoding="utf-8")

    assert store.load() == {}


def test_non_integer_values_are_dropped(
    store: HistoryStore, history_path: Path
) -> None:
    history_path.parent.mkdir(parents=True)
    history_path.write_text(
        json.dumps({"a": 10, "b": "11", "c": 1.5, "d": True}), encoding="utf-8"
    )

    assert store.load() == {"a": 10}


# ----------------------------------------------------------------
# Writing
# ----------------------------------------------------------------


def test_round_trip(store: HistoryStore, history_path: Path) -> None:
    store.record_and_persist("ext:Item", 1700000000)

    reloaded = HistoryStore(history_path)
    assert reloaded.load() == {"ext:Item": 1700000000}


def test_record_creates_parent_directory(
    store: HistoryStore, history_path: Path
) -> None:
    assert not history_path.parent.exists()

    store.record_and_persist("x", 5)

    assert history_path.is_file()


def test_save_writes_in_memory_entries(
    store: HistoryStore, history_path: Path
) -> None:
    store.entries["a"] = 10
    store.entries["b"] = 20

    store.save()

    assert json.loads(history_path.read_text(encoding="utf-8")) == {"a": 10, "b": 20}


def test_record_keeps_entries_mapping_identity(store: HistoryStore) -> None:
    entries = store.load()

    store.record_and_persist("x", 5)

    assert entries is store.entries
    assert entries == {"x": 5}


def test_record_merges_with_entries_written_elsewhere(
    store: HistoryStore, history_path: Path
) -> None:
    store.load()
    other = HistoryStore(history_path)
    other.record_and_persist("other", 50)

    store.record_and_persist("mine", 60)

    on_disk = json.loads(history_path.read_text(encoding="utf-8"))
    assert on_disk == {"other": 50, "mine": 60}
    assert store.entries["other"] == 50


def test_timestamps_never_go_backwards(
    store: HistoryStore, history_path: Path
) -> None:
    store.record_and_persist("x", 100)
    store.record_and_persist("x", 90)

    assert store.entries["x"] == 100
    assert json.loads(history_path.read_text(encoding="utf-8")) == {"x": 100}


def test_write_failure_is_logged_not_raised(
    tmp_path: Path, caplog: pytest.LogCaptureFixture
) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("a file, not a directory", encoding="utf-8")
    store = HistoryStore(blocker / "history.json")

    with caplog.at_level(logging.WARNING, logger="beam_cli.store"):
        store.record_and_persist("x", 1)

    assert store.entries == {"x": 1}
    assert "could not write history" in caplog.text
