# Beam - Terminal Command Launcher
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
JSON-backed run history for Beam.

The history file maps root item ids to the Unix timestamp of their last run.
It only ranks the root list, so every read or write failure is absorbed:
a broken file reads as empty and a failed write is logged and ignored.
"""

from __future__ import annotations

import json
import logging
import threading
from pathlib import Path

logger = logging.getLogger(__name__)


class HistoryStore:
    """History file implementation of the HistoryBackend protocol."""

    def __init__(self, path: Path):
        """Initialize store with the history file path.

        Args:
            path: Path to history.json (parent created on first write)
        """
        self.path = path
        self.entries: dict[str, int] = {}
        self._lock = threading.RLock()

    # ----------------------------------------------------------------
    # Reading
    # ----------------------------------------------------------------

    def _read(self) -> dict[str, int]:
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as e:
            logger.debug("ignoring unreadable history %s: %s", self.path, e)
            return {}

        if not isinstance(data, dict):
            return {}
        return {
            str(key): value
            for key, value in data.items()
            if isinstance(value, int) and not isinstance(value, bool)
        }

    def load(self) -> dict[str, int]:
        """Load the history file into memory and return the mapping."""
        with self._lock:
            self.entries = self._read()
            return self.entries

    def last_run(self, item_id: str) -> int:
        """Timestamp of the last run of ``item_id``, 0 if never run."""
        return self.entries.get(item_id, 0)

    # ----------------------------------------------------------------
    # Writing
    # ----------------------------------------------------------------

    def record_and_persist(self, item_id: str, timestamp: int) -> None:
        """Record a run and rewrite the whole file.

        The on-disk mapping is re-read and merged first so entries written by
        another process since load() survive. Timestamps never go backwards.
        """
        with self._lock:
            if timestamp > self.entries.get(item_id, 0):
                self.entries[item_id] = timestamp
            merged = self._read()
            for key, value in self.entries.items():
                if value > merged.get(key, 0):
                    merged[key] = value
            self.entries.update(merged)
            self.save()

    def save(self) -> None:
        """Write the in-memory mapping as is."""
        with self._lock:
            self._write(dict(self.entries))

    def _write(self, data: dict[str, int]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(data), encoding="utf-8")
        except OSError as e:
            logger.warning("could not write history %s: %s", self.path, e)
