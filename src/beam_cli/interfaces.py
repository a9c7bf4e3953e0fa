# Beam - Terminal Command Launcher
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
Protocol definitions for dependency injection.

These interfaces keep the kernel and pages independent of process
execution, history persistence and the host system's clipboard/browser.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from .executor import RunResult  # pragma: no cover


class Executor(Protocol):
    """Protocol for process execution."""

    def run(
        self,
        argv: Sequence[str],
        input: bytes = b"",
        cwd: str | Path | None = None,
    ) -> RunResult:
        """Run argv with ``input`` on stdin and capture its output."""
        ...


class HistoryBackend(Protocol):
    """Protocol for the root list's run history."""

    entries: dict[str, int]

    def load(self) -> dict[str, int]:
        """Read persisted history; failures yield an empty mapping."""
        ...

    def record_and_persist(self, item_id: str, timestamp: int) -> None:
        """Record a run and persist the full mapping (best effort)."""
        ...


class Capabilities(Protocol):
    """Host integrations used by the kernel."""

    def copy_text(self, text: str) -> None:
        """Write text to the system clipboard, raising on failure."""
        ...

    def open_url(self, url: str) -> None:
        """Open url in the default browser, raising on failure."""
        ...


class Target(Protocol):
    """Something a CommandRunner page can execute."""

    @property
    def title(self) -> str:
        ...

    def run(
        self,
        command: str | None,
        params: Mapping[str, Any],
        args: Sequence[str],
    ) -> bytes:
        """Execute and return raw stdout."""
        ...
