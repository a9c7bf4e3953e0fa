# tests/conftest.py
"""
Shared fixtures: isolated Beam paths, stub extensions written as shell
scripts, and a synchronous driver for deferred work.
"""

from __future__ import annotations

import json
import stat
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from beam_cli.config import AppPaths, YAMLConfig, load_defaults_yaml
from beam_cli.events import Cmd, Event, QuitEvent
from beam_cli.kernel import Kernel


@pytest.fixture
def app_paths(tmp_path: Path) -> AppPaths:
    return AppPaths(
        data_dir=tmp_path / "data",
        state_dir=tmp_path / "state",
        config_dir=tmp_path / "config",
    )


@pytest.fixture
def make_config(app_paths: AppPaths) -> Callable[..., YAMLConfig]:
    """Build a YAMLConfig from the packaged defaults plus overrides."""

    def _make(**overrides: Any) -> YAMLConfig:
        data = load_defaults_yaml()
        data.update(overrides)
        return YAMLConfig(data, app_paths)

    return _make


def write_script(path: Path, body: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("#!/bin/sh\n" + body, encoding="utf-8")
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


def write_manifest(directory: Path, manifest: dict[str, Any]) -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / "beam.json"
    path.write_text(json.dumps(manifest), encoding="utf-8")
    return path


STUB_PAGE = {
    "type": "list",
    "title": "Stub",
    "items": [
        {"id": "alpha", "title": "Alpha", "actions": [{"type": "copy", "text": "a"}]},
        {"title": "Beta", "subtitle": "second"},
    ],
}


@pytest.fixture
def stub_extension(tmp_path: Path) -> Path:
    """An extension directory whose entrypoint prints a two-item list page.

    The script also records the argv and stdin it was given next to itself.
    """
    root = tmp_path / "stub"
    write_script(
        root / "run.sh",
        'dir=$(dirname "$0")\n'
        'cat > "$dir/stdin.log"\n'
        'echo "$@" > "$dir/argv.log"\n'
        f"echo '{json.dumps(STUB_PAGE)}'\n",
    )
    write_manifest(
        root,
        {
            "title": "Stub",
            "description": "Stub extension for tests",
            "entrypoint": "run.sh",
            "commands": {
                "list": {
                    "title": "List things",
                    "params": [
                        {"name": "query", "type": "string", "optional": True},
                        {"name": "all", "type": "boolean", "optional": True},
                    ],
                },
            },
            "rootItems": [{"command": "list", "title": "Show list"}],
        },
    )
    return root


# ----------------------------------------------------------------
# Deferred work
# ----------------------------------------------------------------


def drain(kernel: Kernel, cmd: Cmd | None, limit: int = 50) -> list[Event]:
    """Run ``cmd`` and everything it leads to synchronously, in order.

    Returns every event produced. QuitEvents are collected, not dispatched.
    """
    pending: list[Cmd | None] = [cmd]
    events: list[Event] = []
    while pending and limit > 0:
        limit -= 1
        current = pending.pop(0)
        if current is None:
            continue
        event = current()
        if event is None:
            continue
        events.append(event)
        if isinstance(event, QuitEvent):
            continue
        pending.append(kernel.handle_event(event))
    return events
