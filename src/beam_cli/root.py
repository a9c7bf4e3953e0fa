# Beam - Terminal Command Launcher
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
The root list: every root item of every extension, most recently run first.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable, Mapping
from typing import Any

from .events import Cmd, Event, PushPageEvent
from .executor import ExtensionRunner, ExtensionTarget
from .filter import history_order
from .interfaces import HistoryBackend
from .manifest import RootItem
from .pages import Action, CommandRunner, ListItem, ListPage
from .registry import Extension

logger = logging.getLogger(__name__)

ROOT_TITLE = "Beam"


def run_action(
    item_id: str,
    extension: Extension,
    command: str,
    params: Mapping[str, Any],
    history: HistoryBackend,
    runner: ExtensionRunner,
    clock: Callable[[], float] = time.time,
) -> Cmd:
    """Deferred work behind a root item: record the run, then push a runner."""

    def effect() -> Event:
        history.record_and_persist(item_id, int(clock()))
        target = ExtensionTarget(extension, runner)
        return PushPageEvent(CommandRunner(target, command, params))

    return effect


def _root_entries(
    registry: Mapping[str, Extension],
    config_items: Iterable[RootItem],
) -> list[tuple[str, Extension, RootItem]]:
    entries = []
    for extension in registry.values():
        for item in extension.manifest.root_items:
            entries.append((f"{extension.name}:{item.title}", extension, item))

    for item in config_items:
        extension = registry.get(item.extension)
        if extension is None:
            logger.warning(
                "skipping root item %r: unknown extension %r",
                item.title, item.extension,
            )
            continue
        entries.append((f"config:{item.title}", extension, item))
    return entries


def build_root_list(
    registry: Mapping[str, Extension],
    config_items: Iterable[RootItem],
    history: HistoryBackend,
    runner: ExtensionRunner,
    clock: Callable[[], float] = time.time,
) -> ListPage:
    """Build the root ListPage, ordered by ``history.entries``.

    Manifest root items get the id ``<extension>:<title>``, config items
    ``config:<title>``. The ordering key reads the history mapping live, so
    runs recorded while the process is up reorder the list.
    """
    items = []
    for item_id, extension, root_item in _root_entries(registry, config_items):
        effect = run_action(
            item_id, extension, root_item.command, root_item.with_,
            history, runner, clock,
        )
        items.append(
            ListItem(
                id=item_id,
                title=root_item.title,
                subtitle=extension.title,
                accessories=[extension.name],
                actions=[Action.run(effect, title="Run Command")],
            )
        )

    return ListPage(
        ROOT_TITLE,
        items,
        key=history_order(history.entries),
        empty_text="No extensions installed",
    )
