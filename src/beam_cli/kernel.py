# Beam - Terminal Command Launcher
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
Beam kernel.

The kernel owns the navigation stack: a root page plus the pages pushed on
top of it. It dispatches one event at a time and returns deferred work for
the program to schedule; it never blocks and never touches the terminal.

Important boundary:
- Kernel does not load YAML or spawn processes.
- Host side effects go through the injected Capabilities.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from .config import YAMLConfig
from .errors import BeamError
from .events import (
    Cmd,
    CopyTextEvent,
    ErrorEvent,
    Event,
    InterruptEvent,
    OpenURLEvent,
    PopEvent,
    PrintTextEvent,
    PushPageEvent,
    ResizeEvent,
    error_cmd,
    quit_cmd,
)
from .interfaces import Capabilities
from .pages import DetailPage, Page

logger = logging.getLogger(__name__)


@dataclass
class Kernel:
    """Beam navigation engine."""

    root: Page
    capabilities: Capabilities | None = None
    config: YAMLConfig | None = None

    stack: list[Page] = field(default_factory=list)
    width: int = 0
    height: int = 0
    hidden: bool = False

    # Set once a quit command has been handed out
    exiting: bool = False
    exit_code: int = 0
    # Text the CLI writes to stdout after the terminal is released
    output: str | None = None

    # ----------------------------
    # Stack access
    # ----------------------------

    @property
    def active_page(self) -> Page:
        return self.stack[-1] if self.stack else self.root

    @property
    def depth(self) -> int:
        return len(self.stack)

    def _replace_active(self, page: Page) -> None:
        if self.stack:
            self.stack[-1] = page
        else:
            self.root = page

    @property
    def page_height(self) -> int:
        limit = 0
        if self.config is not None:
            limit = int(self.config.ui.get("height") or 0)
        return min(self.height, limit) if limit > 0 else self.height

    # ----------------------------
    # Lifecycle
    # ----------------------------

    def init(self) -> Cmd | None:
        return self.root.init()

    def _quit(self, exit_code: int = 0) -> Cmd:
        self.exiting = True
        self.exit_code = exit_code
        return quit_cmd(exit_code)

    def _hide_and_quit(self) -> Cmd:
        self.hidden = True
        return self._quit(0)

    # ----------------------------
    # Dispatch
    # ----------------------------

    def handle_event(self, event: Event) -> Cmd | None:
        if isinstance(event, ResizeEvent):
            self.width = event.width
            self.height = event.height
            for page in [self.root, *self.stack]:
                page.set_size(self.width, self.page_height)
            return None

        if isinstance(event, InterruptEvent):
            return self._hide_and_quit()

        if isinstance(event, OpenURLEvent):
            try:
                self._require_capabilities().open_url(event.url)
            except Exception as e:
                logger.warning("could not open %s: %s", event.url, e)
                return error_cmd(e)
            return self._hide_and_quit()

        if isinstance(event, CopyTextEvent):
            try:
                self._require_capabilities().copy_text(event.text)
            except Exception as e:
                logger.warning("clipboard write failed: %s", e)
                return error_cmd(
                    BeamError(f"failed to copy text to clipboard: {e}")
                )
            return self._hide_and_quit()

        if isinstance(event, PrintTextEvent):
            self.output = event.text
            return self._hide_and_quit()

        if isinstance(event, PushPageEvent):
            page = event.page
            page.set_size(self.width, self.page_height)
            self.stack.append(page)
            return page.init()

        if isinstance(event, PopEvent):
            if not self.stack:
                return self._quit(0)
            self.stack.pop()
            return None

        if isinstance(event, ErrorEvent):
            logger.info("showing error: %s", event.error)
            page = DetailPage.for_error(event.error)
            page.set_size(self.width, self.page_height)
            self._replace_active(page)
            return page.init()

        page, cmd = self.active_page.update(event)
        self._replace_active(page)
        return cmd

    def _require_capabilities(self) -> Capabilities:
        if self.capabilities is None:
            raise BeamError("no system capabilities available")
        return self.capabilities

    # ----------------------------
    # Rendering
    # ----------------------------

    def render(self) -> str:
        if self.hidden:
            return ""
        return self.active_page.render()
