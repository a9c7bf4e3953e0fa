# Beam - Terminal Command Launcher
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
Terminal program: a prompt_toolkit Application driving the Kernel.

Key presses and size changes become kernel events on the event loop thread.
Each piece of deferred work returned by the kernel runs on its own daemon
thread and its single resulting event is posted back to the loop with
call_soon_threadsafe, so the kernel only ever sees one event at a time.
Workers are never joined, so quitting never waits on an extension.
"""

from __future__ import annotations

import asyncio
import logging
import threading
import webbrowser
from collections.abc import Callable
from typing import Any

import pyperclip
from prompt_toolkit.application import Application
from prompt_toolkit.formatted_text import ANSI
from prompt_toolkit.input import Input
from prompt_toolkit.key_binding import KeyBindings
from prompt_toolkit.keys import Keys
from prompt_toolkit.layout import Layout, Window
from prompt_toolkit.layout.controls import FormattedTextControl
from prompt_toolkit.output import Output
from prompt_toolkit.styles import Style

from .config import YAMLConfig
from .errors import BeamError
from .events import (
    Cmd,
    ErrorEvent,
    Event,
    InterruptEvent,
    KeyEvent,
    QuitEvent,
    ResizeEvent,
)
from .kernel import Kernel

logger = logging.getLogger(__name__)

NAMED_KEYS = (
    "enter", "escape", "backspace", "tab", "s-tab",
    "up", "down", "left", "right", "pageup", "pagedown", "home", "end",
    "delete",
)
# c-c interrupts; c-h, c-i and c-m are backspace, tab and enter.
CONTROL_KEYS = tuple(f"c-{ch}" for ch in "abdefgjklnopqrstuvwxyz")


# ----------------------------
# System capabilities
# ----------------------------


class SystemCapabilities:
    """Clipboard through pyperclip, URLs through the default browser."""

    def copy_text(self, text: str) -> None:
        pyperclip.copy(text)

    def open_url(self, url: str) -> None:
        if not webbrowser.open(url):
            raise BeamError(f"no browser available to open {url}")


# ----------------------------
# Theme / Style
# ----------------------------


def _default_style_dict() -> dict[str, str]:
    return {
        "beam.body": "",
    }


def _build_style(config: YAMLConfig | None) -> Style:
    base = _default_style_dict()
    overrides = config.get_path("ui.style", {}) if config else {}
    if isinstance(overrides, dict):
        for k, v in overrides.items():
            if isinstance(k, str) and isinstance(v, str):
                base[k] = v
    return Style.from_dict(base)


# ----------------------------
# Program
# ----------------------------


def _spawn_daemon(work: Callable[[], None]) -> None:
    threading.Thread(target=work, name="beam-worker", daemon=True).start()


class Program:
    """Runs a Kernel inside a prompt_toolkit Application."""

    def __init__(
        self,
        kernel: Kernel,
        full_screen: bool = True,
        input: Input | None = None,
        output: Output | None = None,
        style: Style | None = None,
    ):
        self.kernel = kernel
        self._spawn: Callable[[Callable[[], None]], None] = _spawn_daemon
        self._loop: asyncio.AbstractEventLoop | None = None
        self._size = (0, 0)
        self._closed = False

        body = Window(
            FormattedTextControl(self._render, focusable=True),
            style="class:beam.body",
            wrap_lines=False,
        )
        self.app: Application[int] = Application(
            layout=Layout(body),
            key_bindings=self.build_key_bindings(),
            full_screen=full_screen,
            style=style or _build_style(kernel.config),
            input=input,
            output=output,
            before_render=self._before_render,
        )
        # Escape is a real key here, not only a sequence prefix.
        self.app.ttimeoutlen = 0.05

    # ---------- rendering ----------

    def _render(self) -> ANSI:
        return ANSI(self.kernel.render())

    def _before_render(self, app: Application[Any]) -> None:
        size = app.output.get_size()
        current = (size.columns, size.rows)
        if current != self._size:
            self._size = current
            self._handle(ResizeEvent(size.columns, size.rows))

    # ---------- dispatch ----------

    def dispatch(self, event: Event) -> None:
        """Handle one event on the loop thread and redraw."""
        self._handle(event)
        self.app.invalidate()

    def _handle(self, event: Event) -> None:
        if isinstance(event, QuitEvent):
            self._exit(event.exit_code)
            return
        cmd = self.kernel.handle_event(event)
        # Quit right away; the quit command would queue behind busy workers.
        if self.kernel.exiting:
            self._exit(self.kernel.exit_code)
            return
        self.schedule(cmd)

    def _exit(self, exit_code: int) -> None:
        self._closed = True
        if self.app.is_running and not self.app.is_done:
            self.app.exit(result=exit_code)

    # ---------- deferred work ----------

    def schedule(self, cmd: Cmd | None) -> None:
        if cmd is None or self._closed:
            return
        self._spawn(lambda: self._work(cmd))

    def _work(self, cmd: Cmd) -> None:
        if self._closed:
            return
        try:
            event = cmd()
        except Exception as e:
            logger.error("deferred work failed: %s", e, exc_info=e)
            event = ErrorEvent(e)
        self._post(event)

    def _post(self, event: Event | None) -> None:
        if event is None or self._closed or self._loop is None:
            return
        try:
            self._loop.call_soon_threadsafe(self.dispatch, event)
        except RuntimeError:
            # Loop already closed while the worker was finishing.
            logger.debug("dropping %s after shutdown", type(event).__name__)

    # ---------- keybindings ----------

    def build_key_bindings(self) -> KeyBindings:
        kb = KeyBindings()

        @kb.add("c-c")
        def _(event):
            self.dispatch(InterruptEvent())

        for name in NAMED_KEYS + CONTROL_KEYS:

            @kb.add(name)
            def _(event, name=name):
                self.dispatch(KeyEvent(name))

        @kb.add(Keys.Any)
        def _(event):
            if event.data and event.data.isprintable():
                self.dispatch(KeyEvent("rune", event.data))

        @kb.add(Keys.BracketedPaste)
        def _(event):
            text = event.data.replace("\r", "").replace("\n", " ")
            if text:
                self.dispatch(KeyEvent("rune", text))

        return kb

    # ---------- public API ----------

    def _start(self) -> None:
        self._loop = asyncio.get_running_loop()
        self.schedule(self.kernel.init())

    def run(self) -> int:
        """Run until the kernel quits; returns the exit code."""
        try:
            result = self.app.run(pre_run=self._start)
        finally:
            # Workers still running are abandoned with their results.
            self._closed = True
        return self.kernel.exit_code if result is None else result


def run_program(
    kernel: Kernel,
    input: Input | None = None,
    output: Output | None = None,
) -> int:
    """Run ``kernel`` with the ui settings from its config."""
    ui = kernel.config.ui if kernel.config else {}
    program = Program(
        kernel,
        full_screen=bool(ui.get("fullscreen", True)),
        input=input,
        output=output,
    )
    return program.run()
