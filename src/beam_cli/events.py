# Beam - Terminal Command Launcher
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
Events and deferred work.

A ``Cmd`` is a zero-argument callable run off the event loop; whatever event
it returns (if any) is delivered back into the loop. Two commands scheduled
independently complete in no particular order.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:
    from .pages import Page  # pragma: no cover


class Event:
    """Base class for everything dispatched through the kernel."""


Cmd = Callable[[], Optional[Event]]


@dataclass(frozen=True)
class ResizeEvent(Event):
    width: int
    height: int


@dataclass(frozen=True)
class KeyEvent(Event):
    """A key press. ``key`` is a name ("enter", "up", "c-y") or "rune" for
    printable input, in which case ``text`` holds the characters."""

    key: str
    text: str = ""


@dataclass(frozen=True)
class InterruptEvent(Event):
    pass


@dataclass(frozen=True)
class OpenURLEvent(Event):
    url: str


@dataclass(frozen=True)
class CopyTextEvent(Event):
    text: str


@dataclass(frozen=True)
class PrintTextEvent(Event):
    text: str


@dataclass(frozen=True, eq=False)
class PushPageEvent(Event):
    page: Page


@dataclass(frozen=True)
class PopEvent(Event):
    pass


@dataclass(frozen=True, eq=False)
class ErrorEvent(Event):
    error: BaseException


@dataclass(frozen=True)
class QuitEvent(Event):
    exit_code: int = 0


@dataclass(frozen=True, eq=False)
class RunFinishedEvent(Event):
    """Completion of a CommandRunner's work; ``source`` is the runner."""

    source: Any
    page: Page | None = None
    error: BaseException | None = None


# -----------------------
# Command helpers
# -----------------------


def quit_cmd(exit_code: int = 0) -> Cmd:
    return lambda: QuitEvent(exit_code)


def pop_cmd() -> Event:
    return PopEvent()


def error_cmd(error: BaseException) -> Cmd:
    return lambda: ErrorEvent(error)
