# Beam - Terminal Command Launcher
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
Pages: one screen of navigable UI state.

Every page supports the same four operations: init, update, render and
set_size. ``update`` returns the page that should replace the receiver,
which is how a CommandRunner turns into the List or Detail page its
extension produced (or into an error page).
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from prompt_toolkit.utils import get_cwidth

from .errors import BeamError
from .events import (
    Cmd,
    CopyTextEvent,
    Event,
    KeyEvent,
    OpenURLEvent,
    PrintTextEvent,
    PushPageEvent,
    RunFinishedEvent,
    pop_cmd,
)
from .filter import Filter, Scorer, SortKey, subsequence_score
from .interfaces import Target
from .utils import colorize, pad, truncate

logger = logging.getLogger(__name__)

UNBOUNDED = 10_000


# ----------------------------
# Actions and items
# ----------------------------


class ActionKind(str, Enum):
    RUN = "run"
    COPY = "copy"
    OPEN = "open"
    PUSH = "push"
    POP = "pop"
    PRINT = "print"


@dataclass(frozen=True)
class Action:
    """A titled side effect. ``effect`` is deferred work; selecting the
    action schedules it rather than calling it."""

    title: str
    kind: ActionKind
    effect: Cmd = field(repr=False, compare=False)
    shortcut: str | None = None

    @classmethod
    def copy_text(
        cls, text: str, title: str = "Copy", shortcut: str | None = None
    ) -> Action:
        return cls(title, ActionKind.COPY, lambda: CopyTextEvent(text), shortcut)

    @classmethod
    def open_url(
        cls, url: str, title: str = "Open", shortcut: str | None = None
    ) -> Action:
        return cls(title, ActionKind.OPEN, lambda: OpenURLEvent(url), shortcut)

    @classmethod
    def print_text(
        cls, text: str, title: str = "Confirm", shortcut: str | None = None
    ) -> Action:
        return cls(title, ActionKind.PRINT, lambda: PrintTextEvent(text), shortcut)

    @classmethod
    def push_page(
        cls,
        factory: Callable[[], Page],
        title: str = "Open",
        shortcut: str | None = None,
    ) -> Action:
        return cls(
            title, ActionKind.PUSH, lambda: PushPageEvent(factory()), shortcut
        )

    @classmethod
    def pop(cls, title: str = "Back", shortcut: str | None = None) -> Action:
        return cls(title, ActionKind.POP, pop_cmd, shortcut)

    @classmethod
    def run(
        cls, effect: Cmd, title: str = "Run", shortcut: str | None = None
    ) -> Action:
        return cls(title, ActionKind.RUN, effect, shortcut)


@dataclass
class ListItem:
    id: str
    title: str
    subtitle: str = ""
    accessories: list[str] = field(default_factory=list)
    actions: list[Action] = field(default_factory=list)

    def filter_text(self) -> str:
        return " ".join([self.title, self.subtitle, *self.accessories])


def _find_action(actions: Sequence[Action], key: str) -> Action | None:
    if key == "enter":
        return actions[0] if actions else None
    for action in actions:
        if action.shortcut == key:
            return action
    return None


# ----------------------------
# Page base
# ----------------------------


class Page(ABC):
    def __init__(self, title: str = ""):
        self.title = title
        self.width = 0
        self.height = 0

    def init(self) -> Cmd | None:
        return None

    @abstractmethod
    def update(self, event: Event) -> tuple[Page, Cmd | None]:
        ...

    @abstractmethod
    def render(self) -> str:
        ...

    def set_size(self, width: int, height: int) -> None:
        self.width = width
        self.height = height

    # ---------- rendering helpers ----------

    @property
    def _cols(self) -> int:
        return self.width if self.width > 0 else UNBOUNDED

    def _body_height(self, chrome: int) -> int:
        if self.height <= 0:
            return UNBOUNDED
        return max(0, self.height - chrome)

    def _header(self) -> list[str]:
        return [
            colorize(truncate(self.title, self._cols), "cyan"),
            colorize("─" * min(self._cols, 80), "dim"),
        ]

    def _footer(self, hints: Sequence[tuple[str, str]]) -> str:
        text = "  ".join(f"{label} {key}" for label, key in hints)
        return colorize(truncate(text, self._cols), "dim")


# ----------------------------
# Detail
# ----------------------------


class DetailPage(Page):
    def __init__(
        self, title: str, text: str = "", actions: Iterable[Action] = ()
    ):
        super().__init__(title)
        self.text = text
        self.actions = list(actions)
        self.offset = 0

    @classmethod
    def for_error(cls, error: BaseException) -> DetailPage:
        return cls("Error", str(error) or type(error).__name__)

    def update(self, event: Event) -> tuple[Page, Cmd | None]:
        if not isinstance(event, KeyEvent):
            return self, None

        if event.key == "escape":
            return self, pop_cmd
        if event.key in ("up", "c-p"):
            self.offset = max(0, self.offset - 1)
        elif event.key in ("down", "c-n"):
            last = max(0, len(self.text.splitlines()) - 1)
            self.offset = min(last, self.offset + 1)
        else:
            action = _find_action(self.actions, event.key)
            if action is not None:
                return self, action.effect
        return self, None

    def render(self) -> str:
        lines = self._header()
        body = self.text.splitlines()[self.offset:]
        for line in body[: self._body_height(3)]:
            lines.append(truncate(line, self._cols))

        hints = [("back", "esc")]
        if self.actions:
            hints.insert(0, (self.actions[0].title, "↵"))
        lines.append(self._footer(hints))
        return "\n".join(lines)


# ----------------------------
# List
# ----------------------------


class ListPage(Page):
    def __init__(
        self,
        title: str,
        items: Iterable[ListItem] = (),
        key: SortKey | None = None,
        scorer: Scorer = subsequence_score,
        empty_text: str = "No items",
    ):
        super().__init__(title)
        self.filter = Filter(items, key=key, scorer=scorer)
        self.cursor = 0
        self.empty_text = empty_text

    def set_items(self, items: Iterable[ListItem]) -> None:
        self.filter.set_items(items)
        self.cursor = min(self.cursor, max(0, len(self.filter.visible) - 1))

    @property
    def query(self) -> str:
        return self.filter.query

    @property
    def visible(self) -> list[ListItem]:
        return self.filter.visible  # type: ignore[return-value]

    @property
    def selected(self) -> ListItem | None:
        visible = self.visible
        if not visible:
            return None
        return visible[min(self.cursor, len(visible) - 1)]

    def _set_query(self, query: str) -> None:
        self.filter.set_query(query)
        self.cursor = 0

    def update(self, event: Event) -> tuple[Page, Cmd | None]:
        if not isinstance(event, KeyEvent):
            return self, None

        key = event.key
        if key in ("up", "c-p"):
            self.cursor = max(0, self.cursor - 1)
        elif key in ("down", "c-n"):
            self.cursor = min(max(0, len(self.visible) - 1), self.cursor + 1)
        elif key == "escape":
            if not self.query:
                return self, pop_cmd
            self._set_query("")
        elif key == "backspace":
            self._set_query(self.query[:-1])
        elif key == "rune":
            self._set_query(self.query + event.text)
        else:
            item = self.selected
            action = _find_action(item.actions, key) if item else None
            if action is not None:
                return self, action.effect
        return self, None

    def _render_item(self, item: ListItem, selected: bool) -> str:
        cols = self._cols
        marker = "> " if selected else "  "
        right = "  ".join(a for a in item.accessories if a)
        right_w = min(get_cwidth(right), max(0, cols // 3))
        left_w = max(0, cols - len(marker) - (right_w + 1 if right_w else 0))

        title = truncate(item.title, left_w)
        subtitle = truncate(item.subtitle, max(0, left_w - get_cwidth(title) - 1))
        left_plain = f"{title} {subtitle}" if subtitle else title
        gap = " " * max(0, left_w - get_cwidth(left_plain))

        styled_title = colorize(title, "bold") if selected else title
        line = marker + styled_title
        if subtitle:
            line += " " + colorize(subtitle, "dim")
        if right_w:
            line += gap + " " + colorize(pad(right, right_w), "dim")
        return line

    def render(self) -> str:
        lines = self._header()
        lines.append(colorize("> ", "pink") + self.query)

        visible = self.visible
        rows = self._body_height(4)
        if not visible:
            lines.append(colorize(self.empty_text, "dim"))
        else:
            cursor = min(self.cursor, len(visible) - 1)
            offset = max(0, cursor - rows + 1)
            for idx, item in enumerate(visible[offset:offset + rows]):
                lines.append(self._render_item(item, offset + idx == cursor))

        hints = [("back", "esc")]
        item = self.selected
        if item and item.actions:
            hints.insert(0, (item.actions[0].title, "↵"))
        lines.append(self._footer(hints))
        return "\n".join(lines)


# ----------------------------
# Command runner
# ----------------------------


class CommandRunner(Page):
    """Runs a target command off the loop and morphs into its output page."""

    def __init__(
        self,
        target: Target,
        command: str | None = None,
        params: Mapping[str, Any] | None = None,
        args: Sequence[str] = (),
        title: str = "",
    ):
        super().__init__(title or target.title)
        self.target = target
        self.command = command
        self.params = dict(params or {})
        self.args = list(args)

    def init(self) -> Cmd | None:
        return self._run

    def _run(self) -> Event:
        try:
            output = self.target.run(self.command, self.params, self.args)
            page = parse_page(output, self.target)
        except (BeamError, OSError, ValueError) as e:
            logger.warning(
                "running %s %s failed: %s", self.target.title,
                self.command or "", e,
            )
            return RunFinishedEvent(self, error=e)
        return RunFinishedEvent(self, page=page)

    def update(self, event: Event) -> tuple[Page, Cmd | None]:
        if isinstance(event, RunFinishedEvent) and event.source is self:
            if event.error is not None or event.page is None:
                page: Page = DetailPage.for_error(
                    event.error or ValueError("no page produced")
                )
            else:
                page = event.page
            page.set_size(self.width, self.height)
            return page, page.init()

        if isinstance(event, KeyEvent) and event.key == "escape":
            return self, pop_cmd
        return self, None

    def render(self) -> str:
        lines = self._header()
        lines.append(colorize("Loading...", "dim"))
        return "\n".join(lines)


# ----------------------------
# Decoding extension output
# ----------------------------


def _require(raw: Mapping[str, Any], key: str, what: str) -> Any:
    if key not in raw:
        raise ValueError(f"{what} is missing '{key}'")
    return raw[key]


def parse_action(raw: Any, target: Target | None = None) -> Action:
    if not isinstance(raw, dict):
        raise ValueError("action must be an object")

    kind = raw.get("type")
    title = raw.get("title")
    shortcut = raw.get("key")

    if kind == "copy":
        text = str(_require(raw, "text", "copy action"))
        return Action.copy_text(text, title or "Copy", shortcut)
    if kind == "open":
        url = str(_require(raw, "url", "open action"))
        return Action.open_url(url, title or "Open", shortcut)
    if kind == "pop":
        return Action.pop(title or "Back", shortcut)
    if kind == "push":
        nested = _require(raw, "page", "push action")
        parse_page(nested, target)
        return Action.push_page(
            lambda: parse_page(nested, target), title or "Open", shortcut
        )
    if kind == "run":
        if target is None:
            raise ValueError("run actions need an extension to run")
        command = raw.get("command")
        params = raw.get("params") or {}
        args = [str(a) for a in raw.get("args") or []]
        if not isinstance(params, dict):
            raise ValueError("run action 'params' must be an object")

        def effect() -> Event:
            return PushPageEvent(CommandRunner(target, command, params, args))

        return Action.run(effect, title or "Run", shortcut)

    raise ValueError(f"unsupported action type: {kind!r}")


def parse_item(raw: Any, index: int, target: Target | None = None) -> ListItem:
    if not isinstance(raw, dict):
        raise ValueError("list item must be an object")
    accessories = raw.get("accessories") or []
    if not isinstance(accessories, list):
        raise ValueError("list item 'accessories' must be a list")
    raw_id = raw.get("id")
    return ListItem(
        id=f"#{index}" if raw_id is None else str(raw_id),
        title=str(_require(raw, "title", "list item")),
        subtitle=str(raw.get("subtitle") or ""),
        accessories=[str(a) for a in accessories],
        actions=[parse_action(a, target) for a in raw.get("actions") or []],
    )


def parse_page(data: Any, target: Target | None = None) -> Page:
    """Build a page from an extension's JSON output (bytes, str or dict)."""
    if isinstance(data, (bytes, str)):
        data = json.loads(data)
    if not isinstance(data, dict):
        raise ValueError("page must be a JSON object")

    kind = data.get("type")
    title = str(data.get("title") or (target.title if target else ""))

    if kind == "list":
        raw_items = data.get("items") or []
        if not isinstance(raw_items, list):
            raise ValueError("list page 'items' must be a list")
        items = [parse_item(raw, i, target) for i, raw in enumerate(raw_items)]
        return ListPage(
            title, items, empty_text=str(data.get("emptyText") or "No items")
        )
    if kind == "detail":
        actions = [parse_action(a, target) for a in data.get("actions") or []]
        return DetailPage(title, str(data.get("text") or ""), actions)

    raise ValueError(f"unsupported page type: {kind!r}")
