# Beam - Terminal Command Launcher
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
Filtering and ordering of list items.

Python's sort is stable, so items that compare equal under the ordering key
always keep their insertion order.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from typing import Any, Optional, Protocol


class FilterItem(Protocol):
    @property
    def id(self) -> str:
        ...

    def filter_text(self) -> str:
        ...


Scorer = Callable[[str, str], Optional[float]]
SortKey = Callable[[Any], Any]


def subsequence_score(query: str, text: str) -> float | None:
    """Case-insensitive subsequence match.

    Returns None when ``query`` is not a subsequence of ``text``. Otherwise
    higher is better: contiguous runs and early matches score more.
    """
    query = query.lower()
    text = text.lower()
    if not query:
        return 0.0

    score = 0.0
    pos = 0
    run = 0
    for ch in query:
        idx = text.find(ch, pos)
        if idx < 0:
            return None
        run = run + 1 if idx == pos else 1
        score += run
        if idx == 0:
            score += 2
        pos = idx + 1
    return score - len(text) * 0.01


def history_order(history: Mapping[str, int]) -> SortKey:
    """Most recently run first; never-run items count as timestamp 0."""

    def key(item: FilterItem) -> int:
        return -history.get(item.id, 0)

    return key


class Filter:
    """Ordered, filterable collection of items with unique ids."""

    def __init__(
        self,
        items: Iterable[FilterItem] = (),
        key: SortKey | None = None,
        scorer: Scorer = subsequence_score,
    ):
        self.key = key
        self.scorer = scorer
        self.query = ""
        self.items: list[FilterItem] = []
        self.set_items(items)

    def set_items(self, items: Iterable[FilterItem]) -> None:
        items = list(items)
        seen: set[str] = set()
        for item in items:
            if item.id in seen:
                raise ValueError(f"duplicate item id: {item.id!r}")
            seen.add(item.id)
        self.items = items

    def set_query(self, query: str) -> None:
        self.query = query

    @property
    def visible(self) -> list[FilterItem]:
        if not self.query:
            if self.key is None:
                return list(self.items)
            return sorted(self.items, key=self.key)

        scored: list[tuple[float, FilterItem]] = []
        for item in self.items:
            score = self.scorer(self.query, item.filter_text())
            if score is not None:
                scored.append((score, item))

        if self.key is None:
            scored.sort(key=lambda pair: -pair[0])
        else:
            key = self.key
            scored.sort(key=lambda pair: (-pair[0], key(pair[1])))
        return [item for _, item in scored]
