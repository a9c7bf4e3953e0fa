# tests/test_kernel.py
"""
Kernel tests with dependency injection.
Kernel only routes events and owns the stack - pages and capabilities are fakes.
"""
from __future__ import annotations

from pathlib import Path

import pytest

import beam_cli.kernel as kernel_mod
from beam_cli.events import (
    CopyTextEvent,
    ErrorEvent,
    InterruptEvent,
    KeyEvent,
    OpenURLEvent,
    PopEvent,
    PrintTextEvent,
    PushPageEvent,
    QuitEvent,
    ResizeEvent,
)
from beam_cli.kernel import Kernel
from beam_cli.pages import DetailPage, Page

# ----------------------------------------------------------------
# Boundary tests (hard gates)
# ----------------------------------------------------------------


def test_kernel_module_does_not_spawn_processes_or_load_yaml() -> None:
    """
    HARD BOUNDARY:
    - Kernel must not run subprocesses or read config files.
    - Host side effects go through the injected capabilities.
    """
    text = Path(kernel_mod.__file__).read_text(encoding="utf-8")

    forbidden = ["import subprocess", "import yaml", "pyperclip", "webbrowser"]
    hits = [s for s in forbidden if s in text]
    assert not hits, f"Kernel must stay free of host side effects. Found: {hits}"


# ----------------------------------------------------------------
# Mock dependencies
# ----------------------------------------------------------------


class FakePage(Page):
    """Records what the kernel does to it."""

    def __init__(self, name: str, init_cmd=None):
        super().__init__(name)
        self.events = []
        self.sizes = []
        self.init_cmd = init_cmd

    def init(self):
        return self.init_cmd

    def update(self, event):
        self.events.append(event)
        return self, None

    def render(self) -> str:
        return f"<{self.title}>"

    def set_size(self, width: int, height: int) -> None:
        super().set_size(width, height)
        self.sizes.append((width, height))


class MorphingPage(FakePage):
    """Turns into ``replacement`` on its first event."""

    def __init__(self, name: str, replacement: Page):
        super().__init__(name)
        self.replacement = replacement

    def update(self, event):
        return self.replacement, None


class FakeCapabilities:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.copied = []
        self.opened = []

    def copy_text(self, text: str) -> None:
        if self.fail:
            raise RuntimeError("no clipboard")
        self.copied.append(text)

    def open_url(self, url: str) -> None:
        if self.fail:
            raise RuntimeError("no browser")
        self.opened.append(url)


@pytest.fixture
def root() -> FakePage:
    return FakePage("root")


@pytest.fixture
def caps() -> FakeCapabilities:
    return FakeCapabilities()


@pytest.fixture
def kernel(root: FakePage, caps: FakeCapabilities) -> Kernel:
    return Kernel(root, caps)


def _run(cmd):
    assert cmd is not None
    return cmd()


# ----------------------------------------------------------------
# Stack behaviour
# ----------------------------------------------------------------


def test_root_is_active_when_stack_is_empty(kernel: Kernel, root: FakePage) -> None:
    assert kernel.active_page is root
    assert kernel.depth == 0
    assert kernel.render() == "<root>"


def test_push_makes_page_active_and_returns_its_init(kernel: Kernel) -> None:
    marker = lambda: None  # noqa: E731
    page = FakePage("a", init_cmd=marker)

    cmd = kernel.handle_event(PushPageEvent(page))

    assert cmd is marker
    assert kernel.active_page is page
    assert kernel.depth == 1


def test_push_pop_sequences_leave_last_unpopped_page_active(
    kernel: Kernel, root: FakePage
) -> None:
    a, b, c = FakePage("a"), FakePage("b"), FakePage("c")

    kernel.handle_event(PushPageEvent(a))
    kernel.handle_event(PushPageEvent(b))
    kernel.handle_event(PopEvent())
    kernel.handle_event(PushPageEvent(c))
    assert kernel.active_page is c

    kernel.handle_event(PopEvent())
    assert kernel.active_page is a

    kernel.handle_event(PopEvent())
    assert kernel.active_page is root


def test_pop_on_empty_stack_quits_with_zero(kernel: Kernel) -> None:
    cmd = kernel.handle_event(PopEvent())

    assert _run(cmd) == QuitEvent(0)
    assert kernel.exiting is True
    assert kernel.exit_code == 0


def test_pushed_page_gets_current_size(kernel: Kernel) -> None:
    kernel.handle_event(ResizeEvent(100, 40))
    page = FakePage("a")

    kernel.handle_event(PushPageEvent(page))

    assert page.sizes == [(100, 40)]


def test_resize_reaches_root_and_every_stacked_page(
    kernel: Kernel, root: FakePage
) -> None:
    a, b = FakePage("a"), FakePage("b")
    kernel.handle_event(PushPageEvent(a))
    kernel.handle_event(PushPageEvent(b))

    kernel.handle_event(ResizeEvent(80, 24))

    for page in (root, a, b):
        assert page.sizes[-1] == (80, 24)


def test_resize_respects_configured_height(
    root: FakePage, caps: FakeCapabilities, make_config
) -> None:
    kernel = Kernel(root, caps, make_config(ui={"height": 10}))

    kernel.handle_event(ResizeEvent(80, 24))
    assert root.sizes[-1] == (80, 10)

    kernel.handle_event(ResizeEvent(80, 6))
    assert root.sizes[-1] == (80, 6)


# ----------------------------------------------------------------
# Forwarding
# ----------------------------------------------------------------


def test_other_events_go_to_active_page(kernel: Kernel, root: FakePage) -> None:
    page = FakePage("a")
    kernel.handle_event(PushPageEvent(page))

    kernel.handle_event(KeyEvent("down"))

    assert page.events == [KeyEvent("down")]
    assert root.events == []


def test_page_returned_by_update_replaces_active_page(kernel: Kernel) -> None:
    final = FakePage("final")
    kernel.handle_event(PushPageEvent(MorphingPage("loading", final)))

    kernel.handle_event(KeyEvent("enter"))

    assert kernel.active_page is final
    assert kernel.depth == 1


def test_root_can_be_replaced_too(caps: FakeCapabilities) -> None:
    final = FakePage("final")
    kernel = Kernel(MorphingPage("loading", final), caps)

    kernel.handle_event(KeyEvent("enter"))

    assert kernel.root is final


# ----------------------------------------------------------------
# Side effects
# ----------------------------------------------------------------


def test_interrupt_hides_and_quits_with_zero(kernel: Kernel) -> None:
    cmd = kernel.handle_event(InterruptEvent())

    assert kernel.render() == ""
    assert _run(cmd) == QuitEvent(0)


def test_copy_text_success_hides_and_quits(
    kernel: Kernel, caps: FakeCapabilities
) -> None:
    cmd = kernel.handle_event(CopyTextEvent("hello"))

    assert caps.copied == ["hello"]
    assert kernel.hidden is True
    assert _run(cmd) == QuitEvent(0)


def test_copy_text_failure_becomes_error_not_exit(root: FakePage) -> None:
    kernel = Kernel(root, FakeCapabilities(fail=True))

    cmd = kernel.handle_event(CopyTextEvent("hello"))
    event = _run(cmd)

    assert isinstance(event, ErrorEvent)
    assert "failed to copy text to clipboard" in str(event.error)
    assert kernel.exiting is False
    assert kernel.hidden is False


def test_open_url_success_and_failure(root: FakePage, caps: FakeCapabilities) -> None:
    kernel = Kernel(root, caps)
    assert _run(kernel.handle_event(OpenURLEvent("https://example.com"))) == QuitEvent(0)
    assert caps.opened == ["https://example.com"]

    failing = Kernel(FakePage("r"), FakeCapabilities(fail=True))
    event = _run(failing.handle_event(OpenURLEvent("https://example.com")))
    assert isinstance(event, ErrorEvent)
    assert failing.exiting is False


def test_missing_capabilities_is_an_error_event(root: FakePage) -> None:
    kernel = Kernel(root)

    event = _run(kernel.handle_event(CopyTextEvent("x")))

    assert isinstance(event, ErrorEvent)


def test_print_text_stores_output_and_quits(kernel: Kernel) -> None:
    cmd = kernel.handle_event(PrintTextEvent("row\t1"))

    assert kernel.output == "row\t1"
    assert kernel.render() == ""
    assert _run(cmd) == QuitEvent(0)


def test_error_event_replaces_active_page_with_detail(kernel: Kernel) -> None:
    kernel.handle_event(ResizeEvent(60, 20))
    kernel.handle_event(PushPageEvent(FakePage("a")))

    kernel.handle_event(ErrorEvent(RuntimeError("boom")))

    page = kernel.active_page
    assert isinstance(page, DetailPage)
    assert page.title == "Error"
    assert page.text == "boom"
    assert (page.width, page.height) == (60, 20)
    assert kernel.depth == 1
    assert kernel.exiting is False
