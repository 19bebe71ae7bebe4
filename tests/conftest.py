"""Fake Playwright objects shared by the unit tests; ``src/`` is on the path via pytest config."""

from contextlib import asynccontextmanager
from pathlib import Path

import pytest
from playwright.async_api import TimeoutError as PlaywrightTimeoutError


class FakeKeyboard:
    def __init__(self) -> None:
        self.pressed: list[str] = []

    async def press(self, key: str) -> None:
        self.pressed.append(key)


class FakeCDPSession:
    def __init__(self) -> None:
        self.sent: list[tuple[str, dict]] = []

    async def send(self, method: str, params: dict | None = None) -> dict:
        self.sent.append((method, params or {}))
        return {}


class FakeContext:
    def __init__(self) -> None:
        self.cdp = FakeCDPSession()
        self.cdp_sessions_opened = 0

    async def new_cdp_session(self, _page) -> FakeCDPSession:
        self.cdp_sessions_opened += 1
        return self.cdp


class FakePage:
    """In-memory stand-in for a Playwright Page.

    ``elements`` maps a selector to a dict with optional keys: ``text``,
    ``attrs``, ``visible`` (default True) and ``count`` (default 1).
    """

    def __init__(self, elements=None, title="", fail_screenshots=False) -> None:
        self.elements: dict[str, dict] = dict(elements or {})
        self._title = title
        self.url = "about:blank"
        self.fail_screenshots = fail_screenshots
        self.keyboard = FakeKeyboard()
        self.context = FakeContext()
        self.calls: list[tuple] = []
        self.typed: dict[str, str] = {}
        self.selected: dict[str, list[str]] = {}
        self.viewport: dict | None = None
        self.screenshots: list[dict] = []
        self.titles_by_url: dict[str, str] = {}

    def _missing(self, selector: str):
        return PlaywrightTimeoutError(f"Timeout waiting for selector {selector}")

    async def goto(self, url, wait_until=None, timeout=None):
        self.calls.append(("goto", url, wait_until, timeout))
        self.url = url
        self._title = self.titles_by_url.get(url, self._title)

    async def wait_for_selector(self, selector, state=None, timeout=None):
        self.calls.append(("wait_for_selector", selector, state, timeout))
        el = self.elements.get(selector)
        if el is None or (state == "visible" and not el.get("visible", True)):
            raise self._missing(selector)
        return el

    async def focus(self, selector):
        self.calls.append(("focus", selector))
        if selector not in self.elements:
            raise self._missing(selector)

    async def evaluate(self, script, arg=None):
        self.calls.append(("evaluate", arg))
        if "scrollIntoView" in script:
            return arg in self.elements
        if "el.value = ''" in script:
            self.typed[arg] = ""
        return None

    async def type(self, selector, text, delay=None):
        self.calls.append(("type", selector, text, delay))
        self.typed[selector] = self.typed.get(selector, "") + text

    async def click(self, selector):
        self.calls.append(("click", selector))
        if selector not in self.elements:
            raise self._missing(selector)

    async def hover(self, selector):
        self.calls.append(("hover", selector))

    async def select_option(self, selector, values):
        self.calls.append(("select_option", selector, values))
        self.selected[selector] = list(values)

    async def wait_for_load_state(self, state=None, timeout=None):
        self.calls.append(("wait_for_load_state", state, timeout))

    async def eval_on_selector(self, selector, script, arg=None):
        el = self.elements.get(selector)
        if el is None:
            raise self._missing(selector)
        if "getAttribute" in script:
            return el.get("attrs", {}).get(arg)
        if "innerText" in script:
            return el.get("text", "")
        visible = el.get("visible", True)
        if "rect.width > 0" in script:
            return visible
        return not visible

    async def query_selector(self, selector):
        return self.elements.get(selector)

    async def query_selector_all(self, selector):
        el = self.elements.get(selector)
        if el is None:
            return []
        return [el] * el.get("count", 1)

    async def title(self):
        return self._title

    async def set_viewport_size(self, size):
        self.viewport = dict(size)

    async def screenshot(self, path=None, type=None, full_page=False, omit_background=False):
        if self.fail_screenshots:
            raise RuntimeError("screenshot failed")
        self.screenshots.append({"path": path, "full_page": full_page})
        if path:
            Path(path).write_bytes(b"\x89PNG\r\n\x1a\n")
        return b"\x89PNG\r\n\x1a\n"


class FakeSessionFactory:
    """Callable matching ``open_session``: yields one FakePage, records closes."""

    def __init__(self, page: FakePage | None = None, launch_error: Exception | None = None):
        self.page = page or FakePage()
        self.launch_error = launch_error
        self.opened = 0
        self.closed = 0
        self.configs: list = []

    def __call__(self, cfg):
        @asynccontextmanager
        async def _session():
            self.configs.append(cfg)
            if self.launch_error is not None:
                raise self.launch_error
            self.opened += 1
            try:
                yield self.page
            finally:
                self.closed += 1

        return _session()


class RecordingSleep:
    """Replacement for asyncio.sleep that records requested delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@pytest.fixture
def fake_page():
    return FakePage()


@pytest.fixture
def make_page():
    return FakePage


@pytest.fixture
def make_session():
    return FakeSessionFactory


@pytest.fixture
def recording_sleep():
    return RecordingSleep()
