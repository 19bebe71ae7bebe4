"""Scenario step IR.

Steps arrive as loose JSON objects discriminated by ``action``. ``parse_step``
turns one into the matching dataclass variant, raising ``StepError`` when the
action is unknown or a required field is missing.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Callable, Union


class StepError(Exception):
    """Base class for errors raised while validating or executing a step."""


class StepValidationError(StepError):
    """A required field for the step's action is missing."""


class UnknownActionError(StepError):
    def __init__(self, action: Any) -> None:
        super().__init__(f"Unknown action: {action}")
        self.action = action


class AssertionFailed(StepError):
    """An expect* step observed a page state different from the expected one."""


@dataclass
class Goto:
    url: str


@dataclass
class Fill:
    selector: str
    value: str = ""


@dataclass
class Click:
    selector: str


@dataclass
class Hover:
    selector: str


@dataclass
class Select:
    """Choose one or more ``<option>`` values."""

    selector: str
    values: list[str]


@dataclass
class Wait:
    ms: float


@dataclass
class WaitFor:
    selector: str
    timeout_ms: float | None = None  # falls back to stepTimeoutMs


@dataclass
class Scroll:
    selector: str


@dataclass
class Press:
    key: str  # e.g., "Enter", "Escape", "Tab", "ArrowDown"
    selector: str | None = None  # focused first when set


@dataclass
class ExpectText:
    selector: str
    text: str = ""


@dataclass
class ExpectUrl:
    contains: str


@dataclass
class ExpectTitle:
    text: str


@dataclass
class ExpectVisible:
    selector: str


@dataclass
class ExpectHidden:
    selector: str


@dataclass
class ExpectAttribute:
    selector: str
    attribute: str
    value: str = ""  # empty means "attribute present"


@dataclass
class ExpectCount:
    selector: str
    count: int = 0


@dataclass
class Screenshot:
    full_page: bool | None = None  # None defers to screenshotFullPage


@dataclass
class Viewport:
    width: int = 1280
    height: int = 800


@dataclass
class UserAgent:
    ua: str


Step = Union[
    Goto,
    Fill,
    Click,
    Hover,
    Select,
    Wait,
    WaitFor,
    Scroll,
    Press,
    ExpectText,
    ExpectUrl,
    ExpectTitle,
    ExpectVisible,
    ExpectHidden,
    ExpectAttribute,
    ExpectCount,
    Screenshot,
    Viewport,
    UserAgent,
]


def _text(raw: dict[str, Any], *keys: str) -> str:
    """First non-empty value among ``keys`` as a stripped string."""
    for key in keys:
        val = raw.get(key)
        if val is None:
            continue
        s = str(val).strip()
        if s:
            return s
    return ""


def _require(raw: dict[str, Any], action: str, *keys: str) -> str:
    val = _text(raw, *keys)
    if not val:
        raise StepValidationError(f"Missing {' or '.join(keys)} for action {action}")
    return val


def _number(value: Any, default: float = 0) -> float:
    if isinstance(value, bool):
        return default
    try:
        num = float(value)
    except (TypeError, ValueError):
        return default
    return num if math.isfinite(num) else default


def _selector(raw: dict[str, Any], action: str) -> str:
    return _require(raw, action, "selector")


def _parse_select(raw: dict[str, Any]) -> Select:
    value = raw.get("value")
    if isinstance(value, (list, tuple)):
        values = [str(v) for v in value]
    else:
        values = ["" if value is None else str(value)]
    return Select(selector=_selector(raw, "select"), values=values)


def _parse_wait(raw: dict[str, Any]) -> Wait:
    if raw.get("ms") is None and raw.get("timeout") is None:
        raise StepValidationError("Missing ms or timeout for action wait")
    return Wait(ms=_number(raw.get("ms") or raw.get("timeout")))


def _parse_wait_for(raw: dict[str, Any], action: str) -> WaitFor:
    timeout = _number(raw.get("timeout"))
    return WaitFor(selector=_selector(raw, action), timeout_ms=timeout or None)


def _parse_screenshot(raw: dict[str, Any]) -> Screenshot:
    full_page = raw.get("fullPage")
    return Screenshot(full_page=full_page if isinstance(full_page, bool) else None)


def _parse_viewport(raw: dict[str, Any]) -> Viewport:
    width = int(_number(raw.get("width"))) or 1280
    height = int(_number(raw.get("height"))) or 800
    return Viewport(width=width, height=height)


_PARSERS: dict[str, Callable[[dict[str, Any]], Step]] = {
    "goto": lambda r: Goto(url=_require(r, "goto", "url")),
    "fill": lambda r: Fill(
        selector=_selector(r, "fill"),
        value="" if r.get("value") is None else str(r["value"]),
    ),
    "click": lambda r: Click(selector=_selector(r, "click")),
    "hover": lambda r: Hover(selector=_selector(r, "hover")),
    "select": _parse_select,
    "wait": _parse_wait,
    "waitFor": lambda r: _parse_wait_for(r, "waitFor"),
    "waitForSelector": lambda r: _parse_wait_for(r, "waitForSelector"),
    "scroll": lambda r: Scroll(selector=_selector(r, "scroll")),
    "press": lambda r: Press(
        key=_require(r, "press", "key"), selector=_text(r, "selector") or None
    ),
    "expectText": lambda r: ExpectText(
        selector=_selector(r, "expectText"),
        text="" if r.get("text") is None else str(r["text"]),
    ),
    "expectUrl": lambda r: ExpectUrl(
        contains=_require(r, "expectUrl", "contains", "urlContains", "text")
    ),
    "expectTitle": lambda r: ExpectTitle(text=_require(r, "expectTitle", "text", "contains")),
    "expectVisible": lambda r: ExpectVisible(selector=_selector(r, "expectVisible")),
    "expectHidden": lambda r: ExpectHidden(selector=_selector(r, "expectHidden")),
    "expectAttribute": lambda r: ExpectAttribute(
        selector=_selector(r, "expectAttribute"),
        attribute=_require(r, "expectAttribute", "attribute"),
        value=_text(r, "value"),
    ),
    "expectCount": lambda r: ExpectCount(
        selector=_selector(r, "expectCount"), count=int(_number(r.get("count")))
    ),
    "screenshot": _parse_screenshot,
    "viewport": _parse_viewport,
    "userAgent": lambda r: UserAgent(ua=_require(r, "userAgent", "ua", "userAgent")),
}

ACTIONS = frozenset(_PARSERS)


def parse_step(raw: Any) -> Step:
    """Map a raw step object to its Step variant."""
    if not isinstance(raw, dict):
        raise UnknownActionError(None)
    action = raw.get("action")
    if not isinstance(action, str) or action not in ACTIONS:
        raise UnknownActionError(action)
    return _PARSERS[action](raw)
