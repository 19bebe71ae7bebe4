"""Execution options normalization.

Raw ``options`` objects arrive straight from request bodies. They are turned
into a fully valid :class:`ExecutionConfig` once, before a run starts, so the
executor never has to second-guess a numeric field.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

DEFAULT_RETRIES = 0
DEFAULT_BACKOFF_MS = 500
DEFAULT_STEP_TIMEOUT_MS = 10000
DEFAULT_VIEWPORT_WIDTH = 1920
DEFAULT_VIEWPORT_HEIGHT = 1080
DEFAULT_DEVICE_SCALE_FACTOR = 2
MIN_DEVICE_SCALE_FACTOR = 1
MAX_DEVICE_SCALE_FACTOR = 3


@dataclass(frozen=True)
class ViewportSize:
    width: int = DEFAULT_VIEWPORT_WIDTH
    height: int = DEFAULT_VIEWPORT_HEIGHT

    def as_dict(self) -> dict[str, int]:
        return {"width": self.width, "height": self.height}


@dataclass(frozen=True)
class ExecutionConfig:
    per_step_screenshot: bool = False
    retries: int = DEFAULT_RETRIES
    backoff_ms: int = DEFAULT_BACKOFF_MS
    step_timeout_ms: int = DEFAULT_STEP_TIMEOUT_MS
    viewport: ViewportSize = field(default_factory=ViewportSize)
    screenshot_full_page: bool = False
    device_scale_factor: int = DEFAULT_DEVICE_SCALE_FACTOR
    user_agent: str | None = None

    def to_options(self) -> dict[str, Any]:
        """Return the camelCase options mapping this config was normalized from."""
        opts: dict[str, Any] = {
            "perStepScreenshot": self.per_step_screenshot,
            "retries": self.retries,
            "backoffMs": self.backoff_ms,
            "stepTimeoutMs": self.step_timeout_ms,
            "viewport": self.viewport.as_dict(),
            "screenshotFullPage": self.screenshot_full_page,
            "deviceScaleFactor": self.device_scale_factor,
        }
        if self.user_agent is not None:
            opts["userAgent"] = self.user_agent
        return opts


def _finite_number(value: Any) -> float | None:
    # bool is an int subclass but never a valid numeric option
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if not math.isfinite(value):
        return None
    return value


def _int_option(value: Any, default: int, *, minimum: int, exclusive: bool = False) -> int:
    num = _finite_number(value)
    if num is None:
        return default
    num = int(num)
    if num < minimum or (exclusive and num == minimum):
        return default
    return num


def _bool_option(value: Any) -> bool:
    return bool(value)


def _user_agent(value: Any) -> str | None:
    if not isinstance(value, str):
        return None
    value = value.strip()
    return value or None


def _viewport(value: Any) -> ViewportSize:
    raw = value if isinstance(value, Mapping) else {}
    return ViewportSize(
        width=_int_option(raw.get("width"), DEFAULT_VIEWPORT_WIDTH, minimum=0, exclusive=True),
        height=_int_option(raw.get("height"), DEFAULT_VIEWPORT_HEIGHT, minimum=0, exclusive=True),
    )


def _device_scale_factor(value: Any) -> int:
    num = _finite_number(value)
    if num is None:
        return DEFAULT_DEVICE_SCALE_FACTOR
    return int(min(MAX_DEVICE_SCALE_FACTOR, max(MIN_DEVICE_SCALE_FACTOR, num)))


def normalize_options(raw: Any = None) -> ExecutionConfig:
    """Build an ExecutionConfig from untrusted request options.

    Never raises: missing, non-numeric, non-finite or out-of-range values fall
    back to their defaults. Passing an ExecutionConfig returns it unchanged.
    """
    if isinstance(raw, ExecutionConfig):
        return raw
    opts: Mapping[str, Any] = raw if isinstance(raw, Mapping) else {}
    return ExecutionConfig(
        per_step_screenshot=_bool_option(opts.get("perStepScreenshot")),
        retries=_int_option(opts.get("retries"), DEFAULT_RETRIES, minimum=0),
        backoff_ms=_int_option(opts.get("backoffMs"), DEFAULT_BACKOFF_MS, minimum=0),
        step_timeout_ms=_int_option(
            opts.get("stepTimeoutMs"), DEFAULT_STEP_TIMEOUT_MS, minimum=0, exclusive=True
        ),
        viewport=_viewport(opts.get("viewport")),
        screenshot_full_page=_bool_option(opts.get("screenshotFullPage")),
        device_scale_factor=_device_scale_factor(opts.get("deviceScaleFactor")),
        user_agent=_user_agent(opts.get("userAgent")),
    )
