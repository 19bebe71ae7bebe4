"""Action registry: one async handler per Step variant.

Each handler performs exactly one attempt of its action against the run's
Playwright page and raises on failure. Retrying, timing and recording are
the executor's job.
"""

from __future__ import annotations

import asyncio
from contextlib import suppress
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Awaitable, Callable

from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from ..ir.model import (
    AssertionFailed,
    Click,
    ExpectAttribute,
    ExpectCount,
    ExpectHidden,
    ExpectText,
    ExpectTitle,
    ExpectUrl,
    ExpectVisible,
    Fill,
    Goto,
    Hover,
    Press,
    Screenshot,
    Scroll,
    Select,
    Step,
    StepError,
    UserAgent,
    Viewport,
    Wait,
    WaitFor,
    parse_step,
)

if TYPE_CHECKING:
    from playwright.async_api import Page

    from ...runtime.storage import ArtifactWriter
    from ..options import ExecutionConfig

GOTO_TIMEOUT_MS = 60000
CLICK_IDLE_TIMEOUT_MS = 30000
TYPE_DELAY_MS = 20

_JS_CLEAR_VALUE = "sel => { const el = document.querySelector(sel); if (el) el.value = ''; }"
_JS_SCROLL_INTO_VIEW = """sel => {
    const el = document.querySelector(sel);
    if (!el) return false;
    el.scrollIntoView({ behavior: 'instant', block: 'center', inline: 'center' });
    return true;
}"""
_JS_TEXT = "el => el.innerText || el.textContent || ''"
_JS_IS_VISIBLE = """el => {
    const rect = el.getBoundingClientRect();
    const style = window.getComputedStyle(el);
    return rect.width > 0 && rect.height > 0
        && style.visibility !== 'hidden' && style.display !== 'none';
}"""
_JS_IS_HIDDEN = """el => {
    const rect = el.getBoundingClientRect();
    const style = window.getComputedStyle(el);
    return rect.width === 0 || rect.height === 0
        || style.visibility === 'hidden' || style.display === 'none';
}"""
_JS_GET_ATTRIBUTE = "(el, name) => el.getAttribute(name)"


@dataclass
class ActionContext:
    """Everything a handler may touch during one run."""

    page: Page
    config: ExecutionConfig
    artifacts: ArtifactWriter
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep
    screenshot_path: str | None = None
    applied_user_agent: str | None = None
    cdp_session: Any = None


Handler = Callable[[ActionContext, Any], Awaitable[None]]


async def _goto(ctx: ActionContext, step: Goto) -> None:
    await ctx.page.goto(step.url, wait_until="networkidle", timeout=GOTO_TIMEOUT_MS)


async def _fill(ctx: ActionContext, step: Fill) -> None:
    page = ctx.page
    await page.wait_for_selector(step.selector, state="attached")
    await page.focus(step.selector)
    await page.evaluate(_JS_CLEAR_VALUE, step.selector)
    await page.type(step.selector, step.value, delay=TYPE_DELAY_MS)


async def _click(ctx: ActionContext, step: Click) -> None:
    page = ctx.page
    await page.wait_for_selector(step.selector, state="attached")
    await page.click(step.selector)
    # Pages that never go idle after a click are not an error
    with suppress(PlaywrightTimeoutError):
        await page.wait_for_load_state("networkidle", timeout=CLICK_IDLE_TIMEOUT_MS)


async def _hover(ctx: ActionContext, step: Hover) -> None:
    await ctx.page.wait_for_selector(step.selector, state="attached")
    await ctx.page.hover(step.selector)


async def _select(ctx: ActionContext, step: Select) -> None:
    await ctx.page.wait_for_selector(step.selector, state="attached")
    await ctx.page.select_option(step.selector, step.values)


async def _wait(ctx: ActionContext, step: Wait) -> None:
    if step.ms > 0:
        await ctx.sleep(step.ms / 1000)


async def _wait_for(ctx: ActionContext, step: WaitFor) -> None:
    timeout = step.timeout_ms or ctx.config.step_timeout_ms
    await ctx.page.wait_for_selector(step.selector, state="attached", timeout=timeout)


async def _scroll(ctx: ActionContext, step: Scroll) -> None:
    found = await ctx.page.evaluate(_JS_SCROLL_INTO_VIEW, step.selector)
    if not found:
        raise StepError(f"Selector not found: {step.selector}")


async def _press(ctx: ActionContext, step: Press) -> None:
    if step.selector:
        await ctx.page.wait_for_selector(step.selector, state="attached")
        await ctx.page.focus(step.selector)
    await ctx.page.keyboard.press(step.key)


async def _expect_text(ctx: ActionContext, step: ExpectText) -> None:
    await ctx.page.wait_for_selector(step.selector, state="attached")
    text = await ctx.page.eval_on_selector(step.selector, _JS_TEXT)
    if step.text not in str(text or ""):
        raise AssertionFailed(f"Text not found: {step.text}")


async def _expect_url(ctx: ActionContext, step: ExpectUrl) -> None:
    current = ctx.page.url
    if step.contains not in current:
        raise AssertionFailed(f"URL does not contain {step.contains} (current: {current})")


async def _expect_title(ctx: ActionContext, step: ExpectTitle) -> None:
    title = await ctx.page.title()
    if step.text not in title:
        raise AssertionFailed(f"Title does not contain {step.text} (title: {title})")


async def _expect_visible(ctx: ActionContext, step: ExpectVisible) -> None:
    await ctx.page.wait_for_selector(step.selector, state="visible")
    if not await ctx.page.eval_on_selector(step.selector, _JS_IS_VISIBLE):
        raise AssertionFailed(f"Element not visible: {step.selector}")


async def _expect_hidden(ctx: ActionContext, step: ExpectHidden) -> None:
    # An absent element counts as hidden
    if await ctx.page.query_selector(step.selector) is None:
        return
    if not await ctx.page.eval_on_selector(step.selector, _JS_IS_HIDDEN):
        raise AssertionFailed(f"Element should be hidden but is visible: {step.selector}")


async def _expect_attribute(ctx: ActionContext, step: ExpectAttribute) -> None:
    await ctx.page.wait_for_selector(step.selector, state="attached")
    actual = await ctx.page.eval_on_selector(step.selector, _JS_GET_ATTRIBUTE, step.attribute)
    if not step.value:
        if actual is None:
            raise AssertionFailed(
                f"Attribute {step.attribute} not present on selector {step.selector}"
            )
    elif actual != step.value:
        raise AssertionFailed(
            f'Attribute {step.attribute} expected "{step.value}" but got "{actual}"'
        )


async def _expect_count(ctx: ActionContext, step: ExpectCount) -> None:
    actual = len(await ctx.page.query_selector_all(step.selector))
    if actual != step.count:
        raise AssertionFailed(
            f"Expected {step.count} elements but found {actual} for selector {step.selector}"
        )


async def _screenshot(ctx: ActionContext, step: Screenshot) -> None:
    path = await ctx.artifacts.capture(ctx.page, full_page=step.full_page)
    if path:
        ctx.screenshot_path = path


async def _viewport(ctx: ActionContext, step: Viewport) -> None:
    await ctx.page.set_viewport_size({"width": step.width, "height": step.height})


async def _user_agent(ctx: ActionContext, step: UserAgent) -> None:
    # One CDP session per page, reused by later userAgent steps
    if ctx.cdp_session is None:
        ctx.cdp_session = await ctx.page.context.new_cdp_session(ctx.page)
    await ctx.cdp_session.send("Network.setUserAgentOverride", {"userAgent": step.ua})
    ctx.applied_user_agent = step.ua


HANDLERS: dict[type, Handler] = {
    Goto: _goto,
    Fill: _fill,
    Click: _click,
    Hover: _hover,
    Select: _select,
    Wait: _wait,
    WaitFor: _wait_for,
    Scroll: _scroll,
    Press: _press,
    ExpectText: _expect_text,
    ExpectUrl: _expect_url,
    ExpectTitle: _expect_title,
    ExpectVisible: _expect_visible,
    ExpectHidden: _expect_hidden,
    ExpectAttribute: _expect_attribute,
    ExpectCount: _expect_count,
    Screenshot: _screenshot,
    Viewport: _viewport,
    UserAgent: _user_agent,
}


async def dispatch(ctx: ActionContext, step: Step) -> None:
    handler = HANDLERS.get(type(step))
    if handler is None:
        raise TypeError(f"No handler registered for {type(step).__name__}")
    await handler(ctx, step)


async def execute_raw_step(ctx: ActionContext, raw: Any) -> None:
    """Validate ``raw`` and run one attempt of it."""
    await dispatch(ctx, parse_step(raw))
