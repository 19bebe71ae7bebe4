"""One Playwright Chromium session per scenario run.

Sessions are never pooled: ``open_session`` launches a fresh browser, yields
a single page configured from the run's ExecutionConfig and tears everything
down when the ``async with`` block exits, whatever the exit path.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager, suppress
from typing import TYPE_CHECKING

from playwright.async_api import async_playwright

from ..config.settings import settings

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from playwright.async_api import Page

    from ..core.options import ExecutionConfig

logger = logging.getLogger(__name__)

# Desktop UA keeps sites from serving mobile/AMP variants
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/119.0.0.0 Safari/537.36"
)


def launch_args(cfg: ExecutionConfig) -> list[str]:
    return [
        "--no-sandbox",
        "--disable-setuid-sandbox",
        "--disable-dev-shm-usage",
        f"--window-size={cfg.viewport.width},{cfg.viewport.height}",
        "--high-dpi-support=1",
        f"--force-device-scale-factor={cfg.device_scale_factor}",
    ]


@asynccontextmanager
async def open_session(
    cfg: ExecutionConfig, headless: bool | None = None
) -> AsyncGenerator[Page, None]:
    """Launch Chromium, yield a configured page, always close the browser.

    Launch failures propagate to the caller.
    """
    async with async_playwright() as playwright:
        browser = await playwright.chromium.launch(
            headless=settings.headless if headless is None else headless,
            args=launch_args(cfg),
        )
        logger.debug(f"Browser launched (viewport: {cfg.viewport.as_dict()})")
        try:
            context = await browser.new_context(
                viewport=cfg.viewport.as_dict(),  # type: ignore[arg-type]
                device_scale_factor=cfg.device_scale_factor,
                is_mobile=False,
                user_agent=cfg.user_agent or DEFAULT_USER_AGENT,
            )
            page = await context.new_page()
            page.set_default_timeout(cfg.step_timeout_ms)
            yield page
        finally:
            with suppress(Exception):
                await browser.close()
            logger.debug("Browser closed")
