from __future__ import annotations

import itertools
import logging
import time
import uuid
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from playwright.async_api import Page

logger = logging.getLogger(__name__)

PUBLIC_PREFIX = "/output"


def ensure_dir(path: Path) -> None:
    path.mkdir(parents=True, exist_ok=True)


def new_run_id() -> str:
    return uuid.uuid4().hex[:12]


def final_screenshot_name(run_id: str, seq: int, ts_ms: int | None = None) -> str:
    ts = ts_ms if ts_ms is not None else int(time.time() * 1000)
    return f"screenshot-{ts}-{run_id}-{seq}.png"


def step_screenshot_name(index: int, run_id: str, ts_ms: int | None = None) -> str:
    ts = ts_ms if ts_ms is not None else int(time.time() * 1000)
    return f"step-{index}-{ts}-{run_id}.png"


def public_path(filename: str) -> str:
    return f"{PUBLIC_PREFIX}/{filename}"


class ArtifactWriter:
    """Best-effort PNG writer for one run.

    ``capture`` returns the public ``/output/...`` path of the written file or
    ``None``; it never raises for I/O or browser errors.
    """

    def __init__(self, out_dir: Path | str, full_page_default: bool = False, run_id: str | None = None):
        self.out_dir = Path(out_dir)
        self.full_page_default = full_page_default
        self.run_id = run_id or new_run_id()
        self._seq = itertools.count(1)

    def resolve_full_page(self, override: bool | None) -> bool:
        return self.full_page_default if override is None else override

    async def capture(
        self,
        page: Page,
        *,
        step_index: int | None = None,
        full_page: bool | None = None,
    ) -> str | None:
        if step_index is None:
            filename = final_screenshot_name(self.run_id, next(self._seq))
        else:
            filename = step_screenshot_name(step_index, self.run_id)
        try:
            ensure_dir(self.out_dir)
            await page.screenshot(
                path=str(self.out_dir / filename),
                type="png",
                full_page=self.resolve_full_page(full_page),
                omit_background=False,
            )
        except Exception as e:
            logger.warning(f"Screenshot {filename} not captured: {e}")
            return None
        return public_path(filename)
