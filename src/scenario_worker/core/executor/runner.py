from __future__ import annotations

import asyncio
import logging
import time
from pathlib import Path
from typing import TYPE_CHECKING, Any, Awaitable, Callable

from ...adapters.browser_session import open_session
from ...api.dto import ExecutionMeta, ExecutionResult, StepRecord, ViewportMeta
from ...runtime.storage import ArtifactWriter
from ..actions.registry import ActionContext, execute_raw_step
from ..options import ExecutionConfig, normalize_options
from .retry import run_with_retries

if TYPE_CHECKING:
    from contextlib import AbstractAsyncContextManager

    from playwright.async_api import Page

    SessionFactory = Callable[[ExecutionConfig], AbstractAsyncContextManager[Page]]

logger = logging.getLogger(__name__)


def _now_ms() -> int:
    return int(time.time() * 1000)


def _action_name(raw: Any) -> str | None:
    action = raw.get("action") if isinstance(raw, dict) else None
    return None if action is None else str(action)


async def _run_steps(
    ctx: ActionContext,
    steps: list[Any],
    records: list[StepRecord],
    errors: list[str],
) -> None:
    """Run steps in order, appending one record per attempted step.

    Returns at the first step whose attempts are exhausted; later steps are
    never started.
    """
    cfg = ctx.config
    for index, raw in enumerate(steps):
        action = _action_name(raw)
        started_at = _now_ms()
        outcome = await run_with_retries(
            lambda raw=raw: execute_raw_step(ctx, raw),
            retries=cfg.retries,
            backoff_ms=cfg.backoff_ms,
            sleep=ctx.sleep,
            label=f"Step {index} ({action})",
        )
        finished_at = _now_ms()
        record = StepRecord(
            index=index,
            action=action,
            ok=outcome.ok,
            attempts=outcome.attempts,
            started_at=started_at,
            finished_at=finished_at,
            duration_ms=finished_at - started_at,
        )
        if not outcome.ok:
            record.error = str(outcome.error)
            errors.append(f"Step {index} ({action}): {record.error}")
            records.append(record)
            logger.info(f"Halting at step {index} ({action}) after {outcome.attempts} attempt(s)")
            return
        if cfg.per_step_screenshot:
            record.screenshot_path = await ctx.artifacts.capture(ctx.page, step_index=index)
        records.append(record)


async def run_scenario(
    steps: list[Any],
    out_dir: Path | str,
    options: Any = None,
    *,
    session_factory: SessionFactory | None = None,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> ExecutionResult:
    """Execute one scenario in a fresh browser session.

    Step failures are recorded in the result rather than raised. Errors
    outside the step loop (e.g. the browser failing to launch) propagate.
    """
    cfg = normalize_options(options)
    factory = session_factory or open_session
    artifacts = ArtifactWriter(out_dir, full_page_default=cfg.screenshot_full_page)
    records: list[StepRecord] = []
    errors: list[str] = []
    started_at = _now_ms()
    logger.info(f"Run {artifacts.run_id}: {len(steps)} step(s), retries={cfg.retries}")

    async with factory(cfg) as page:
        ctx = ActionContext(page=page, config=cfg, artifacts=artifacts, sleep=sleep)
        try:
            await _run_steps(ctx, steps, records, errors)
        finally:
            # Final capture for debugging, whether the run passed or halted
            final_path = await artifacts.capture(page)
            if final_path:
                ctx.screenshot_path = final_path

    finished_at = _now_ms()
    result = ExecutionResult(
        steps=records,
        errors=errors,
        screenshot_path=ctx.screenshot_path,
        started_at=started_at,
        finished_at=finished_at,
        duration_ms=finished_at - started_at,
        meta=ExecutionMeta(
            viewport=ViewportMeta(**cfg.viewport.as_dict()),
            device_scale_factor=cfg.device_scale_factor,
            screenshot_full_page=cfg.screenshot_full_page,
            user_agent=ctx.applied_user_agent or cfg.user_agent or "",
        ),
    )
    logger.info(
        f"Run {artifacts.run_id} finished: success={result.success} "
        f"steps={len(records)} in {result.duration_ms}ms"
    )
    return result
