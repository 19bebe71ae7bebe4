from __future__ import annotations

import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from opentelemetry import trace

from ..core.executor.runner import run_scenario
from .dto import ExecutionResult, RunFailure, RunRequest

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

router = APIRouter()


@router.post(
    "/run",
    response_model=ExecutionResult,
    responses={500: {"model": RunFailure}},
)
async def run(req: RunRequest, request: Request):
    gate = request.app.state.gate
    out_dir = request.app.state.output_dir
    steps = req.step_list()
    with tracer.start_as_current_span("scenario.run") as span:
        span.set_attribute("scenario.steps", len(steps))
        try:
            async with gate.slot() as queued_ms:
                span.set_attribute("scenario.queued_ms", queued_ms)
                result = await run_scenario(steps, out_dir, req.options)
        except Exception as e:
            # Infrastructure failure (e.g. browser launch); no step records
            logger.exception("Scenario run failed outside the step loop")
            span.record_exception(e)
            failure = RunFailure(errors=[str(e)])
            return JSONResponse(status_code=500, content=failure.model_dump())
        span.set_attribute("scenario.success", result.success)

    result.queued_ms = queued_ms
    result.concurrency = gate.limit
    return result
