from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, computed_field
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RunRequest(BaseModel):
    """Malformed steps become step errors and invalid options fall back to defaults."""

    steps: Any = Field(
        default_factory=list,
        description="Ordered scenario steps, each an object discriminated by 'action'",
    )
    options: Any = Field(
        None,
        description="Execution options: perStepScreenshot, retries, backoffMs, stepTimeoutMs, "
        "viewport {width,height}, screenshotFullPage, deviceScaleFactor, userAgent. "
        "Invalid values fall back to defaults.",
    )

    def step_list(self) -> list[Any]:
        """``steps`` when it is a list, otherwise an empty scenario."""
        return self.steps if isinstance(self.steps, list) else []


class StepRecord(_CamelModel):
    index: int
    action: str | None
    ok: bool
    attempts: int
    started_at: int
    finished_at: int
    duration_ms: int
    error: str | None = None
    screenshot_path: str | None = None


class ViewportMeta(_CamelModel):
    width: int
    height: int


class ExecutionMeta(_CamelModel):
    viewport: ViewportMeta
    device_scale_factor: int
    screenshot_full_page: bool
    user_agent: str = ""


class ExecutionResult(_CamelModel):
    steps: list[StepRecord] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)
    screenshot_path: str | None = None
    started_at: int
    finished_at: int
    duration_ms: int
    meta: ExecutionMeta
    queued_ms: int = 0
    concurrency: int | None = None

    @computed_field  # type: ignore[prop-decorator]
    @property
    def success(self) -> bool:
        return len(self.errors) == 0


class RunFailure(BaseModel):
    """Body of a 500 response: infrastructure failure, no step records."""

    success: bool = False
    errors: list[str]
