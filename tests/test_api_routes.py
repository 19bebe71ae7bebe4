"""Tests for API routes."""

from __future__ import annotations

import asyncio
from unittest.mock import patch

import httpx
import pytest
from fastapi.testclient import TestClient

from scenario_worker.api.dto import ExecutionMeta, ExecutionResult, StepRecord, ViewportMeta
from scenario_worker.app import create_app
from scenario_worker.config.settings import Settings


def _result(errors: list[str] | None = None, steps: list[StepRecord] | None = None) -> ExecutionResult:
    return ExecutionResult(
        steps=steps or [],
        errors=errors or [],
        screenshot_path="/output/screenshot-1-abc-1.png",
        started_at=1000,
        finished_at=1500,
        duration_ms=500,
        meta=ExecutionMeta(
            viewport=ViewportMeta(width=1920, height=1080),
            device_scale_factor=2,
            screenshot_full_page=False,
        ),
    )


class TestAPIRoutes:
    """Test suite for API routes."""

    @pytest.fixture
    def settings(self, tmp_path):
        return Settings(output_dir=str(tmp_path / "output"), worker_concurrency=2)

    @pytest.fixture
    def client(self, settings):
        """Create test client."""
        return TestClient(create_app(settings))

    def test_run_endpoint_success(self, client):
        """Successful run returns the result plus queue info, camelCased."""
        record = StepRecord(
            index=0, action="goto", ok=True, attempts=1, started_at=1000, finished_at=1200, duration_ms=200
        )
        with patch("scenario_worker.api.routes.run_scenario") as mock_run:
            mock_run.return_value = _result(steps=[record])

            response = client.post(
                "/run",
                json={
                    "steps": [{"action": "goto", "url": "https://example.org"}],
                    "options": {"retries": 1},
                },
            )

            assert response.status_code == 200
            data = response.json()
            assert data["success"] is True
            assert data["errors"] == []
            assert data["queuedMs"] == 0
            assert data["concurrency"] == 2
            assert data["screenshotPath"].startswith("/output/")
            assert data["steps"][0] == {
                "index": 0,
                "action": "goto",
                "ok": True,
                "attempts": 1,
                "startedAt": 1000,
                "finishedAt": 1200,
                "durationMs": 200,
                "error": None,
                "screenshotPath": None,
            }
            assert data["meta"] == {
                "viewport": {"width": 1920, "height": 1080},
                "deviceScaleFactor": 2,
                "screenshotFullPage": False,
                "userAgent": "",
            }
            args = mock_run.call_args.args
            assert args[0] == [{"action": "goto", "url": "https://example.org"}]
            assert args[2] == {"retries": 1}

    def test_failed_scenario_is_still_200(self, client):
        """An assertion failure is a completed run, not a transport error."""
        with patch("scenario_worker.api.routes.run_scenario") as mock_run:
            mock_run.return_value = _result(errors=["Step 0 (click): Timeout"])

            response = client.post("/run", json={"steps": [{"action": "click", "selector": "#x"}]})

            assert response.status_code == 200
            assert response.json()["success"] is False

    def test_run_defaults_to_empty_steps(self, client):
        with patch("scenario_worker.api.routes.run_scenario") as mock_run:
            mock_run.return_value = _result()
            response = client.post("/run", json={})
            assert response.status_code == 200
            assert mock_run.call_args.args[0] == []
            assert mock_run.call_args.args[2] is None

    def test_run_endpoint_infrastructure_error(self, client):
        """Launch failures map to 500 with a single aggregate error and no steps."""
        with patch("scenario_worker.api.routes.run_scenario") as mock_run:
            mock_run.side_effect = RuntimeError("Browser failed to launch")

            response = client.post("/run", json={"steps": []})

            assert response.status_code == 500
            assert response.json() == {"success": False, "errors": ["Browser failed to launch"]}

    def test_gate_released_after_error(self, client):
        with patch("scenario_worker.api.routes.run_scenario") as mock_run:
            mock_run.side_effect = RuntimeError("boom")
            for _ in range(3):
                client.post("/run", json={"steps": []})

        assert client.app.state.gate.stats() == {"limit": 2, "active": 0, "waiting": 0}

    @pytest.mark.parametrize(
        "body",
        [
            {"steps": [], "options": 5},
            {"steps": [], "options": "fast"},
            {"steps": None},
            {"steps": "not-a-list"},
        ],
    )
    def test_malformed_envelope_runs_with_defaults(self, client, body):
        """Non-list steps mean an empty scenario; options are passed on for normalization."""
        with patch("scenario_worker.api.routes.run_scenario") as mock_run:
            mock_run.return_value = _result()
            response = client.post("/run", json=body)

            assert response.status_code == 200
            assert mock_run.call_args.args[0] == []
            assert mock_run.call_args.args[2] == body.get("options")

    def test_non_object_step_is_recorded_as_step_error(self, client, make_page, make_session):
        session = make_session(make_page())
        with patch("scenario_worker.core.executor.runner.open_session", session):
            response = client.post("/run", json={"steps": ["goto"], "options": 5})

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is False
        assert data["errors"] == ["Step 0 (None): Unknown action: None"]
        assert data["steps"][0]["action"] is None
        assert data["steps"][0]["attempts"] == 1
        assert data["meta"]["viewport"] == {"width": 1920, "height": 1080}
        assert session.closed == 1

    def test_body_must_be_an_object(self, client):
        response = client.post("/run", json=["goto"])
        assert response.status_code == 422

    def test_output_serves_artifacts(self, client, settings):
        from pathlib import Path

        (Path(settings.output_dir) / "screenshot-1-abc-1.png").write_bytes(b"\x89PNG\r\n\x1a\n")

        response = client.get("/output/screenshot-1-abc-1.png")
        assert response.status_code == 200
        assert response.headers["content-type"] == "image/png"
        assert response.content.startswith(b"\x89PNG")

        assert client.get("/output/missing.png").status_code == 404

    def test_healthz_endpoint(self, client):
        response = client.get("/healthz")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["gate"] == {"limit": 2, "active": 0, "waiting": 0}


@pytest.mark.asyncio
async def test_concurrent_runs_queue_behind_the_gate(tmp_path):
    """With concurrency 1 the second run starts only after the first releases."""
    app = create_app(Settings(output_dir=str(tmp_path), worker_concurrency=1))
    timeline: list[str] = []

    async def slow_run(steps, out_dir, options):
        name = steps[0]["url"]
        timeline.append(f"start {name}")
        await asyncio.sleep(0.05)
        timeline.append(f"end {name}")
        return _result()

    transport = httpx.ASGITransport(app=app)
    with patch("scenario_worker.api.routes.run_scenario", side_effect=slow_run):
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
            first = asyncio.create_task(
                client.post("/run", json={"steps": [{"action": "goto", "url": "a"}]})
            )
            await asyncio.sleep(0.01)
            second = asyncio.create_task(
                client.post("/run", json={"steps": [{"action": "goto", "url": "b"}]})
            )
            r1, r2 = await asyncio.gather(first, second)

    assert r1.json()["queuedMs"] == 0
    assert r2.json()["queuedMs"] > 0
    assert r2.json()["concurrency"] == 1
    assert timeline == ["start a", "end a", "start b", "end b"]
