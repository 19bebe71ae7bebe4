from __future__ import annotations

from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

from .api.routes import router as api_router
from .config.settings import Settings, settings
from .core.gate import AdmissionGate
from .runtime.storage import PUBLIC_PREFIX, ensure_dir
from .telemetry import init_telemetry, shutdown_telemetry


@asynccontextmanager
async def _lifespan(app: FastAPI):
    yield
    if app.state.tracing:
        shutdown_telemetry()


def create_app(config: Settings | None = None) -> FastAPI:
    cfg = config or settings
    output_dir = Path(cfg.output_dir)
    ensure_dir(output_dir)

    app = FastAPI(title="Scenario Worker API", version="0.1.0", lifespan=_lifespan)
    app.state.gate = AdmissionGate(cfg.worker_concurrency)
    app.state.output_dir = output_dir
    app.include_router(api_router)
    app.mount(PUBLIC_PREFIX, StaticFiles(directory=output_dir), name="output")

    @app.get("/healthz")
    def healthz():
        return {"status": "ok", "gate": app.state.gate.stats()}

    app.state.tracing = init_telemetry(app, cfg)
    return app
