"""Optional OTLP tracing for the worker app.

Off unless ``Settings.otel_enabled`` is set and an endpoint is configured.
The ``/run`` route always opens a span; without a provider it is a no-op.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from fastapi import FastAPI

    from .config.settings import Settings

logger = logging.getLogger(__name__)


def init_telemetry(app: FastAPI, config: Settings) -> bool:
    """Install an OTLP span exporter and instrument ``app``.

    Returns whether tracing is active, so the caller knows to flush on shutdown.
    """
    if not config.otel_enabled:
        return False
    if not config.otel_endpoint:
        logger.warning("OTEL_ENABLED set without OTEL_EXPORTER_OTLP_ENDPOINT; tracing stays off")
        return False

    try:
        from opentelemetry import trace
        from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
        from opentelemetry.instrumentation.starlette import StarletteInstrumentor
        from opentelemetry.sdk.resources import SERVICE_NAME, Resource
        from opentelemetry.sdk.trace import TracerProvider
        from opentelemetry.sdk.trace.export import BatchSpanProcessor
    except ImportError as e:
        logger.error(f"Tracing requested but not installed ({e}); pip install 'scenario-worker[telemetry]'")
        return False

    provider = TracerProvider(resource=Resource.create({SERVICE_NAME: config.otel_service_name}))
    provider.add_span_processor(
        BatchSpanProcessor(OTLPSpanExporter(endpoint=config.otel_endpoint, insecure=True))
    )
    trace.set_tracer_provider(provider)
    StarletteInstrumentor.instrument_app(app)
    logger.info(f"Tracing {config.otel_service_name} to {config.otel_endpoint}")
    return True


def shutdown_telemetry() -> None:
    """Flush pending spans."""
    from opentelemetry import trace

    provider = trace.get_tracer_provider()
    shutdown = getattr(provider, "shutdown", None)
    if shutdown is not None:
        shutdown()
