from __future__ import annotations

import os
from dataclasses import dataclass


def _env_bool(name: str, default: bool) -> bool:
    val = os.getenv(name)
    if val is None:
        return default
    return val.lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    val = os.getenv(name)
    if val is None or not val.strip():
        return default
    try:
        return int(val)
    except ValueError:
        return default


@dataclass
class Settings:
    host: str = os.getenv("HOST", "0.0.0.0")  # nosec B104 - container binding
    port: int = _env_int("PORT", 4000)
    worker_concurrency: int = _env_int("WORKER_CONCURRENCY", 2)
    output_dir: str = os.getenv("OUTPUT_DIR", "output")
    headless: bool = _env_bool("HEADLESS", True)
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    otel_enabled: bool = _env_bool("OTEL_ENABLED", False)
    otel_service_name: str = os.getenv("OTEL_SERVICE_NAME", "scenario-worker")
    otel_endpoint: str = os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT", "")


settings = Settings()
