from __future__ import annotations

import logging

import uvicorn

from .app import create_app
from .config.settings import settings


def main() -> None:
    """Run the worker HTTP server."""
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logging.getLogger(__name__).info(
        f"Worker listening on http://{settings.host}:{settings.port} "
        f"(concurrency={settings.worker_concurrency})"
    )
    uvicorn.run(create_app(), host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
