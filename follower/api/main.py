"""HTTP service exposing the follower status and configuration.

Run with ``python -m follower.api.main`` (host and port from
``FOLLOW_API_HOST`` / ``FOLLOW_API_PORT``).
"""

from __future__ import annotations

import logging
import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from follower.api.routes import config, health, status
from follower.api.services.state import stop_engine

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:
    # The engine is started lazily by the first /status request.
    yield
    logger.info("Shutting down, stopping follow engine")
    stop_engine()


def create_app() -> FastAPI:
    api = FastAPI(title="Person Follower API", lifespan=lifespan)
    for module in (health, status, config):
        api.include_router(module.router)
    return api


app = create_app()


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    host = os.getenv("FOLLOW_API_HOST", "127.0.0.1")
    port = int(os.getenv("FOLLOW_API_PORT", "8000"))
    uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    main()
