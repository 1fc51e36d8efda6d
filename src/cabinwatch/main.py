"""Cabinwatch application entrypoint."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI

from cabinwatch import database
from cabinwatch.config import Settings, load_config, settings
from cabinwatch.tracking.base import SnapshotSource
from cabinwatch.tracking.poller import PollState, SnapshotPoller

logging.basicConfig(level=settings.log_level.upper())
logger = logging.getLogger(__name__)


class _NullSource(SnapshotSource):
    """Used when tracking is disabled: every snapshot is empty."""

    name = "none"

    async def fetch(self) -> dict[str, Any]:
        return {"devices": []}


def _create_source(cfg: Settings) -> SnapshotSource:
    """Factory: instantiate the configured telemetry source."""
    mode = cfg.tracking_mode
    if mode == "http":
        from cabinwatch.tracking.http import HttpTrackingSource

        return HttpTrackingSource(cfg.tracking_api_url, timeout=cfg.fetch_timeout)
    if mode == "mock":
        from cabinwatch.tracking.mock import MockTrackingSource

        return MockTrackingSource()
    logger.info("Tracking disabled (mode=%s)", mode)
    return _NullSource()


def _log_state_change(state: PollState) -> None:
    if state.is_stale:
        logger.debug("Serving stale snapshot: %s", state.error)


async def _start_poller(app: FastAPI) -> None:
    cfg = load_config()
    poller = SnapshotPoller(
        _create_source(cfg),
        interval=cfg.poll_interval,
        timeout=cfg.fetch_timeout,
    )
    poller.on_update(_log_state_change)
    await poller.start()
    app.state.poller = poller


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application startup/shutdown lifecycle."""
    # Import models to register them with SQLModel before init_db()
    import cabinwatch.assignment.models  # noqa: F401

    database.init_db()
    logger.info("Database initialized")

    await _start_poller(app)

    yield

    await app.state.poller.close()
    logger.info("Snapshot poller stopped")


app = FastAPI(
    title="Cabinwatch",
    description="Yacht wristband tracking and cabin assignment",
    version="0.1.0",
    lifespan=lifespan,
)


# Register routers
from cabinwatch.api.routes import router as api_router  # noqa: E402

app.include_router(api_router)


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


def main() -> None:
    import uvicorn

    logger.info("Starting Cabinwatch on %s:%d", settings.host, settings.port)
    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
