"""Shared test fixtures."""

from collections.abc import Generator
from typing import Any

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

import cabinwatch.database as db_module
import cabinwatch.main as main_module
from cabinwatch.database import get_session
from cabinwatch.main import app
from cabinwatch.tracking.base import SnapshotSource

RAW_DEVICES: list[dict[str, Any]] = [
    {"id": "d1", "name": "G1 Tom", "category": "guest", "isOnline": True, "room": "407"},
    {
        "id": "d2",
        "name": "P1 Mr",
        "category": "family",
        "isOnline": False,
        "familyPriority": 1,
    },
    {"id": "d3", "name": "Zed", "category": "family", "isOnline": True, "familyPriority": 1},
    {"id": "d4", "name": "Amy", "category": "family", "isOnline": True, "familyPriority": 2},
    {"id": "d5", "name": "Captain Reyes", "category": "crew", "isOnline": True, "room": "Bridge"},
    {"id": "d6", "name": "G2 Emma", "category": "guest", "isOnline": True, "room": "408"},
    {"id": "d7", "name": "G1 Anna", "category": "wristband", "isOnline": True},
]


class StaticSource(SnapshotSource):
    """Returns the same raw payload on every fetch."""

    name = "static"

    def __init__(self, devices: list[dict[str, Any]]) -> None:
        self.devices = devices
        self.calls = 0

    async def fetch(self) -> dict[str, Any]:
        self.calls += 1
        return {"devices": self.devices, "lastUpdate": "2026-10-19T12:00:00Z"}


@pytest.fixture
def engine():
    """In-memory SQLite engine with all tables created.

    StaticPool ensures every session uses the same connection,
    so the in-memory database is shared across the test.
    """
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(eng)
    return eng


@pytest.fixture
def session(engine) -> Generator[Session, None, None]:
    with Session(engine) as s:
        yield s


@pytest.fixture
def tracking_source() -> StaticSource:
    return StaticSource(RAW_DEVICES)


@pytest.fixture
def client(engine, tracking_source, monkeypatch) -> Generator[TestClient, None, None]:
    """FastAPI TestClient with overridden DB engine, session and tracking source."""
    # Patch the module-level engine so lifespan's init_db() uses the test engine.
    original_engine = db_module.engine
    db_module.engine = engine
    monkeypatch.setattr(main_module, "_create_source", lambda cfg: tracking_source)

    def _override_session() -> Generator[Session, None, None]:
        with Session(engine) as s:
            yield s

    app.dependency_overrides[get_session] = _override_session
    with TestClient(app) as c:
        c.post("/api/tracking/refresh")
        yield c
    app.dependency_overrides.clear()
    db_module.engine = original_engine
