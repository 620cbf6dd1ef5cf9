"""Shared pytest fixtures for the pickup dispatch tests."""

from __future__ import annotations

import datetime as dt
import itertools
from collections.abc import Callable, Iterator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from pickup_api.config import Settings, get_settings
from pickup_api.db import get_db
from pickup_api.main import app
from pickup_api.services.lifecycle import LifecycleController
from pickup_api.tables import metadata
from pickup_api.utils.clock import get_clock, get_id_factory
from pickup_api.utils.security import create_access_token


class FakeClock:
    """Deterministic UTC clock that only moves when told to."""

    def __init__(self, start: dt.datetime) -> None:
        self.current = start

    def __call__(self) -> dt.datetime:
        return self.current

    def advance(self, **delta: float) -> dt.datetime:
        self.current = self.current + dt.timedelta(**delta)
        return self.current


class SequentialIds:
    """Ids that sort in creation order, so 'lowest id' means 'created first'."""

    def __init__(self, prefix: str = "id") -> None:
        self.prefix = prefix
        self._counter = itertools.count(1)

    def __call__(self) -> str:
        return f"{self.prefix}-{next(self._counter):04d}"


@pytest.fixture()
def engine(tmp_path) -> Iterator[Engine]:
    """File-backed SQLite so separate threads get separate connections."""

    engine = create_engine(
        f"sqlite:///{tmp_path / 'pickups.sqlite'}",
        connect_args={"check_same_thread": False},
        future=True,
    )
    metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, future=True)


@pytest.fixture()
def db(session_factory: sessionmaker) -> Iterator[Session]:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock(dt.datetime(2025, 11, 3, 8, 0, tzinfo=dt.timezone.utc))


@pytest.fixture()
def ids() -> SequentialIds:
    return SequentialIds()


@pytest.fixture()
def settings() -> Settings:
    return Settings(database_url="sqlite://", jwt_secret="test-secret")


@pytest.fixture()
def lifecycle(db: Session, settings: Settings, clock: FakeClock, ids: SequentialIds) -> LifecycleController:
    return LifecycleController(db, settings, clock=clock, id_factory=ids)


@pytest.fixture()
def make_org(lifecycle: LifecycleController) -> Callable[..., dict]:
    names = itertools.count(1)

    def _make(name: str | None = None) -> dict:
        return lifecycle.directory.create_organization(name or f"Org {next(names)}")

    return _make


@pytest.fixture()
def make_collector(lifecycle: LifecycleController, make_org) -> Callable[..., dict]:
    """Create a collector, optionally with a reported position."""

    default_org: dict = {}

    def _make(lat: float | None = None, lng: float | None = None,
              organization_id: str | None = None, name: str = "Collector") -> dict:
        if organization_id is None:
            if not default_org:
                default_org.update(make_org())
            organization_id = default_org["organization_id"]
        collector = lifecycle.directory.create(organization_id, name, "0901-111-222")
        if lat is not None and lng is not None:
            collector = lifecycle.report_collector_location(collector["collector_id"], lat, lng)
        return collector

    return _make


@pytest.fixture()
def make_job(lifecycle: LifecycleController, clock: FakeClock) -> Callable[..., dict]:
    def _make(requester_id: str = "req-1", lat: float = 10.7769, lng: float = 106.7009, **extra) -> dict:
        payload = {
            "category": "Cardboard",
            "quantity_kg": 15.0,
            "scheduled_time": clock() + dt.timedelta(hours=2),
            "note": None,
        }
        payload.update(extra)
        return lifecycle.create_job(requester_id=requester_id, lat=lat, lng=lng, **payload)

    return _make


@pytest.fixture()
def client(
    session_factory: sessionmaker,
    settings: Settings,
    clock: FakeClock,
    ids: SequentialIds,
) -> Iterator[TestClient]:
    def _get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_id_factory] = lambda: ids
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture()
def auth(settings: Settings) -> Callable[[str, str], dict]:
    """Return Authorization headers for ``(role, caller_id)``."""

    def _headers(role: str, caller_id: str) -> dict:
        token, _ = create_access_token(settings.jwt_secret, {"sub": caller_id, "role": role})
        return {"Authorization": f"Bearer {token}"}

    return _headers
