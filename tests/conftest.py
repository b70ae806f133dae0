"""Shared fixtures: in-memory SQLite store and no-op backoff sleeps."""

from typing import Generator, List

import pytest
from sqlmodel import Session, SQLModel, create_engine

from leadhub.connectors.meta import client as meta_client
from leadhub.core import retry
from leadhub.database import engine_options
from leadhub.models import ad_models, lead_models, sync_models  # noqa: F401
from leadhub.store import Store


@pytest.fixture
def engine():
    """Fresh in-memory database per test; StaticPool keeps one connection."""
    engine = create_engine("sqlite://", **engine_options("sqlite://"))
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session(engine) -> Generator[Session, None, None]:
    with Session(engine) as session:
        yield session


@pytest.fixture
def store(session) -> Store:
    return Store(session, max_rows=1000, max_batch=500)


@pytest.fixture(autouse=True)
def sleeps(monkeypatch) -> List[float]:
    """Record backoff delays instead of waiting them out."""
    recorded: List[float] = []

    async def fake_sleep(seconds: float) -> None:
        recorded.append(seconds)

    monkeypatch.setattr(meta_client, "_sleep", fake_sleep)
    monkeypatch.setattr(retry, "_sleep", fake_sleep)
    return recorded
