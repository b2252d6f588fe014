"""Shared fixtures: record factory, in-memory database and API client."""

from datetime import date, datetime, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from adshub.database import get_session
from adshub.main import app
from adshub.models.record_models import MetricRecord

BASE_DATE = date(2026, 2, 1)


@pytest.fixture
def make_record():
    """Build a MetricRecord ``offset`` days after 2026-02-01."""
    counter = {"n": 0}

    def _make(
        offset: int = 0,
        provider_id: str = "google",
        account_id=None,
        created_at: datetime | None = None,
        **metrics,
    ) -> MetricRecord:
        counter["n"] += 1
        values = {
            "spend": 0.0,
            "impressions": 0.0,
            "clicks": 0.0,
            "conversions": 0.0,
        }
        values.update(metrics)
        return MetricRecord(
            id=f"rec-{counter['n']}",
            provider_id=provider_id,
            account_id=account_id,
            date=BASE_DATE + timedelta(days=offset),
            created_at=created_at,
            **values,
        )

    return _make


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def client(engine):
    def _session_override():
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_session] = _session_override
    yield TestClient(app)
    app.dependency_overrides.clear()
