import os
import tempfile

# Settings are read once at import time; point them somewhere disposable first
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="shield-logs-"))
os.environ.setdefault("REMOTE_STORE_URL", "")
os.environ.setdefault("REVENUECAT_API_KEY", "")

from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from shield.database import Base, get_db
from shield.main import app
from shield.models import User
from shield.routers.auth import get_checkin_store
from shield.schemas import CheckInInput
from shield.services.checkin_store import CheckInStore
from shield.services.storage import InMemoryDocumentStore, SqlCheckInCache
from shield.taxonomy import Severity, Symptom

NOW = datetime(2025, 3, 14, 9, 30, tzinfo=timezone.utc)
TODAY = "2025-03-14"


class FixedClock:
    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def user(session_factory) -> User:
    with session_factory() as db:
        user = User(email="sam@hangovershield.co", name="Sam", timezone="UTC")
        db.add(user)
        db.commit()
        db.refresh(user)
        db.expunge(user)
    return user


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def local_cache(session_factory) -> SqlCheckInCache:
    return SqlCheckInCache(session_factory)


@pytest.fixture
def remote() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def store(local_cache, remote, clock) -> CheckInStore:
    return CheckInStore(local_cache, remote=remote, clock=clock)


@pytest.fixture
def moderate_input() -> CheckInInput:
    return CheckInInput(
        level=Severity.MODERATE,
        symptoms=[Symptom.HEADACHE, Symptom.NAUSEA, Symptom.POOR_SLEEP],
        drank_last_night=True,
        drinking_today=False,
    )


@pytest.fixture
def client(session_factory):
    api_store = CheckInStore(SqlCheckInCache(session_factory), remote=InMemoryDocumentStore())

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_checkin_store] = lambda: api_store
    with TestClient(app) as test_client:
        test_client.checkin_store = api_store
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(client) -> dict:
    response = client.post(
        "/api/v1/auth/register",
        json={"email": "alex@hangovershield.co", "password": "s3cret-pass", "name": "Alex"},
    )
    assert response.status_code == 200
    return {"Authorization": f"Bearer {response.json()['access_token']}"}
