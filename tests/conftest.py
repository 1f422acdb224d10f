from __future__ import annotations

import os
import tempfile
from datetime import UTC, date, datetime, time, timedelta
from pathlib import Path
from uuid import uuid4

import pytest


_TEST_ROOT = Path(tempfile.mkdtemp(prefix="mutabaah_test_"))
_DB_PATH = _TEST_ROOT / "mutabaah_test.db"

os.environ["MUTABAAH_DB_URL"] = f"sqlite:///{_DB_PATH}"
os.environ["MUTABAAH_AUTH_JWT_SECRET"] = "test-secret"
os.environ["MUTABAAH_ADMIN_TOKEN"] = "test-admin"
os.environ["MUTABAAH_TIMEZONE"] = "Asia/Jakarta"
os.environ["MUTABAAH_CHALLENGE_START"] = "2026-02-18"
os.environ["MUTABAAH_CHALLENGE_END"] = "2026-03-18"

# Mid-challenge day used as "today" unless a test moves the clock.
CHALLENGE_DAY = date(2026, 2, 25)


class FixedClock:
    def __init__(self, day: date) -> None:
        self.now = datetime(2026, 1, 1, tzinfo=UTC)
        self.set_day(day)

    def set_day(self, day: date) -> None:
        # 05:00 UTC is midday in Asia/Jakarta, so the local day equals `day`.
        self.now = datetime.combine(day, time(5, 0), tzinfo=UTC)

    def advance(self, days: int = 1) -> None:
        self.now = self.now + timedelta(days=days)

    @property
    def today(self) -> date:
        return (self.now + timedelta(hours=7)).date()


@pytest.fixture(scope="session")
def db_schema() -> None:
    from mutabaah_api.db import Base, engine
    from mutabaah_api import models  # noqa: F401

    Base.metadata.create_all(engine)


@pytest.fixture()
def db_session(db_schema):
    from mutabaah_api.db import SessionLocal

    with SessionLocal() as session:
        yield session
        session.rollback()


@pytest.fixture()
def make_user(db_session):
    from mutabaah_api.models import User

    def _make(*, community_code: str | None = None, pseudonym: str | None = None, name: str = "Peserta") -> str:
        user_id = f"user_{uuid4().hex[:12]}"
        db_session.add(
            User(
                id=user_id,
                username=user_id,
                name=name,
                pseudonym=pseudonym,
                community_code=community_code,
                created_at=datetime.now(UTC),
            )
        )
        db_session.flush()
        return user_id

    return _make


@pytest.fixture()
def clock() -> FixedClock:
    return FixedClock(CHALLENGE_DAY)


@pytest.fixture()
def api_client(db_schema, clock):
    from fastapi.testclient import TestClient

    from mutabaah_api.deps import get_now
    from mutabaah_api.main import app

    app.dependency_overrides[get_now] = lambda: clock.now
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture()
def register(api_client):
    def _register(
        *,
        name: str = "Peserta",
        community_code: str | None = None,
        pseudonym: str | None = None,
    ) -> tuple[dict[str, str], str]:
        username = f"u{uuid4().hex[:12]}"
        body: dict[str, object] = {"username": username, "name": name}
        if community_code is not None:
            body["community_code"] = community_code
        if pseudonym is not None:
            body["pseudonym"] = pseudonym
        resp = api_client.post("/api/auth/register", json=body)
        assert resp.status_code == 200, resp.text
        headers = {"Authorization": f"Bearer {resp.json()['access_token']}"}
        me = api_client.get("/api/auth/me", headers=headers)
        assert me.status_code == 200
        return headers, me.json()["user_id"]

    return _register
