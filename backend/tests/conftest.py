# backend/tests/conftest.py

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from studytogether.core.security import create_access_token
from studytogether.db import mongo
from studytogether.main import app
from studytogether.models.session import StudySessionInDB
from studytogether.models.user import UserInDB

UTC = timezone.utc

# 2026-10-16 은 금요일. 이번 주 시작(일요일) = 10-11, 이번 달 시작 = 10-01
NOW = datetime(2026, 10, 16, 15, 0, tzinfo=UTC)


def make_session(start: datetime, minutes: int = 30, **kwargs) -> StudySessionInDB:
    return StudySessionInDB(
        start_time=start,
        end_time=start + timedelta(minutes=minutes),
        duration=minutes * 60 * 1000,
        **kwargs,
    )


def make_user(**overrides) -> UserInDB:
    data = {
        "id": "u1",
        "username": "alice",
        "email": "alice@studytogether.io",
        "friend_invite_code": "ABCD1234",
    }
    data.update(overrides)
    return UserInDB(**data)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def user():
    return make_user()


@pytest.fixture
def client(monkeypatch):
    """Mongo 연결 없이 lifespan 만 돌리는 TestClient"""

    async def _noop():
        return None

    monkeypatch.setattr(mongo, "connect_to_mongo", _noop)
    monkeypatch.setattr(mongo, "close_mongo_connection", _noop)

    with TestClient(app) as c:
        yield c


def auth_headers(user_id: str = "u1") -> dict:
    return {"Authorization": f"Bearer {create_access_token(user_id)}"}
