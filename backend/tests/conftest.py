from __future__ import annotations

from datetime import datetime
from typing import Optional

import pytest
from fastapi.testclient import TestClient

from studyplan.core.checkin_service import CheckInLedger
from studyplan.core.config import Settings
from studyplan.core.errors import PersistenceUnavailable
from studyplan.core.persistence import JsonSnapshotGateway
from studyplan.main import create_app

STORAGE_KEY = "test_checkins"


class MemoryStore:
    def __init__(self, initial: Optional[dict[str, str]] = None):
        self.data = dict(initial or {})
        self.writes = 0

    def get(self, key):
        return self.data.get(key)

    def set(self, key, value):
        self.writes += 1
        self.data[key] = value


class BrokenWriteStore(MemoryStore):
    def set(self, key, value):
        raise PersistenceUnavailable("disco lleno")


class FixedQuotes:
    def __init__(self, *quotes: str):
        self.quotes = list(quotes or ("q1", "q2", "q3"))
        self.calls = 0

    def next(self) -> str:
        q = self.quotes[self.calls % len(self.quotes)]
        self.calls += 1
        return q


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def quotes():
    return FixedQuotes()


@pytest.fixture
def ledger(store, quotes):
    return CheckInLedger.load(JsonSnapshotGateway(store, STORAGE_KEY), quotes)


@pytest.fixture
def test_settings():
    return Settings(
        CHECKIN_DELAY_SECONDS=0.0,
        STORAGE_KEY=STORAGE_KEY,
        DATABASE_URL="sqlite://",
    )


@pytest.fixture
def now_holder():
    # mutable: los tests pueden mover el reloj
    return {"now": datetime(2026, 4, 10, 21, 30)}


@pytest.fixture
def client(test_settings, store, quotes, now_holder):
    app = create_app(
        settings=test_settings,
        store=store,
        clock=lambda: now_holder["now"],
        quote_source=quotes,
    )
    with TestClient(app) as c:
        yield c
