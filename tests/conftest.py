from __future__ import annotations

import time
from typing import Any

import pytest

from dispatch_core.app.application import Application
from dispatch_core.domain.session import Session
from dispatch_core.repositories.in_memory_database import InMemoryDatabase

# 2024-06-15T12:00:00Z, away from any daylight saving transition
FROZEN_NOW_MS = 1_718_452_800_000


class FrozenClock:
    """Millisecond clock driving ``time.time`` in tests."""

    def __init__(self, now_ms: int) -> None:
        self.now = now_ms

    def advance(self, ms: int) -> None:
        self.now += ms

    def time(self) -> float:
        return self.now / 1000


@pytest.fixture
def clock(monkeypatch: pytest.MonkeyPatch) -> FrozenClock:
    frozen = FrozenClock(FROZEN_NOW_MS)
    monkeypatch.setattr(time, "time", frozen.time)
    return frozen


@pytest.fixture
def database() -> InMemoryDatabase:
    return InMemoryDatabase()


@pytest.fixture
def app(database: InMemoryDatabase) -> Application:
    return Application(database=database)


@pytest.fixture
def replies() -> list[str]:
    return []


@pytest.fixture
def session(app: Application, replies: list[str]) -> Session:
    return app.create_session("discord", "42", "100", sender=replies.append)


@pytest.fixture
def new_session(app: Application, replies: list[str]) -> Any:
    """Factory for fresh sessions of the same user, as separate messages."""

    def _factory(user_id: str = "42", channel_id: str | None = "100") -> Session:
        return app.create_session("discord", user_id, channel_id, sender=replies.append)

    return _factory
