"""Pytest configuration and shared fixtures."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from neutab.domain.models.sync import SyncPreferences
from neutab.infrastructure.messaging.event_bus import EventBus
from neutab.infrastructure.persistence.kv_store import InMemoryKeyValueStore

SERVER_URL = "https://sync.example.com"
AUTH_CODE = "secret-code"

COMPLETE_PREFS = SyncPreferences(
    sync_enabled=True, auto_sync_enabled=True, server_url=SERVER_URL, auth_code=AUTH_CODE
)


class FakeClock:
    """Manually advanced epoch-millisecond clock."""

    def __init__(self, start_ms: int = 1_700_000_000_000) -> None:
        self.now = start_ms

    def now_ms(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


class StubPreferences:
    """Mutable ``PreferencesReader`` for scheduler tests."""

    def __init__(self, prefs: SyncPreferences = COMPLETE_PREFS, language: str = "en") -> None:
        self.prefs = prefs
        self.lang = language
        self.language_error: Exception | None = None

    def read(self) -> SyncPreferences:
        return self.prefs

    def language(self) -> str:
        if self.language_error is not None:
            raise self.language_error
        return self.lang


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture
def bus() -> EventBus:
    return EventBus()


@pytest.fixture
def preferences() -> StubPreferences:
    return StubPreferences()


@pytest.fixture
def incomplete_prefs() -> SyncPreferences:
    return SyncPreferences(sync_enabled=True, auto_sync_enabled=True, server_url="", auth_code="")


@pytest.fixture
def complete_prefs() -> SyncPreferences:
    return COMPLETE_PREFS


@pytest.fixture
def gateway() -> AsyncMock:
    """``CloudSyncGateway`` double; both directions succeed immediately."""
    mock = AsyncMock()
    mock.pull = AsyncMock(return_value=None)
    mock.push = AsyncMock(return_value=None)
    return mock
