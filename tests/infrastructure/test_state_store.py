"""Tests for the key-value state stores and the preferences reader."""

from __future__ import annotations

import pytest

from neutab.domain.events.sync_events import SyncPreferencesChanged
from neutab.domain.models.sync import SyncPreferences
from neutab.infrastructure.persistence.kv_store import InMemoryKeyValueStore, SqliteKeyValueStore
from neutab.infrastructure.persistence.preferences import KeyValuePreferencesReader


@pytest.fixture
def sqlite_store(tmp_path):
    store = SqliteKeyValueStore(str(tmp_path / "state" / "neutab.db"))
    yield store
    store.close()


class TestInMemoryKeyValueStore:
    def test_get_set_delete(self):
        store = InMemoryKeyValueStore({"a": "1"})

        assert store.get("a") == "1"
        store.set("a", "2")
        store.set("b", "3")
        store.delete("a")
        store.delete("missing")

        assert store.snapshot() == {"b": "3"}


class TestSqliteKeyValueStore:
    def test_missing_key_is_none(self, sqlite_store):
        assert sqlite_store.get("cloudSync_lastAutoPullAt") is None

    def test_set_overwrites(self, sqlite_store):
        sqlite_store.set("lastSyncStatus", "failed")
        sqlite_store.set("lastSyncStatus", "success")

        assert sqlite_store.get("lastSyncStatus") == "success"

    def test_delete(self, sqlite_store):
        sqlite_store.set("icon_1", "data:image/png;base64,AA==")
        sqlite_store.delete("icon_1")

        assert sqlite_store.get("icon_1") is None

    def test_values_survive_reopen(self, tmp_path):
        path = str(tmp_path / "neutab.db")
        first = SqliteKeyValueStore(path)
        first.set("cloudSync_lastAutoPullAt", "1700000000000")
        first.close()

        second = SqliteKeyValueStore(path)
        try:
            assert second.get("cloudSync_lastAutoPullAt") == "1700000000000"
        finally:
            second.close()

    def test_stores_at_different_paths_stay_separate(self, tmp_path):
        a = SqliteKeyValueStore(str(tmp_path / "a.db"))
        a.set("k", "from-a")
        b = SqliteKeyValueStore(str(tmp_path / "b.db"))
        try:
            assert a.get("k") == "from-a"
            assert b.get("k") is None

            b.set("k", "from-b")
            assert a.get("k") == "from-a"
            assert b.get("k") == "from-b"
        finally:
            a.close()
            b.close()


class TestKeyValuePreferencesReader:
    def test_defaults_are_disabled(self, store):
        prefs = KeyValuePreferencesReader(store).read()

        assert prefs == SyncPreferences()
        assert prefs.is_complete is False

    def test_reads_flags_and_trims_strings(self, store):
        store.set("syncEnabled", "true")
        store.set("autoSyncEnabled", "true")
        store.set("syncServerUrl", "  https://sync.example.com  ")
        store.set("syncAuthCode", " abc ")

        prefs = KeyValuePreferencesReader(store).read()

        assert prefs.server_url == "https://sync.example.com"
        assert prefs.auth_code == "abc"
        assert prefs.is_complete is True

    def test_non_true_flag_is_false(self, store):
        store.set("syncEnabled", "yes")
        assert KeyValuePreferencesReader(store).read().sync_enabled is False

    @pytest.mark.parametrize(
        ("cached", "default", "expected"),
        [(None, "zh", "zh"), ("en", "zh", "en"), ("fr", "en", "en"), ("zh", "en", "zh")],
    )
    def test_language(self, store, cached, default, expected):
        if cached is not None:
            store.set("lang_cache", cached)
        assert KeyValuePreferencesReader(store, default_language=default).language() == expected

    @pytest.mark.asyncio
    async def test_write_round_trips_and_announces(self, store, bus, complete_prefs):
        received: list[SyncPreferencesChanged] = []

        async def handler(event: SyncPreferencesChanged) -> None:
            received.append(event)

        bus.subscribe(SyncPreferencesChanged, handler)
        reader = KeyValuePreferencesReader(store)

        await reader.write(complete_prefs, bus=bus)

        assert store.get("syncEnabled") == "true"
        assert reader.read() == complete_prefs
        assert [event.preferences for event in received] == [complete_prefs]
