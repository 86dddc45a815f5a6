"""Key-value state shared between sync agents.

Holds the persisted pull-cooldown timestamp, the latest sync status and the
cloud sync preferences. The SQLite store is safe to share between processes,
which is what makes the pull cooldown hold across several running agents.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Protocol

import peewee

from neutab.core.time_utils import utc_now
from neutab.domain.exceptions.domain_exceptions import StateStoreError

logger = logging.getLogger(__name__)

class KeyValueStore(Protocol):
    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> None: ...


class InMemoryKeyValueStore:
    """Process-local store; the default for tests and single-instance runs."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def snapshot(self) -> dict[str, str]:
        return dict(self._data)


class StateEntry(peewee.Model):
    """Unbound model; each store binds it to its own database per operation."""

    key = peewee.TextField(primary_key=True)
    value = peewee.TextField()
    updated_at = peewee.DateTimeField(default=utc_now)

    class Meta:
        table_name = "state_entries"


class SqliteKeyValueStore:
    """Peewee-backed store persisted to a SQLite file."""

    def __init__(self, path: str) -> None:
        self.path = path
        if path != ":memory:":
            Path(path).parent.mkdir(parents=True, exist_ok=True)
        self._database = peewee.SqliteDatabase(
            path,
            pragmas={
                "journal_mode": "wal",
                "synchronous": "normal",
                "busy_timeout": 5000,
            },
            check_same_thread=False,
        )
        self._database.connect(reuse_if_open=True)
        with self._bound():
            self._database.create_tables([StateEntry], safe=True)
        logger.debug("state_store_opened", extra={"path": path})

    def _bound(self):
        return self._database.bind_ctx([StateEntry], bind_refs=False, bind_backrefs=False)

    def get(self, key: str) -> str | None:
        try:
            with self._bound():
                entry = StateEntry.get_or_none(StateEntry.key == key)
        except peewee.PeeweeException as exc:
            raise StateStoreError(f"Failed to read state key {key}", {"key": key}) from exc
        return entry.value if entry is not None else None

    def set(self, key: str, value: str) -> None:
        now = utc_now()
        try:
            with self._bound():
                StateEntry.insert(key=key, value=value, updated_at=now).on_conflict(
                    conflict_target=[StateEntry.key],
                    update={StateEntry.value: value, StateEntry.updated_at: now},
                ).execute()
        except peewee.PeeweeException as exc:
            raise StateStoreError(f"Failed to write state key {key}", {"key": key}) from exc

    def delete(self, key: str) -> None:
        try:
            with self._bound():
                StateEntry.delete().where(StateEntry.key == key).execute()
        except peewee.PeeweeException as exc:
            raise StateStoreError(f"Failed to delete state key {key}", {"key": key}) from exc

    def close(self) -> None:
        if not self._database.is_closed():
            self._database.close()
