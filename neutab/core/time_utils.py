from __future__ import annotations

import time
from datetime import UTC, datetime
from typing import Protocol


def utc_now() -> datetime:
    """Return a timezone-aware UTC datetime."""
    return datetime.now(UTC)


def utc_now_iso() -> str:
    """ISO-8601 timestamp with millisecond precision and a ``Z`` suffix."""
    return utc_now().isoformat(timespec="milliseconds").replace("+00:00", "Z")


class Clock(Protocol):
    """Wall-clock source in epoch milliseconds."""

    def now_ms(self) -> int: ...


class SystemClock:
    """Epoch-millisecond clock backed by ``time.time``.

    Wall time rather than a monotonic source: cooldown timestamps are persisted
    and compared across processes.
    """

    def now_ms(self) -> int:
        return int(time.time() * 1000)


SYSTEM_CLOCK = SystemClock()
