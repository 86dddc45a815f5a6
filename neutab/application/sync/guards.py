from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from neutab.core.time_utils import Clock

logger = logging.getLogger(__name__)


class InFlightGuard:
    """Single-flight flag shared by push and pull of one agent.

    One guard for both directions: a push and a pull never run at the same time.
    Callers that fail to acquire drop their work instead of waiting.
    """

    def __init__(self) -> None:
        self._holder: str | None = None

    @property
    def held(self) -> bool:
        return self._holder is not None

    @property
    def holder(self) -> str | None:
        return self._holder

    def try_acquire(self, holder: str) -> bool:
        if self._holder is not None:
            logger.debug(
                "in_flight_guard_busy", extra={"requested_by": holder, "held_by": self._holder}
            )
            return False
        self._holder = holder
        return True

    def release(self) -> None:
        self._holder = None


class SuppressionWindow:
    """Expiry timestamp during which automatic pushes are dropped."""

    def __init__(self, clock: Clock) -> None:
        self._clock = clock
        self.expires_at_ms = 0

    def is_active(self) -> bool:
        return self._clock.now_ms() < self.expires_at_ms

    def engage(self, duration_ms: int) -> None:
        self.expires_at_ms = self._clock.now_ms() + duration_ms
