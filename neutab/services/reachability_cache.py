"""Session-scoped reachability verdicts for internal launch URLs.

Verdicts are kept in memory only, keyed by origin. Nothing is persisted, so a
restart forgets which LAN hosts were probed.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from functools import partial
from typing import TYPE_CHECKING

from neutab.adapters.reachability.probe import probe_http_reachable
from neutab.core.time_utils import SYSTEM_CLOCK
from neutab.core.url_utils import is_http_url, origin_key

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from neutab.core.time_utils import Clock

    ProbeFn = Callable[[str, int], Awaitable[bool]]

logger = logging.getLogger(__name__)

DEFAULT_CACHE_TTL_MS = 60_000
# Shorter so a transient LAN outage is retried soon after it clears
DEFAULT_NEGATIVE_CACHE_TTL_MS = 10_000


@dataclass(frozen=True, slots=True)
class ReachabilityCacheEntry:
    ok: bool
    expires_at: float


class ReachabilityCache:
    """TTL cache of probe verdicts with in-flight probe deduplication.

    At most one probe per origin runs at a time; concurrent callers share its
    result. Expired entries are evicted lazily on read.
    """

    def __init__(
        self,
        *,
        probe: ProbeFn | None = None,
        clock: Clock = SYSTEM_CLOCK,
        cache_ttl_ms: int = DEFAULT_CACHE_TTL_MS,
        negative_cache_ttl_ms: int = DEFAULT_NEGATIVE_CACHE_TTL_MS,
    ) -> None:
        self._probe: ProbeFn = probe or probe_http_reachable
        self._clock = clock
        self.cache_ttl_ms = cache_ttl_ms
        self.negative_cache_ttl_ms = negative_cache_ttl_ms
        self._entries: dict[str, ReachabilityCacheEntry] = {}
        self._inflight: dict[str, asyncio.Task[bool]] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def in_flight(self, key: str) -> bool:
        return key in self._inflight

    def clear(self) -> None:
        """Forget every verdict. Probes already running still write their result."""
        self._entries.clear()

    def get_cached(self, key: str) -> ReachabilityCacheEntry | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.expires_at <= self._clock.now_ms():
            del self._entries[key]
            return None
        return entry

    def peek_resolved_internal_url(
        self,
        *,
        enabled: bool,
        internal_url: str | None = None,
        default_url: str | None = None,
    ) -> str:
        """Pick the launch URL from cached verdicts only; never does network I/O.

        Without a verdict the default URL wins until a probe says otherwise.
        """
        internal = (internal_url or "").strip()
        default = (default_url or "").strip()

        if not internal:
            return default
        if not default:
            return internal
        if not enabled:
            return default
        # Non-http internal URLs cannot be probed and were chosen explicitly
        if not is_http_url(internal):
            return internal

        cached = self.get_cached(origin_key(internal))
        if cached is None:
            return default
        return internal if cached.ok else default

    async def ensure_internal_url_probed(
        self,
        *,
        internal_url: str,
        timeout_ms: int,
        cache_ttl_ms: int | None = None,
        negative_cache_ttl_ms: int | None = None,
    ) -> bool:
        """Return a verdict for ``internal_url``, probing only when none is cached.

        Concurrent calls for the same origin await one shared probe. A caller
        being cancelled does not cancel the probe for the others.
        """
        url = (internal_url or "").strip()
        if not is_http_url(url):
            return False

        key = origin_key(url)
        cached = self.get_cached(key)
        if cached is not None:
            return cached.ok

        task = self._inflight.get(key)
        if task is None:
            positive_ttl = self.cache_ttl_ms if cache_ttl_ms is None else cache_ttl_ms
            negative_ttl = (
                self.negative_cache_ttl_ms if negative_cache_ttl_ms is None else negative_cache_ttl_ms
            )
            task = asyncio.create_task(
                self._probe_and_store(key, url, timeout_ms, positive_ttl, negative_ttl),
                name=f"reachability_probe:{key}",
            )
            self._inflight[key] = task
            task.add_done_callback(lambda t, k=key: self._forget_inflight(k, t))
        else:
            logger.debug("reachability_probe_joined", extra={"origin": key})

        return await asyncio.shield(task)

    async def _probe_and_store(
        self, key: str, url: str, timeout_ms: int, positive_ttl: int, negative_ttl: int
    ) -> bool:
        ok = await self._probe(url, timeout_ms)
        ttl = positive_ttl if ok else negative_ttl
        self._entries[key] = ReachabilityCacheEntry(ok=ok, expires_at=self._clock.now_ms() + ttl)
        logger.debug("reachability_verdict_cached", extra={"origin": key, "ok": ok, "ttl_ms": ttl})
        return ok

    def _forget_inflight(self, key: str, task: asyncio.Task[bool]) -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]
        if not task.cancelled() and task.exception() is not None:
            logger.warning(
                "reachability_probe_failed",
                extra={"origin": key, "error": str(task.exception())},
            )


_default_cache = ReachabilityCache()
# Verdicts from a probe that treats errors as unreachable must not mix with
# the optimistic ones
_pessimistic_cache = ReachabilityCache(
    probe=partial(probe_http_reachable, optimistic_on_error=False)
)


def get_default_cache(*, optimistic_on_error: bool = True) -> ReachabilityCache:
    """Process-wide cache shared by every resolver that does not bring its own.

    There is one cache per error policy.
    """
    return _default_cache if optimistic_on_error else _pessimistic_cache


def peek_resolved_internal_url(
    *, enabled: bool, internal_url: str | None = None, default_url: str | None = None
) -> str:
    return _default_cache.peek_resolved_internal_url(
        enabled=enabled, internal_url=internal_url, default_url=default_url
    )


async def ensure_internal_url_probed(
    *,
    internal_url: str,
    timeout_ms: int,
    cache_ttl_ms: int = DEFAULT_CACHE_TTL_MS,
    negative_cache_ttl_ms: int = DEFAULT_NEGATIVE_CACHE_TTL_MS,
) -> bool:
    return await _default_cache.ensure_internal_url_probed(
        internal_url=internal_url,
        timeout_ms=timeout_ms,
        cache_ttl_ms=cache_ttl_ms,
        negative_cache_ttl_ms=negative_cache_ttl_ms,
    )
