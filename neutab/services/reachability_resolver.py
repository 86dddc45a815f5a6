"""Choose between a tile's internal (LAN) URL and its public URL."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from neutab.core.async_utils import spawn_background
from neutab.core.url_utils import is_http_url, origin_key
from neutab.services.reachability_cache import ReachabilityCache, get_default_cache

if TYPE_CHECKING:
    from neutab.config import ReachabilityConfig

logger = logging.getLogger(__name__)


class ReachabilityResolver:
    """Synchronous URL choice backed by cached verdicts, probing in the background.

    ``resolve()`` never waits on the network. On a cache miss it answers with
    the default URL and starts a probe, so the next call can pick the
    internal URL.
    """

    def __init__(self, config: ReachabilityConfig, cache: ReachabilityCache | None = None) -> None:
        self._config = config
        if cache is None:
            cache = get_default_cache(optimistic_on_error=config.optimistic_on_error)
        self._cache = cache
        self._tasks: set[asyncio.Task[Any]] = set()

    @property
    def pending_probes(self) -> int:
        return len(self._tasks)

    def resolve(
        self, internal_url: str | None, default_url: str | None, *, enabled: bool | None = None
    ) -> str:
        probing = self._config.enabled if enabled is None else enabled
        chosen = self._cache.peek_resolved_internal_url(
            enabled=probing, internal_url=internal_url, default_url=default_url
        )
        if probing and self._needs_probe(internal_url, default_url):
            self._schedule_probe((internal_url or "").strip())
        return chosen

    async def resolve_async(
        self, internal_url: str | None, default_url: str | None, *, enabled: bool | None = None
    ) -> str:
        """Like ``resolve()`` but waits for a verdict first when none is cached."""
        probing = self._config.enabled if enabled is None else enabled
        if probing and self._needs_probe(internal_url, default_url):
            await self._cache.ensure_internal_url_probed(
                internal_url=(internal_url or "").strip(),
                timeout_ms=self._config.probe_timeout_ms,
                cache_ttl_ms=self._config.cache_ttl_ms,
                negative_cache_ttl_ms=self._config.negative_cache_ttl_ms,
            )
        return self._cache.peek_resolved_internal_url(
            enabled=probing, internal_url=internal_url, default_url=default_url
        )

    async def aclose(self) -> None:
        """Cancel probes this resolver started and wait for them to unwind."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    def _needs_probe(self, internal_url: str | None, default_url: str | None) -> bool:
        internal = (internal_url or "").strip()
        if not internal or not (default_url or "").strip():
            return False
        if not is_http_url(internal):
            return False
        return self._cache.get_cached(origin_key(internal)) is None

    def _schedule_probe(self, internal_url: str) -> None:
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("reachability_probe_not_scheduled", extra={"reason": "no_running_loop"})
            return
        spawn_background(
            self._cache.ensure_internal_url_probed(
                internal_url=internal_url,
                timeout_ms=self._config.probe_timeout_ms,
                cache_ttl_ms=self._config.cache_ttl_ms,
                negative_cache_ttl_ms=self._config.negative_cache_ttl_ms,
            ),
            self._tasks,
            name=f"reachability_resolve:{origin_key(internal_url)}",
        )
