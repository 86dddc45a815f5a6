"""Best-effort HTTP liveness probe for internal (LAN) launch URLs."""

from __future__ import annotations

import asyncio
import logging
import time

import httpx

from neutab.core.url_utils import is_http_url

logger = logging.getLogger(__name__)

_PROBE_HEADERS = {
    "Cache-Control": "no-store",
    "Pragma": "no-cache",
}


async def probe_http_reachable(
    url: str,
    timeout_ms: int,
    *,
    client: httpx.AsyncClient | None = None,
    optimistic_on_error: bool = True,
) -> bool:
    """Return whether ``url`` looks reachable.

    Sends a credential-less, cache-bypassing ``HEAD`` and ignores the response.
    A timeout means unreachable. Any other failure is reported as reachable
    when ``optimistic_on_error`` is set: servers that refuse bare probes are
    often still fine for normal navigation. This is a heuristic; only timing
    separates a real outage from such a refusal.

    Args:
        url: http(s) URL to probe. Other schemes return False without I/O.
        timeout_ms: Hard deadline for the whole request (minimum 1 ms).
        client: Optional shared client. A short-lived one is created otherwise.
        optimistic_on_error: Verdict for non-timeout failures.
    """
    if not is_http_url(url):
        return False

    timeout_s = max(1, timeout_ms) / 1000
    started = time.perf_counter()
    own_client = client is None
    http = client or httpx.AsyncClient(follow_redirects=True, trust_env=False)
    try:
        await asyncio.wait_for(
            http.head(url, headers=_PROBE_HEADERS, timeout=timeout_s, follow_redirects=True),
            timeout=timeout_s,
        )
        verdict = True
    except (TimeoutError, httpx.TimeoutException):
        logger.debug("reachability_probe_timeout", extra={"url": url, "timeout_ms": timeout_ms})
        verdict = False
    except Exception as exc:
        logger.debug(
            "reachability_probe_error",
            extra={
                "url": url,
                "error_type": type(exc).__name__,
                "treated_reachable": optimistic_on_error,
            },
        )
        verdict = optimistic_on_error
    finally:
        if own_client:
            await http.aclose()

    logger.debug(
        "reachability_probe_done",
        extra={
            "url": url,
            "ok": verdict,
            "latency_ms": round((time.perf_counter() - started) * 1000, 1),
        },
    )
    return verdict
