from __future__ import annotations

import logging
from urllib.parse import urlsplit

logger = logging.getLogger(__name__)

# Only these schemes can be probed over the network
_PROBE_SCHEMES: frozenset[str] = frozenset(["http", "https"])

_DEFAULT_PORTS: dict[str, int] = {"http": 80, "https": 443}


def is_http_url(url: str | None) -> bool:
    """Return True when ``url`` parses with an http/https scheme and a hostname.

    Stricter than a scheme check alone: a hostname is required too, so
    scheme-only strings such as ``http://`` are rejected and never probed.
    """
    if not url:
        return False
    try:
        parts = urlsplit(url.strip())
    except ValueError:
        return False
    return parts.scheme.lower() in _PROBE_SCHEMES and bool(parts.hostname)


def origin_key(url: str) -> str:
    """Reduce ``url`` to its origin (``scheme://host[:port]``).

    Default ports are dropped so ``http://lan:80/a`` and ``http://lan/b`` share a
    key. Unparseable input is returned unchanged.
    """
    try:
        parts = urlsplit(url.strip())
        port = parts.port
    except ValueError:
        return url
    scheme = parts.scheme.lower()
    host = parts.hostname
    if not scheme or not host:
        return url
    if ":" in host:
        host = f"[{host}]"
    if port is None or _DEFAULT_PORTS.get(scheme) == port:
        return f"{scheme}://{host}"
    return f"{scheme}://{host}:{port}"


def strip_trailing_slash(base_url: str) -> str:
    """Remove a single trailing ``/`` from a server base URL."""
    return base_url[:-1] if base_url.endswith("/") else base_url
