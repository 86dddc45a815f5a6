"""Async HTTP client implementing the cloud push/pull collaborators."""

from __future__ import annotations

import asyncio
import base64
import binascii
import logging
from typing import TYPE_CHECKING
from urllib.parse import quote

import httpx

from neutab.adapters.cloud_sync.models import (
    IconUploadRequest,
    PushData,
    PushRequest,
)
from neutab.core.url_utils import strip_trailing_slash
from neutab.domain.exceptions.domain_exceptions import CloudSyncError

if TYPE_CHECKING:
    from collections.abc import Awaitable, Iterable
    from typing import Self

    from neutab.adapters.cloud_sync.protocols import SyncPayloadSink, SyncPayloadSource

logger = logging.getLogger(__name__)

AUTH_HEADER = "X-Auth-Code"
PULL_API_VERSION = 3

DEFAULT_TIMEOUT = 30.0
DEFAULT_PULL_ICON_CONCURRENCY = 4
DEFAULT_PUSH_ICON_CONCURRENCY = 3

# Only the first few per-icon pull failures are logged
MAX_ICON_FAILURE_LOGS = 3


def decode_data_url(data_url: str) -> tuple[str, bytes]:
    """Split a base64 ``data:`` URL into ``(mime_type, raw_bytes)``.

    Raises:
        ValueError: If the URL is not a base64 data URL.
    """
    if not data_url.startswith("data:") or "," not in data_url:
        raise ValueError("Not a data URL")
    header, encoded = data_url[5:].split(",", 1)
    parts = header.split(";")
    if "base64" not in parts[1:]:
        raise ValueError("Only base64 data URLs are supported")
    mime_type = parts[0] or "application/octet-stream"
    try:
        return mime_type, base64.b64decode(encoded, validate=True)
    except binascii.Error as exc:
        raise ValueError("Invalid base64 payload") from exc


def encode_data_url(mime_type: str, content: bytes) -> str:
    return f"data:{mime_type};base64,{base64.b64encode(content).decode('ascii')}"


async def _run_batched(jobs: Iterable[Awaitable[None]], concurrency: int) -> None:
    """Await ``jobs`` in consecutive batches of ``concurrency``; the first failure propagates."""
    batch: list[Awaitable[None]] = []
    for job in jobs:
        batch.append(job)
        if len(batch) >= concurrency:
            await asyncio.gather(*batch)
            batch = []
    if batch:
        await asyncio.gather(*batch)


class CloudSyncClient:
    """httpx-backed ``CloudSyncGateway``.

    Payloads are produced by ``source`` and applied by ``sink``; this class
    only handles transport, auth headers and icon transfer.
    """

    def __init__(
        self,
        source: SyncPayloadSource,
        sink: SyncPayloadSink,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        pull_icon_concurrency: int = DEFAULT_PULL_ICON_CONCURRENCY,
        push_icon_concurrency: int = DEFAULT_PUSH_ICON_CONCURRENCY,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            source: Builds the local backup payload for pushes.
            sink: Applies pulled settings and stores downloaded icons.
            timeout: Transport timeout in seconds for every request.
            pull_icon_concurrency: Icons downloaded per batch during a pull.
            push_icon_concurrency: Icons uploaded per batch during a push.
            transport: Optional httpx transport (tests pass ``httpx.MockTransport``).
        """
        self._source = source
        self._sink = sink
        self.timeout = timeout
        self.pull_icon_concurrency = pull_icon_concurrency
        self.push_icon_concurrency = push_icon_concurrency
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> Self:
        self._client = httpx.AsyncClient(timeout=self.timeout, transport=self._transport)
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        """HTTP client, created lazily when the context manager was not used."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout, transport=self._transport)
        return self._client

    async def pull(self, server_url: str, auth_code: str, language: str) -> None:
        base_url = strip_trailing_slash(server_url)
        response = await self.client.get(
            f"{base_url}/api/sync/pull",
            params={"v": PULL_API_VERSION},
            headers={AUTH_HEADER: auth_code},
        )
        if not response.is_success:
            raise CloudSyncError(
                f"Pull failed: HTTP {response.status_code}", status_code=response.status_code
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise CloudSyncError("Pull failed: response is not JSON") from exc
        data = payload.get("data") if isinstance(payload, dict) else None
        if not isinstance(data, dict):
            data = payload if isinstance(payload, dict) else {}
        await self._sink.apply(data, language)

        raw_ids = data.get("iconIds")
        icon_ids = [str(i) for i in raw_ids] if isinstance(raw_ids, list) else []
        logger.info("cloud_sync_pull_applied", extra={"icon_count": len(icon_ids)})
        if not icon_ids:
            return

        failures = 0

        async def _fetch_icon(icon_id: str) -> None:
            nonlocal failures
            try:
                icon_response = await self.client.get(
                    f"{base_url}/api/icons/{quote(icon_id, safe='')}"
                )
                if not icon_response.is_success:
                    return
                mime_type = icon_response.headers.get("content-type", "").split(";")[0].strip()
                if not mime_type.startswith("image/"):
                    return
                await self._sink.store_icon(
                    icon_id, encode_data_url(mime_type, icon_response.content)
                )
            except Exception as exc:
                failures += 1
                if failures <= MAX_ICON_FAILURE_LOGS:
                    logger.warning(
                        "cloud_sync_pull_icon_failed",
                        extra={"icon_id": icon_id, "error": str(exc)},
                    )

        await _run_batched((_fetch_icon(i) for i in icon_ids), self.pull_icon_concurrency)

    async def push(
        self, server_url: str, auth_code: str, language: str, *, upload_icons: bool
    ) -> None:
        base_url = strip_trailing_slash(server_url)
        backup = await self._source.build_payload(language)

        if upload_icons:
            icons = [
                (app_id, data_url)
                for app_id, data_url in backup.custom_icons.items()
                if isinstance(data_url, str) and data_url.startswith("data:image/")
            ]
            await _run_batched(
                (self._upload_icon(base_url, auth_code, a, d) for a, d in icons),
                self.push_icon_concurrency,
            )
            logger.debug("cloud_sync_icons_uploaded", extra={"icon_count": len(icons)})

        body = PushRequest(exported_at=backup.exported_at, data=PushData(settings=backup.settings))
        response = await self.client.post(
            f"{base_url}/api/sync/push",
            json=body.model_dump(by_alias=True),
            headers={AUTH_HEADER: auth_code},
        )
        if not response.is_success:
            raise CloudSyncError(
                f"Push failed: HTTP {response.status_code}", status_code=response.status_code
            )

    async def _upload_icon(self, base_url: str, auth_code: str, app_id: str, data_url: str) -> None:
        """Upload raw image bytes, falling back to the JSON data-URL endpoint."""
        try:
            mime_type, content = decode_data_url(data_url)
        except ValueError as exc:
            raise CloudSyncError(f"Invalid icon data: {app_id}") from exc
        if not mime_type.startswith("image/"):
            raise CloudSyncError(f"Invalid icon type: {app_id}")

        encoded_id = quote(app_id, safe="")
        try:
            response = await self.client.post(
                f"{base_url}/api/icons/uploadRaw/{encoded_id}",
                content=content,
                headers={AUTH_HEADER: auth_code, "Content-Type": mime_type},
            )
            response.raise_for_status()
            return
        except httpx.HTTPError as exc:
            logger.debug(
                "cloud_sync_raw_icon_upload_failed", extra={"icon_id": app_id, "error": str(exc)}
            )

        fallback = await self.client.post(
            f"{base_url}/api/icons/upload",
            json=IconUploadRequest(id=app_id, data=encode_data_url(mime_type, content)).model_dump(),
            headers={AUTH_HEADER: auth_code},
        )
        if not fallback.is_success:
            raise CloudSyncError(
                f"Icon upload failed: {app_id}", status_code=fallback.status_code
            )
