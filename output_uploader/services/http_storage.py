"""HTTP adapter for a remote object store."""
from __future__ import annotations

import asyncio
import logging
from typing import BinaryIO, Optional
from urllib.parse import quote

import httpx

from ..errors import DataStoreError, ReferenceNotFound
from .storage import join_reference

logger = logging.getLogger(__name__)


class HTTPDataStore:
    """
    Object store reached over HTTP.

    Objects live at ``{base_url}/objects/{reference}`` (reference URL-encoded);
    ``PUT`` writes, ``GET`` reads. Transient failures (5xx, transport errors)
    are retried here, at the store layer. Each object body is read fully into
    memory before the PUT so a retry can resend it.

    Implements IDataStore protocol. Use as an async context manager:

        async with HTTPDataStore("http://store:8080") as store:
            await store.write_raw("raw/x", stream)
    """

    def __init__(
        self,
        base_url: str,
        timeout: int = 60,
        max_retries: int = 3,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._max_retries = max_retries
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self):
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            timeout=self._timeout,
            transport=self._transport,
        )
        return self

    async def __aexit__(self, *args):
        if self._client:
            await self._client.aclose()
            self._client = None

    @staticmethod
    def _endpoint(reference: str) -> str:
        return f"/objects/{quote(reference, safe='')}"

    async def _request(self, method: str, reference: str, content: Optional[bytes] = None) -> httpx.Response:
        if not self._client:
            raise RuntimeError("HTTPDataStore not initialized. Use 'async with' context.")

        endpoint = self._endpoint(reference)
        last_exception: Optional[Exception] = None

        for attempt in range(self._max_retries):
            try:
                response = await self._client.request(method, endpoint, content=content)

                if response.status_code >= 500 and attempt < self._max_retries - 1:
                    logger.debug(f"[http] {method} {reference} -> {response.status_code}, retrying")
                    await asyncio.sleep(0.5 * (attempt + 1))
                    continue

                if response.status_code == 404 and method == "GET":
                    raise ReferenceNotFound(reference)

                if response.status_code >= 400:
                    raise DataStoreError(
                        f"Store error {response.status_code} on {method} {reference}: {response.text}"
                    )

                return response
            except (httpx.RequestError, httpx.TimeoutException) as exc:
                last_exception = exc
                if attempt < self._max_retries - 1:
                    await asyncio.sleep(0.5 * (attempt + 1))
                    continue
                raise DataStoreError(f"{method} {reference} failed: {exc}") from exc

        raise DataStoreError(
            f"Failed to {method} {reference} after {self._max_retries} attempts"
        ) from last_exception

    async def write_raw(self, reference: str, stream: BinaryIO) -> str:
        # buffered: the retry loop resends the same body
        data = await asyncio.to_thread(stream.read)
        await self._request("PUT", reference, content=data)
        logger.debug(f"[http] Uploaded {len(data)} bytes to {reference}")
        return reference

    async def read_raw(self, reference: str) -> bytes:
        response = await self._request("GET", reference)
        return response.content

    def construct_reference(self, base: str, *parts: str) -> str:
        return join_reference(base, *parts)
