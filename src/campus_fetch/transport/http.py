"""
Direct request/response transport over httpx.

Reads are GET with query parameters; writes are POST with a JSON body sent as
text/plain, which the Apps Script endpoint accepts without a CORS preflight.
"""

import asyncio
import functools
import json
from typing import Any, Optional

import httpx

from campus_fetch.errors import ConfigError, TransportError
from campus_fetch.models.request import FetchRequest
from campus_fetch.transport.base import AttemptKey, Exchange, Transport, settle_from_task

DEFAULT_TIMEOUT = 30.0
USER_AGENT = "campus-fetch/0.1.0"


def build_client(timeout: float = DEFAULT_TIMEOUT) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        headers={"User-Agent": USER_AGENT, "Accept": "application/json"},
        timeout=timeout,
        follow_redirects=True,
    )


class HttpTransport(Transport):
    name = "http"

    def __init__(self, url: str, timeout: float = DEFAULT_TIMEOUT, client: Optional[httpx.AsyncClient] = None):
        if not url:
            raise ConfigError("Apps Script URL is required for the http transport")
        self._url = url
        self._owns_client = client is None
        self._client = client or build_client(timeout)

    @property
    def url(self) -> str:
        return self._url

    def open(self, request: FetchRequest, key: AttemptKey) -> Exchange:
        exchange = Exchange()
        task = asyncio.get_running_loop().create_task(
            self._send(request), name=f"http:{key.slot}:{key.session_id}:{key.sequence}",
        )
        task.add_done_callback(functools.partial(settle_from_task, exchange))
        exchange.add_cleanup(task.cancel)
        return exchange

    async def _send(self, request: FetchRequest) -> Any:
        try:
            if request.method == "POST":
                resp = await self._client.post(
                    self._url,
                    content=json.dumps(request.body()),
                    headers={"Content-Type": "text/plain;charset=utf-8"},
                )
            else:
                resp = await self._client.get(self._url, params=request.query())
        except httpx.HTTPError as e:
            raise TransportError(f"Network error: {e}") from e
        if resp.status_code >= 400:
            raise TransportError(f"HTTP {resp.status_code}: {resp.text[:200]}", status_code=resp.status_code)
        try:
            return resp.json()
        except ValueError as e:
            raise TransportError(f"Malformed response: {resp.text[:200]}") from e

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()
