"""
Callback-bridge (JSONP) transport.

For endpoints that only answer cross-origin reads as a script: the response
body is `<callback>(<json>)`, and the "reply" reaches the caller through a
one-shot hook registered under that callback name.

Hook names are `{prefix}_{slot}_{session_id}_{sequence}`, so concurrently
in-flight attempts never share a hook. A hook lives exactly as long as its
exchange: it is removed on resolve, reject, timeout and cancel.
"""

import asyncio
import functools
import json
import logging
import re
import time
from typing import Any, Callable, Optional

import httpx

from campus_fetch.errors import CampusFetchError, ConfigError, TransportError
from campus_fetch.models.request import FetchRequest
from campus_fetch.transport.base import AttemptKey, Exchange, Transport
from campus_fetch.transport.hooks import HookRegistry, default_registry
from campus_fetch.transport.http import DEFAULT_TIMEOUT, build_client

logger = logging.getLogger(__name__)

DEFAULT_HOOK_PREFIX = "campus_cb"

# Optional /**/ guard is what Apps Script's ContentService prepends.
JSONP_PATTERN = re.compile(r"^\s*(?:/\*\*/)?\s*([A-Za-z_$][\w$]*)\s*\((.*)\)\s*;?\s*$", re.DOTALL)


def parse_jsonp(text: str) -> tuple[str, Any]:
    """Split a JSONP body into (callback name, decoded argument)."""
    match = JSONP_PATTERN.match(text)
    if not match:
        raise TransportError(f"Response is not a JSONP callback: {text[:200]}")
    argument = match.group(2).strip() or "null"
    try:
        return match.group(1), json.loads(argument)
    except ValueError as e:
        raise TransportError(f"Malformed JSONP payload: {argument[:200]}") from e


class CallbackBridgeTransport(Transport):
    name = "jsonp"

    def __init__(
        self,
        url: str,
        registry: Optional[HookRegistry] = None,
        prefix: str = DEFAULT_HOOK_PREFIX,
        timeout: float = DEFAULT_TIMEOUT,
        client: Optional[httpx.AsyncClient] = None,
        clock: Callable[[], float] = time.time,
    ):
        if not url:
            raise ConfigError("Apps Script URL is required for the jsonp transport")
        self._url = url
        self._registry = registry if registry is not None else default_registry()
        self._prefix = prefix
        self._clock = clock
        self._owns_client = client is None
        self._client = client or build_client(timeout)

    @property
    def registry(self) -> HookRegistry:
        return self._registry

    def open(self, request: FetchRequest, key: AttemptKey) -> Exchange:
        exchange = Exchange()
        if request.method != "GET":
            exchange.reject(TransportError("The jsonp transport only supports GET requests"))
            return exchange

        name = key.hook_name(self._prefix)
        exchange.add_cleanup(self._registry.register(name, exchange.resolve))
        task = asyncio.get_running_loop().create_task(self._load(request, name), name=f"jsonp:{name}")
        task.add_done_callback(functools.partial(self._on_loaded, exchange, name))
        exchange.add_cleanup(task.cancel)
        return exchange

    def script_params(self, request: FetchRequest, name: str) -> dict[str, str]:
        params = request.query()
        params["callback"] = name
        params["_"] = str(int(self._clock() * 1000))  # cache buster
        return params

    async def _load(self, request: FetchRequest, name: str) -> None:
        try:
            resp = await self._client.get(self._url, params=self.script_params(request, name))
        except httpx.HTTPError as e:
            raise TransportError(f"Script load error: {e}") from e
        if resp.status_code >= 400:
            raise TransportError(f"Script load error: HTTP {resp.status_code}", status_code=resp.status_code)

        callee, payload = parse_jsonp(resp.text)
        if callee != name:
            raise TransportError(f"Response invoked callback {callee!r}, expected {name!r}")
        if not self._registry.dispatch(name, payload):
            logger.debug("Late response for %s dropped", name)

    @staticmethod
    def _on_loaded(exchange: Exchange, name: str, task: "asyncio.Task[None]") -> None:
        if task.cancelled():
            return
        error = task.exception()
        if exchange.settled:
            return
        if error is None:
            exchange.reject(TransportError(f"Callback {name} was never invoked"))
        elif isinstance(error, CampusFetchError):
            exchange.reject(error)
        else:
            exchange.reject(TransportError(f"Script load error: {error}"))

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()
