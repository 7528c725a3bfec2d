"""Shared fakes for the transport interface."""

import asyncio
from typing import Any, Callable, Optional

import httpx
import pytest

from campus_fetch.errors import TransportError
from campus_fetch.models.request import FetchRequest
from campus_fetch.transport.base import AttemptKey, Exchange, Transport

BASE_URL = "https://script.example.test/macros/s/abc/exec"


class FakeTransport(Transport):
    """Scripted transport. Each open() consumes one behaviour:

    ("ok", payload, delay) | ("error", message, delay) | ("hang",)
    Unscripted attempts hang.
    """

    name = "fake"

    def __init__(self, script: Optional[list[tuple]] = None):
        self.script = list(script or [])
        self.keys: list[AttemptKey] = []
        self.requests: list[FetchRequest] = []
        self.exchanges: list[Exchange] = []
        self.released = 0

    def open(self, request: FetchRequest, key: AttemptKey) -> Exchange:
        exchange = Exchange()
        self.keys.append(key)
        self.requests.append(request)
        self.exchanges.append(exchange)
        exchange.add_cleanup(self._on_release)

        behaviour = self.script.pop(0) if self.script else ("hang",)
        loop = asyncio.get_running_loop()
        if behaviour[0] == "ok":
            handle = loop.call_later(behaviour[2], exchange.resolve, behaviour[1])
            exchange.add_cleanup(handle.cancel)
        elif behaviour[0] == "error":
            handle = loop.call_later(behaviour[2], exchange.reject, TransportError(behaviour[1]))
            exchange.add_cleanup(handle.cancel)
        return exchange

    def _on_release(self) -> None:
        self.released += 1


class Collector:
    def __init__(self) -> None:
        self.results: list[Any] = []

    def __call__(self, result: Any) -> None:
        self.results.append(result)


@pytest.fixture
def fake_transport() -> Callable[..., FakeTransport]:
    return FakeTransport


@pytest.fixture
def collector() -> Collector:
    return Collector()


@pytest.fixture
def mock_http() -> Callable[[Callable[[httpx.Request], Any]], httpx.AsyncClient]:
    """Build an httpx.AsyncClient answering through `handler`."""

    def build(handler: Callable[[httpx.Request], Any]) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(handler))

    return build
