"""
Transport adapter interface.

A transport performs exactly one request/response exchange per attempt and
settles it exactly once. Everything an exchange allocates (request tasks,
callback hooks) is registered as a cleanup and released synchronously when
the exchange settles or is canceled.
"""

import asyncio
import logging
import re
from abc import ABC, abstractmethod
from typing import Any, Callable, NamedTuple

from campus_fetch.errors import CampusFetchError, TransportError
from campus_fetch.models.request import FetchRequest

logger = logging.getLogger(__name__)

_NON_IDENT = re.compile(r"[^A-Za-z0-9_]")


class AttemptKey(NamedTuple):
    slot: str
    session_id: int
    sequence: int

    def hook_name(self, prefix: str) -> str:
        """Deterministic per-attempt name, unique across concurrent attempts."""
        slot = _NON_IDENT.sub("_", self.slot) or "call"
        return f"{prefix}_{slot}_{self.session_id}_{self.sequence}"


class Exchange:
    """One in-flight request/response exchange."""

    def __init__(self) -> None:
        self._future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
        self._cleanups: list[Callable[[], Any]] = []
        self._released = False
        self._cancelled = False

    @property
    def settled(self) -> bool:
        return self._future.done()

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def add_cleanup(self, fn: Callable[[], Any]) -> None:
        if self._released:
            fn()
            return
        self._cleanups.append(fn)

    def resolve(self, payload: Any) -> bool:
        if self._future.done():
            return False
        self._future.set_result(payload)
        self._release()
        return True

    def reject(self, error: BaseException) -> bool:
        if self._future.done():
            return False
        self._future.set_exception(error)
        # Nobody may be awaiting after a timeout; don't warn about it.
        self._future.exception()
        self._release()
        return True

    def cancel(self) -> None:
        """Release everything now; no later resolution will be observed."""
        if not self._future.done():
            self._cancelled = True
            self._future.cancel()
        self._release()

    async def result(self) -> Any:
        return await self._future

    def _release(self) -> None:
        if self._released:
            return
        self._released = True
        cleanups, self._cleanups = self._cleanups, []
        for fn in cleanups:
            try:
                fn()
            except Exception:
                logger.exception("Exchange cleanup failed")


class Transport(ABC):
    name = "transport"

    @abstractmethod
    def open(self, request: FetchRequest, key: AttemptKey) -> Exchange:
        """Start one exchange for `request`. Must be called on the running loop."""

    async def execute(self, request: FetchRequest, key: AttemptKey) -> Any:
        exchange = self.open(request, key)
        try:
            return await exchange.result()
        finally:
            exchange.cancel()

    async def close(self) -> None:
        pass


def settle_from_task(exchange: Exchange, task: "asyncio.Task[Any]") -> None:
    """Done-callback: settle `exchange` from a finished request task."""
    if task.cancelled():
        return
    error = task.exception()
    if error is None:
        exchange.resolve(task.result())
    elif isinstance(error, CampusFetchError):
        exchange.reject(error)
    else:
        exchange.reject(TransportError(str(error) or type(error).__name__))
