"""
Fetch session manager.

Each slot (one screen's data need) has at most one pending session. Starting
a new session supersedes the pending one; only the latest session of a slot
ever reaches the slot's consumer, and it reaches it exactly once.
"""

from __future__ import annotations

import asyncio
import inspect
import itertools
import logging
from collections import OrderedDict
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Optional, Protocol, Union, runtime_checkable

from campus_fetch.models.session import FetchResult, FetchSession, SessionStatus

logger = logging.getLogger(__name__)

Consumer = Callable[[FetchResult], None]

# Process-wide, so ids stay unique across managers and request-mode calls.
_session_ids = itertools.count(1)


def next_session_id() -> int:
    return next(_session_ids)


@runtime_checkable
class FetchTask(Protocol):
    async def run(self) -> Any: ...

    def cancel(self) -> None: ...


TaskFactory = Callable[[FetchSession], Union[FetchTask, Awaitable[Any]]]


async def _reraise(error: Exception) -> Any:
    raise error


class _AwaitableTask:
    """Adapts a bare awaitable; cancellation is left to the runner task."""

    def __init__(self, awaitable: Awaitable[Any]):
        self._awaitable = awaitable

    async def run(self) -> Any:
        return await self._awaitable

    def cancel(self) -> None:
        if inspect.iscoroutine(self._awaitable) and inspect.getcoroutinestate(self._awaitable) == "CORO_CREATED":
            self._awaitable.close()


class _LiveSession:
    __slots__ = ("session", "task", "runner", "done")

    def __init__(self, session: FetchSession, task: FetchTask):
        self.session = session
        self.task = task
        self.runner: Optional[asyncio.Task[None]] = None
        self.done = asyncio.Event()

    def abort(self) -> None:
        self.task.cancel()
        if self.runner is not None and not self.runner.done():
            self.runner.cancel()


class FetchSessionManager:
    def __init__(self, history_limit: int = 256):
        self._history_limit = history_limit
        self._latest: dict[str, int] = {}
        self._live: dict[str, _LiveSession] = {}
        self._by_id: dict[int, _LiveSession] = {}
        self._finished: OrderedDict[int, FetchSession] = OrderedDict()
        self._consumers: dict[str, Consumer] = {}

    # -- consumers --------------------------------------------------------

    def register(self, slot: str, consumer: Consumer) -> Callable[[], None]:
        """Set the slot's consumer (replacing any). Returns a cleanup function."""
        self._consumers[slot] = consumer

        def remove() -> None:
            if self._consumers.get(slot) is consumer:
                del self._consumers[slot]

        return remove

    def unregister(self, slot: str) -> None:
        self._consumers.pop(slot, None)

    # -- lifecycle --------------------------------------------------------

    def start_fetch(self, slot: str, task: TaskFactory) -> int:
        """Start a new session for `slot` and return its id immediately.

        `task` receives the new FetchSession and returns either an awaitable or
        a cancelable fetch task (anything with `async run()` and `cancel()`,
        e.g. RetryingCall). Must be called with a running event loop.
        """
        loop = asyncio.get_running_loop()
        session = FetchSession(id=next_session_id(), slot=slot)
        self._latest[slot] = session.id

        previous = self._live.pop(slot, None)
        if previous is not None:
            self._finish(previous, SessionStatus.SUPERSEDED)
            previous.abort()
            logger.debug("[%s] session %d superseded by %d", slot, previous.session.id, session.id)

        try:
            produced = task(session)
        except Exception as e:
            logger.debug("[%s] task factory for session %d raised: %s", slot, session.id, e)
            produced = _reraise(e)
        fetch_task = produced if isinstance(produced, FetchTask) else _AwaitableTask(produced)
        live = _LiveSession(session, fetch_task)
        self._live[slot] = live
        self._by_id[session.id] = live
        live.runner = loop.create_task(self._run(live), name=f"fetch:{slot}:{session.id}")
        logger.debug("[%s] session %d started", slot, session.id)
        return session.id

    def cancel(self, slot: str) -> bool:
        """Cancel the slot's pending session. False if nothing was pending."""
        live = self._live.pop(slot, None)
        if live is None:
            return False
        self._finish(live, SessionStatus.CANCELED)
        live.abort()
        logger.debug("[%s] session %d canceled", slot, live.session.id)
        return True

    async def close(self) -> None:
        runners = [live.runner for live in self._live.values() if live.runner is not None]
        for slot in list(self._live):
            self.cancel(slot)
        if runners:
            await asyncio.gather(*runners, return_exceptions=True)

    # -- inspection -------------------------------------------------------

    def session(self, session_id: int) -> Optional[FetchSession]:
        live = self._by_id.get(session_id)
        if live is not None:
            return live.session
        return self._finished.get(session_id)

    def current(self, slot: str) -> Optional[FetchSession]:
        """The slot's pending session, if any."""
        live = self._live.get(slot)
        return live.session if live is not None else None

    def latest_id(self, slot: str) -> Optional[int]:
        return self._latest.get(slot)

    async def wait(self, session_id: int) -> FetchSession:
        """Wait until the session reaches a terminal state."""
        live = self._by_id.get(session_id)
        if live is not None:
            await live.done.wait()
            return live.session
        session = self._finished.get(session_id)
        if session is None:
            raise KeyError(session_id)
        return session

    # -- internals --------------------------------------------------------

    async def _run(self, live: _LiveSession) -> None:
        try:
            payload = await live.task.run()
        except asyncio.CancelledError:
            # Superseded or canceled sessions are already final.
            if not live.session.is_terminal:
                self._finish(live, SessionStatus.CANCELED)
                self._drop_live(live)
            return
        except Exception as e:
            self._settle(live, FetchResult.failure(live.session.slot, live.session.id, e))
        else:
            self._settle(live, FetchResult.success(live.session.slot, live.session.id, payload))

    def _settle(self, live: _LiveSession, result: FetchResult) -> None:
        session = live.session
        if session.is_terminal or self._latest.get(session.slot) != session.id:
            if not session.is_terminal:
                self._finish(live, SessionStatus.SUPERSEDED)
            logger.debug("[%s] discarding outcome of stale session %d", session.slot, session.id)
            return

        self._finish(live, SessionStatus.SUCCEEDED if result.ok else SessionStatus.FAILED)
        self._drop_live(live)
        consumer = self._consumers.get(session.slot)
        if consumer is None:
            logger.debug("[%s] no consumer registered for session %d", session.slot, session.id)
            return
        try:
            consumer(result)
        except Exception:
            logger.exception("[%s] consumer raised for session %d", session.slot, session.id)

    def _finish(self, live: _LiveSession, status: SessionStatus) -> None:
        session = live.session
        if session.is_terminal:
            return
        session.status = status
        session.finished_at = datetime.now(timezone.utc)
        live.done.set()
        self._by_id.pop(session.id, None)
        self._finished[session.id] = session
        while len(self._finished) > self._history_limit:
            self._finished.popitem(last=False)

    def _drop_live(self, live: _LiveSession) -> None:
        if self._live.get(live.session.slot) is live:
            del self._live[live.session.slot]
