"""
AsyncCampusClient and CampusClient, the main entry points.
"""

import asyncio
from typing import Any, Callable, Optional, Union

import httpx

from campus_fetch.config import Settings
from campus_fetch.errors import ConfigError
from campus_fetch.models.request import FetchRequest, Primitive, RetryPolicy
from campus_fetch.records import RecordsAPI
from campus_fetch.retry import RetryingCall
from campus_fetch.sessions import Consumer, FetchSessionManager, next_session_id
from campus_fetch.transport.base import Transport
from campus_fetch.transport.bridge import CallbackBridgeTransport
from campus_fetch.transport.hooks import HookRegistry
from campus_fetch.transport.http import DEFAULT_TIMEOUT, HttpTransport, build_client

MISSING_URL = "Apps Script URL missing. Set CAMPUS_APPS_SCRIPT_URL or run `campus config set apps_script_url <url>`."


class AsyncCampusClient:
    """Async campus-fetch client (primary).

    Reads go through `transport` ("jsonp" or "http", or a Transport instance)
    under the retry policy; writes always go through http with one attempt.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        transport: Union[str, Transport] = "jsonp",
        policy: Optional[RetryPolicy] = None,
        registry: Optional[HookRegistry] = None,
        timeout: float = DEFAULT_TIMEOUT,
        http_client: Optional[httpx.AsyncClient] = None,
        write_transport: Optional[Transport] = None,
    ):
        self._base_url = base_url
        self._owns_http_client = http_client is None and base_url is not None
        self._http_client = http_client or (build_client(timeout) if base_url else None)

        if isinstance(transport, Transport):
            self.transport = transport
        elif not base_url:
            raise ConfigError(MISSING_URL)
        elif transport == "jsonp":
            self.transport = CallbackBridgeTransport(base_url, registry=registry, client=self._http_client)
        elif transport == "http":
            self.transport = HttpTransport(base_url, client=self._http_client)
        else:
            raise ConfigError(f"Unknown transport {transport!r}; expected 'jsonp' or 'http'")

        if write_transport is not None:
            self.writer: Optional[Transport] = write_transport
        elif base_url:
            self.writer = HttpTransport(base_url, client=self._http_client)
        else:
            self.writer = None

        self.policy = policy or RetryPolicy()
        self.sessions = FetchSessionManager()
        self.records = RecordsAPI(self)

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs: Any) -> "AsyncCampusClient":
        kwargs.setdefault("transport", settings.transport)
        kwargs.setdefault("policy", settings.policy())
        return cls(settings.apps_script_url, **kwargs)

    @property
    def base_url(self) -> Optional[str]:
        return self._base_url

    # -- slot-based fetching ---------------------------------------------

    def on_result(self, slot: str, consumer: Consumer) -> Callable[[], None]:
        """Register the slot's consumer. Returns a cleanup function."""
        return self.sessions.register(slot, consumer)

    def fetch(
        self,
        slot: str,
        action: Optional[str] = None,
        params: Optional[dict[str, Primitive]] = None,
        *,
        policy: Optional[RetryPolicy] = None,
    ) -> int:
        """Start (or restart) the slot's fetch; the result goes to its consumer."""
        request = FetchRequest(action=action, params=params or {})
        return self.sessions.start_fetch(
            slot, lambda session: self.call(request, policy=policy, slot=slot, session_id=session.id),
        )

    def cancel(self, slot: str) -> bool:
        return self.sessions.cancel(slot)

    # -- direct calls ------------------------------------------------------

    def call(
        self,
        request: FetchRequest,
        *,
        policy: Optional[RetryPolicy] = None,
        slot: str = "",
        session_id: Optional[int] = None,
    ) -> RetryingCall:
        if request.method == "GET":
            transport = self.transport
        elif self.writer is not None:
            transport = self.writer
        else:
            raise ConfigError(MISSING_URL)
        return RetryingCall(
            transport,
            request,
            policy or self.policy,
            slot=slot,
            session_id=session_id if session_id is not None else next_session_id(),
        )

    async def request(
        self,
        action: Optional[str] = None,
        params: Optional[dict[str, Primitive]] = None,
        *,
        policy: Optional[RetryPolicy] = None,
    ) -> Any:
        """Read with retries; raises ExhaustedError when every attempt failed."""
        return await self.call(FetchRequest(action=action, params=params or {}), policy=policy).run()

    async def post(self, action: str, params: Optional[dict[str, Primitive]] = None) -> Any:
        """Single-attempt write. Mutations are never retried."""
        request = FetchRequest(action=action, params=params or {}, method="POST")
        policy = self.policy.model_copy(update={"max_attempts": 1})
        return await self.call(request, policy=policy, slot="write").run()

    async def close(self) -> None:
        await self.sessions.close()
        await self.transport.close()
        if self.writer is not None and self.writer is not self.transport:
            await self.writer.close()
        if self._owns_http_client and self._http_client is not None:
            await self._http_client.aclose()

    async def __aenter__(self) -> "AsyncCampusClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()


class CampusClient:
    """Sync wrapper around AsyncCampusClient. Runs the event loop internally.

    Slot-based fetching needs a running loop between calls, so only the
    request-style API is mirrored here.
    """

    def __init__(self, base_url: Optional[str] = None, **kwargs: Any):
        self._async = AsyncCampusClient(base_url, **kwargs)
        self._loop = asyncio.new_event_loop()

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs: Any) -> "CampusClient":
        kwargs.setdefault("transport", settings.transport)
        kwargs.setdefault("policy", settings.policy())
        return cls(settings.apps_script_url, **kwargs)

    def _run(self, coro: Any) -> Any:
        return self._loop.run_until_complete(coro)

    def request(self, action: Optional[str] = None, params: Optional[dict[str, Primitive]] = None, **kwargs: Any) -> Any:
        return self._run(self._async.request(action, params, **kwargs))

    def post(self, action: str, params: Optional[dict[str, Primitive]] = None) -> Any:
        return self._run(self._async.post(action, params))

    def dashboard(self) -> dict[str, list[Any]]:
        return self._run(self._async.records.dashboard())

    def fees(self) -> list[Any]:
        return self._run(self._async.records.fees())

    def students_and_hostels(self) -> dict[str, list[Any]]:
        return self._run(self._async.records.students_and_hostels())

    def students_and_library(self) -> dict[str, list[Any]]:
        return self._run(self._async.records.students_and_library())

    def student_details(self, application_id: str) -> Any:
        return self._run(self._async.records.student_details(application_id))

    def search_students(self, query: str) -> Any:
        return self._run(self._async.records.search_students(query))

    def assign_hostel_room(self, student_id: str, room_number: str) -> dict[str, Any]:
        return self._run(self._async.records.assign_hostel_room(student_id, room_number))

    def issue_book(self, student_id: str, book_id: str) -> dict[str, Any]:
        return self._run(self._async.records.issue_book(student_id, book_id))

    def return_book(self, book_id: str) -> dict[str, Any]:
        return self._run(self._async.records.return_book(book_id))

    def submit_admission(self, fields: dict[str, Any]) -> str:
        return self._run(self._async.records.submit_admission(fields))

    def close(self) -> None:
        self._run(self._async.close())
        self._loop.close()
