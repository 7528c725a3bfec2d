"""RetryingCall: per-attempt timeout, bounded retries, backoff, cancellation."""

import asyncio

import httpx
import pytest

from campus_fetch.errors import ExhaustedError, FetchTimeoutError, TransportError
from campus_fetch.models.attempt import AttemptOutcome
from campus_fetch.models.request import FetchRequest, RetryPolicy
from campus_fetch.retry import RetryingCall
from campus_fetch.transport.base import AttemptKey, Transport
from campus_fetch.transport.bridge import DEFAULT_HOOK_PREFIX, CallbackBridgeTransport
from campus_fetch.transport.hooks import HookRegistry

REQUEST = FetchRequest(action="getFees")


class RecordingSleep:
    def __init__(self, block: bool = False):
        self.delays: list[float] = []
        self.block = block

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
        if self.block:
            await asyncio.sleep(3600)


@pytest.mark.asyncio
async def test_fails_twice_then_succeeds(fake_transport):
    transport = fake_transport([("error", "boom", 0), ("error", "boom", 0), ("ok", {"fees": []}, 0)])
    sleep = RecordingSleep()
    call = RetryingCall(
        transport, REQUEST, RetryPolicy(max_attempts=3, per_attempt_timeout_ms=1000, backoff_ms=50),
        slot="fees", session_id=7, sleep=sleep,
    )

    assert await call.run() == {"fees": []}
    outcomes = [a.outcome for a in call.attempts]
    assert outcomes == [AttemptOutcome.TRANSPORT_ERROR, AttemptOutcome.TRANSPORT_ERROR, AttemptOutcome.OK]
    assert sum(1 for a in call.attempts if a.failed) == 2
    assert sleep.delays == [0.05, 0.05]
    assert [k.sequence for k in transport.keys] == [0, 1, 2]
    assert all(k.slot == "fees" and k.session_id == 7 for k in transport.keys)
    assert transport.released == 3


@pytest.mark.asyncio
async def test_single_attempt_fails_without_retry(fake_transport):
    transport = fake_transport([("error", "Script load error", 0)])
    sleep = RecordingSleep()
    call = RetryingCall(transport, REQUEST, RetryPolicy(max_attempts=1), sleep=sleep)

    with pytest.raises(ExhaustedError) as exc_info:
        await call.run()

    assert exc_info.value.attempts == 1
    assert isinstance(exc_info.value.last_error, TransportError)
    assert exc_info.value.__cause__ is exc_info.value.last_error
    assert len(transport.keys) == 1
    assert sleep.delays == []


@pytest.mark.asyncio
async def test_timeouts_exhaust_with_backoff_between(fake_transport):
    transport = fake_transport()  # every attempt hangs
    call = RetryingCall(transport, REQUEST, RetryPolicy(max_attempts=2, per_attempt_timeout_ms=100, backoff_ms=50))
    loop = asyncio.get_running_loop()

    started = loop.time()
    with pytest.raises(ExhaustedError) as exc_info:
        await call.run()
    elapsed = loop.time() - started

    assert isinstance(exc_info.value.last_error, FetchTimeoutError)
    assert [a.outcome for a in call.attempts] == [AttemptOutcome.TIMEOUT, AttemptOutcome.TIMEOUT]
    assert 0.24 <= elapsed < 1.0
    assert transport.released == 2
    assert all(not e.cancelled for e in transport.exchanges)


@pytest.mark.asyncio
async def test_zero_backoff_retries_immediately(fake_transport):
    transport = fake_transport([("error", "boom", 0), ("ok", "done", 0)])
    sleep = RecordingSleep()
    call = RetryingCall(transport, REQUEST, RetryPolicy(max_attempts=2, backoff_ms=0), sleep=sleep)

    assert await call.run() == "done"
    assert sleep.delays == []


def test_backoff_includes_jitter(fake_transport):
    call = RetryingCall(
        fake_transport(), REQUEST, RetryPolicy(backoff_ms=100, jitter_ms=40), rng=lambda: 0.5,
    )
    assert call.backoff_delay() == pytest.approx(0.12)


@pytest.mark.asyncio
async def test_cancel_mid_attempt_releases_exchange(fake_transport):
    transport = fake_transport()
    call = RetryingCall(transport, REQUEST, RetryPolicy(max_attempts=3, per_attempt_timeout_ms=5000))
    task = asyncio.ensure_future(call.run())
    await asyncio.sleep(0.01)

    call.cancel()
    assert transport.released == 1
    assert transport.exchanges[0].cancelled

    with pytest.raises(asyncio.CancelledError):
        await task
    assert len(transport.keys) == 1
    assert call.canceled


@pytest.mark.asyncio
async def test_cancel_during_backoff_stops_retrying(fake_transport):
    transport = fake_transport([("error", "boom", 0)])
    sleep = RecordingSleep(block=True)
    call = RetryingCall(transport, REQUEST, RetryPolicy(max_attempts=3, backoff_ms=800), sleep=sleep)
    task = asyncio.ensure_future(call.run())
    await asyncio.sleep(0.01)
    assert sleep.delays == [0.8]

    call.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task
    assert len(transport.keys) == 1


@pytest.mark.asyncio
async def test_unexpected_adapter_error_is_a_transport_error(fake_transport):
    transport = fake_transport([("hang",)])
    call = RetryingCall(transport, REQUEST, RetryPolicy(max_attempts=1, per_attempt_timeout_ms=1000))
    task = asyncio.ensure_future(call.run())
    await asyncio.sleep(0.01)
    transport.exchanges[0].reject(ValueError("bad shape"))

    with pytest.raises(ExhaustedError) as exc_info:
        await task
    assert isinstance(exc_info.value.last_error, TransportError)
    assert "bad shape" in str(exc_info.value.last_error)


@pytest.mark.asyncio
async def test_run_is_one_shot(fake_transport):
    call = RetryingCall(fake_transport([("ok", 1, 0)]), REQUEST, RetryPolicy())
    await call.run()
    with pytest.raises(RuntimeError):
        await call.run()


@pytest.mark.asyncio
async def test_open_failures_are_retried_then_exhausted():
    class RefusingTransport(Transport):
        def __init__(self):
            self.opens = 0

        def open(self, request, key):
            self.opens += 1
            raise TransportError("adapter unavailable")

    transport = RefusingTransport()
    call = RetryingCall(transport, REQUEST, RetryPolicy(max_attempts=3, backoff_ms=0))

    with pytest.raises(ExhaustedError) as exc_info:
        await call.run()

    assert transport.opens == 3
    assert exc_info.value.attempts == 3
    assert [a.outcome for a in call.attempts] == [AttemptOutcome.TRANSPORT_ERROR] * 3


@pytest.mark.asyncio
async def test_duplicate_hook_on_open_is_a_transport_error(mock_http):
    registry = HookRegistry()
    registry.register(AttemptKey("fees", 41, 0).hook_name(DEFAULT_HOOK_PREFIX), print)
    transport = CallbackBridgeTransport(
        "https://script.example.test/exec", registry=registry, client=mock_http(lambda r: httpx.Response(404)),
    )
    call = RetryingCall(transport, REQUEST, RetryPolicy(max_attempts=1), slot="fees", session_id=41)

    with pytest.raises(ExhaustedError) as exc_info:
        await call.run()

    assert isinstance(exc_info.value.last_error, TransportError)
    assert "already registered" in str(exc_info.value.last_error)
    assert call.attempts[0].outcome is AttemptOutcome.TRANSPORT_ERROR
