"""
Retry and timeout policy: runs one request through a transport.

Each attempt is raced against `per_attempt_timeout_ms`; failed attempts are
retried after `backoff_ms` (+ up to `jitter_ms`) until `max_attempts` is
used up, at which point ExhaustedError carries the last failure. The
attempt's exchange is released at every boundary.
"""

import asyncio
import logging
import random
from typing import Any, Awaitable, Callable, Optional

from campus_fetch.errors import ExhaustedError, FetchTimeoutError, TransportError
from campus_fetch.models.attempt import Attempt, AttemptOutcome
from campus_fetch.models.request import FetchRequest, RetryPolicy
from campus_fetch.transport.base import AttemptKey, Exchange, Transport

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[Any]]


class RetryingCall:
    """One-shot retrying call. `run()` once; `cancel()` from anywhere on the loop."""

    def __init__(
        self,
        transport: Transport,
        request: FetchRequest,
        policy: Optional[RetryPolicy] = None,
        *,
        slot: str = "",
        session_id: int = 0,
        sleep: Sleep = asyncio.sleep,
        rng: Callable[[], float] = random.random,
    ):
        self._transport = transport
        self._request = request
        self._policy = policy or RetryPolicy()
        self._slot = slot
        self._session_id = session_id
        self._sleep = sleep
        self._rng = rng
        self._attempts: list[Attempt] = []
        self._exchange: Optional[Exchange] = None
        self._backoff: Optional[asyncio.Future[Any]] = None
        self._started = False
        self._canceled = False

    @property
    def policy(self) -> RetryPolicy:
        return self._policy

    @property
    def attempts(self) -> tuple[Attempt, ...]:
        return tuple(self._attempts)

    @property
    def canceled(self) -> bool:
        return self._canceled

    def backoff_delay(self) -> float:
        """Seconds to wait before the next attempt."""
        delay_ms = self._policy.backoff_ms
        if self._policy.jitter_ms:
            delay_ms += self._rng() * self._policy.jitter_ms
        return delay_ms / 1000.0

    async def run(self) -> Any:
        if self._started:
            raise RuntimeError("RetryingCall.run() can only be awaited once")
        self._started = True

        policy = self._policy
        loop = asyncio.get_running_loop()
        sequence = 0

        while True:
            self._raise_if_canceled()
            attempt = Attempt(
                session_id=self._session_id,
                sequence=sequence,
                deadline=loop.time() + policy.timeout_s,
            )
            self._attempts.append(attempt)

            error: Exception
            exchange: Optional[Exchange] = None
            try:
                exchange = self._transport.open(self._request, AttemptKey(self._slot, self._session_id, sequence))
                self._exchange = exchange
                payload = await asyncio.wait_for(exchange.result(), timeout=policy.timeout_s)
            except asyncio.TimeoutError:
                error = FetchTimeoutError(policy.per_attempt_timeout_ms)
                attempt.outcome = AttemptOutcome.TIMEOUT
            except TransportError as e:
                error = e
                attempt.outcome = AttemptOutcome.TRANSPORT_ERROR
            except asyncio.CancelledError:
                raise
            except Exception as e:
                error = TransportError(str(e) or type(e).__name__)
                attempt.outcome = AttemptOutcome.TRANSPORT_ERROR
            else:
                attempt.outcome = AttemptOutcome.OK
                logger.debug("%s attempt %d succeeded", self._label(), sequence)
                return payload
            finally:
                if exchange is not None:
                    exchange.cancel()
                self._exchange = None

            attempt.error = str(error)
            sequence += 1
            if sequence >= policy.max_attempts:
                logger.info("%s exhausted after %d attempt(s): %s", self._label(), sequence, error)
                raise ExhaustedError(sequence, error) from error

            delay = self.backoff_delay()
            logger.warning(
                "%s attempt %d/%d failed (%s); retrying in %.0fms",
                self._label(), sequence, policy.max_attempts, error, delay * 1000,
            )
            if delay > 0:
                await self._wait_backoff(delay)

    def cancel(self) -> None:
        """Stop scheduling attempts and release the in-flight exchange now."""
        self._canceled = True
        if self._exchange is not None:
            self._exchange.cancel()
        if self._backoff is not None and not self._backoff.done():
            self._backoff.cancel()

    async def _wait_backoff(self, delay: float) -> None:
        self._raise_if_canceled()
        self._backoff = asyncio.ensure_future(self._sleep(delay))
        try:
            await self._backoff
        finally:
            self._backoff = None

    def _raise_if_canceled(self) -> None:
        if self._canceled:
            raise asyncio.CancelledError()

    def _label(self) -> str:
        action = self._request.action or "<root>"
        if self._slot:
            return f"[{self._slot}#{self._session_id}] {action}"
        return action
