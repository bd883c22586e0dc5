"""Bounded-retry request execution.

RequestExecutor turns one logical call into a sequence of timed attempts:

    ATTEMPTING --ok--> SUCCESS
        |
      failure
        |-- attempts left --> BACKOFF --(retry_delay * k)--> ATTEMPTING
        `-- exhausted ------> FAILED

Every failure counts the same for retry purposes: transport errors,
non-success statuses, undecodable bodies and timeouts. Any other exception
raised by the transport is treated as a transport error. Only the terminal
error distinguishes "timed out" from everything else.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import httpx

from aetherdeck.logging import get_logger
from aetherdeck.remote.errors import (
    RemoteConnectionError,
    RemoteError,
    RemoteTimeoutError,
)
from aetherdeck.remote.transport import Transport

log = get_logger("remote.executor")

DEFAULT_TIMEOUT = 30.0
LONG_TIMEOUT = 90.0


class AttemptState(Enum):
    """States of the retry loop."""

    ATTEMPTING = "attempting"
    BACKOFF = "backoff"
    SUCCESS = "success"
    FAILED = "failed"


class FailureKind(Enum):
    """Why a single attempt failed."""

    TIMEOUT = "timeout"
    TRANSPORT = "transport"
    STATUS = "status"
    DECODE = "decode"


@dataclass(frozen=True)
class RetryPolicy:
    """Attempt cap and linear backoff.

    Attributes:
        max_attempts: Total transport attempts per logical call (1 disables retries).
        retry_delay: Base delay in seconds; the wait after attempt k is retry_delay * k.
    """

    max_attempts: int = 3
    retry_delay: float = 1.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if self.retry_delay < 0:
            raise ValueError("retry_delay must be >= 0")

    def backoff_for(self, attempt: int) -> float:
        return self.retry_delay * attempt


@dataclass
class RequestOptions:
    """Method, JSON body and extra headers of a request."""

    method: str = "GET"
    json: Any = None
    headers: dict[str, str] = field(default_factory=dict)


@dataclass
class PendingRequest:
    """One in-flight logical call.

    ``task`` is the cancellation handle of the current attempt; each attempt
    gets its own task, so cancelling one never touches the next.
    """

    endpoint: str
    attempt: int
    max_attempts: int
    timeout: float
    task: asyncio.Task[Any] | None = None


@dataclass
class AttemptFailure:
    kind: FailureKind
    message: str
    error: BaseException


def _describe(error: BaseException) -> tuple[FailureKind, str]:
    """Classify an attempt failure and render a short description."""
    if isinstance(error, httpx.HTTPStatusError):
        response = error.response
        return FailureKind.STATUS, f"HTTP {response.status_code}: {response.reason_phrase}"
    if isinstance(error, httpx.TimeoutException):
        return FailureKind.TIMEOUT, str(error) or "transport timeout"
    if isinstance(error, ValueError) and not isinstance(error, httpx.HTTPError):
        return FailureKind.DECODE, f"Invalid JSON response: {error}"
    return FailureKind.TRANSPORT, str(error) or type(error).__name__


class RequestExecutor:
    """Runs a single logical network call with bounded retries and timeouts.

    Args:
        transport: Performs one HTTP exchange per attempt.
        policy: Attempt cap and backoff (default: 3 attempts, 1 s base delay).
        default_timeout: Per-attempt budget when execute() gets none.
        sleep: Awaitable sleep used for backoff (injectable for tests).
    """

    def __init__(
        self,
        transport: Transport,
        policy: RetryPolicy | None = None,
        *,
        default_timeout: float = DEFAULT_TIMEOUT,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self._transport = transport
        self._policy = policy or RetryPolicy()
        self._default_timeout = default_timeout
        self._sleep = sleep

    @property
    def policy(self) -> RetryPolicy:
        return self._policy

    async def execute(
        self,
        target: str,
        options: RequestOptions | None = None,
        timeout: float | None = None,
    ) -> Any:
        """Execute ``target`` with retries and return the decoded body.

        Args:
            target: Path (with query string) relative to the transport base URL.
            options: Method, JSON body and headers. Defaults to a bare GET.
            timeout: Per-attempt budget in seconds.

        Raises:
            RemoteTimeoutError: The final attempt timed out.
            RemoteConnectionError: The final attempt failed otherwise.
        """
        options = options or RequestOptions()
        pending = PendingRequest(
            endpoint=target,
            attempt=1,
            max_attempts=self._policy.max_attempts,
            timeout=timeout if timeout is not None else self._default_timeout,
        )
        state = AttemptState.ATTEMPTING
        result: Any = None
        failure: AttemptFailure | None = None

        while True:
            if state is AttemptState.ATTEMPTING:
                log.debug(
                    "[attempt %d/%d] %s %s (timeout %.1fs)",
                    pending.attempt, pending.max_attempts,
                    options.method, target, pending.timeout,
                )
                try:
                    result = await self._attempt(pending, options)
                except asyncio.TimeoutError as e:
                    failure = AttemptFailure(
                        FailureKind.TIMEOUT,
                        f"Request timed out after {pending.timeout:g} seconds",
                        e,
                    )
                except Exception as e:
                    kind, message = _describe(e)
                    failure = AttemptFailure(kind, message, e)
                else:
                    state = AttemptState.SUCCESS
                    continue

                log.warning(
                    "[attempt %d/%d] %s %s failed (%s): %s",
                    pending.attempt, pending.max_attempts,
                    options.method, target, failure.kind.value, failure.message,
                )
                if pending.attempt >= pending.max_attempts:
                    state = AttemptState.FAILED
                else:
                    state = AttemptState.BACKOFF

            elif state is AttemptState.BACKOFF:
                delay = self._policy.backoff_for(pending.attempt)
                log.info("Waiting %.1fs before retrying %s", delay, target)
                await self._sleep(delay)
                pending.attempt += 1
                state = AttemptState.ATTEMPTING

            elif state is AttemptState.SUCCESS:
                log.debug("%s %s succeeded on attempt %d", options.method, target, pending.attempt)
                return result

            else:
                assert failure is not None
                raise self._terminal_error(pending, failure) from failure.error

    async def _attempt(self, pending: PendingRequest, options: RequestOptions) -> Any:
        """Run one transport attempt bounded by the pending request's timeout.

        On timeout the attempt task is cancelled and awaited before the
        TimeoutError surfaces, so it can never deliver a late result.
        """
        task = asyncio.ensure_future(
            self._transport.send(
                options.method,
                pending.endpoint,
                json=options.json,
                headers=options.headers or None,
            )
        )
        pending.task = task
        try:
            return await asyncio.wait_for(task, timeout=pending.timeout)
        finally:
            if not task.done():
                task.cancel()
            pending.task = None

    @staticmethod
    def _terminal_error(pending: PendingRequest, failure: AttemptFailure) -> RemoteError:
        if failure.kind is FailureKind.TIMEOUT:
            return RemoteTimeoutError(endpoint=pending.endpoint, attempts=pending.attempt)
        return RemoteConnectionError(
            failure.message, endpoint=pending.endpoint, attempts=pending.attempt
        )
