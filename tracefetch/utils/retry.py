"""Retry policy for outbound calls.

Failures are sorted into two closed cases by ``BackoffClassifier``:
``Retryable`` (with the backoff to observe before resending) and
``Terminal``. ``build_retrying`` turns a classifier and a per-call
``RetryState`` into a tenacity loop.
"""

from __future__ import annotations

import asyncio
import socket
from dataclasses import dataclass
from typing import Awaitable, Callable

import httpx
from tenacity import AsyncRetrying, RetryCallState, retry_if_exception

from tracefetch.core.exceptions import FetchError, RetryableTransportError
from tracefetch.core.logging import get_logger

logger = get_logger(__name__)

# httpx failures raised while bytes are moving; the connection may work on a resend.
TRANSIENT_HTTPX_ERRORS: tuple[type[Exception], ...] = (
    httpx.TimeoutException,
    httpx.NetworkError,
    httpx.RemoteProtocolError,
)


@dataclass(frozen=True)
class Retryable:
    error: BaseException
    backoff: float

    def __post_init__(self) -> None:
        if self.backoff < 0:
            raise ValueError(f"backoff must be non-negative, got {self.backoff}")


@dataclass(frozen=True)
class Terminal:
    error: BaseException
    message: str


Classification = Retryable | Terminal


@dataclass
class RetryState:
    """Resend accounting for one logical request. Never shared between calls."""

    max_attempts: int
    attempt: int = 0

    def __post_init__(self) -> None:
        if self.max_attempts <= 0:
            raise ValueError(f"max_attempts must be positive, got {self.max_attempts}")
        if not 0 <= self.attempt <= self.max_attempts:
            raise ValueError(f"attempt out of range: {self.attempt}/{self.max_attempts}")

    @property
    def exhausted(self) -> bool:
        return self.attempt >= self.max_attempts

    def advance(self) -> None:
        if self.exhausted:
            raise RuntimeError("retry budget already spent")
        self.attempt += 1


class BackoffClassifier:
    """Decides whether a failed send may be retried, and after how long.

    Errors that carry their own backoff (``RetryableTransportError``) keep
    it; recognised httpx transport failures get ``default_backoff``.
    """

    def __init__(self, default_backoff: float = 0.5) -> None:
        if default_backoff < 0:
            raise ValueError(f"default_backoff must be non-negative, got {default_backoff}")
        self._default_backoff = default_backoff

    def classify(self, error: BaseException) -> Classification:
        if isinstance(error, RetryableTransportError):
            return Retryable(error=error, backoff=error.backoff)
        if isinstance(error, FetchError):
            return Terminal(error=error, message=error.message)
        if isinstance(error, httpx.ConnectError) and _caused_by_dns(error):
            return Terminal(error=error, message=f"name resolution failed: {error}")
        if isinstance(error, TRANSIENT_HTTPX_ERRORS):
            return Retryable(error=error, backoff=self._default_backoff)
        return Terminal(error=error, message=str(error) or type(error).__name__)

    def is_retryable(self, error: BaseException) -> bool:
        return isinstance(self.classify(error), Retryable)


def _caused_by_dns(error: BaseException) -> bool:
    seen: set[int] = set()
    current: BaseException | None = error
    while current is not None and id(current) not in seen:
        if isinstance(current, socket.gaierror):
            return True
        seen.add(id(current))
        current = current.__cause__ or current.__context__
    return False


def build_retrying(
    classifier: BackoffClassifier,
    state: RetryState,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> AsyncRetrying:
    """Bounded retry loop: at most ``state.max_attempts`` resends.

    When the budget is spent tenacity raises ``RetryError``; terminal
    failures are re-raised unchanged.
    """

    def _wait(retry_state: RetryCallState) -> float:
        verdict = classifier.classify(retry_state.outcome.exception())
        return verdict.backoff if isinstance(verdict, Retryable) else 0.0

    def _stop(retry_state: RetryCallState) -> bool:
        return state.exhausted

    def _before_sleep(retry_state: RetryCallState) -> None:
        state.advance()
        logger.warning(
            "transport_retry",
            attempt=state.attempt,
            max_attempts=state.max_attempts,
            backoff=retry_state.next_action.sleep if retry_state.next_action else None,
            error=repr(retry_state.outcome.exception()),
        )

    return AsyncRetrying(
        retry=retry_if_exception(classifier.is_retryable),
        stop=_stop,
        wait=_wait,
        before_sleep=_before_sleep,
        sleep=sleep,
        reraise=False,
    )
