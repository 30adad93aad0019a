from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, TypeVar

import httpx
from opentelemetry.propagate import inject
from tenacity import RetryError

from tracefetch.core.exceptions import (
    CancellationError,
    FetchError,
    RetryExhaustedError,
    TerminalTransportError,
)
from tracefetch.core.logging import get_logger
from tracefetch.core.tracing import SpanTracer
from tracefetch.utils.retry import BackoffClassifier, RetryState, Terminal, build_retrying

logger = get_logger(__name__)

T = TypeVar("T")


class RetryingTransport(httpx.AsyncBaseTransport):
    """Decorates an httpx transport with tracing and bounded resends.

    Every logical request gets one ``HTTP <method>`` span. Only failures
    the classifier marks retryable are resent; any response, whatever its
    status code, is returned to the caller as-is.
    """

    def __init__(
        self,
        inner: httpx.AsyncBaseTransport,
        classifier: BackoffClassifier,
        tracer: SpanTracer,
        max_attempts: int = 3,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._inner = inner
        self._classifier = classifier
        self._tracer = tracer
        self._max_attempts = max_attempts
        self._sleep = sleep

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        return await self.send(request, RetryState(max_attempts=self._max_attempts))

    async def send(
        self,
        request: httpx.Request,
        state: RetryState,
        cancel: asyncio.Event | None = None,
    ) -> httpx.Response:
        attributes = {"http.request.method": request.method, "url.full": str(request.url)}
        with self._tracer.start_span(f"HTTP {request.method}", attributes) as span:
            try:
                response = await self._send_with_retries(request, state, cancel)
            finally:
                span.set_attribute("http.request.resend_count", state.attempt)
            span.set_attribute("http.response.status_code", response.status_code)
            return response

    async def read_body(
        self,
        response: httpx.Response,
        cancel: asyncio.Event | None = None,
    ) -> bytes:
        """Read a response body sent by ``send``, honouring ``cancel``.

        The body arrives after ``send`` returns, so a failure here is never
        resent; it surfaces as ``TerminalTransportError``.
        """
        try:
            return await _unless_cancelled(response.aread(), cancel, during="body read")
        except (httpx.HTTPError, OSError) as exc:
            logger.warning("transport_body_read_failed", error=repr(exc))
            raise TerminalTransportError(f"response body read failed: {exc}") from exc

    async def aclose(self) -> None:
        await self._inner.aclose()

    async def _send_with_retries(
        self,
        request: httpx.Request,
        state: RetryState,
        cancel: asyncio.Event | None,
    ) -> httpx.Response:
        async def pause(seconds: float) -> None:
            await _unless_cancelled(self._sleep(seconds), cancel, during="backoff")

        try:
            async for attempt in build_retrying(self._classifier, state, sleep=pause):
                with attempt:
                    return await _unless_cancelled(
                        self._inner.handle_async_request(_prepare_attempt(request)),
                        cancel,
                        during="send",
                    )
        except RetryError as exc:
            last_error = exc.last_attempt.exception()
            logger.error(
                "transport_retry_exhausted",
                url=str(request.url),
                attempts=state.attempt,
                error=repr(last_error),
            )
            raise RetryExhaustedError(last_error=last_error, attempts=state.attempt) from last_error
        except FetchError:
            raise
        except (httpx.HTTPError, OSError) as exc:
            verdict = self._classifier.classify(exc)
            message = verdict.message if isinstance(verdict, Terminal) else str(exc)
            logger.warning("transport_terminal_error", url=str(request.url), error=message)
            raise TerminalTransportError(message, detail=f"url={request.url}") from exc
        raise AssertionError("unreachable")  # pragma: no cover


def _prepare_attempt(request: httpx.Request) -> httpx.Request:
    """Copy the request for one attempt, carrying the current trace context."""
    headers = httpx.Headers(request.headers)
    inject(headers)
    return httpx.Request(
        request.method,
        request.url,
        headers=headers,
        stream=request.stream,
        extensions=dict(request.extensions),
    )


async def _unless_cancelled(
    awaitable: Awaitable[T],
    cancel: asyncio.Event | None,
    during: str,
) -> T:
    """Await ``awaitable`` unless ``cancel`` fires first."""
    if cancel is None:
        return await awaitable
    if cancel.is_set():
        if asyncio.iscoroutine(awaitable):
            awaitable.close()
        raise CancellationError(f"request cancelled before {during}")

    work = asyncio.ensure_future(awaitable)
    waiter = asyncio.ensure_future(cancel.wait())
    try:
        await asyncio.wait({work, waiter}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        waiter.cancel()
        if not work.done():
            work.cancel()
            await asyncio.wait({work})

    if work.cancelled():
        raise CancellationError(f"request cancelled during {during}")
    return work.result()
