from __future__ import annotations

import httpx

from tracefetch.clients.transport import RetryingTransport
from tracefetch.config import Settings
from tracefetch.core.tracing import SpanTracer
from tracefetch.utils.retry import BackoffClassifier


def create_transport(
    settings: Settings,
    tracer: SpanTracer,
    inner: httpx.AsyncBaseTransport | None = None,
) -> RetryingTransport:
    """Shared retrying transport; its connection pool is safe for concurrent use."""
    # Resends are handled by RetryingTransport, so the pool itself never retries.
    inner = inner or httpx.AsyncHTTPTransport(verify=settings.VERIFY_SSL)
    return RetryingTransport(
        inner,
        classifier=BackoffClassifier(default_backoff=settings.BACKOFF_SECONDS),
        tracer=tracer,
        max_attempts=settings.MAX_RETRIES,
    )


def create_http_client(settings: Settings, transport: RetryingTransport) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        transport=transport,
        base_url=settings.USERS_BASE_URL,
        timeout=httpx.Timeout(settings.REQUEST_TIMEOUT),
        headers={"User-Agent": settings.USER_AGENT, "Accept": "application/json"},
    )


async def close_http_client(client: httpx.AsyncClient) -> None:
    await client.aclose()
