from __future__ import annotations

import asyncio

import httpx
from pydantic import ValidationError

from tracefetch.clients.transport import RetryingTransport
from tracefetch.config import Settings
from tracefetch.core.exceptions import DecodeError, HTTPStatusError
from tracefetch.core.logging import get_logger
from tracefetch.core.tracing import SpanTracer
from tracefetch.schemas.responses import User
from tracefetch.utils.retry import RetryState

logger = get_logger(__name__)


class UserClient:
    """Fetches users by id from the upstream API, with tracing and retries."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        transport: RetryingTransport,
        tracer: SpanTracer,
        settings: Settings,
    ) -> None:
        self._client = client
        self._transport = transport
        self._tracer = tracer
        self._settings = settings

    async def get(self, user_id: int, cancel: asyncio.Event | None = None) -> User:
        """Fetch one user.

        Transport failures are retried up to ``MAX_RETRIES`` times; a non-200
        status or a body that is not ``{"id": int, "name": str}`` fails at once.
        """
        # The client only builds the request (base URL, headers, timeout); it is
        # sent through the transport directly so the call can carry its own
        # RetryState and cancel token. Client hooks, auth and redirects do not apply.
        request = self._client.build_request("GET", f"/users/{user_id}")

        with self._tracer.start_span("get_user", {"user_id": user_id}):
            state = RetryState(max_attempts=self._settings.MAX_RETRIES)
            response = await self._transport.send(request, state, cancel=cancel)
            try:
                if response.status_code != httpx.codes.OK:
                    raise HTTPStatusError(response.status_code, url=str(request.url))
                body = await self._transport.read_body(response, cancel=cancel)
            finally:
                await response.aclose()

            user = _decode_user(body)
            logger.info("user_fetched", user_id=user.id, resends=state.attempt)
            return user


def _decode_user(body: bytes) -> User:
    try:
        return User.model_validate_json(body)
    except ValidationError as exc:
        raise DecodeError(
            "response body is not a valid user",
            detail=f"errors={exc.error_count()}, body={body[:100]!r}",
        ) from exc
