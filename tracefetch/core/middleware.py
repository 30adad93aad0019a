from __future__ import annotations

from fastapi import Request
from fastapi.responses import PlainTextResponse

from tracefetch.core.exceptions import FetchError
from tracefetch.core.logging import get_logger

logger = get_logger(__name__)


async def fetch_exception_handler(request: Request, exc: FetchError) -> PlainTextResponse:
    logger.error(
        "fetch_error",
        error_code=exc.error_code,
        message=exc.message,
        detail=exc.detail,
        path=request.url.path,
    )
    return PlainTextResponse(exc.message, status_code=500)
