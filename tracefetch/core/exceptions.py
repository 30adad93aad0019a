from __future__ import annotations


class FetchError(Exception):
    """Base exception for every failure surfaced by a user fetch."""

    error_code: str = "INTERNAL_ERROR"

    def __init__(self, message: str, detail: str | None = None) -> None:
        self.message = message
        self.detail = detail
        super().__init__(message)


class RetryableTransportError(FetchError):
    """Transient transport failure that names its own backoff."""

    error_code = "TRANSPORT_RETRYABLE"

    def __init__(self, message: str, backoff: float, detail: str | None = None) -> None:
        if backoff < 0:
            raise ValueError(f"backoff must be non-negative, got {backoff}")
        self.backoff = backoff
        super().__init__(message, detail)


class TerminalTransportError(FetchError):
    error_code = "TRANSPORT_FAILED"


class RetryExhaustedError(FetchError):
    error_code = "RETRY_EXHAUSTED"

    def __init__(self, last_error: BaseException, attempts: int) -> None:
        self.last_error = last_error
        self.attempts = attempts
        super().__init__(
            f"retries exhausted after {attempts} resends",
            detail=f"last_error={last_error!r}",
        )


class HTTPStatusError(FetchError):
    error_code = "HTTP_STATUS"

    def __init__(self, code: int, url: str | None = None) -> None:
        self.code = code
        super().__init__(
            f"HTTP failure: {code}",
            detail=f"url={url}" if url else None,
        )


class DecodeError(FetchError):
    error_code = "DECODE_FAILED"


class CancellationError(FetchError):
    error_code = "CANCELLED"
