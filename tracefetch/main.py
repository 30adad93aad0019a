from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from tracefetch.api.router import api_router
from tracefetch.clients.http_client import close_http_client, create_http_client, create_transport
from tracefetch.config import Settings
from tracefetch.core.exceptions import FetchError
from tracefetch.core.logging import setup_logging
from tracefetch.core.middleware import fetch_exception_handler
from tracefetch.core.tracing import SpanTracer, configure_tracing


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    settings = Settings()
    setup_logging(
        log_level=settings.LOG_LEVEL,
        debug=settings.DEBUG,
        service_name=settings.SERVICE_NAME,
    )
    tracer_provider = configure_tracing(settings)
    tracer = SpanTracer(tracer_provider)
    transport = create_transport(settings, tracer)

    app.state.settings = settings
    app.state.tracer = tracer
    app.state.transport = transport
    app.state.http_client = create_http_client(settings, transport)
    yield
    await close_http_client(app.state.http_client)
    tracer_provider.shutdown()


def create_app() -> FastAPI:
    app = FastAPI(
        title="Traced User Fetch API",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.add_exception_handler(FetchError, fetch_exception_handler)
    app.include_router(api_router)
    return app


app = create_app()
