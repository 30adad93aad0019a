from __future__ import annotations

import httpx
from fastapi import Depends, Request

from tracefetch.clients.transport import RetryingTransport
from tracefetch.config import Settings
from tracefetch.core.tracing import SpanTracer
from tracefetch.services.user_client import UserClient


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_tracer(request: Request) -> SpanTracer:
    return request.app.state.tracer


def get_transport(request: Request) -> RetryingTransport:
    return request.app.state.transport


def get_http_client(request: Request) -> httpx.AsyncClient:
    return request.app.state.http_client


def get_user_client(
    client: httpx.AsyncClient = Depends(get_http_client),
    transport: RetryingTransport = Depends(get_transport),
    tracer: SpanTracer = Depends(get_tracer),
    settings: Settings = Depends(get_settings),
) -> UserClient:
    return UserClient(client=client, transport=transport, tracer=tracer, settings=settings)
