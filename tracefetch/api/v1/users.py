from __future__ import annotations

import asyncio

from fastapi import APIRouter, Depends, Query

from tracefetch.api.deps import get_settings, get_user_client
from tracefetch.config import Settings
from tracefetch.schemas.responses import User
from tracefetch.services.user_client import UserClient

router = APIRouter()


@router.get("/get-user", response_model=User)
async def get_user(
    user_id: int = Query(..., alias="id", description="User id"),
    user_client: UserClient = Depends(get_user_client),
    settings: Settings = Depends(get_settings),
) -> User:
    # Request-scoped cancellation: fires once the fetch deadline passes.
    cancel = asyncio.Event()
    deadline = asyncio.get_running_loop().call_later(settings.FETCH_DEADLINE_SECONDS, cancel.set)
    try:
        return await user_client.get(user_id, cancel=cancel)
    finally:
        deadline.cancel()
