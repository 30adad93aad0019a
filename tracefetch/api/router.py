from __future__ import annotations

from fastapi import APIRouter

from tracefetch.api.v1 import health, users

api_router = APIRouter()
api_router.include_router(health.router, tags=["health"])
api_router.include_router(users.router, tags=["users"])
