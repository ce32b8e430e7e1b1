from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Request

from billshare.handlers.envelope import success

health_router = APIRouter(prefix="/health", tags=["health"])


@health_router.get("")
async def health(request: Request) -> dict[str, Any]:
    settings = request.app.state.settings
    return success(
        {
            "status": "ok",
            "environment": settings.environment,
            "storage": "postgres" if settings.database_url else "memory",
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
    )
