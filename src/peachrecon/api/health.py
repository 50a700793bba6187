"""
Health check endpoint for monitoring and orchestration.

Used by container health checks and the uptime monitor. Always returns 200;
a failing dependency marks the service "degraded" instead.
"""

import time
from datetime import datetime
from typing import Any

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from peachrecon.core.db import get_db

router = APIRouter(tags=["health"])

# Set in lifespan
_app_start_time: datetime | None = None


def set_app_start_time(start_time: datetime) -> None:
    """Called by lifespan to track when app started."""
    global _app_start_time
    _app_start_time = start_time


def get_uptime_seconds() -> int:
    """Seconds since app start (0 before startup)."""
    if _app_start_time is None:
        return 0
    return int((datetime.now() - _app_start_time).total_seconds())


async def check_database(db: AsyncSession) -> dict[str, Any]:
    """Returns {"status": "ok"|"down", "response_time_ms": N, "error": str (if down)}."""
    start = time.perf_counter()
    try:
        await db.execute(text("SELECT 1"))
    except Exception as e:
        return {
            "status": "down",
            "response_time_ms": int((time.perf_counter() - start) * 1000),
            "error": type(e).__name__,
        }
    return {
        "status": "ok",
        "response_time_ms": int((time.perf_counter() - start) * 1000),
    }


@router.get("/health", status_code=status.HTTP_200_OK, summary="Service health")
async def health_check(db: AsyncSession = Depends(get_db)) -> JSONResponse:
    """Report uptime and database connectivity."""
    db_check = await check_database(db)
    return JSONResponse(
        content={
            "status": "ok" if db_check["status"] == "ok" else "degraded",
            "uptime_seconds": get_uptime_seconds(),
            "checks": {"database": db_check},
        },
        status_code=status.HTTP_200_OK,
    )
