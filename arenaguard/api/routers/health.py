"""
ArenaGuard - Health Router
==========================

Health check and readiness endpoints.
"""

import sqlite3
import time

from fastapi import APIRouter

from arenaguard import __version__
from arenaguard.core.database import get_db
from arenaguard.core.logger import logger
from arenaguard.api.models.base import APIResponse, HealthResponse


router = APIRouter(prefix="/health", tags=["Health"])

# Track startup time
_start_time = time.time()


@router.get("", response_model=APIResponse[HealthResponse])
async def health_check() -> APIResponse[HealthResponse]:
    """
    Service health including database reachability.

    Returns "degraded" rather than failing when the database does not answer.
    """
    db_connected = True
    try:
        get_db().fetchone("SELECT 1")
    except sqlite3.Error as e:
        db_connected = False
        logger.warning("Health Check Database Error", [("Error", str(e)[:100])])

    health = HealthResponse(
        status="healthy" if db_connected else "degraded",
        version=__version__,
        database=db_connected,
        uptime_seconds=int(time.time() - _start_time),
    )
    return APIResponse(success=db_connected, data=health)


__all__ = ["router"]
