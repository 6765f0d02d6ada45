"""
Health Router
Liveness and readiness probes.

Endpoints:
- /healthz - Basic liveness check (is the process running?)
- /readyz - Readiness check (can the registry reach its database?)
"""

import asyncio
import time
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text

from app.core.config import Settings, get_settings
from app.core.database import get_db_session
from app.services.ledger_simulator import get_confirmation_scheduler

router = APIRouter(tags=["Health"])

# Track startup time for uptime calculation
_start_time = time.time()


@router.get("/healthz")
async def health_check():
    """
    Liveness probe - is the app process running?
    Returns 200 if the process is alive.
    """
    return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}


@router.get("/readyz")
async def readiness_check(settings: Settings = Depends(get_settings)):
    """
    Readiness check - is the app ready to serve traffic?
    Returns 503 when the database is unreachable.
    """
    checks = {}
    details = {}
    start = time.perf_counter()

    # Check database connectivity with timeout
    try:
        db_start = time.perf_counter()
        async with get_db_session() as session:
            await asyncio.wait_for(session.execute(text("SELECT 1")), timeout=5.0)
        checks["database"] = True
        details["database_latency_ms"] = round((time.perf_counter() - db_start) * 1000, 2)
    except asyncio.TimeoutError:
        checks["database"] = False
        details["database_error"] = "Connection timeout (5s)"
    except Exception as e:
        checks["database"] = False
        details["database_error"] = str(e)

    details["scheduled_confirmations"] = len(get_confirmation_scheduler().scheduled_ids)
    details["check_duration_ms"] = round((time.perf_counter() - start) * 1000, 2)

    ready = checks["database"]
    return JSONResponse(
        status_code=200 if ready else 503,
        content={
            "status": "ready" if ready else "degraded",
            "version": settings.app_version,
            "checks": checks,
            "details": details,
            "uptime_seconds": round(time.time() - _start_time, 2),
            "timestamp": datetime.now(timezone.utc).isoformat(),
        },
    )
