"""
Health check endpoint.

GET /health: checks MongoDB connectivity and the notification worker.
Rules:
- MongoDB failure → "unhealthy" (503), accounts cannot be read or written.
- Notification worker stopped or missing → "degraded" (200); account
  operations still work, emails just do not go out.
"""

from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check(request: Request) -> JSONResponse:
    checks: dict[str, str] = {}
    overall = "healthy"

    try:
        db = request.app.state.db
        await db.client.admin.command("ping")
        checks["mongodb"] = "ok"
    except Exception:
        checks["mongodb"] = "error"
        overall = "unhealthy"

    notifier = getattr(request.app.state, "notifier", None)
    pending = 0
    if notifier is None:
        checks["notifications"] = "not_configured"
        if overall == "healthy":
            overall = "degraded"
    elif not notifier.running:
        checks["notifications"] = "stopped"
        pending = notifier.pending
        if overall == "healthy":
            overall = "degraded"
    else:
        checks["notifications"] = "ok"
        pending = notifier.pending

    status_code = 503 if overall == "unhealthy" else 200
    return JSONResponse(
        status_code=status_code,
        content={
            "status": overall,
            "checks": checks,
            "notifications_pending": pending,
        },
    )
