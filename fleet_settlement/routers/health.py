# fleet_settlement/routers/health.py
"""
System health check endpoint.
Returns status of backend + DB + scheduler.
"""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session
from sqlalchemy import text
from fleet_settlement.database import get_db
from datetime import datetime

router = APIRouter()


@router.get("/health", summary="System health check")
def health_check(request: Request, db: Session = Depends(get_db)):
    """
    Returns:
    - Backend status
    - Database connectivity
    - Scheduler state and per-job status
    """
    result = {
        "status": "ok",
        "timestamp": datetime.utcnow().isoformat(),
        "backend": "ok",
        "database": "unknown",
        "scheduler": "disabled",
        "tasks": {},
    }

    try:
        db.execute(text("SELECT 1"))
        result["database"] = "ok"
    except Exception as e:
        result["database"] = f"error: {str(e)}"
        result["status"] = "degraded"

    scheduler = getattr(request.app.state, "scheduler", None)
    if scheduler is not None:
        result["scheduler"] = "running" if scheduler.is_running else "stopped"
        for task in scheduler.get_task_status():
            result["tasks"][task.name] = task.status
            if task.status == "error":
                result["status"] = "degraded"

    return result
