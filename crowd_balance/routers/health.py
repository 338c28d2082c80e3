# crowd_balance/routers/health.py
"""
System health check endpoint.
Returns status of backend + DB + expiry sweep configuration.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from sqlalchemy import text
from crowd_balance.database import get_db
from crowd_balance.config import settings
from datetime import datetime

router = APIRouter()


@router.get("/health", summary="System health check")
def health_check(db: Session = Depends(get_db)):
    result = {
        "status": "ok",
        "timestamp": datetime.utcnow().isoformat(),
        "backend": "ok",
        "database": "unknown",
        "sweep": {
            "enabled": settings.SWEEP_ENABLED,
            "interval_seconds": settings.SWEEP_INTERVAL_SECONDS,
            "retention_minutes": settings.ACTIVITY_RETENTION_MINUTES,
        },
    }

    try:
        db.execute(text("SELECT 1"))
        result["database"] = "ok"
    except Exception as e:
        result["database"] = f"error: {str(e)}"
        result["status"] = "degraded"

    return result
