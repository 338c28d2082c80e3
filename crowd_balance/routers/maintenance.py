# crowd_balance/routers/maintenance.py
"""Manual expiry sweep — same contract as the scheduled one."""

from dataclasses import asdict
from datetime import timedelta
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from crowd_balance.config import settings
from crowd_balance.database import get_db
from crowd_balance.schemas.crowd import SweepReportOut
from crowd_balance.services import crowd_service

router = APIRouter()


@router.post("/maintenance/sweep", response_model=SweepReportOut, summary="Prune expired reports now")
def sweep(retention_minutes: Optional[int] = Query(None, gt=0, le=settings.ACTIVITY_RETENTION_MINUTES),
          db: Session = Depends(get_db)):
    """
    Per-location failures do not abort the sweep; they are listed in `errors`
    and the status is "partial".
    """
    window = timedelta(minutes=retention_minutes) if retention_minutes else None
    report = crowd_service.sweep_now(db, window)
    return {"status": "partial" if report.partial_failure else "ok", **asdict(report)}
