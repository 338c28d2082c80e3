# crowd_balance/routers/crowd.py
"""
Crowd reports and derived scores.
PATCH /locations/{id}/crowd       — organizer reports min | moderate | max
GET   /locations/{id}/scores      — derived scores, optional window_minutes
GET   /locations/{id}/activities  — newest-first report feed + both score sets
"""

from datetime import timedelta
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from crowd_balance.config import settings
from crowd_balance.database import get_db
from crowd_balance.schemas.crowd import CrowdReportIn, CrowdScoresOut, LocationActivitiesOut
from crowd_balance.services import crowd_service

router = APIRouter()


def _window(window_minutes: Optional[int]) -> Optional[timedelta]:
    if window_minutes is None:
        return None
    # Capped at retention before building the timedelta
    return timedelta(minutes=min(window_minutes, settings.ACTIVITY_RETENTION_MINUTES))


@router.patch("/locations/{location_id}/crowd", response_model=CrowdScoresOut,
              summary="Report the current crowd level")
def report_crowd_level(location_id: int, body: CrowdReportIn, db: Session = Depends(get_db)):
    """Appends one report and returns freshly computed scores for the retention window."""
    return crowd_service.record_event(
        db, location_id, body.crowd_level, reporter_id=body.reporter_id, timestamp=body.timestamp,
    )


@router.get("/locations/{location_id}/scores", response_model=CrowdScoresOut)
def get_scores(location_id: int, window_minutes: Optional[int] = Query(None, gt=0),
               db: Session = Depends(get_db)):
    """Counts + dominant level. window_minutes narrows (never widens) the retention window."""
    return crowd_service.get_scores(db, location_id, _window(window_minutes))


@router.get("/locations/{location_id}/activities", response_model=LocationActivitiesOut)
def get_activities(location_id: int, window_minutes: Optional[int] = Query(None, gt=0),
                   limit: int = Query(settings.RECENT_EVENTS_LIMIT, gt=0),
                   db: Session = Depends(get_db)):
    overview = crowd_service.get_location_overview(db, location_id)
    events = crowd_service.list_recent_events(db, location_id, _window(window_minutes), limit=limit)
    return {
        "location_id": overview.id,
        "location_name": overview.name,
        "activities": events,
        "scores": overview.scores,
        "last_hour_scores": overview.last_hour_scores,
        "last_updated": overview.last_updated,
    }
