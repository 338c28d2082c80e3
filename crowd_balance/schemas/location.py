# crowd_balance/schemas/location.py
from pydantic import BaseModel
from datetime import datetime
from typing import Optional

from crowd_balance.schemas.crowd import CrowdScoresOut, ActivityEventOut


class LocationCreate(BaseModel):
    name: str
    capacity: float


class LocationUpdate(BaseModel):
    name: Optional[str] = None
    capacity: Optional[float] = None
    is_active: Optional[bool] = None


class LocationOut(BaseModel):
    id: int
    name: str
    capacity: int
    is_active: bool
    created_at: datetime
    last_updated: datetime

    class Config:
        from_attributes = True


class LocationOverviewOut(LocationOut):
    scores: CrowdScoresOut
    last_hour_scores: CrowdScoresOut
    latest_event: Optional[ActivityEventOut] = None
