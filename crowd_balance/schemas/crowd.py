# crowd_balance/schemas/crowd.py
from pydantic import BaseModel
from datetime import datetime
from typing import Optional


class CrowdReportIn(BaseModel):
    crowd_level: str                    # min | moderate | max — checked by the service
    reporter_id: Optional[str] = None
    timestamp: Optional[datetime] = None


class CrowdScoresOut(BaseModel):
    counts: dict[str, int]
    total: int
    dominant_level: str                 # min | moderate | max | "no data"
    percentage: int
    anomalies: int = 0

    class Config:
        from_attributes = True


class ActivityEventOut(BaseModel):
    crowd_level: str
    timestamp: datetime
    reporter_id: str

    class Config:
        from_attributes = True


class LocationActivitiesOut(BaseModel):
    location_id: int
    location_name: str
    activities: list[ActivityEventOut]
    scores: CrowdScoresOut
    last_hour_scores: CrowdScoresOut
    last_updated: Optional[datetime]


class SweepEntryOut(BaseModel):
    location_id: int
    removed: int


class SweepReportOut(BaseModel):
    status: str                         # ok | partial
    swept: list[SweepEntryOut]
    total_removed: int
    succeeded: int
    failed: int
    errors: dict[int, str]
