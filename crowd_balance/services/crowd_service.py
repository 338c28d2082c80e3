# crowd_balance/services/crowd_service.py
"""
Crowd reporting use cases — what the routers call.

Write path:  organizer report → INSERT event (+ inline prune) → fresh scores
Read path:   load log snapshot → filter by window → aggregate
Sweep path:  all locations (incl. inactive) → expiry_sweeper.sweep_all

Scores are never stored. Every read re-filters by timestamp, so correctness
does not depend on the sweep having run.
"""

import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy.orm import Session

from crowd_balance.config import settings
from crowd_balance.services import location_store
from crowd_balance.services.activity_log import ActivityEvent, ActivityLog, expiry_cutoff, make_event
from crowd_balance.services.errors import ValidationError
from crowd_balance.services.expiry_sweeper import SweepReport, sweep_all
from crowd_balance.services.score_aggregator import CrowdScores, aggregate
from crowd_balance.utils.logger import get_logger

logger = get_logger(__name__)

# Upper bound of the locations.capacity Integer column
MAX_CAPACITY = 2**31 - 1


@dataclass
class LocationOverview:
    id: int
    name: str
    capacity: int
    is_active: bool
    created_at: datetime
    last_updated: datetime
    scores: CrowdScores
    last_hour_scores: CrowdScores
    latest_event: Optional[ActivityEvent] = None


def resolve_window(window: Optional[timedelta] = None) -> timedelta:
    """
    Window override → effective window. Overrides are capped at the retention
    window: expired reports never count, even before the sweep removes them.
    """
    retention = settings.RETENTION_WINDOW
    if window is None:
        return retention
    if window <= timedelta(0):
        raise ValidationError("Window must be positive")
    return min(window, retention)


# ── Scores & events ──────────────────────────────────────────────────────────

def get_scores(db: Session, location_id: int, window: Optional[timedelta] = None,
               now: Optional[datetime] = None) -> CrowdScores:
    location_store.require_location(db, location_id)
    log = location_store.load_activity_log(db, location_id)
    return aggregate(log.events_within(resolve_window(window), now))


def record_event(db: Session, location_id: int, crowd_level: str,
                 reporter_id: Optional[str] = None, timestamp: Optional[datetime] = None,
                 now: Optional[datetime] = None) -> CrowdScores:
    """Append one report to an active location and return fresh default-window scores."""
    now = now or datetime.utcnow()
    try:
        event = make_event(crowd_level, timestamp or now, reporter_id)
    except ValidationError:
        logger.warning(f"[CROWD] Rejected level {crowd_level!r} for location {location_id}")
        raise
    if event.timestamp - now > settings.MAX_CLOCK_SKEW:
        logger.warning(f"[CROWD] Rejected future timestamp {event.timestamp} for location {location_id}")
        raise ValidationError(f"Report timestamp {event.timestamp.isoformat()} is in the future")

    location = location_store.require_location(db, location_id, active=True)
    name = location.name
    cutoff = expiry_cutoff(settings.RETENTION_WINDOW, now) if settings.INLINE_PRUNE_ON_WRITE else None
    pruned = location_store.append_event(db, location_id, event, now=now, prune_cutoff=cutoff)

    scores = get_scores(db, location_id, now=now)
    logger.info(
        f"[CROWD] {name}: '{event.crowd_level}' from {event.reporter_id} → "
        f"{scores.dominant_level} {scores.percentage}% of {scores.total}"
        + (f" (pruned {pruned} expired)" if pruned else "")
    )
    return scores


def list_recent_events(db: Session, location_id: int, window: Optional[timedelta] = None,
                       now: Optional[datetime] = None, limit: Optional[int] = None) -> List[ActivityEvent]:
    """Events inside the window, newest (last appended) first."""
    location_store.require_location(db, location_id)
    log = location_store.load_activity_log(db, location_id)
    events = list(log.events_within(resolve_window(window), now))
    events.reverse()
    return events[:limit] if limit else events


def sweep_now(db: Session, retention_window: Optional[timedelta] = None,
              now: Optional[datetime] = None) -> SweepReport:
    """Manual trigger with the same contract as the scheduled sweep."""
    if retention_window is not None and retention_window <= timedelta(0):
        raise ValidationError("Retention window must be positive")
    locations = location_store.list_all_locations(db)
    return sweep_all(db, locations, retention_window or settings.RETENTION_WINDOW, now)


# ── Location management (panel) ──────────────────────────────────────────────

def _clean_name(name) -> str:
    if not isinstance(name, str) or not name.strip():
        raise ValidationError("Location name is required")
    return name.strip()


def _check_capacity(capacity) -> int:
    if isinstance(capacity, bool) or not isinstance(capacity, (int, float)):
        raise ValidationError("Capacity must be a positive number")
    if (isinstance(capacity, float) and not math.isfinite(capacity)) or capacity <= 0:
        raise ValidationError("Capacity must be a positive number")
    if capacity > MAX_CAPACITY:
        raise ValidationError(f"Capacity must be at most {MAX_CAPACITY}")
    if capacity != int(capacity):
        raise ValidationError("Capacity must be a whole number")
    return int(capacity)


def add_location(db: Session, name, capacity, now: Optional[datetime] = None):
    location = location_store.create_location(db, _clean_name(name), _check_capacity(capacity), now=now)
    logger.info(f"[PANEL] Added location '{location.name}' (id={location.id}, capacity={location.capacity})")
    return location


def update_location(db: Session, location_id: int, name=None, capacity=None,
                    is_active: Optional[bool] = None, now: Optional[datetime] = None):
    location = location_store.require_location(db, location_id)
    if name is not None:
        location.name = _clean_name(name)
    if capacity is not None:
        location.capacity = _check_capacity(capacity)
    if is_active is not None:
        location.is_active = bool(is_active)
    location = location_store.save_location(db, location, now=now)
    logger.info(f"[PANEL] Updated location {location_id}")
    return location


def deactivate_location(db: Session, location_id: int, now: Optional[datetime] = None):
    """Soft delete — the row and its log stay; the sweep keeps pruning it."""
    location = location_store.require_location(db, location_id)
    location.is_active = False
    location = location_store.save_location(db, location, now=now)
    logger.info(f"[PANEL] Deactivated location {location_id} ('{location.name}')")
    return location


def _overview(db: Session, location, now: Optional[datetime] = None) -> LocationOverview:
    now = now or datetime.utcnow()
    log = location_store.load_activity_log(db, location.id)
    current = list(log.events_within(resolve_window(), now))
    return LocationOverview(
        id=location.id,
        name=location.name,
        capacity=location.capacity,
        is_active=location.is_active,
        created_at=location.created_at,
        last_updated=location.last_updated,
        scores=aggregate(current),
        last_hour_scores=aggregate(log.events_within(resolve_window(settings.LAST_HOURS), now)),
        latest_event=ActivityLog(current).latest(),
    )


def get_location_overview(db: Session, location_id: int,
                          now: Optional[datetime] = None) -> LocationOverview:
    return _overview(db, location_store.require_location(db, location_id), now)


def list_location_overviews(db: Session, now: Optional[datetime] = None) -> List[LocationOverview]:
    """Active locations only, each with all-retained and last-hours scores."""
    return [_overview(db, loc, now) for loc in location_store.list_active_locations(db)]
