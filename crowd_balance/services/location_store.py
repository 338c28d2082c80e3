# crowd_balance/services/location_store.py
"""
Persistence boundary for locations and their activity logs.

Mutations of a log are single statements, never load-mutate-save:
  - append  → INSERT one activity_log_entries row (+ UPDATE locations.last_updated)
  - prune   → DELETE ... WHERE location_id = :id AND timestamp <= :cutoff
A report appended after someone else loaded the log is newer than any cutoff
they compute, so a concurrent prune can never remove it.

Every commit failure is rolled back and re-raised as PersistenceError.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from crowd_balance.models.activity_log_entry import ActivityLogEntry
from crowd_balance.models.location import Location
from crowd_balance.services.activity_log import ActivityEvent, ActivityLog
from crowd_balance.services.errors import NotFoundError, PersistenceError, ValidationError
from crowd_balance.utils.logger import get_logger

logger = get_logger(__name__)


def _commit(db: Session, action: str):
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error(f"[STORE] Commit failed while trying to {action}: {exc}", exc_info=True)
        raise PersistenceError(f"Failed to {action}") from exc


# ── Reads ────────────────────────────────────────────────────────────────────

def get_location(db: Session, location_id: int) -> Optional[Location]:
    return db.query(Location).filter(Location.id == location_id).first()


def require_location(db: Session, location_id: int, active: bool = False) -> Location:
    """Load a location or raise NotFoundError. With active=True, soft-deleted ones count as missing."""
    location = get_location(db, location_id)
    if location is None:
        raise NotFoundError(location_id)
    if active and not location.is_active:
        raise NotFoundError(location_id, "is inactive")
    return location


def list_active_locations(db: Session):
    return (
        db.query(Location)
        .filter(Location.is_active == True)  # noqa: E712
        .order_by(Location.id)
        .all()
    )


def list_all_locations(db: Session):
    """Every location, including inactive ones — used by the expiry sweep."""
    return db.query(Location).order_by(Location.id).all()


def load_activity_log(db: Session, location_id: int, retention_window=None) -> ActivityLog:
    """Snapshot of a location's log in arrival order."""
    entries = (
        db.query(ActivityLogEntry)
        .filter(ActivityLogEntry.location_id == location_id)
        .order_by(ActivityLogEntry.id)
        .all()
    )
    return ActivityLog.from_entries(entries, retention_window=retention_window)


# ── Log mutations ────────────────────────────────────────────────────────────

def _delete_expired(db: Session, location_id: int, cutoff: datetime) -> int:
    return (
        db.query(ActivityLogEntry)
        .filter(ActivityLogEntry.location_id == location_id,
                ActivityLogEntry.timestamp <= cutoff)
        .delete(synchronize_session=False)
    )


def append_event(db: Session, location_id: int, event: ActivityEvent,
                 now: Optional[datetime] = None, prune_cutoff: Optional[datetime] = None) -> int:
    """
    Insert one report and bump last_updated in a single commit.
    If prune_cutoff is given, expired rows are deleted in the same commit.
    Returns the number of rows pruned.
    """
    now = now or datetime.utcnow()
    try:
        db.add(ActivityLogEntry(location_id=location_id, crowd_level=event.crowd_level,
                                timestamp=event.timestamp, reporter_id=event.reporter_id))
        db.query(Location).filter(Location.id == location_id).update(
            {Location.last_updated: now}, synchronize_session=False)
        pruned = _delete_expired(db, location_id, prune_cutoff) if prune_cutoff else 0
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error(f"[STORE] Append failed for location {location_id}: {exc}", exc_info=True)
        raise PersistenceError(f"Failed to record report for location {location_id}") from exc
    _commit(db, f"record report for location {location_id}")
    return pruned


def prune_events(db: Session, location_id: int, cutoff: datetime,
                 now: Optional[datetime] = None) -> int:
    """Delete rows at or before cutoff. Returns the number of rows removed."""
    try:
        removed = _delete_expired(db, location_id, cutoff)
        if removed:
            db.query(Location).filter(Location.id == location_id).update(
                {Location.last_updated: now or datetime.utcnow()}, synchronize_session=False)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error(f"[STORE] Prune failed for location {location_id}: {exc}", exc_info=True)
        raise PersistenceError(f"Failed to prune location {location_id}") from exc
    _commit(db, f"prune location {location_id}")
    return removed


# ── Location mutations ───────────────────────────────────────────────────────

def create_location(db: Session, name: str, capacity: int,
                    now: Optional[datetime] = None) -> Location:
    if db.query(Location).filter(Location.name == name).first():
        raise ValidationError(f"Location name '{name}' already exists")
    now = now or datetime.utcnow()
    location = Location(name=name, capacity=capacity, is_active=True,
                        created_at=now, last_updated=now)
    db.add(location)
    try:
        db.commit()
    except IntegrityError as exc:
        # Lost a race with another insert of the same name
        db.rollback()
        raise ValidationError(f"Location name '{name}' already exists") from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error(f"[STORE] Could not create location '{name}': {exc}", exc_info=True)
        raise PersistenceError(f"Failed to create location '{name}'") from exc
    db.refresh(location)
    return location


def save_location(db: Session, location: Location, now: Optional[datetime] = None) -> Location:
    """Commit attribute changes made to a loaded location (name, capacity, is_active)."""
    location_id = location.id
    location.last_updated = now or datetime.utcnow()
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ValidationError("Location name already exists") from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error(f"[STORE] Could not update location {location_id}: {exc}", exc_info=True)
        raise PersistenceError(f"Failed to update location {location_id}") from exc
    db.refresh(location)
    return location
