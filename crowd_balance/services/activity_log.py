# crowd_balance/services/activity_log.py
"""
In-memory view of one location's crowd report log.

Owns the single rule for what counts as "current": an event is current iff
now - timestamp < window. The same rule drives score filtering and expiry,
so a reader's filter and the sweeper's delete can never disagree.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Iterable, Iterator, List, Optional

from crowd_balance.config import settings
from crowd_balance.services.errors import ValidationError

CROWD_LEVELS = ("min", "moderate", "max")
DEFAULT_REPORTER = "organizer"


@dataclass(frozen=True)
class ActivityEvent:
    crowd_level: str          # min | moderate | max
    timestamp: datetime       # naive UTC
    reporter_id: str = DEFAULT_REPORTER


def validate_crowd_level(level) -> str:
    """Return the level unchanged if it is one of the three wire tokens."""
    if not isinstance(level, str) or level not in CROWD_LEVELS:
        raise ValidationError(f"Invalid crowd level {level!r}. Use: min, moderate, or max")
    return level


def to_naive_utc(ts: datetime) -> datetime:
    """Timestamps are stored as naive UTC; aware inputs are converted."""
    if ts.tzinfo is not None:
        return ts.astimezone(timezone.utc).replace(tzinfo=None)
    return ts


def make_event(level, timestamp: Optional[datetime] = None,
               reporter_id: Optional[str] = None) -> ActivityEvent:
    """Validated, immutable event. Timestamp defaults to the current time."""
    return ActivityEvent(
        crowd_level=validate_crowd_level(level),
        timestamp=to_naive_utc(timestamp) if timestamp else datetime.utcnow(),
        reporter_id=reporter_id or DEFAULT_REPORTER,
    )


def expiry_cutoff(window: timedelta, now: Optional[datetime] = None) -> datetime:
    """Events at or before this instant are no longer current."""
    return (now or datetime.utcnow()) - window


def is_current(event: ActivityEvent, window: timedelta, now: datetime) -> bool:
    return now - event.timestamp < window


class EventWindow:
    """Lazy, restartable view over the events of a log that fall inside a window."""

    def __init__(self, events: List[ActivityEvent], window: timedelta, now: datetime):
        self._events = events
        self.window = window
        self.now = now

    def __iter__(self) -> Iterator[ActivityEvent]:
        return (e for e in self._events if is_current(e, self.window, self.now))


class ActivityLog:
    def __init__(self, events: Optional[Iterable[ActivityEvent]] = None,
                 retention_window: Optional[timedelta] = None):
        self._events: List[ActivityEvent] = list(events or [])
        self.retention_window = retention_window or settings.RETENTION_WINDOW

    @classmethod
    def from_entries(cls, entries, retention_window: Optional[timedelta] = None) -> "ActivityLog":
        """Build a log from ActivityLogEntry rows (already in arrival order)."""
        return cls(
            (ActivityEvent(e.crowd_level, e.timestamp, e.reporter_id) for e in entries),
            retention_window=retention_window,
        )

    def __len__(self):
        return len(self._events)

    def __iter__(self):
        return iter(list(self._events))

    def append(self, level: str, timestamp: Optional[datetime] = None,
               reporter_id: Optional[str] = None) -> ActivityEvent:
        event = make_event(level, timestamp, reporter_id)
        self._events.append(event)
        return event

    def events_within(self, window: Optional[timedelta] = None,
                      now: Optional[datetime] = None) -> EventWindow:
        """Events with now - timestamp < window. Never mutates the log."""
        return EventWindow(self._events, window or self.retention_window, now or datetime.utcnow())

    def prune(self, retention_window: Optional[timedelta] = None,
              now: Optional[datetime] = None) -> int:
        """Drop every event that is no longer current. Returns how many were removed."""
        window = retention_window or self.retention_window
        now = now or datetime.utcnow()
        kept = [e for e in self._events if is_current(e, window, now)]
        removed = len(self._events) - len(kept)
        self._events = kept
        return removed

    def latest(self) -> Optional[ActivityEvent]:
        """Most recently appended event (arrival order, not timestamp order)."""
        return self._events[-1] if self._events else None
