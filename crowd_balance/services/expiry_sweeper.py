# crowd_balance/services/expiry_sweeper.py
"""
Expiry sweep — physically deletes crowd reports that fell out of the rolling window.

sweep_all() is a plain function over a list of locations so it can be unit
tested without a timer. run_periodically() is the injectable runner used at
startup; it calls the sweep in a worker thread with a fresh DB session.

Each location is pruned and committed on its own: a failure is rolled back,
logged, and recorded in the report, and the sweep moves on to the next one.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional

from sqlalchemy.orm import Session

from crowd_balance.config import settings
from crowd_balance.services.activity_log import expiry_cutoff
from crowd_balance.services.location_store import load_activity_log, prune_events
from crowd_balance.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class PartialSweepFailure:
    succeeded: int
    failed: int
    errors: Dict[int, str]      # location_id → error detail


@dataclass
class SweepReport:
    swept: List[Dict[str, int]] = field(default_factory=list)   # [{location_id, removed}]
    total_removed: int = 0
    succeeded: int = 0
    failed: int = 0
    errors: Dict[int, str] = field(default_factory=dict)

    @property
    def partial_failure(self) -> Optional[PartialSweepFailure]:
        if not self.failed:
            return None
        return PartialSweepFailure(self.succeeded, self.failed, dict(self.errors))


def sweep_all(db: Session, locations, retention_window: Optional[timedelta] = None,
              now: Optional[datetime] = None) -> SweepReport:
    window = retention_window or settings.RETENTION_WINDOW
    now = now or datetime.utcnow()
    cutoff = expiry_cutoff(window, now)
    report = SweepReport()

    # Resolve ids up front — a rollback expires ORM instances
    targets = [(loc.id, loc.name) for loc in locations]

    for location_id, name in targets:
        try:
            log = load_activity_log(db, location_id, window)
            if log.prune(window, now) > 0:
                # Delete by predicate, not by rewriting the snapshot we just read
                removed = prune_events(db, location_id, cutoff, now)
                if removed:
                    report.swept.append({"location_id": location_id, "removed": removed})
                    report.total_removed += removed
                    logger.info(f"[SWEEP] {name}: removed {removed} expired report(s), kept {len(log)}")
            report.succeeded += 1
        except Exception as e:
            db.rollback()
            report.failed += 1
            report.errors[location_id] = str(e)
            logger.error(f"[SWEEP] {name} (id={location_id}) failed: {e}", exc_info=True)

    if report.failed:
        logger.warning(
            f"[SWEEP] Partial failure: {report.succeeded} ok, {report.failed} failed "
            f"(locations {sorted(report.errors)}), {report.total_removed} report(s) removed"
        )
    else:
        logger.info(f"✅ Sweep complete. {report.total_removed} expired report(s) removed "
                    f"across {report.succeeded} location(s)")
    return report


def run_scheduled_sweep(session_factory: Optional[Callable[[], Session]] = None) -> SweepReport:
    """One sweep cycle with its own session. Called from the periodic runner."""
    from crowd_balance.database import SessionLocal
    from crowd_balance.services.crowd_service import sweep_now

    db = (session_factory or SessionLocal)()
    try:
        return sweep_now(db)
    finally:
        db.close()


async def run_periodically(task: Callable[[], object], interval_seconds: float,
                           max_runs: Optional[int] = None):
    """
    Run a blocking task in a worker thread every interval_seconds.
    Errors are logged and never stop the loop. max_runs bounds the loop (tests).
    """
    runs = 0
    while max_runs is None or runs < max_runs:
        try:
            await asyncio.to_thread(task)
        except Exception as e:
            logger.error(f"❌ Periodic task {getattr(task, '__name__', task)} failed: {e}", exc_info=True)
        runs += 1
        if max_runs is None or runs < max_runs:
            await asyncio.sleep(interval_seconds)


async def start_sweep_loop(interval_seconds: Optional[int] = None):
    """Launch the expiry sweep loop. Called once at backend startup."""
    interval = interval_seconds or settings.SWEEP_INTERVAL_SECONDS
    logger.info(f"🧹 Expiry sweep every {interval}s "
                f"(retention {settings.ACTIVITY_RETENTION_MINUTES} min)")
    await run_periodically(run_scheduled_sweep, interval)
