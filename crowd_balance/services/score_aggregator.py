# crowd_balance/services/score_aggregator.py
"""
Turns a set of crowd reports into counts and a dominant level.

Dominant level precedence (first match wins, biased toward flagging crowding):
  total == 0                       → "no data"
  max >= moderate and max >= min   → "max"
  moderate >= min                  → "moderate"
  otherwise                        → "min"
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable

from crowd_balance.services.activity_log import CROWD_LEVELS, ActivityEvent
from crowd_balance.utils.logger import get_logger

logger = get_logger(__name__)

NO_DATA = "no data"


@dataclass(frozen=True)
class CrowdScores:
    counts: Dict[str, int] = field(default_factory=lambda: {level: 0 for level in CROWD_LEVELS})
    total: int = 0
    dominant_level: str = NO_DATA
    percentage: int = 0
    anomalies: int = 0       # events with an unrecognised level, excluded from counts


def dominant_level(counts: Dict[str, int]) -> str:
    lo, mid, hi = counts["min"], counts["moderate"], counts["max"]
    if lo + mid + hi == 0:
        return NO_DATA
    if hi >= mid and hi >= lo:
        return "max"
    if mid >= lo:
        return "moderate"
    return "min"


def _round_half_up_percent(part: int, total: int) -> int:
    # Integer form of floor(part / total * 100 + 0.5)
    return (200 * part + total) // (2 * total)


def aggregate(events: Iterable[ActivityEvent]) -> CrowdScores:
    """Deterministic, order-independent, side-effect free."""
    counts = {level: 0 for level in CROWD_LEVELS}
    anomalies = 0
    for event in events:
        if event.crowd_level in counts:
            counts[event.crowd_level] += 1
        else:
            anomalies += 1

    if anomalies:
        logger.warning(f"[SCORES] Ignored {anomalies} event(s) with unrecognised crowd level")

    total = counts["min"] + counts["moderate"] + counts["max"]
    dominant = dominant_level(counts)
    percentage = _round_half_up_percent(counts[dominant], total) if total else 0
    return CrowdScores(counts=counts, total=total, dominant_level=dominant,
                       percentage=percentage, anomalies=anomalies)
