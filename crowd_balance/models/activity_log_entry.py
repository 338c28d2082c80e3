# crowd_balance/models/activity_log_entry.py
"""
Per-location crowd report log.
Each row is one immutable report. Rows are only ever INSERTed (append) or
DELETEd by timestamp predicate (expiry) — never rewritten as a whole array.
"""

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, CheckConstraint, Index
from sqlalchemy.orm import relationship
from crowd_balance.database import Base


class ActivityLogEntry(Base):
    __tablename__ = "activity_log_entries"

    id = Column(Integer, primary_key=True, autoincrement=True)
    location_id = Column(Integer, ForeignKey("locations.id", ondelete="CASCADE"), nullable=False)
    crowd_level = Column(String(20), nullable=False)     # min | moderate | max
    timestamp = Column(DateTime, nullable=False)
    reporter_id = Column(String(100), nullable=False, default="organizer")

    location = relationship("Location", back_populates="activity_log")

    __table_args__ = (
        CheckConstraint("crowd_level IN ('min', 'moderate', 'max')", name="check_crowd_level_token"),
        # Expiry deletes and window reads both filter on (location_id, timestamp)
        Index("ix_activity_log_location_time", "location_id", "timestamp"),
    )

    def __repr__(self):
        return f"<ActivityLogEntry {self.id} loc={self.location_id} level={self.crowd_level}>"
