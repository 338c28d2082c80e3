# crowd_balance/models/location.py
"""
Venue locations table.
One row per named location; deactivation is a soft delete (is_active=False).
Crowd scores are NOT stored here — they are always derived from activity_log_entries.
"""

from sqlalchemy import Column, Integer, String, DateTime, Boolean, CheckConstraint
from sqlalchemy.orm import relationship
from crowd_balance.database import Base


class Location(Base):
    __tablename__ = "locations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(200), unique=True, nullable=False, index=True)
    capacity = Column(Integer, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False, index=True)
    created_at = Column(DateTime, nullable=False)
    last_updated = Column(DateTime, nullable=False)

    # Arrival order (id) is authoritative for "latest"
    activity_log = relationship(
        "ActivityLogEntry",
        order_by="ActivityLogEntry.id",
        back_populates="location",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        CheckConstraint("capacity > 0", name="check_location_capacity_positive"),
    )

    def __repr__(self):
        return f"<Location {self.id} name={self.name!r} active={self.is_active}>"
