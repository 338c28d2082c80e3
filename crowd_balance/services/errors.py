# crowd_balance/services/errors.py
"""
Domain error kinds raised by the crowd services.
Routers never catch these — the handlers registered in main.py map them
to HTTP responses (400 / 404 / 503).
"""


class CrowdBalanceError(Exception):
    """Base class for all domain errors."""


class ValidationError(CrowdBalanceError):
    """Invalid crowd level, bad location fields, or duplicate location name."""


class NotFoundError(CrowdBalanceError):
    """Location id does not exist, or is inactive where an active one is required."""

    def __init__(self, location_id, reason: str = "not found"):
        self.location_id = location_id
        super().__init__(f"Location {location_id} {reason}")


class PersistenceError(CrowdBalanceError):
    """The storage layer failed to commit a mutation. Nothing was committed."""
