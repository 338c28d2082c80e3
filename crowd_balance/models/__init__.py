# Crowd Balance — Database Models
# Import all models here for SQLAlchemy discovery

from crowd_balance.models.location import Location                       # noqa
from crowd_balance.models.activity_log_entry import ActivityLogEntry     # noqa
