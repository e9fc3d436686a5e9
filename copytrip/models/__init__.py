from copytrip.models.base import Base, TimestampedBase
from copytrip.models.trip import Trip
from copytrip.models.user import User

__all__ = [
    "Base",
    "TimestampedBase",
    "Trip",
    "User",
]
