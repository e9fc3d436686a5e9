from copytrip.core.repositories.base import Repository
from copytrip.core.repositories.trips import QUOTA_SOURCE_TYPES, TripRepository
from copytrip.core.repositories.users import UserRepository

__all__ = [
    "QUOTA_SOURCE_TYPES",
    "Repository",
    "TripRepository",
    "UserRepository",
]
