from __future__ import annotations

from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import Select

from copytrip.core.repositories.base import Repository
from copytrip.models.trip import Trip

# Trips with no source_type are user-created and also count.
QUOTA_SOURCE_TYPES: tuple[str, ...] = ("template", "user_episode_trip")


class TripRepository(Repository[Trip]):
    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session=session, model=Trip)

    def _quota_count_select(self, user_id: UUID) -> Select[tuple[int]]:
        return select(func.count(Trip.id)).where(
            Trip.user_id == user_id,
            or_(Trip.source_type.is_(None), Trip.source_type.in_(QUOTA_SOURCE_TYPES)),
        )

    async def count_quota_trips(self, user_id: UUID) -> int:
        return int(await self.session.scalar(self._quota_count_select(user_id)) or 0)
