from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from copytrip.core.accounts import UserAccount
from copytrip.core.repositories.base import Repository
from copytrip.models.user import User


class UserRepository(Repository[User]):
    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session=session, model=User)

    async def get_account(self, user_id: UUID) -> UserAccount | None:
        result = await self.session.execute(
            select(User.is_admin, User.is_premium, User.free_trip_limit).where(User.id == user_id)
        )
        row = result.one_or_none()
        if row is None:
            return None

        return UserAccount(
            is_admin=bool(row.is_admin),
            is_premium=bool(row.is_premium),
            free_trip_limit=row.free_trip_limit,
        )
