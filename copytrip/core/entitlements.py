from __future__ import annotations

import logging
from dataclasses import dataclass
from uuid import UUID

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from copytrip.core.accounts import UserAccount
from copytrip.core.config import settings
from copytrip.core.db import get_db_session
from copytrip.core.errors import AccountNotFoundError
from copytrip.core.repositories.trips import TripRepository
from copytrip.core.repositories.users import UserRepository

logger = logging.getLogger(__name__)

DEFAULT_FREE_TRIP_LIMIT = 5


@dataclass(frozen=True, slots=True)
class Entitlement:
    is_pro: bool
    is_admin: bool
    is_premium: bool
    free_trip_limit: int | None
    trip_count: int

    @property
    def remaining_trips(self) -> int | None:
        if self.free_trip_limit is None:
            return None
        return max(self.free_trip_limit - self.trip_count, 0)

    @property
    def can_create_trip(self) -> bool:
        return self.free_trip_limit is None or self.trip_count < self.free_trip_limit


def evaluate(
    account: UserAccount,
    trip_count: int,
    *,
    default_free_trip_limit: int = DEFAULT_FREE_TRIP_LIMIT,
) -> Entitlement:
    """Build the quota snapshot for an account.

    Pro users (admins or premium subscribers) get ``free_trip_limit=None``,
    meaning unlimited. Everyone else gets their stored limit, or the default
    when none is stored.
    """
    is_pro = account.is_pro
    if is_pro:
        free_trip_limit = None
    elif account.free_trip_limit is None:
        free_trip_limit = default_free_trip_limit
    else:
        free_trip_limit = account.free_trip_limit

    return Entitlement(
        is_pro=is_pro,
        is_admin=account.is_admin,
        is_premium=account.is_premium,
        free_trip_limit=free_trip_limit,
        trip_count=trip_count,
    )


class EntitlementEvaluator:
    def __init__(
        self,
        users: UserRepository,
        trips: TripRepository,
        *,
        default_free_trip_limit: int = DEFAULT_FREE_TRIP_LIMIT,
    ) -> None:
        self.users = users
        self.trips = trips
        self.default_free_trip_limit = default_free_trip_limit

    @classmethod
    def for_session(cls, session: AsyncSession, *, default_free_trip_limit: int) -> EntitlementEvaluator:
        return cls(
            UserRepository(session),
            TripRepository(session),
            default_free_trip_limit=default_free_trip_limit,
        )

    async def resolve(self, user_id: UUID) -> Entitlement:
        account = await self.users.get_account(user_id)
        if account is None:
            raise AccountNotFoundError(user_id)

        trip_count = await self.trips.count_quota_trips(user_id)
        return evaluate(account, trip_count, default_free_trip_limit=self.default_free_trip_limit)


async def get_current_user_id(request: Request) -> UUID:
    raw_user_id = getattr(request.state, "user_id", None)
    if raw_user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )
    if isinstance(raw_user_id, UUID):
        return raw_user_id
    try:
        return UUID(str(raw_user_id))
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid user identity",
        ) from exc


async def get_current_entitlement(
    user_id: UUID = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_db_session),
) -> Entitlement:
    evaluator = EntitlementEvaluator.for_session(
        session,
        default_free_trip_limit=settings.default_free_trip_limit,
    )
    try:
        return await evaluator.resolve(user_id)
    except AccountNotFoundError as exc:
        logger.warning("Entitlement lookup failed: user=%s not found", user_id)
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found",
        ) from exc


async def require_pro(
    entitlement: Entitlement = Depends(get_current_entitlement),
) -> Entitlement:
    if not entitlement.is_pro:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={"error": "This feature requires Pro/Premium.", "code": "PRO_REQUIRED"},
        )
    return entitlement


async def enforce_trip_quota(
    entitlement: Entitlement = Depends(get_current_entitlement),
) -> Entitlement:
    if entitlement.can_create_trip:
        return entitlement

    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail={
            "error": (
                f"Free accounts can keep up to {entitlement.free_trip_limit} trips. "
                "Upgrade to Pro for unlimited trips."
            ),
            "code": "TRIP_LIMIT_REACHED",
            "trip_count": entitlement.trip_count,
            "free_trip_limit": entitlement.free_trip_limit,
        },
    )
