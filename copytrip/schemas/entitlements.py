from __future__ import annotations

from pydantic import BaseModel

from copytrip.core.entitlements import Entitlement


class EntitlementResponse(BaseModel):
    is_pro: bool
    is_admin: bool
    is_premium: bool
    free_trip_limit: int | None
    trip_count: int
    remaining_trips: int | None
    can_create_trip: bool

    @classmethod
    def from_entitlement(cls, entitlement: Entitlement) -> EntitlementResponse:
        return cls(
            is_pro=entitlement.is_pro,
            is_admin=entitlement.is_admin,
            is_premium=entitlement.is_premium,
            free_trip_limit=entitlement.free_trip_limit,
            trip_count=entitlement.trip_count,
            remaining_trips=entitlement.remaining_trips,
            can_create_trip=entitlement.can_create_trip,
        )
