from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class UserAccount:
    is_admin: bool
    is_premium: bool
    free_trip_limit: int | None

    @property
    def is_pro(self) -> bool:
        return self.is_admin or self.is_premium
