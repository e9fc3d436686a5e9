from __future__ import annotations

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from copytrip.models.base import TimestampedBase


class User(TimestampedBase):
    __tablename__ = "users"

    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    full_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    is_admin: Mapped[bool] = mapped_column(nullable=False, default=False)
    is_premium: Mapped[bool] = mapped_column(nullable=False, default=False)
    # NULL means "use the configured default", not "unlimited".
    free_trip_limit: Mapped[int | None] = mapped_column(nullable=True)
