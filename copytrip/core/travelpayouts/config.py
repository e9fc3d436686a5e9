from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Literal

from copytrip.core.errors import SigningConfigError

if TYPE_CHECKING:
    from copytrip.core.config import Settings

KeyCollation = Literal["locale", "codepoint"]

_SCHEME_RE = re.compile(r"^https?://", re.IGNORECASE)


def normalize_real_host(value: str | None) -> str:
    """Return ``value`` as a bare host: no scheme, no trailing slashes."""
    host = _SCHEME_RE.sub("", (value or "").strip())
    return host.rstrip("/").strip()


@dataclass(frozen=True, slots=True)
class TravelpayoutsConfig:
    token: str
    marker: str
    real_host: str
    key_collation: KeyCollation = "locale"
    start_url: str = "https://api.travelpayouts.com/flight_search/v1/start"
    start_timeout_seconds: int = 15
    results_timeout_seconds: int = 20

    @classmethod
    def from_settings(cls, settings: Settings) -> TravelpayoutsConfig:
        return cls(
            token=settings.travelpayouts_token.strip(),
            marker=settings.travelpayouts_marker.strip(),
            real_host=normalize_real_host(settings.travelpayouts_real_host),
            key_collation=settings.travelpayouts_key_collation,
            start_url=settings.travelpayouts_start_url,
            start_timeout_seconds=settings.travelpayouts_start_timeout_seconds,
            results_timeout_seconds=settings.travelpayouts_results_timeout_seconds,
        )

    def assert_configured(self) -> None:
        if not self.token or not self.marker:
            raise SigningConfigError(
                "Travelpayouts is not configured (TRAVELPAYOUTS_TOKEN / TRAVELPAYOUTS_MARKER missing)"
            )
        if not self.real_host:
            raise SigningConfigError(
                "Travelpayouts is not configured (TRAVELPAYOUTS_REAL_HOST missing)"
            )

    def log_summary(self) -> dict[str, object]:
        return {
            "has_token": bool(self.token),
            "has_marker": bool(self.marker),
            "real_host": self.real_host,
            "key_collation": self.key_collation,
        }
