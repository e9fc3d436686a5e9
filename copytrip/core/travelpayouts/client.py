from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from urllib.parse import quote, urljoin

import requests

from copytrip.core.errors import TravelpayoutsError
from copytrip.core.travelpayouts.config import TravelpayoutsConfig
from copytrip.core.travelpayouts.headers import build_headers
from copytrip.core.travelpayouts.offers import extract_offers
from copytrip.core.travelpayouts.signing import RequestSigner
from copytrip.core.travelpayouts.urls import normalize_absolute_url, results_endpoint
from copytrip.schemas.flights import FlightSearchRequest

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class SearchHandle:
    search_id: str
    results_url: str


@dataclass(slots=True)
class ResultsPage:
    is_over: bool
    last_update_timestamp: int
    offers: list[dict] | None = field(default=None)


def build_start_payload(config: TravelpayoutsConfig, request: FlightSearchRequest) -> dict[str, object]:
    return {
        "marker": config.marker,
        "locale": request.locale,
        "currency_code": request.currency,
        "market_code": request.market_code,
        "search_params": {
            "trip_class": request.trip_class,
            "passengers": request.passengers.model_dump(),
            "directions": [segment.model_dump() for segment in request.segments],
        },
    }


class TravelpayoutsClient:
    def __init__(self, config: TravelpayoutsConfig) -> None:
        self.config = config
        self.signer = RequestSigner(config)

    def start_search(self, request: FlightSearchRequest, client_ip: str | None = None) -> SearchHandle:
        self.config.assert_configured()
        body, headers = self.signer.signed_request(build_start_payload(self.config, request), client_ip)

        try:
            response = requests.post(
                self.config.start_url,
                json=body,
                headers=headers,
                timeout=self.config.start_timeout_seconds,
            )
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as exc:
            raise TravelpayoutsError("Upstream start failed", details=_error_details(exc)) from exc

        search_id = (data or {}).get("search_id")
        results_url = (data or {}).get("results_url")
        if not search_id or not results_url:
            raise TravelpayoutsError(
                "Invalid response from Travelpayouts (missing search_id/results_url)",
                details=data,
            )

        normalized = normalize_absolute_url(str(results_url))
        if not normalized:
            raise TravelpayoutsError(
                "Invalid results_url from Travelpayouts (not an absolute URL)",
                details={"results_url": results_url},
            )

        logger.info("Travelpayouts search started search_id=%s", search_id)
        return SearchHandle(search_id=str(search_id), results_url=normalized)

    def fetch_results(
        self,
        results_url: str,
        search_id: str,
        last_update_timestamp: int = 0,
        client_ip: str | None = None,
    ) -> ResultsPage:
        self.config.assert_configured()
        endpoint = results_endpoint(results_url)
        if not endpoint:
            raise TravelpayoutsError(
                "Cached results_url is invalid",
                details={"cached_results_url": results_url},
            )

        payload = {
            "marker": self.config.marker,
            "search_id": search_id,
            "last_update_timestamp": last_update_timestamp,
        }
        body, headers = self.signer.signed_request(payload, client_ip)

        try:
            response = requests.post(
                endpoint,
                json=body,
                headers=headers,
                timeout=self.config.results_timeout_seconds,
            )
            if response.status_code == 304:
                return ResultsPage(is_over=False, last_update_timestamp=last_update_timestamp, offers=None)
            response.raise_for_status()
            data = response.json() or {}
        except (requests.RequestException, ValueError) as exc:
            raise TravelpayoutsError("Upstream results failed", details=_error_details(exc)) from exc

        try:
            upstream_ts = int(data.get("last_update_timestamp") or 0)
        except (TypeError, ValueError):
            upstream_ts = 0

        return ResultsPage(
            is_over=bool(data.get("is_over")),
            last_update_timestamp=max(last_update_timestamp, upstream_ts),
            offers=extract_offers(search_id, data),
        )

    def click(
        self,
        results_url: str,
        search_id: str,
        proposal_id: str,
        client_ip: str | None = None,
    ) -> str:
        """Resolve a proposal to the agency deeplink the user should open."""
        self.config.assert_configured()
        base = normalize_absolute_url(results_url)
        if not base:
            raise TravelpayoutsError(
                "Cached results_url is invalid",
                details={"cached_results_url": results_url},
            )

        click_url = urljoin(base, f"/searches/{quote(search_id, safe='')}/clicks/{quote(proposal_id, safe='')}")
        # Clicks are unsigned; the marker travels in headers instead.
        headers = build_headers("", self.config.real_host, self.config.token, client_ip)
        headers.update(
            {
                "X-Affiliate-Marker": self.config.marker,
                "X-Marker": self.config.marker,
                "marker": self.config.marker,
            }
        )

        try:
            response = requests.get(
                click_url,
                headers=headers,
                timeout=self.config.results_timeout_seconds,
                allow_redirects=False,
            )
            response.raise_for_status()
        except requests.RequestException as exc:
            raise TravelpayoutsError("Upstream click failed", details=_error_details(exc)) from exc

        try:
            data = response.json()
        except ValueError:
            data = None

        url = _deeplink_of(data) or response.headers.get("Location")
        if not url:
            raise TravelpayoutsError(
                "Travelpayouts click response has no url",
                details={"status": response.status_code, "data": data},
            )
        return str(url)


_DEEPLINK_KEYS = (
    "url",
    "click_url",
    "clickUrl",
    "redirect_url",
    "redirectUrl",
    "deeplink",
    "deep_link",
    "deepLink",
    "link",
    "result_url",
    "resultUrl",
)


def _deeplink_of(data: object) -> str | None:
    if not isinstance(data, Mapping):
        return None
    for key in _DEEPLINK_KEYS:
        if data.get(key):
            return str(data[key])
    return None


def _error_details(exc: Exception) -> object | None:
    response = getattr(exc, "response", None)
    if response is None:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text or None
