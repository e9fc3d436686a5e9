from __future__ import annotations

import asyncio
import logging

import redis.asyncio as redis
from fastapi import HTTPException, status

from copytrip.core.config import Settings, settings
from copytrip.core.errors import SigningConfigError, TravelpayoutsError
from copytrip.core.travelpayouts.client import TravelpayoutsClient
from copytrip.core.travelpayouts.config import TravelpayoutsConfig
from copytrip.core.travelpayouts.offers import proposal_map
from copytrip.core.travelpayouts.urls import normalize_absolute_url
from copytrip.schemas.flights import (
    FlightClickRequest,
    FlightClickResponse,
    FlightResultsRequest,
    FlightResultsResponse,
    FlightSearchRequest,
    FlightSearchStartResponse,
)

logger = logging.getLogger(__name__)


class SearchRegistry:
    """Per-search state: the results host to poll and the offer to proposal map."""

    key_prefix = "travelpayouts:search"

    def __init__(self, redis_url: str, ttl_seconds: int) -> None:
        self.redis_url = redis_url
        self.ttl_seconds = ttl_seconds

    def _key(self, search_id: str) -> str:
        return f"{self.key_prefix}:{search_id}:results_url"

    def _offers_key(self, search_id: str) -> str:
        return f"{self.key_prefix}:{search_id}:offers"

    async def remember(self, search_id: str, results_url: str) -> None:
        redis_client = redis.from_url(self.redis_url, decode_responses=True)
        try:
            await redis_client.set(self._key(search_id), results_url, ex=self.ttl_seconds)
        finally:
            await redis_client.aclose()

    async def lookup(self, search_id: str) -> str | None:
        redis_client = redis.from_url(self.redis_url, decode_responses=True)
        try:
            return await redis_client.get(self._key(search_id))
        finally:
            await redis_client.aclose()

    async def remember_offers(self, search_id: str, proposals: dict[str, str]) -> None:
        if not proposals:
            return
        redis_client = redis.from_url(self.redis_url, decode_responses=True)
        try:
            await redis_client.hset(self._offers_key(search_id), mapping=proposals)
            await redis_client.expire(self._offers_key(search_id), self.ttl_seconds)
        finally:
            await redis_client.aclose()

    async def lookup_proposal(self, search_id: str, offer_id: str) -> str | None:
        redis_client = redis.from_url(self.redis_url, decode_responses=True)
        try:
            return await redis_client.hget(self._offers_key(search_id), offer_id)
        finally:
            await redis_client.aclose()


class FlightSearchService:
    def __init__(self, client: TravelpayoutsClient, registry: SearchRegistry) -> None:
        self.client = client
        self.registry = registry

    @classmethod
    def from_settings(cls, config: Settings = settings) -> FlightSearchService:
        return cls(
            TravelpayoutsClient(TravelpayoutsConfig.from_settings(config)),
            SearchRegistry(config.redis_url, config.travelpayouts_search_ttl_seconds),
        )

    async def start(self, request: FlightSearchRequest, client_ip: str | None = None) -> FlightSearchStartResponse:
        try:
            handle = await asyncio.to_thread(self.client.start_search, request, client_ip)
        except SigningConfigError as exc:
            logger.error("Travelpayouts misconfigured: %s", self.client.config.log_summary())
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=str(exc),
            ) from exc
        except TravelpayoutsError as exc:
            logger.exception("Travelpayouts search start failed")
            raise HTTPException(
                status_code=status.HTTP_502_BAD_GATEWAY,
                detail={"error": str(exc), "details": exc.details},
            ) from exc

        await self.registry.remember(handle.search_id, handle.results_url)
        return FlightSearchStartResponse(search_id=handle.search_id, results_url=handle.results_url)

    async def poll(self, request: FlightResultsRequest, client_ip: str | None = None) -> FlightResultsResponse:
        search_id = request.search_id.strip()
        results_url = await self.registry.lookup(search_id)
        if not results_url:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Unknown search_id (start a new search)",
            )

        try:
            page = await asyncio.to_thread(
                self.client.fetch_results,
                results_url,
                search_id,
                request.last_update_timestamp,
                client_ip,
            )
        except SigningConfigError as exc:
            logger.error("Travelpayouts misconfigured: %s", self.client.config.log_summary())
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=str(exc),
            ) from exc
        except TravelpayoutsError as exc:
            logger.exception("Travelpayouts results failed search_id=%s", search_id)
            raise HTTPException(
                status_code=status.HTTP_502_BAD_GATEWAY,
                detail={"error": str(exc), "details": exc.details},
            ) from exc

        if page.offers:
            await self.registry.remember_offers(search_id, proposal_map(page.offers))

        return FlightResultsResponse(
            is_over=page.is_over,
            last_update_timestamp=page.last_update_timestamp,
            offers=page.offers,
        )

    async def click(self, request: FlightClickRequest, client_ip: str | None = None) -> FlightClickResponse:
        search_id = request.search_id.strip()
        direct_id = (request.tp_proposal_id or "").strip()
        offer_id = (request.offer_id or request.proposal_id or "").strip()
        if not search_id or not (direct_id or offer_id):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Missing search_id and tp_proposal_id (or offer_id)",
            )

        results_url = await self.registry.lookup(search_id)
        if not results_url:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Unknown search_id (start a new search)",
            )
        if not normalize_absolute_url(results_url):
            raise HTTPException(
                status_code=status.HTTP_502_BAD_GATEWAY,
                detail={"error": "Cached results_url is invalid", "details": {"cached_results_url": results_url}},
            )

        if direct_id:
            proposal_id, source = direct_id, "tp_click_direct"
        else:
            proposal_id = await self.registry.lookup_proposal(search_id, offer_id) or ""
            source = "tp_click_cached_map"
            if not proposal_id:
                raise HTTPException(
                    status_code=status.HTTP_404_NOT_FOUND,
                    detail={"error": "No proposal mapping for offer_id (poll results again)", "details": {"offer_id": offer_id}},
                )

        try:
            url = await asyncio.to_thread(self.client.click, results_url, search_id, proposal_id, client_ip)
        except SigningConfigError as exc:
            logger.error("Travelpayouts misconfigured: %s", self.client.config.log_summary())
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=str(exc),
            ) from exc
        except TravelpayoutsError as exc:
            logger.exception("Travelpayouts click failed search_id=%s", search_id)
            raise HTTPException(
                status_code=status.HTTP_502_BAD_GATEWAY,
                detail={"error": str(exc), "details": exc.details},
            ) from exc

        logger.info("Travelpayouts click resolved search_id=%s source=%s", search_id, source)
        return FlightClickResponse(url=url, source=source)
