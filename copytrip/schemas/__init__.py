from copytrip.schemas.entitlements import EntitlementResponse
from copytrip.schemas.flights import (
    FlightClickRequest,
    FlightClickResponse,
    FlightResultsRequest,
    FlightResultsResponse,
    FlightSearchRequest,
    FlightSearchStartResponse,
    FlightSegment,
    Passengers,
)

__all__ = [
    "EntitlementResponse",
    "FlightClickRequest",
    "FlightClickResponse",
    "FlightResultsRequest",
    "FlightResultsResponse",
    "FlightSearchRequest",
    "FlightSearchStartResponse",
    "FlightSegment",
    "Passengers",
]
