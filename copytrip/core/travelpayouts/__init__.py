from copytrip.core.travelpayouts.client import TravelpayoutsClient, build_start_payload
from copytrip.core.travelpayouts.config import TravelpayoutsConfig, normalize_real_host
from copytrip.core.travelpayouts.headers import build_headers, client_ip_from_request, get_client_ip, normalize_ip
from copytrip.core.travelpayouts.offers import extract_offers, proposal_map
from copytrip.core.travelpayouts.searches import FlightSearchService, SearchRegistry
from copytrip.core.travelpayouts.signing import RequestSigner, collect_values_in_order, make_signature
from copytrip.core.travelpayouts.urls import normalize_absolute_url

__all__ = [
    "FlightSearchService",
    "RequestSigner",
    "SearchRegistry",
    "TravelpayoutsClient",
    "TravelpayoutsConfig",
    "build_headers",
    "build_start_payload",
    "client_ip_from_request",
    "collect_values_in_order",
    "extract_offers",
    "get_client_ip",
    "make_signature",
    "normalize_absolute_url",
    "normalize_ip",
    "normalize_real_host",
    "proposal_map",
]
