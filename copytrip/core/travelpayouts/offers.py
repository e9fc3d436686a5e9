"""Flatten Travelpayouts results into display-ready offers.

Results come back as ``tickets`` (each with ``proposals`` and ``segments``)
plus a shared ``flight_legs`` list. A segment's ``flights`` entries point
into ``flight_legs`` either by leg id or by list index, and the field names
on legs vary between agencies, so every lookup tries a list of candidates.
"""

from __future__ import annotations

import math
from collections.abc import Mapping, Sequence

_LEG_ID_KEYS = ("id", "_id", "uuid", "leg_id", "flight_leg_id", "flight_id")
_ORIGIN_KEYS = ("origin", "from", "origin_iata", "origin_code", "departure_airport", "airport_from")
_DESTINATION_KEYS = (
    "destination",
    "to",
    "destination_iata",
    "destination_code",
    "arrival_airport",
    "airport_to",
)
_DEPARTURE_KEYS = (
    "local_departure_date_time",
    "departure_at",
    "local_departure",
    "departure_time",
    "depart_at",
    "departure_datetime",
    "time_departure",
)
_ARRIVAL_KEYS = (
    "local_arrival_date_time",
    "arrival_at",
    "local_arrival",
    "arrival_time",
    "arrive_at",
    "arrival_datetime",
    "time_arrival",
)
_DURATION_KEYS = ("duration", "duration_mins", "duration_minutes", "travel_time", "flight_time")
_AIRLINE_KEYS = (
    "airline",
    "carrier",
    "marketing_carrier",
    "operating_carrier",
    "airline_code",
    "carrier_code",
    "airline_iata",
)
_AIRLINE_OBJECT_KEYS = ("iata", "iata_code", "code", "id", "carrier_code", "airline_code")
_FLIGHT_NO_KEYS = ("flight_number", "flight_no", "flightNumber", "flight_num", "number")
_FLIGHT_NO_OBJECT_KEYS = ("number", "flight_number", "flightNo", "no")
_PROPOSAL_ID_KEYS = ("id", "proposal_id", "uuid", "proposalId", "click_id", "clickId")


def _pick(obj: object, keys: Sequence[str]) -> object | None:
    if not isinstance(obj, Mapping):
        return None
    for key in keys:
        value = obj.get(key)
        if value is not None and value != "":
            return value
    return None


def _number(value: object) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else None
    if isinstance(value, str) and value.strip():
        try:
            parsed = float(value.replace(",", "."))
        except ValueError:
            return None
        return parsed if math.isfinite(parsed) else None
    return None


def _upper(value: object) -> str:
    return str(value or "").strip().upper()


def _unique(values: Sequence[str]) -> list[str]:
    return list(dict.fromkeys(value for value in values if value))


def format_clock(value: object) -> str:
    """``HH:MM`` from an ISO or space-separated timestamp."""
    if not value:
        return ""
    text = str(value)
    if "T" in text:
        return text.split("T")[1][:5]
    if " " in text:
        return text.split(" ")[1][:5]
    return text[:5]


def format_duration(minutes: float | None) -> str:
    if minutes is None:
        return ""
    total = int(minutes) if float(minutes).is_integer() else minutes
    hours, rest = divmod(total, 60)
    return f"{int(hours)}t {rest}m" if hours > 0 else f"{rest}m"


def format_stops(stops: int | None) -> str:
    if stops is None:
        return ""
    return "Direkte" if stops == 0 else f"{stops} stopp"


class LegIndex:
    def __init__(self, legs: Sequence[object]) -> None:
        self.legs = list(legs)
        self.by_id: dict[str, Mapping] = {}
        for leg in self.legs:
            leg_id = _pick(leg, _LEG_ID_KEYS)
            if leg_id is not None:
                self.by_id[str(leg_id)] = leg

    def resolve(self, ref: object) -> Mapping | None:
        if ref is None or isinstance(ref, bool):
            return None
        if isinstance(ref, Mapping):
            return ref

        by_id = self.by_id.get(str(ref))
        if by_id is not None:
            return by_id

        try:
            index = int(ref)
        except (TypeError, ValueError):
            return None
        if isinstance(ref, float) and not ref.is_integer():
            return None
        if 0 <= index < len(self.legs) and isinstance(self.legs[index], Mapping):
            return self.legs[index]
        return None


def _leg_duration(leg: Mapping) -> float | None:
    minutes = _number(_pick(leg, _DURATION_KEYS))
    if minutes is None:
        return None
    # Some agencies report seconds.
    return float(round(minutes / 60)) if minutes > 10000 else minutes


def _leg_airline(leg: Mapping) -> str:
    direct = _pick(leg, _AIRLINE_KEYS)
    if isinstance(direct, str):
        return _upper(direct)
    nested = leg.get("airline") or leg.get("carrier") or leg.get("marketing_carrier") or leg.get("operating_carrier")
    if isinstance(nested, str):
        return _upper(nested)
    return _upper(_pick(nested, _AIRLINE_OBJECT_KEYS))


def _leg_flight_number(leg: Mapping) -> str:
    direct = _pick(leg, _FLIGHT_NO_KEYS)
    if direct is not None and not isinstance(direct, Mapping):
        return _upper(direct)
    nested = leg.get("flight") or leg.get("flight_number_obj")
    if isinstance(nested, str):
        return _upper(nested)
    return _upper(_pick(nested, _FLIGHT_NO_OBJECT_KEYS))


def _itinerary(ticket: Mapping, index: LegIndex) -> dict[str, str]:
    segments = ticket.get("segments") if isinstance(ticket.get("segments"), list) else []
    first_segment = segments[0] if segments and isinstance(segments[0], Mapping) else {}
    refs = first_segment.get("flights") if isinstance(first_segment.get("flights"), list) else []
    legs = [leg for leg in (index.resolve(ref) for ref in refs) if leg is not None]

    first_leg = legs[0] if legs else None
    last_leg = legs[-1] if legs else None

    origin = (first_leg and _pick(first_leg, _ORIGIN_KEYS)) or _pick(ticket, _ORIGIN_KEYS[:4]) or ""
    destination = (last_leg and _pick(last_leg, _DESTINATION_KEYS)) or _pick(ticket, _DESTINATION_KEYS[:4]) or ""
    departure = (first_leg and _pick(first_leg, _DEPARTURE_KEYS)) or _pick(ticket, _DEPARTURE_KEYS[:4])
    arrival = (last_leg and _pick(last_leg, _ARRIVAL_KEYS)) or _pick(ticket, _ARRIVAL_KEYS[:4])

    if legs:
        duration = sum(_leg_duration(leg) or 0 for leg in legs)
        stops: int | None = max(len(legs) - 1, 0)
    else:
        duration = next(
            (
                value
                for value in (_number(ticket.get(key)) for key in ("duration", "total_duration", "travel_time"))
                if value is not None
            ),
            None,
        )
        transfers = first_segment.get("transfers")
        stops = len(transfers) if isinstance(transfers, list) else None

    return {
        "depTime": format_clock(departure),
        "arrTime": format_clock(arrival),
        "durationText": format_duration(duration),
        "routeText": f"{_upper(origin)} → {_upper(destination)}" if origin and destination else "",
        "stopsText": format_stops(stops),
        "airlinesText": ", ".join(_unique([_leg_airline(leg) for leg in legs])),
        "flightNosText": ", ".join(_unique([_leg_flight_number(leg) for leg in legs])),
        "agentText": "",
    }


def price_of(proposal: Mapping) -> float | None:
    raw = _pick(proposal, ("price", "unified_price", "total_price", "amount"))
    if isinstance(raw, Mapping):
        raw = _pick(raw, ("amount", "value", "price", "total"))
    return _number(raw)


def currency_of(proposal: Mapping, ticket: Mapping, data: Mapping) -> str:
    for key in ("price", "unified_price", "price_per_person"):
        value = proposal.get(key)
        if isinstance(value, Mapping) and value.get("currency"):
            return _upper(value["currency"])
    search_params = data.get("search_params") if isinstance(data.get("search_params"), Mapping) else {}
    currency = (
        proposal.get("currency")
        or ticket.get("currency")
        or search_params.get("currency_code")
        or search_params.get("currency")
        or "NOK"
    )
    return _upper(currency)


def extract_offers(search_id: str, data: Mapping) -> list[dict]:
    """One offer per proposal, cheapest first; unpriced offers sort last."""
    tickets = data.get("tickets") if isinstance(data.get("tickets"), list) else []
    flight_legs = data.get("flight_legs") if isinstance(data.get("flight_legs"), list) else []
    index = LegIndex(flight_legs)

    offers: list[dict] = []
    for ticket in tickets:
        if not isinstance(ticket, Mapping):
            continue
        proposals = ticket.get("proposals") if isinstance(ticket.get("proposals"), list) else []
        itinerary = _itinerary(ticket, index)
        for proposal in proposals:
            if not isinstance(proposal, Mapping):
                continue
            proposal_id = _pick(proposal, _PROPOSAL_ID_KEYS)
            offers.append(
                {
                    "offer_id": f"{search_id}:{len(offers)}",
                    "tp_proposal_id": str(proposal_id) if proposal_id is not None else None,
                    "price": price_of(proposal),
                    "currency": currency_of(proposal, ticket, data),
                    **itinerary,
                    "signature": ticket.get("signature") or None,
                }
            )

    offers.sort(key=lambda offer: offer["price"] if offer["price"] is not None else math.inf)
    return offers


def proposal_map(offers: Sequence[Mapping]) -> dict[str, str]:
    return {
        str(offer["offer_id"]): str(offer["tp_proposal_id"])
        for offer in offers
        if offer.get("offer_id") and offer.get("tp_proposal_id")
    }
