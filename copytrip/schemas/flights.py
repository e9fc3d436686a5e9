from __future__ import annotations

from pydantic import BaseModel, Field, field_validator, model_validator


class FlightSegment(BaseModel):
    origin: str = Field(min_length=2, max_length=8)
    destination: str = Field(min_length=2, max_length=8)
    date: str = Field(pattern=r"^\d{4}-\d{2}-\d{2}$")

    @field_validator("origin", "destination", mode="before")
    @classmethod
    def _upper_code(cls, value: object) -> str:
        return str(value or "").strip().upper()

    @model_validator(mode="after")
    def _distinct_endpoints(self) -> FlightSegment:
        if self.origin == self.destination:
            raise ValueError("origin and destination must differ")
        return self


class Passengers(BaseModel):
    adults: int = Field(default=1, ge=1)
    children: int = Field(default=0, ge=0)
    infants: int = Field(default=0, ge=0)

    @model_validator(mode="after")
    def _infants_need_adults(self) -> Passengers:
        if self.infants > self.adults:
            raise ValueError("each infant must travel with an adult")
        return self


class FlightSearchRequest(BaseModel):
    segments: list[FlightSegment] = Field(min_length=1)
    passengers: Passengers = Field(default_factory=Passengers)
    locale: str = "no"
    currency: str = "NOK"
    market_code: str = "NO"
    trip_class: str = "Y"

    @field_validator("trip_class", mode="before")
    @classmethod
    def _upper_trip_class(cls, value: object) -> str:
        return str(value or "Y").strip().upper()


class FlightSearchStartResponse(BaseModel):
    ok: bool = True
    search_id: str
    results_url: str


class FlightResultsRequest(BaseModel):
    search_id: str = Field(min_length=1)
    last_update_timestamp: int = Field(default=0, ge=0)


class FlightResultsResponse(BaseModel):
    ok: bool = True
    is_over: bool
    last_update_timestamp: int
    # None means "unchanged since last poll"; clients keep what they have.
    offers: list[dict] | None = None


class FlightClickRequest(BaseModel):
    search_id: str = Field(min_length=1)
    offer_id: str | None = None
    proposal_id: str | None = None
    tp_proposal_id: str | None = None


class FlightClickResponse(BaseModel):
    ok: bool = True
    url: str
    source: str
