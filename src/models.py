"""
Pydantic models for the prt-arrivals API.

Upstream side mirrors the TrueTime `getpredictions` payload; the response
side is the stop -> route group -> arrivals shape served to clients.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Upstream (TrueTime) payload
# ---------------------------------------------------------------------------


class RawPrediction(BaseModel):
    """One vehicle's prediction as reported by the feed."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    route: str = Field(alias="rt")
    destination: str = Field(alias="des")
    stop_id: str = Field(alias="stpid")
    vehicle_id: str = Field(alias="vid")
    observed_at: str = Field(alias="tmstmp")
    predicted_at: str = Field(alias="prdtm")
    capacity: str = Field(default="", alias="psgld")


class FeedError(BaseModel):
    """Application-level error message reported by the feed."""

    msg: str


class PrtBody(BaseModel):
    predictions: Optional[list[RawPrediction]] = Field(default=None, alias="prd")
    errors: Optional[list[FeedError]] = Field(default=None, alias="error")


class PrtResponse(BaseModel):
    response: PrtBody = Field(alias="bustime-response")


# ---------------------------------------------------------------------------
# Response side
# ---------------------------------------------------------------------------


class Arrival(BaseModel):
    """A single bus approaching a stop."""

    bus_id: str = Field(description="Vehicle identifier")
    seconds: int = Field(
        description="Seconds until arrival; negative if the bus is late past its prediction"
    )
    capacity: str = Field(description="Passenger load label, may be empty")


class RouteGroup(BaseModel):
    """All arrivals for one route/destination pair at a stop, soonest first."""

    route: str
    destination: str
    arrivals: list[Arrival] = Field(default_factory=list)


# Stop ID -> route groups in first-seen order.
CachedResponse = dict[str, list[RouteGroup]]


class ErrorResponse(BaseModel):
    """Error payload returned with 5xx responses."""

    error: str
