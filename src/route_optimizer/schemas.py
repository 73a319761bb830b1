from __future__ import annotations

from datetime import datetime
from typing import Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

MAX_WAYPOINTS = 200
MAX_ITERATIONS_LIMIT = 100_000


class WaypointInput(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: Union[int, str]
    label: str = Field(default="", max_length=300)
    latitude: float | None = Field(default=None, ge=-90.0, le=90.0)
    longitude: float | None = Field(default=None, ge=-180.0, le=180.0)
    address: str | None = Field(default=None, min_length=3, max_length=300)
    demand: float | None = Field(default=None, ge=0.0)

    @model_validator(mode="after")
    def _require_location(self) -> "WaypointInput":
        has_coordinates = self.latitude is not None and self.longitude is not None
        if not has_coordinates and not self.address:
            raise ValueError("Each waypoint needs latitude and longitude or an address")
        if (self.latitude is None) != (self.longitude is None):
            raise ValueError("latitude and longitude must be given together")
        return self


def _check_unique_ids(waypoints: list[WaypointInput]) -> list[WaypointInput]:
    seen: set[str] = set()
    for waypoint in waypoints:
        key = str(waypoint.id)
        if key in seen:
            raise ValueError(f"Duplicate waypoint id: {waypoint.id}")
        seen.add(key)
    return waypoints


class RouteOptimizeRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    waypoints: list[WaypointInput] = Field(max_length=MAX_WAYPOINTS)
    max_iterations: int | None = Field(default=None, ge=0, le=MAX_ITERATIONS_LIMIT)
    optimizer: Literal["heuristic", "ortools"] = "heuristic"
    persist: bool = False
    name: str = Field(default="", max_length=200)
    description: str = Field(default="", max_length=2000)

    @field_validator("waypoints")
    @classmethod
    def _unique_ids(cls, value: list[WaypointInput]) -> list[WaypointInput]:
        return _check_unique_ids(value)


class RouteDistanceRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    waypoints: list[WaypointInput] = Field(max_length=MAX_WAYPOINTS)

    @field_validator("waypoints")
    @classmethod
    def _unique_ids(cls, value: list[WaypointInput]) -> list[WaypointInput]:
        return _check_unique_ids(value)


class WaypointResponse(BaseModel):
    id: Union[int, str]
    label: str
    latitude: float
    longitude: float
    demand: float | None = None


class RouteOptimizeResponse(BaseModel):
    route_id: int | None = None
    optimizer_used: Literal["heuristic", "ortools"]
    original_order: list[WaypointResponse]
    optimized_order: list[WaypointResponse]
    original_distance_km: float
    optimized_distance_km: float
    seed_distance_km: float
    savings_km: float
    savings_percentage: float
    iterations: int
    converged: bool


class RouteDistanceResponse(BaseModel):
    waypoints: list[WaypointResponse]
    legs_km: list[float]
    total_distance_km: float


class SavedRouteSummary(BaseModel):
    id: int
    name: str
    algorithm_used: str
    waypoint_count: int
    original_distance_km: float
    optimized_distance_km: float
    savings_km: float
    savings_percentage: float
    created_at: datetime


class SavedRouteDetail(SavedRouteSummary):
    description: str
    iterations: int
    converged: bool
    original_order: list[WaypointResponse]
    optimized_order: list[WaypointResponse]
