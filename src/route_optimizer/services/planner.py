from __future__ import annotations

import logging
from typing import Any, Iterable

from django.conf import settings

from route_optimizer.exceptions import ExternalServiceError, RouteNotFoundError
from route_optimizer.models import OptimizedRoute
from route_optimizer.schemas import (
    RouteDistanceRequest,
    RouteDistanceResponse,
    RouteOptimizeRequest,
    RouteOptimizeResponse,
    SavedRouteDetail,
    SavedRouteSummary,
    WaypointInput,
    WaypointResponse,
)
from route_optimizer.services.geo import leg_distances_km
from route_optimizer.services.geocoding import GeocodingClient
from route_optimizer.services.optimization import algorithm_label, optimize_route
from route_optimizer.services.types import Waypoint

logger = logging.getLogger(__name__)


class RouteOptimizerService:
    def __init__(self, geocoding_client: GeocodingClient | None = None) -> None:
        self._geocoding_client = geocoding_client

    @property
    def geocoding_client(self) -> GeocodingClient:
        if self._geocoding_client is None:
            self._geocoding_client = GeocodingClient()
        return self._geocoding_client

    def optimize(self, request: RouteOptimizeRequest) -> RouteOptimizeResponse:
        waypoints = self.resolve_waypoints(request.waypoints)
        max_iterations = (
            request.max_iterations
            if request.max_iterations is not None
            else int(settings.ROUTE_OPTIMIZER_MAX_ITERATIONS)
        )

        result = optimize_route(
            waypoints,
            max_iterations=max_iterations,
            optimizer=request.optimizer,
            use_distance_matrix=bool(settings.ROUTE_OPTIMIZER_USE_DISTANCE_MATRIX),
            time_limit_seconds=int(settings.ORTOOLS_TIME_LIMIT_SECONDS),
        )
        if not result.converged:
            logger.warning(
                "Route with %d waypoints hit the iteration cap (%d); result may not be "
                "locally optimal",
                len(waypoints),
                max_iterations,
            )

        response = RouteOptimizeResponse(
            optimizer_used=result.optimizer_used,
            original_order=_waypoint_responses(result.original_order),
            optimized_order=_waypoint_responses(result.optimized_order),
            original_distance_km=round(result.original_distance, 2),
            optimized_distance_km=round(result.optimized_distance, 2),
            seed_distance_km=round(result.seed_distance, 2),
            savings_km=round(result.savings, 2),
            savings_percentage=round(result.savings_percentage, 2),
            iterations=result.iterations,
            converged=result.converged,
        )

        if request.persist:
            saved = OptimizedRoute.objects.create(
                name=request.name,
                description=request.description,
                algorithm_used=algorithm_label(result.optimizer_used),
                original_distance_km=response.original_distance_km,
                optimized_distance_km=response.optimized_distance_km,
                savings_km=response.savings_km,
                savings_percentage=response.savings_percentage,
                iterations=result.iterations,
                converged=result.converged,
                waypoint_count=len(waypoints),
                original_order=[item.model_dump(mode="json") for item in response.original_order],
                optimized_order=[item.model_dump(mode="json") for item in response.optimized_order],
            )
            response.route_id = saved.pk

        return response

    def measure(self, request: RouteDistanceRequest) -> RouteDistanceResponse:
        waypoints = self.resolve_waypoints(request.waypoints)
        legs = leg_distances_km(waypoints)
        return RouteDistanceResponse(
            waypoints=_waypoint_responses(waypoints),
            legs_km=[round(leg, 2) for leg in legs],
            total_distance_km=round(sum(legs), 2),
        )

    def resolve_waypoints(self, inputs: Iterable[WaypointInput]) -> list[Waypoint]:
        waypoints: list[Waypoint] = []
        for item in inputs:
            if item.latitude is not None and item.longitude is not None:
                latitude, longitude = item.latitude, item.longitude
            else:
                latitude, longitude = self.geocoding_client.geocode(str(item.address))

            label = item.label or item.address
            if not label:
                label = self._reverse_label(latitude, longitude) or str(item.id)

            waypoints.append(
                Waypoint(
                    id=item.id,
                    latitude=latitude,
                    longitude=longitude,
                    label=label,
                    demand=item.demand,
                )
            )
        return waypoints

    def _reverse_label(self, latitude: float, longitude: float) -> str | None:
        if not settings.GEOCODING_REVERSE_LABELS:
            return None
        try:
            return self.geocoding_client.reverse(latitude, longitude)
        except ExternalServiceError as exc:
            logger.warning("Reverse geocoding failed for (%s, %s): %s", latitude, longitude, exc)
            return None

    @staticmethod
    def list_saved(limit: int = 10, offset: int = 0) -> list[SavedRouteSummary]:
        routes = OptimizedRoute.objects.all()[offset : offset + limit]
        return [SavedRouteSummary.model_validate(_route_fields(route)) for route in routes]

    @staticmethod
    def get_saved(route_id: int) -> SavedRouteDetail:
        route = _get_route(route_id)
        return SavedRouteDetail.model_validate(
            {
                **_route_fields(route),
                "description": route.description,
                "iterations": route.iterations,
                "converged": route.converged,
                "original_order": route.original_order,
                "optimized_order": route.optimized_order,
            }
        )

    @staticmethod
    def delete_saved(route_id: int) -> None:
        _get_route(route_id).delete()


def _get_route(route_id: int) -> OptimizedRoute:
    try:
        return OptimizedRoute.objects.get(pk=route_id)
    except OptimizedRoute.DoesNotExist as exc:
        raise RouteNotFoundError(f"Optimized route {route_id} not found") from exc


def _route_fields(route: OptimizedRoute) -> dict[str, Any]:
    return {
        "id": route.pk,
        "name": route.name,
        "algorithm_used": route.algorithm_used,
        "waypoint_count": route.waypoint_count,
        "original_distance_km": route.original_distance_km,
        "optimized_distance_km": route.optimized_distance_km,
        "savings_km": route.savings_km,
        "savings_percentage": route.savings_percentage,
        "created_at": route.created_at,
    }


def _waypoint_responses(waypoints: Iterable[Waypoint]) -> list[WaypointResponse]:
    return [
        WaypointResponse(
            id=waypoint.id,
            label=waypoint.label,
            latitude=round(waypoint.latitude, 6),
            longitude=round(waypoint.longitude, 6),
            demand=waypoint.demand,
        )
        for waypoint in waypoints
    ]

