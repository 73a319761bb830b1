from __future__ import annotations

import math
from typing import Sequence

from route_optimizer.services.types import DistanceFn, Waypoint

EARTH_RADIUS_KM = 6371.0


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    dlat = math.radians(lat2 - lat1)
    dlon = math.radians(lon2 - lon1)

    a = (
        math.sin(dlat / 2.0) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(dlon / 2.0) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def waypoint_distance_km(a: Waypoint, b: Waypoint) -> float:
    """Great-circle distance between two waypoints.

    Coordinates are not validated; out-of-range values give a defined but
    meaningless result.
    """
    return haversine_km(a.latitude, a.longitude, b.latitude, b.longitude)


def route_distance_km(
    tour: Sequence[Waypoint], distance: DistanceFn = waypoint_distance_km
) -> float:
    """Length of an open path: the sum of consecutive legs, no return leg."""
    return sum(distance(tour[index], tour[index + 1]) for index in range(len(tour) - 1))


def leg_distances_km(
    tour: Sequence[Waypoint], distance: DistanceFn = waypoint_distance_km
) -> list[float]:
    return [distance(tour[index], tour[index + 1]) for index in range(len(tour) - 1)]


class DistanceMatrix:
    """Pairwise distances precomputed once for a fixed set of waypoints.

    Built per optimization call and discarded with it. Waypoints that compare
    equal share a row, which is harmless since their distances are identical.
    """

    def __init__(
        self, waypoints: Sequence[Waypoint], distance: DistanceFn = waypoint_distance_km
    ) -> None:
        self._index: dict[Waypoint, int] = {}
        points: list[Waypoint] = []
        for waypoint in waypoints:
            if waypoint not in self._index:
                self._index[waypoint] = len(points)
                points.append(waypoint)

        size = len(points)
        self._rows = [[0.0] * size for _ in range(size)]
        for i in range(size):
            for j in range(i + 1, size):
                value = distance(points[i], points[j])
                self._rows[i][j] = value
                self._rows[j][i] = value

    def __len__(self) -> int:
        return len(self._rows)

    def __call__(self, a: Waypoint, b: Waypoint) -> float:
        return self._rows[self._index[a]][self._index[b]]
