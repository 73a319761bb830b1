from __future__ import annotations

from typing import Sequence

from route_optimizer.services.geo import waypoint_distance_km
from route_optimizer.services.types import DistanceFn, Waypoint


def build_initial_tour(
    waypoints: Sequence[Waypoint], distance: DistanceFn = waypoint_distance_km
) -> list[Waypoint]:
    """Greedy nearest-neighbour tour starting at ``waypoints[0]``.

    Ties go to the lowest input index. Runs O(n^2) distance evaluations, which
    is fine for the tens-to-hundreds of stops of a single vehicle route but
    does not scale to thousands.
    """
    if len(waypoints) <= 1:
        return list(waypoints)

    unvisited = list(range(1, len(waypoints)))
    tour = [waypoints[0]]

    while unvisited:
        current = tour[-1]
        nearest_position = 0
        nearest_distance = distance(current, waypoints[unvisited[0]])
        for position in range(1, len(unvisited)):
            candidate_distance = distance(current, waypoints[unvisited[position]])
            if candidate_distance < nearest_distance:
                nearest_distance = candidate_distance
                nearest_position = position

        tour.append(waypoints[unvisited.pop(nearest_position)])

    return tour
