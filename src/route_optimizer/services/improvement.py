from __future__ import annotations

import logging
from typing import Sequence

from route_optimizer.services.geo import waypoint_distance_km
from route_optimizer.services.types import DistanceFn, ImprovementResult, Waypoint

logger = logging.getLogger(__name__)

DEFAULT_MAX_ITERATIONS = 1000
EPSILON = 1e-9


def improve_tour(
    tour: Sequence[Waypoint],
    max_iterations: int = DEFAULT_MAX_ITERATIONS,
    distance: DistanceFn = waypoint_distance_km,
) -> ImprovementResult:
    """First-improvement 2-opt over an open path.

    Each pass scans for the first segment reversal that shortens the path,
    applies it and starts over. ``iterations`` counts the passes that applied
    a move; the final pass that finds nothing is not counted, so running this
    again on its own output returns 0 iterations. The first waypoint never
    moves.

    Stops after ``max_iterations`` moves even if the path could still be
    shortened; ``converged`` is False in that case.
    """
    points = list(tour)
    if len(points) < 3:
        return ImprovementResult(tour=tuple(points), iterations=0, converged=True)

    # Costs between tour positions, evaluated once; the search reorders ints.
    costs = [[distance(a, b) for b in points] for a in points]
    order = list(range(len(points)))

    iterations = 0
    converged = False
    while True:
        move = _find_improving_move(order, costs)
        if move is None:
            converged = True
            break
        if iterations >= max_iterations:
            break

        i, j = move
        order[i + 1 : j + 1] = order[j:i:-1]
        iterations += 1

    if not converged:
        logger.warning(
            "2-opt stopped at the iteration cap (%d) before reaching a local optimum "
            "for %d waypoints",
            max_iterations,
            len(points),
        )

    return ImprovementResult(
        tour=tuple(points[position] for position in order),
        iterations=iterations,
        converged=converged,
    )


def _find_improving_move(order: list[int], costs: list[list[float]]) -> tuple[int, int] | None:
    # The path is open: when j is the last index there is no edge after it, so
    # reversing order[i+1..j] only swaps (i, i+1) for (i, j).
    size = len(order)
    last = size - 1
    for i in range(size - 2):
        from_row = costs[order[i]]
        next_row = costs[order[i + 1]]
        removed_head = from_row[order[i + 1]]
        for j in range(i + 2, size):
            node_j = order[j]
            removed = removed_head
            added = from_row[node_j]
            if j < last:
                node_after = order[j + 1]
                removed += costs[node_j][node_after]
                added += next_row[node_after]

            if added + EPSILON < removed:
                return i, j

    return None
