from __future__ import annotations

import logging
from typing import Sequence

from route_optimizer.exceptions import OptimizationError
from route_optimizer.services.construction import build_initial_tour
from route_optimizer.services.geo import DistanceMatrix, route_distance_km, waypoint_distance_km
from route_optimizer.services.improvement import DEFAULT_MAX_ITERATIONS, improve_tour
from route_optimizer.services.types import (
    DistanceFn,
    ImprovementResult,
    OptimizationResult,
    OptimizerName,
    Waypoint,
)

logger = logging.getLogger(__name__)

DEFAULT_TIME_LIMIT_SECONDS = 5
METERS_PER_KM = 1000.0


def optimize_route(
    waypoints: Sequence[Waypoint],
    *,
    max_iterations: int = DEFAULT_MAX_ITERATIONS,
    optimizer: OptimizerName = "heuristic",
    use_distance_matrix: bool = True,
    time_limit_seconds: int = DEFAULT_TIME_LIMIT_SECONDS,
) -> OptimizationResult:
    """Reorder waypoints into a shorter open path starting at ``waypoints[0]``.

    ``original_distance`` always measures the caller's input order, not the
    nearest-neighbour seed, so the reported savings can be negative when the
    input was already better than what the search found.
    """
    original_order = tuple(waypoints)
    if len(original_order) <= 2:
        distance = route_distance_km(original_order)
        return OptimizationResult(
            original_order=original_order,
            optimized_order=original_order,
            original_distance=distance,
            optimized_distance=distance,
            seed_distance=distance,
            savings=0.0,
            savings_percentage=0.0,
            iterations=0,
            converged=True,
            optimizer_used="heuristic",
        )

    distance_fn: DistanceFn = (
        DistanceMatrix(original_order) if use_distance_matrix else waypoint_distance_km
    )

    original_distance = route_distance_km(original_order, distance_fn)
    seed = build_initial_tour(original_order, distance_fn)
    seed_distance = route_distance_km(seed, distance_fn)

    optimizer_used: OptimizerName = "heuristic"
    if optimizer == "ortools":
        try:
            improvement = _improve_with_ortools(seed, distance_fn, time_limit_seconds)
            optimizer_used = "ortools"
        except Exception as exc:
            logger.warning("OR-Tools optimization failed, using 2-opt instead: %s", exc)
            improvement = improve_tour(seed, max_iterations, distance_fn)
    else:
        improvement = improve_tour(seed, max_iterations, distance_fn)

    optimized_order = improvement.tour
    optimized_distance = route_distance_km(optimized_order, distance_fn)
    if optimized_distance > seed_distance:
        optimized_order = tuple(seed)
        optimized_distance = seed_distance

    savings = original_distance - optimized_distance
    savings_percentage = savings / original_distance * 100 if original_distance > 0 else 0.0

    logger.info(
        "Optimized %d waypoints with %s: %.3f km -> %.3f km in %d iterations",
        len(original_order),
        optimizer_used,
        original_distance,
        optimized_distance,
        improvement.iterations,
    )

    return OptimizationResult(
        original_order=original_order,
        optimized_order=optimized_order,
        original_distance=original_distance,
        optimized_distance=optimized_distance,
        seed_distance=seed_distance,
        savings=savings,
        savings_percentage=savings_percentage,
        iterations=improvement.iterations,
        converged=improvement.converged,
        optimizer_used=optimizer_used,
    )


def _improve_with_ortools(
    seed: list[Waypoint], distance: DistanceFn, time_limit_seconds: int
) -> ImprovementResult:
    try:
        from ortools.constraint_solver import pywrapcp, routing_enums_pb2
    except ImportError as exc:
        raise OptimizationError("OR-Tools is not available") from exc

    size = len(seed)
    # Node ``size`` is a dummy end with zero-cost arcs, which leaves the real
    # path free to finish at any waypoint.
    end_node = size
    cost_matrix = [[0] * (size + 1) for _ in range(size + 1)]
    for i in range(size):
        for j in range(size):
            if i != j:
                cost_matrix[i][j] = int(round(distance(seed[i], seed[j]) * METERS_PER_KM))

    manager = pywrapcp.RoutingIndexManager(size + 1, 1, [0], [end_node])
    routing = pywrapcp.RoutingModel(manager)

    def distance_callback(from_index: int, to_index: int) -> int:
        return cost_matrix[manager.IndexToNode(from_index)][manager.IndexToNode(to_index)]

    transit_callback_index = routing.RegisterTransitCallback(distance_callback)
    routing.SetArcCostEvaluatorOfAllVehicles(transit_callback_index)

    search_parameters = pywrapcp.DefaultRoutingSearchParameters()
    search_parameters.local_search_metaheuristic = (
        routing_enums_pb2.LocalSearchMetaheuristic.GUIDED_LOCAL_SEARCH
    )
    search_parameters.time_limit.FromSeconds(max(1, int(time_limit_seconds)))

    initial_assignment = routing.ReadAssignmentFromRoutes([list(range(1, size))], True)
    if initial_assignment is None:
        raise OptimizationError("Could not load the seed tour into OR-Tools")

    solution = routing.SolveFromAssignmentWithParameters(initial_assignment, search_parameters)
    if solution is None:
        raise OptimizationError("No solution found by OR-Tools")

    tour: list[Waypoint] = []
    index = routing.Start(0)
    while not routing.IsEnd(index):
        tour.append(seed[manager.IndexToNode(index)])
        index = solution.Value(routing.NextVar(index))

    if len(tour) != size:
        raise OptimizationError("OR-Tools returned an incomplete tour")

    return ImprovementResult(tour=tuple(tour), iterations=0, converged=True)


def algorithm_label(optimizer_used: OptimizerName) -> str:
    """Name stored with saved runs for the search that produced them."""
    if optimizer_used == "ortools":
        return "ortools-guided-local-search"
    return "nearest-neighbor+2-opt"
