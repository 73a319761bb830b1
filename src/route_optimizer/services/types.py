from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Literal, Union

WaypointId = Union[str, int]
OptimizerName = Literal["heuristic", "ortools"]


@dataclass(slots=True, frozen=True)
class Waypoint:
    id: WaypointId
    latitude: float
    longitude: float
    label: str = ""
    demand: float | None = None


DistanceFn = Callable[[Waypoint, Waypoint], float]


@dataclass(slots=True, frozen=True)
class ImprovementResult:
    tour: tuple[Waypoint, ...]
    iterations: int
    converged: bool


@dataclass(slots=True, frozen=True)
class OptimizationResult:
    original_order: tuple[Waypoint, ...]
    optimized_order: tuple[Waypoint, ...]
    original_distance: float
    optimized_distance: float
    seed_distance: float
    savings: float
    savings_percentage: float
    iterations: int
    converged: bool
    optimizer_used: OptimizerName
