from __future__ import annotations

from pathlib import Path
from typing import Any

import polars as pl
from django.conf import settings
from django.core.management.base import BaseCommand, CommandError

from route_optimizer.models import OptimizedRoute
from route_optimizer.services.optimization import algorithm_label, optimize_route
from route_optimizer.services.types import Waypoint


class Command(BaseCommand):
    help = "Optimize the visiting order of waypoints loaded from a CSV file."

    def add_arguments(self, parser: Any) -> None:
        parser.add_argument("csv_path", type=str, help="CSV with id,label,latitude,longitude")
        parser.add_argument(
            "--max-iterations",
            type=int,
            default=None,
            help="Cap on 2-opt improvement passes",
        )
        parser.add_argument(
            "--optimizer",
            choices=("heuristic", "ortools"),
            default="heuristic",
            help="Search strategy to apply after the nearest-neighbour seed",
        )
        parser.add_argument(
            "--save",
            action="store_true",
            help="Persist the result as an optimized route",
        )
        parser.add_argument("--name", type=str, default="", help="Name of the saved route")

    def handle(self, *_: Any, **options: Any) -> None:
        csv_path = Path(options["csv_path"])
        if not csv_path.exists():
            raise CommandError(f"CSV file does not exist: {csv_path}")

        frame = self._load_and_transform(csv_path)
        waypoints = [
            Waypoint(
                id=row["id"],
                latitude=row["latitude"],
                longitude=row["longitude"],
                label=row["label"],
                demand=row["demand"],
            )
            for row in frame.to_dicts()
        ]
        if not waypoints:
            self.stdout.write(self.style.WARNING("No valid waypoints to optimize"))
            return

        max_iterations = options["max_iterations"]
        if max_iterations is None:
            max_iterations = int(settings.ROUTE_OPTIMIZER_MAX_ITERATIONS)

        result = optimize_route(
            waypoints,
            max_iterations=max(0, max_iterations),
            optimizer=options["optimizer"],
            use_distance_matrix=bool(settings.ROUTE_OPTIMIZER_USE_DISTANCE_MATRIX),
            time_limit_seconds=int(settings.ORTOOLS_TIME_LIMIT_SECONDS),
        )

        for position, waypoint in enumerate(result.optimized_order, start=1):
            self.stdout.write(f"{position:>3}. {waypoint.id} {waypoint.label}")

        if not result.converged:
            self.stdout.write(
                self.style.WARNING(
                    f"Iteration cap of {max_iterations} reached; the order may not be locally optimal"
                )
            )

        if options["save"]:
            OptimizedRoute.objects.create(
                name=options["name"] or csv_path.stem,
                algorithm_used=algorithm_label(result.optimizer_used),
                original_distance_km=round(result.original_distance, 2),
                optimized_distance_km=round(result.optimized_distance, 2),
                savings_km=round(result.savings, 2),
                savings_percentage=round(result.savings_percentage, 2),
                iterations=result.iterations,
                converged=result.converged,
                waypoint_count=len(waypoints),
                original_order=[_serialize(waypoint) for waypoint in result.original_order],
                optimized_order=[_serialize(waypoint) for waypoint in result.optimized_order],
            )

        self.stdout.write(
            self.style.SUCCESS(
                f"Optimized {len(waypoints)} waypoints: "
                f"{result.original_distance:.2f} km -> {result.optimized_distance:.2f} km "
                f"({result.savings_percentage:.2f}% saved, {result.iterations} iterations)"
            )
        )

    @staticmethod
    def _load_and_transform(csv_path: Path) -> pl.DataFrame:
        frame = pl.read_csv(csv_path, infer_schema_length=5000)
        required_columns = {"id", "latitude", "longitude"}
        missing_columns = required_columns.difference(frame.columns)
        if missing_columns:
            raise CommandError(f"Missing expected columns: {sorted(missing_columns)}")

        if "label" not in frame.columns:
            frame = frame.with_columns(pl.lit(None, dtype=pl.Utf8).alias("label"))
        if "demand" not in frame.columns:
            frame = frame.with_columns(pl.lit(None, dtype=pl.Float64).alias("demand"))

        return (
            frame.select(
                pl.col("id").cast(pl.Utf8, strict=False).str.strip_chars().alias("id"),
                pl.col("label")
                .cast(pl.Utf8, strict=False)
                .str.strip_chars()
                .fill_null("")
                .alias("label"),
                pl.col("latitude").cast(pl.Float64, strict=False).alias("latitude"),
                pl.col("longitude").cast(pl.Float64, strict=False).alias("longitude"),
                pl.col("demand").cast(pl.Float64, strict=False).alias("demand"),
            )
            .filter(
                pl.col("id").is_not_null()
                & (pl.col("id").str.len_chars() > 0)
                & pl.col("latitude").is_between(-90.0, 90.0)
                & pl.col("longitude").is_between(-180.0, 180.0)
            )
            .unique(subset=["id"], keep="first", maintain_order=True)
        )


def _serialize(waypoint: Waypoint) -> dict[str, Any]:
    return {
        "id": waypoint.id,
        "label": waypoint.label,
        "latitude": round(waypoint.latitude, 6),
        "longitude": round(waypoint.longitude, 6),
        "demand": waypoint.demand,
    }
