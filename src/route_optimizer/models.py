from __future__ import annotations

from django.db import models


class OptimizedRoute(models.Model):
    objects = models.Manager["OptimizedRoute"]()

    name = models.CharField(max_length=200, blank=True, default="")
    description = models.TextField(blank=True, default="")
    algorithm_used = models.CharField(max_length=50)

    # Distances in kilometers
    original_distance_km = models.FloatField()
    optimized_distance_km = models.FloatField()
    savings_km = models.FloatField()
    savings_percentage = models.FloatField()

    iterations = models.PositiveIntegerField(default=0)
    converged = models.BooleanField(default=True)
    waypoint_count = models.PositiveIntegerField()

    # Serialized waypoint lists, in visiting order
    original_order = models.JSONField(default=list)
    optimized_order = models.JSONField(default=list)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ("-created_at", "-id")
        indexes = (models.Index(fields=["created_at"], name="optimized_route_created_idx"),)

    def __str__(self) -> str:
        label = self.name or f"Route #{self.pk}"
        return f"{label} ({self.optimized_distance_km:.2f} km)"
