from django.contrib import admin

from route_optimizer.models import OptimizedRoute


@admin.register(OptimizedRoute)
class OptimizedRouteAdmin(admin.ModelAdmin):
    list_display = (
        "name",
        "algorithm_used",
        "waypoint_count",
        "original_distance_km",
        "optimized_distance_km",
        "savings_percentage",
        "converged",
        "created_at",
    )
    list_filter = ("algorithm_used", "converged")
    search_fields = ("name", "description")
    readonly_fields = ("original_order", "optimized_order", "created_at", "updated_at")
    ordering = ("-created_at",)
