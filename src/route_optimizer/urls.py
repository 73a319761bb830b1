from django.urls import path

from route_optimizer import views

urlpatterns = [
    path("api/v1/health", views.health_view, name="health"),
    path("api/v1/route-optimize", views.route_optimize_view, name="route-optimize"),
    path("api/v1/route-distance", views.route_distance_view, name="route-distance"),
    path("api/v1/routes", views.saved_routes_view, name="saved-routes"),
    path("api/v1/routes/<int:route_id>", views.saved_route_detail_view, name="saved-route-detail"),
]
