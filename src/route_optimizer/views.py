from __future__ import annotations

import json
from typing import Any

from django.http import HttpRequest, HttpResponse, JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET, require_http_methods, require_POST
from pydantic import BaseModel, ValidationError

from route_optimizer.exceptions import (
    ExternalServiceError,
    InvalidLocationError,
    RouteNotFoundError,
)
from route_optimizer.models import OptimizedRoute
from route_optimizer.schemas import RouteDistanceRequest, RouteOptimizeRequest
from route_optimizer.services.planner import RouteOptimizerService

_optimizer_service: RouteOptimizerService | None = None

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100


def get_route_optimizer() -> RouteOptimizerService:
    global _optimizer_service
    if _optimizer_service is None:
        _optimizer_service = RouteOptimizerService()
    return _optimizer_service


@require_GET
def health_view(_: HttpRequest) -> HttpResponse:
    return JsonResponse({"status": "ok", "saved_routes": OptimizedRoute.objects.count()})


@csrf_exempt
@require_POST
def route_optimize_view(request: HttpRequest) -> HttpResponse:
    optimize_request = _validate(request, RouteOptimizeRequest)
    if isinstance(optimize_request, JsonResponse):
        return optimize_request

    try:
        response = get_route_optimizer().optimize(optimize_request)
    except InvalidLocationError as exc:
        return _error_response("invalid_location", str(exc), status=400)
    except ExternalServiceError as exc:
        return _error_response("upstream_error", str(exc), status=502)

    return JsonResponse(response.model_dump(mode="json"), status=200)


@csrf_exempt
@require_POST
def route_distance_view(request: HttpRequest) -> HttpResponse:
    distance_request = _validate(request, RouteDistanceRequest)
    if isinstance(distance_request, JsonResponse):
        return distance_request

    try:
        response = get_route_optimizer().measure(distance_request)
    except InvalidLocationError as exc:
        return _error_response("invalid_location", str(exc), status=400)
    except ExternalServiceError as exc:
        return _error_response("upstream_error", str(exc), status=502)

    return JsonResponse(response.model_dump(mode="json"), status=200)


@require_GET
def saved_routes_view(request: HttpRequest) -> HttpResponse:
    try:
        limit = int(request.GET.get("limit", DEFAULT_PAGE_SIZE))
        offset = int(request.GET.get("offset", 0))
    except ValueError:
        return _error_response("invalid_query", "limit and offset must be integers", status=400)

    limit = min(max(limit, 1), MAX_PAGE_SIZE)
    offset = max(offset, 0)
    routes = get_route_optimizer().list_saved(limit=limit, offset=offset)
    return JsonResponse(
        {
            "limit": limit,
            "offset": offset,
            "results": [route.model_dump(mode="json") for route in routes],
        }
    )


@csrf_exempt
@require_http_methods(["GET", "DELETE"])
def saved_route_detail_view(request: HttpRequest, route_id: int) -> HttpResponse:
    service = get_route_optimizer()
    try:
        if request.method == "DELETE":
            service.delete_saved(route_id)
            return JsonResponse({"deleted": route_id})
        route = service.get_saved(route_id)
    except RouteNotFoundError as exc:
        return _error_response("not_found", str(exc), status=404)

    return JsonResponse(route.model_dump(mode="json"))


def _validate(request: HttpRequest, schema: type[BaseModel]) -> Any:
    payload = _parse_json_payload(request)
    if isinstance(payload, JsonResponse):
        return payload

    try:
        return schema.model_validate(payload)
    except ValidationError as exc:
        return JsonResponse(
            {
                "error": {
                    "code": "validation_error",
                    "message": "Invalid request payload",
                    "details": exc.errors(include_url=False, include_context=False),
                }
            },
            status=400,
        )


def _parse_json_payload(request: HttpRequest) -> dict[str, Any] | JsonResponse:
    if not request.body:
        return {}

    try:
        payload = json.loads(request.body)
    except json.JSONDecodeError:
        return _error_response("invalid_json", "Request body must be valid JSON", status=400)

    if not isinstance(payload, dict):
        return _error_response("invalid_json", "JSON body must be an object", status=400)

    return payload


def _error_response(code: str, message: str, status: int) -> JsonResponse:
    return JsonResponse({"error": {"code": code, "message": message}}, status=status)
