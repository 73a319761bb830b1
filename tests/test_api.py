from __future__ import annotations

import json

import httpx
import pytest

from route_optimizer.exceptions import ExternalServiceError
from route_optimizer.models import OptimizedRoute
from route_optimizer.schemas import MAX_WAYPOINTS

SQUARE = [
    {"id": "A", "label": "Garage", "latitude": 0.0, "longitude": 0.0},
    {"id": "C", "label": "Stop C", "latitude": 1.0, "longitude": 1.0},
    {"id": "B", "label": "Stop B", "latitude": 0.0, "longitude": 1.0, "demand": 12},
    {"id": "D", "label": "Stop D", "latitude": 1.0, "longitude": 0.0},
]


def _post(api_client, path: str, payload: dict):
    return api_client.post(path, data=json.dumps(payload), content_type="application/json")


@pytest.mark.django_db
def test_health_endpoint_returns_saved_route_count(api_client) -> None:
    OptimizedRoute.objects.create(
        name="Morning shuttle",
        algorithm_used="nearest-neighbor+2-opt",
        original_distance_km=10.0,
        optimized_distance_km=8.0,
        savings_km=2.0,
        savings_percentage=20.0,
        waypoint_count=4,
    )

    response = api_client.get("/api/v1/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "saved_routes": 1}


def test_route_optimize_returns_result(api_client) -> None:
    response = _post(api_client, "/api/v1/route-optimize", {"waypoints": SQUARE})

    assert response.status_code == 200
    payload = response.json()
    assert payload["route_id"] is None
    assert payload["optimizer_used"] == "heuristic"
    assert [point["id"] for point in payload["original_order"]] == ["A", "C", "B", "D"]
    assert [point["id"] for point in payload["optimized_order"]] in (
        ["A", "B", "C", "D"],
        ["A", "D", "C", "B"],
    )
    assert payload["optimized_distance_km"] < payload["original_distance_km"]
    assert payload["savings_percentage"] > 0
    assert payload["converged"] is True
    demand = {point["id"]: point["demand"] for point in payload["optimized_order"]}
    assert demand["B"] == 12


def test_route_optimize_accepts_empty_waypoint_list(api_client) -> None:
    response = _post(api_client, "/api/v1/route-optimize", {"waypoints": []})

    assert response.status_code == 200
    payload = response.json()
    assert payload["optimized_order"] == []
    assert payload["original_distance_km"] == 0.0
    assert payload["iterations"] == 0


@pytest.mark.parametrize(
    "waypoint",
    [
        {"id": "X", "latitude": 91.0, "longitude": 0.0},
        {"id": "X", "latitude": 0.0, "longitude": -181.0},
        {"id": "X", "latitude": 10.0},
        {"id": "X", "label": "No location"},
    ],
)
def test_route_optimize_rejects_invalid_waypoints(api_client, waypoint) -> None:
    response = _post(api_client, "/api/v1/route-optimize", {"waypoints": [waypoint]})

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "validation_error"


def test_route_optimize_rejects_duplicate_ids(api_client) -> None:
    waypoints = [SQUARE[0], {**SQUARE[1], "id": "A"}]

    response = _post(api_client, "/api/v1/route-optimize", {"waypoints": waypoints})

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "validation_error"


def test_route_optimize_rejects_invalid_json(api_client) -> None:
    response = api_client.post(
        "/api/v1/route-optimize", data="{not json", content_type="application/json"
    )

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "invalid_json"


def test_route_optimize_requires_post(api_client) -> None:
    assert api_client.get("/api/v1/route-optimize").status_code == 405


def test_route_optimize_maps_geocoding_outage_to_502(api_client, mocker) -> None:
    service = mocker.Mock()
    service.optimize.side_effect = ExternalServiceError("Geocoding request failed")
    mocker.patch("route_optimizer.views.get_route_optimizer", return_value=service)

    response = _post(
        api_client,
        "/api/v1/route-optimize",
        {"waypoints": [{"id": 1, "address": "Av. Paulista, 1000, Sao Paulo"}]},
    )

    assert response.status_code == 502
    assert response.json()["error"]["code"] == "upstream_error"


def test_route_optimize_maps_non_json_geocoding_body_to_502(api_client, mocker) -> None:
    mocker.patch(
        "route_optimizer.services.geocoding.httpx.get",
        return_value=httpx.Response(
            200,
            text="<html>rate limited</html>",
            request=httpx.Request("GET", "https://nominatim.test/search"),
        ),
    )

    response = _post(
        api_client,
        "/api/v1/route-optimize",
        {"waypoints": [{"id": 1, "address": "Av. Paulista, 1000, Sao Paulo"}]},
    )

    assert response.status_code == 502
    assert response.json()["error"]["code"] == "upstream_error"


def test_route_optimize_rejects_too_many_waypoints(api_client) -> None:
    waypoints = [
        {"id": index, "label": f"Stop {index}", "latitude": 0.0, "longitude": index * 0.001}
        for index in range(MAX_WAYPOINTS + 1)
    ]

    response = _post(api_client, "/api/v1/route-optimize", {"waypoints": waypoints})

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "validation_error"


def test_route_optimize_passes_overrides_to_service(api_client, mocker) -> None:
    service = mocker.Mock()
    service.optimize.return_value = mocker.Mock(model_dump=lambda mode: {"ok": True})
    mocker.patch("route_optimizer.views.get_route_optimizer", return_value=service)

    response = _post(
        api_client,
        "/api/v1/route-optimize",
        {"waypoints": SQUARE, "max_iterations": 5, "optimizer": "ortools"},
    )

    assert response.status_code == 200
    request = service.optimize.call_args.args[0]
    assert request.max_iterations == 5
    assert request.optimizer == "ortools"


def test_route_distance_keeps_given_order(api_client) -> None:
    response = _post(api_client, "/api/v1/route-distance", {"waypoints": SQUARE})

    assert response.status_code == 200
    payload = response.json()
    assert [point["id"] for point in payload["waypoints"]] == ["A", "C", "B", "D"]
    assert len(payload["legs_km"]) == 3
    assert payload["total_distance_km"] == pytest.approx(sum(payload["legs_km"]), abs=0.02)


@pytest.mark.django_db
def test_persisted_route_can_be_listed_fetched_and_deleted(api_client) -> None:
    response = _post(
        api_client,
        "/api/v1/route-optimize",
        {"waypoints": SQUARE, "persist": True, "name": "Linha 12"},
    )
    assert response.status_code == 200
    route_id = response.json()["route_id"]
    assert route_id is not None

    listing = api_client.get("/api/v1/routes").json()
    assert [route["id"] for route in listing["results"]] == [route_id]
    assert listing["results"][0]["name"] == "Linha 12"
    assert listing["results"][0]["algorithm_used"] == "nearest-neighbor+2-opt"

    detail = api_client.get(f"/api/v1/routes/{route_id}")
    assert detail.status_code == 200
    assert [point["id"] for point in detail.json()["original_order"]] == ["A", "C", "B", "D"]

    deleted = api_client.delete(f"/api/v1/routes/{route_id}")
    assert deleted.status_code == 200
    assert not OptimizedRoute.objects.exists()


@pytest.mark.django_db
def test_missing_saved_route_returns_404(api_client) -> None:
    response = api_client.get("/api/v1/routes/999")

    assert response.status_code == 404
    assert response.json()["error"]["code"] == "not_found"


@pytest.mark.django_db
def test_saved_routes_rejects_non_integer_paging(api_client) -> None:
    response = api_client.get("/api/v1/routes?limit=abc")

    assert response.status_code == 400
