from __future__ import annotations

import httpx
import pytest

from route_optimizer.exceptions import ExternalServiceError, InvalidLocationError
from route_optimizer.services.geocoding import GeocodingClient


def _response(mocker, payload):
    response = mocker.Mock()
    response.json.return_value = payload
    response.raise_for_status.return_value = None
    return response


def test_geocode_parses_first_result_and_caches(mocker) -> None:
    get = mocker.patch(
        "route_optimizer.services.geocoding.httpx.get",
        return_value=_response(mocker, [{"lat": "-23.5613", "lon": "-46.6565"}]),
    )
    client = GeocodingClient()

    first = client.geocode("Av. Paulista, 1578")
    second = client.geocode("Av. Paulista, 1578")

    assert first == (-23.5613, -46.6565)
    assert second == first
    get.assert_called_once()
    params = get.call_args.kwargs["params"]
    assert params["q"] == "Av. Paulista, 1578"
    assert params["countrycodes"] == "br"


def test_geocode_without_results_is_invalid_location(mocker) -> None:
    mocker.patch(
        "route_optimizer.services.geocoding.httpx.get",
        return_value=_response(mocker, []),
    )

    with pytest.raises(InvalidLocationError):
        GeocodingClient().geocode("Nowhere street")


def test_geocode_with_malformed_result_is_invalid_location(mocker) -> None:
    mocker.patch(
        "route_optimizer.services.geocoding.httpx.get",
        return_value=_response(mocker, [{"lat": "north"}]),
    )

    with pytest.raises(InvalidLocationError):
        GeocodingClient().geocode("Rua sem numero")


def test_geocode_retries_then_raises_external_error(mocker, settings) -> None:
    settings.GEOCODING_RETRY_COUNT = 1
    sleep = mocker.patch("route_optimizer.services.geocoding.time.sleep")
    get = mocker.patch(
        "route_optimizer.services.geocoding.httpx.get",
        side_effect=httpx.ConnectError("connection refused"),
    )

    with pytest.raises(ExternalServiceError):
        GeocodingClient().geocode("Rua Augusta, 500")

    assert get.call_count == 2
    sleep.assert_called_once()


def test_reverse_formats_road_and_number(mocker) -> None:
    mocker.patch(
        "route_optimizer.services.geocoding.httpx.get",
        return_value=_response(
            mocker, {"address": {"road": "Rua Augusta", "house_number": "500"}}
        ),
    )

    assert GeocodingClient().reverse(-23.55, -46.65) == "Rua Augusta, 500"


def test_reverse_without_road_returns_none(mocker) -> None:
    mocker.patch(
        "route_optimizer.services.geocoding.httpx.get",
        return_value=_response(mocker, {"address": {"city": "Sao Paulo"}}),
    )

    assert GeocodingClient().reverse(-23.55, -46.65) is None


def test_reverse_without_house_number(mocker) -> None:
    mocker.patch(
        "route_optimizer.services.geocoding.httpx.get",
        return_value=_response(mocker, {"address": {"road": "Rua Augusta"}}),
    )

    assert GeocodingClient().reverse(-23.55, -46.65) == "Rua Augusta"


def test_non_json_body_is_external_error(mocker) -> None:
    mocker.patch(
        "route_optimizer.services.geocoding.httpx.get",
        return_value=httpx.Response(
            200,
            text="<html>rate limited</html>",
            request=httpx.Request("GET", "https://nominatim.test/search"),
        ),
    )

    with pytest.raises(ExternalServiceError, match="invalid payload"):
        GeocodingClient().geocode("Rua Augusta, 500")
