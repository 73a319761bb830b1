from __future__ import annotations

import hashlib
import logging
import time
from typing import Any

import httpx
from django.conf import settings
from django.core.cache import cache

from route_optimizer.exceptions import ExternalServiceError, InvalidLocationError

logger = logging.getLogger(__name__)


class GeocodingClient:
    def __init__(self) -> None:
        self.base_url = settings.GEOCODING_BASE_URL.rstrip("/")
        self.timeout = settings.GEOCODING_TIMEOUT_SECONDS
        self.retry_count = settings.GEOCODING_RETRY_COUNT
        self.user_agent = settings.GEOCODING_USER_AGENT

    def geocode(self, query: str, *, country_code: str | None = None) -> tuple[float, float]:
        """Resolve an address to ``(latitude, longitude)``."""
        country_code = settings.GEOCODING_COUNTRY_CODE if country_code is None else country_code
        cache_key = self._cache_key(query, country_code)
        cached = cache.get(cache_key)
        if cached:
            return cached["latitude"], cached["longitude"]

        params: dict[str, Any] = {
            "q": query,
            "format": "jsonv2",
            "limit": 1,
        }
        if country_code:
            params["countrycodes"] = country_code

        payload = self._get("/search", params)
        latitude, longitude = self._parse_search(payload)
        cache.set(
            cache_key,
            {"latitude": latitude, "longitude": longitude},
            timeout=settings.GEOCODE_CACHE_TTL_SECONDS,
        )
        return latitude, longitude

    def reverse(self, latitude: float, longitude: float) -> str | None:
        """Return "road, number" for a coordinate, or None when no road is known."""
        payload = self._get(
            "/reverse",
            {"lat": latitude, "lon": longitude, "format": "jsonv2"},
        )
        address = payload.get("address") if isinstance(payload, dict) else None
        if not address or not address.get("road"):
            return None
        return f"{address['road']}, {address.get('house_number', '')}".rstrip(", ")

    def _get(self, path: str, params: dict[str, Any]) -> Any:
        for attempt in range(self.retry_count + 1):
            try:
                response = httpx.get(
                    f"{self.base_url}{path}",
                    params=params,
                    timeout=self.timeout,
                    headers={
                        "Accept": "application/json",
                        "User-Agent": self.user_agent,
                    },
                )
                response.raise_for_status()
                try:
                    return response.json()
                except ValueError as exc:
                    logger.warning("Geocoding request to %s returned a non-JSON body", path)
                    raise ExternalServiceError("Geocoding returned an invalid payload") from exc
            except httpx.HTTPError as exc:
                if attempt >= self.retry_count:
                    logger.warning("Geocoding request to %s failed: %s", path, exc)
                    raise ExternalServiceError("Geocoding request failed") from exc
                time.sleep(0.3 * (attempt + 1))

        raise ExternalServiceError("Geocoding request failed")

    @staticmethod
    def _cache_key(query: str, country_code: str) -> str:
        digest = hashlib.sha256(f"{query.lower()}|{country_code}".encode()).hexdigest()
        return f"geocode:{digest}"

    @staticmethod
    def _parse_search(payload: Any) -> tuple[float, float]:
        if not isinstance(payload, list) or not payload:
            raise InvalidLocationError("Location could not be resolved")

        first = payload[0]
        try:
            return float(first["lat"]), float(first["lon"])
        except (KeyError, TypeError, ValueError) as exc:
            raise InvalidLocationError("Invalid geocoding response") from exc
