"""
Open-Meteo weather client (geocode, then forecast; standard library HTTP).

The lookup is a two-step external call: the geocoding API turns a free-form city
name into coordinates and a country, then the forecast API returns the current
conditions for those coordinates. The temperature unit is requested from the
upstream according to the resolved country so the snapshot never needs a local
conversion.

The free public endpoints need no credential; the sentinel key "open-meteo"
selects them. Any other key switches both steps to the commercial
`customer-*` hosts and is passed as the `apikey` query parameter. The sentinel
"demo" delegates to the offline mock client.

Errors are kept in a small taxonomy (`WeatherClientError`,
`WeatherClientTimeoutError`) inside the module; `get_weather` converts all of them
into absence and logs the cause, so callers only ever see a snapshot or None.
"""

from __future__ import annotations

import json
import logging
import socket
from typing import Any, Dict, Optional
from urllib import error as urlerror
from urllib import parse as urlparse
from urllib import request as urlrequest

from monitoring.metrics import WEATHER_REQUEST_TIME, track_latency
from shared.models import WeatherSnapshot
from shared.utils import mask_secret, truncate_message_for_logging
from .base import (
    DEMO_API_KEY,
    FREE_API_KEY,
    WeatherClient,
    WeatherClientError,
    WeatherClientTimeoutError,
    describe_cloud_cover,
    temperature_unit_for_country,
)
from .mock_client import MockWeatherClient

logger = logging.getLogger(__name__)

GEOCODE_URL = "https://geocoding-api.open-meteo.com/v1/search"
FORECAST_URL = "https://api.open-meteo.com/v1/forecast"
CUSTOMER_GEOCODE_URL = "https://customer-geocoding-api.open-meteo.com/v1/search"
CUSTOMER_FORECAST_URL = "https://customer-api.open-meteo.com/v1/forecast"

CURRENT_FIELDS = "temperature_2m,relative_humidity_2m,surface_pressure,wind_speed_10m,cloud_cover"


class OpenMeteoWeatherClient(WeatherClient):
    """
    Weather client backed by the Open-Meteo geocoding and forecast APIs.

    Args:
        timeout_s (float): Socket timeout for each of the two upstream calls.
        demo_client (WeatherClient, optional): Client used for the "demo" credential;
            defaults to an unseeded `MockWeatherClient`.
    """

    def __init__(self, timeout_s: float = 10.0, demo_client: Optional[WeatherClient] = None) -> None:
        self.timeout_s = timeout_s
        self.demo_client = demo_client or MockWeatherClient()

    def get_weather(self, city: str, api_key: str = FREE_API_KEY) -> Optional[WeatherSnapshot]:
        api_key = api_key or FREE_API_KEY
        logger.debug("[OpenMeteoWeatherClient] city=%s, key=%s", city, mask_secret(api_key))

        if api_key == DEMO_API_KEY:
            return self.demo_client.get_weather(city, api_key)

        try:
            location = self._geocode(city, api_key)
            if location is None:
                logger.warning("[OpenMeteoWeatherClient] City not found: %s", city)
                return None

            country = location.get("country") or ""
            unit, unit_param = temperature_unit_for_country(country)
            current = self._forecast(location["latitude"], location["longitude"], unit_param, api_key)
            if not current:
                logger.warning("[OpenMeteoWeatherClient] No current weather in forecast for %s", city)
                return None

            cloud_cover = float(current.get("cloud_cover", 0))
            snapshot = WeatherSnapshot(
                city=location.get("name") or city,
                country=country,
                temperature=float(current["temperature_2m"]),
                unit=unit,
                description=describe_cloud_cover(cloud_cover),
                humidity=int(current.get("relative_humidity_2m", 0)),
                pressure=float(current.get("surface_pressure", 0.0)),
                wind_speed=float(current.get("wind_speed_10m", 0.0)),
                cloud_cover=int(cloud_cover),
            )
        except WeatherClientError as exc:
            logger.error("[OpenMeteoWeatherClient] Lookup failed for %s: %s", city, exc)
            return None
        except (KeyError, TypeError, ValueError) as exc:
            logger.error("[OpenMeteoWeatherClient] Unexpected payload shape for %s: %s", city, exc)
            return None

        logger.info(
            "[OpenMeteoWeatherClient] Weather for %s, %s: %s%s, %s",
            snapshot.city, snapshot.country, snapshot.temperature, snapshot.unit, snapshot.description,
        )
        return snapshot

    # ------------------------------------------------------------------
    # Upstream calls
    # ------------------------------------------------------------------

    @track_latency(WEATHER_REQUEST_TIME, labels=lambda self: {"endpoint": "geocode"})
    def _geocode(self, city: str, api_key: str) -> Optional[Dict[str, Any]]:
        """Return the first geocoding result for `city`, or None when there is none."""
        params = {"name": city, "count": 1, "language": "en", "format": "json"}
        base_url = GEOCODE_URL
        if api_key != FREE_API_KEY:
            base_url = CUSTOMER_GEOCODE_URL
            params["apikey"] = api_key

        data = self._get_json(base_url, params)
        results = data.get("results") or []
        if not results:
            return None
        return results[0]

    @track_latency(WEATHER_REQUEST_TIME, labels=lambda self: {"endpoint": "forecast"})
    def _forecast(self, latitude: float, longitude: float, unit_param: str, api_key: str) -> Dict[str, Any]:
        """Return the `current` block of the forecast for the given coordinates."""
        params = {
            "latitude": latitude,
            "longitude": longitude,
            "current": CURRENT_FIELDS,
            "temperature_unit": unit_param,
            "wind_speed_unit": "ms",
            "timezone": "auto",
        }
        base_url = FORECAST_URL
        if api_key != FREE_API_KEY:
            base_url = CUSTOMER_FORECAST_URL
            params["apikey"] = api_key

        data = self._get_json(base_url, params)
        return data.get("current") or {}

    def _get_json(self, base_url: str, params: Dict[str, Any]) -> Dict[str, Any]:
        """
        GET `base_url` with `params` and return the decoded JSON object.

        Raises:
            WeatherClientTimeoutError: When the request exceeds the timeout.
            WeatherClientError: For non-200 responses, network errors or invalid JSON.
        """
        url = f"{base_url}?{urlparse.urlencode(params)}"
        req = urlrequest.Request(url, method="GET")
        req.add_header("Accept", "application/json")

        try:
            with urlrequest.urlopen(req, timeout=self.timeout_s) as resp:
                status = getattr(resp, "status", 200)
                body = resp.read().decode("utf-8", errors="replace")
        except socket.timeout as exc:
            raise WeatherClientTimeoutError(f"Request timed out after {self.timeout_s}s") from exc
        except urlerror.HTTPError as exc:
            raise WeatherClientError(f"Weather HTTP {exc.code} from {base_url}") from exc
        except urlerror.URLError as exc:
            if isinstance(exc.reason, socket.timeout):
                raise WeatherClientTimeoutError(f"Request timed out after {self.timeout_s}s") from exc
            raise WeatherClientError(f"Network error calling {base_url}: {exc}") from exc

        if status != 200:
            raise WeatherClientError(f"Weather HTTP {status} from {base_url}: {truncate_message_for_logging(body, 200)}")
        try:
            data = json.loads(body)
        except json.JSONDecodeError as exc:
            raise WeatherClientError(f"Invalid JSON from {base_url}: {exc}") from exc
        if not isinstance(data, dict):
            raise WeatherClientError(f"Unexpected JSON from {base_url}: expected an object")
        return data
