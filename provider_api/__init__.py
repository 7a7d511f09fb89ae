"""
provider_api package: provider-agnostic weather integrations.

This package contains the abstraction and concrete implementations that allow the
`get_weather` tool to look up current conditions through a consistent, stable
interface. The rest of the codebase speaks to `WeatherClient.get_weather(city,
api_key)`; provider-specific details (geocoding, unit selection, commercial
hosts) stay behind that boundary.

Included modules:
- base: The abstract interface, the error taxonomy and the shared unit and
  description rules.
- open_meteo_client: The default live implementation (Open-Meteo, no key needed
  for the free tier).
- mock_client: A seedable, in-memory implementation used by demo mode and tests.

Public exports:
- WeatherClient, WeatherClientError, WeatherClientTimeoutError
- OpenMeteoWeatherClient, MockWeatherClient
- make_weather_client: small factory selecting the client via WEATHER_PROVIDER
"""

import logging
import os
from typing import Optional

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
from .open_meteo_client import OpenMeteoWeatherClient

logger = logging.getLogger(__name__)


def make_weather_client(provider: Optional[str] = None, timeout_s: float = 10.0) -> WeatherClient:
    """
    Construct and return the active weather client.

    Defaults to Open-Meteo. WEATHER_PROVIDER=mock selects the offline mock for
    local runs and CI; unknown selectors fall back to Open-Meteo.
    """
    provider = (provider or os.getenv("WEATHER_PROVIDER", "open-meteo")).lower()
    if provider == "mock":
        return MockWeatherClient()
    if provider != "open-meteo":
        logger.warning("Unknown WEATHER_PROVIDER '%s'; falling back to open-meteo.", provider)
    return OpenMeteoWeatherClient(timeout_s=timeout_s)


__all__ = [
    "DEMO_API_KEY",
    "FREE_API_KEY",
    "WeatherClient",
    "WeatherClientError",
    "WeatherClientTimeoutError",
    "MockWeatherClient",
    "OpenMeteoWeatherClient",
    "describe_cloud_cover",
    "temperature_unit_for_country",
    "make_weather_client",
]
