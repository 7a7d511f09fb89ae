"""
Provider-agnostic client interface for weather lookups.

This module defines the abstract contract that any concrete weather client must
fulfil in order to be used by the tool executor. The design uses the adapter
pattern to separate the tool layer from provider-specific concerns like HTTP
transport, geocoding, unit selection and response normalization. The interface
is a single method: resolve a city name, with the credential chosen for the
caller, to a normalized `WeatherSnapshot`, or to absence when the city cannot
be resolved or the upstream fails.

Key concepts:
- Absence (None) is an expected outcome, not an error. Unknown cities and
  upstream outages both surface as None so that callers never have to catch
  provider-specific exceptions on the happy path.
- Temperature unit follows the resolved country, not the caller's preference.

A seedable mock implementation is provided in `provider_api.mock_client` so the
assistant can run end-to-end (demo mode, CI) without network access.
"""

from abc import ABC, abstractmethod
from typing import Optional, Tuple

from shared.models import WeatherSnapshot

# Credential sentinels understood by every weather client
FREE_API_KEY = "open-meteo"
DEMO_API_KEY = "demo"

# Countries (and US territories) reporting in Fahrenheit; matched case-insensitively
FAHRENHEIT_COUNTRIES = frozenset(name.lower() for name in (
    "United States", "US", "USA", "United States of America",
    "Liberia", "Myanmar", "Burma",
    "Puerto Rico", "Guam", "American Samoa", "US Virgin Islands",
))


class WeatherClientError(Exception):
    """
    Base exception for weather upstream failures.

    Raised internally for non-200 responses, network failures and bodies that do
    not have the expected shape. Concrete clients catch it at the `get_weather`
    boundary and turn it into absence.
    """


class WeatherClientTimeoutError(WeatherClientError):
    """Raised when a weather upstream call exceeds the configured timeout."""


def temperature_unit_for_country(country: Optional[str]) -> Tuple[str, str]:
    """
    Return the display unit and the upstream unit parameter for a country.

    Returns:
        Tuple[str, str]: ("°F", "fahrenheit") for Fahrenheit countries, else ("°C", "celsius").
    """
    if country and country.strip().lower() in FAHRENHEIT_COUNTRIES:
        return "°F", "fahrenheit"
    return "°C", "celsius"


def describe_cloud_cover(cloud_cover: float) -> str:
    """Map a cloud cover percentage to a short condition description."""
    if cloud_cover <= 10:
        return "Clear sky"
    if cloud_cover <= 25:
        return "Mostly clear"
    if cloud_cover <= 50:
        return "Partly cloudy"
    if cloud_cover <= 75:
        return "Mostly cloudy"
    return "Overcast"


class WeatherClient(ABC):
    """
    Abstract client defining the weather lookup used by the `get_weather` tool.

    Implementations are responsible for every provider detail (URLs, credentials
    in query strings, JSON shapes) and must honour the absence contract: any
    failure to produce a snapshot is reported as None and logged, never raised.
    """

    @abstractmethod
    def get_weather(self, city: str, api_key: str) -> Optional[WeatherSnapshot]:
        """
        Resolve a city name to its current weather.

        Args:
            city (str): Free-form city name as supplied by the model.
            api_key (str): Credential chosen for the caller by the credential resolver.
                The sentinel "open-meteo" selects the free public endpoints.

        Returns:
            Optional[WeatherSnapshot]: The normalized snapshot, or None when the city is
            unknown or the upstream could not be reached.
        """
        raise NotImplementedError
