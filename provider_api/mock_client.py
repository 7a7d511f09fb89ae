"""
Seedable mock weather client for demo mode, local runs and tests.

This module provides a reference implementation of the weather client interface
so the assistant can be executed end-to-end without any credentials or network
access. Values are drawn from small fixed pools using an injectable
`random.Random`, so a seeded instance produces the exact same snapshots on
every machine and tests can assert on concrete output.

Usage:
- Demo mode builds its tool executor around this client.
- The credential sentinel "demo" makes the Open-Meteo client delegate here.
- WEATHER_PROVIDER=mock selects it for the whole application.
"""

import logging
import random
from typing import Optional

from shared.models import WeatherSnapshot
from .base import WeatherClient

logger = logging.getLogger(__name__)

DEMO_TEMPERATURES = (18, 22, 25, 28, 15, 12, 30, 8, 35)
DEMO_DESCRIPTIONS = ("Clear sky", "Partly cloudy", "Overcast", "Light rain", "Sunny", "Cloudy")
# City name fragments treated as US cities (reported in Fahrenheit)
DEMO_US_CITIES = ("new york", "los angeles", "chicago", "miami", "boston", "seattle")


class MockWeatherClient(WeatherClient):
    """
    In-memory weather client with deterministic output for a given seed.

    Every city resolves; there is no absence path. Cities matching one of the
    known US city names report in °F (the pooled Celsius value converted) with
    country "United States"; everything else reports in °C with country "Demo".

    Args:
        rng (random.Random, optional): Generator to draw values from.
        seed (int, optional): Seed for a private generator when `rng` is not given.
    """

    def __init__(self, rng: Optional[random.Random] = None, seed: Optional[int] = None) -> None:
        self._rng = rng if rng is not None else random.Random(seed)

    def get_weather(self, city: str, api_key: str = "demo") -> Optional[WeatherSnapshot]:
        lowered = city.lower()
        is_us_city = any(name in lowered for name in DEMO_US_CITIES)

        temperature = self._rng.choice(DEMO_TEMPERATURES)
        if is_us_city:
            temperature = int(temperature * 9.0 / 5.0 + 32)

        snapshot = WeatherSnapshot(
            city=city,
            country="United States" if is_us_city else "Demo",
            temperature=temperature,
            unit="°F" if is_us_city else "°C",
            description=self._rng.choice(DEMO_DESCRIPTIONS),
            humidity=self._rng.randrange(30, 80),
            pressure=self._rng.randrange(1000, 1020),
            wind_speed=self._rng.randrange(5, 25),
            cloud_cover=self._rng.randrange(0, 100),
        )
        logger.debug("[MockWeatherClient] %s -> %s%s", city, snapshot.temperature, snapshot.unit)
        return snapshot
