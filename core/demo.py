"""
core/demo.py

Offline demo responder.

When no live model backend credential is configured the assistant still
answers, with canned replies that quote the user's message. Weather questions
asked with tools enabled go one step further: the tool executor runs once
against a randomly chosen city, backed by the mock weather client, so the demo
exercises the same tool path as live mode. Nothing here touches the network.

All randomness flows from a single injectable `random.Random`; two responders
built with the same seed give identical answers for the same inputs. The
generator is shared by every request the responder serves, so each reply
draws its values under a lock: concurrent requests cannot interleave draws,
and the n-th reply served is the same whichever thread serves it.
"""

import random
import threading
from typing import Optional, Sequence

from config.logging_config import get_logger
from core.credentials import CredentialConfig, CredentialResolver
from llm_cloud.tools.core import ToolExecutor, ToolManager
from llm_cloud.tools.handlers import WEATHER_TOOL_NAME, register_all_tools
from provider_api import DEMO_API_KEY, MockWeatherClient
from shared.models import CallerContext, ChatOutcome, ChatPath

logger = get_logger(__name__)

DEMO_TEMPLATES = (
    "Hello! You asked: '{message}'. This is a demo response from Claude.",
    "I understand you're asking about: '{message}'. In demo mode, I can provide general assistance.",
    "Thanks for your message: '{message}'. I'm running in demo mode - connect a real API key for full functionality.",
    "Your query '{message}' is interesting! This is a simulated Claude response for testing.",
)

DEMO_CITIES = ("London", "New York", "Tokyo", "Paris", "Sydney")

WEATHER_DEMO_TEMPLATE = (
    "I see you're asking about weather! Here's the current weather for {city}: "
    "{temperature}{unit}, {description}. (Demo mode)"
)
WEATHER_DEMO_UNAVAILABLE = (
    "I see you're asking about weather! Weather data for {city} is not available right now. (Demo mode)"
)


def build_demo_executor(rng: random.Random) -> ToolExecutor:
    """Tool executor wired to the mock weather client and a demo-only credential."""
    manager = ToolManager()
    register_all_tools(manager)
    resolver = CredentialResolver(CredentialConfig(default_api_key=DEMO_API_KEY))
    return ToolExecutor(manager, MockWeatherClient(rng=rng), resolver)


class DemoResponder:
    """
    Produces plausible answers without a model backend.

    Args:
        rng (random.Random, optional): Generator for every random choice.
        seed (int, optional): Seed for a private generator when `rng` is not given.
        cities (Sequence[str], optional): Pool the weather demo picks from.
        tool_executor (ToolExecutor, optional): Executor for the weather demo; defaults to
            one backed by `MockWeatherClient` sharing this responder's generator.
    """

    def __init__(
        self,
        rng: Optional[random.Random] = None,
        seed: Optional[int] = None,
        cities: Optional[Sequence[str]] = None,
        tool_executor: Optional[ToolExecutor] = None,
    ) -> None:
        self.rng = rng if rng is not None else random.Random(seed)
        self.cities = tuple(cities or DEMO_CITIES)
        self.tool_executor = tool_executor or build_demo_executor(self.rng)
        self._lock = threading.Lock()

    def respond(self, message: str, use_tools: bool = False, caller: Optional[CallerContext] = None) -> ChatOutcome:
        with self._lock:
            if use_tools and "weather" in message.lower():
                return self._weather_reply(caller or CallerContext())
            return ChatOutcome(text=self.canned_reply(message), path=ChatPath.DEMO)

    def canned_reply(self, message: str) -> str:
        return self.rng.choice(DEMO_TEMPLATES).format(message=message)

    def _weather_reply(self, caller: CallerContext) -> ChatOutcome:
        city = self.rng.choice(self.cities)
        logger.info("[demo] Weather question, demo city: %s", city)
        result = self.tool_executor.execute(WEATHER_TOOL_NAME, {"city": city}, caller)

        payload = result.payload if result.ok else None
        if isinstance(payload, dict):
            temperature = f"{payload['temperature']:g}"
            text = WEATHER_DEMO_TEMPLATE.format(
                city=city, temperature=temperature, unit=payload["unit"], description=payload["description"],
            )
        else:
            text = WEATHER_DEMO_UNAVAILABLE.format(city=city)
        return ChatOutcome(text=text, path=ChatPath.DEMO, tool_results=[result])
