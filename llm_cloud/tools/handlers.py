# llm_cloud/tools/handlers.py
"""
Handlers for the assistant's tools and tool registration logic.

Each handler is a thin adapter: arguments arrive already validated against the
tool's schema, the handler delegates to the injected clients and returns a
ToolResult suitable for the follow-up exchange. The `register_all_tools`
function wires handlers into the shared `ToolManager`, keeping discovery and
exposure of tools consistent across the application.
"""

import logging
from typing import Any, Dict

from shared.models import CallerContext, ToolResult

# Import Tool and ToolManager from the .core module for registration
from .core import Tool, ToolManager

logger = logging.getLogger(__name__)

WEATHER_TOOL_NAME = "get_weather"
WEATHER_NOT_AVAILABLE = "Weather data not available"

WEATHER_TOOL_SCHEMA = {
    "type": "object",
    "properties": {
        "city": {
            "type": "string",
            "description": "The name of the city to get weather for",
        }
    },
    "required": ["city"],
}

# ---------------------------------------------------------------------------
# Weather -------------------------------------------------------------------
# ---------------------------------------------------------------------------

def _get_weather_handler(args: Dict[str, Any], caller: CallerContext, weather_client: Any, credential_resolver: Any) -> ToolResult:
    """Look up the current weather for a city with the caller's credential.

    An unknown city is an expected outcome: it produces a success-shaped result
    saying the data is not available rather than an error.

    Args:
        args (Dict[str, Any]): Expected key: "city" (str, non-empty).
        caller (CallerContext): Caller whose id and roles select the weather credential.
        weather_client (Any): The injected weather client instance.
        credential_resolver (Any): The injected credential resolver.

    Returns:
        ToolResult: The snapshot payload, or a "not available" message.
    """
    city = args["city"].strip()
    decision = credential_resolver.resolve(caller.user_id, caller.roles)
    logger.info(
        f"[_get_weather_handler] city={city}, caller={caller.user_id}, credential_source={decision.source.value}\n"
    )

    snapshot = weather_client.get_weather(city, decision.key)
    if snapshot is None:
        return ToolResult(
            tool_name=WEATHER_TOOL_NAME,
            ok=True,
            payload=f"{WEATHER_NOT_AVAILABLE} for {city}",
            summary=WEATHER_NOT_AVAILABLE,
        )
    return ToolResult(
        tool_name=WEATHER_TOOL_NAME,
        ok=True,
        payload=snapshot.to_payload(),
        summary=snapshot.summary(),
    )

# ---------------------------------------------------------------------------
# Registration logic, to be called from __init__.py
# ---------------------------------------------------------------------------

def register_all_tools(tool_manager: ToolManager) -> None:
    """Register every tool the assistant exposes to the model."""
    tool_manager.register(
        Tool(
            name=WEATHER_TOOL_NAME,
            handler=_get_weather_handler,
            description="Get current weather information for a specific city",
            parameters=WEATHER_TOOL_SCHEMA,
        )
    )
    logger.info("Registered tools: %s", ", ".join(tool_manager.get_tool_names()))
