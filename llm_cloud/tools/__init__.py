"""
Initializes the tools package, sets up the weather client, credential resolver,
ToolManager and ToolExecutor, and registers all tools from handlers.py.

The weather client comes from a small factory (selected via the WEATHER_PROVIDER
environment variable, defaulting to Open-Meteo) and the credential resolver is
built from a read-only snapshot of `CONFIG["weather"]`. Both are shared by all
requests; neither holds mutable state.
"""

import logging

from config import CONFIG
from core.credentials import CredentialConfig, CredentialResolver
from provider_api import make_weather_client

# Import core components from .core
from .core import ToolManager, ToolExecutor, Tool

# Import the registration function from .handlers
from .handlers import register_all_tools

# ---------------------------------------------------------------------------
# Global instances – explicit dependencies
# ---------------------------------------------------------------------------

_weather_cfg = CONFIG.get("weather", {})

# 1. Instantiate weather client
weather_client_instance = make_weather_client(timeout_s=float(_weather_cfg.get("timeout", 10)))
logging.info("Weather client instantiated in tools package (%s).", type(weather_client_instance).__name__)

# 2. Snapshot credential settings and build the resolver
credential_resolver = CredentialResolver(CredentialConfig.from_mapping(_weather_cfg))

# 3. Instantiate ToolManager and register all tools
tool_manager = ToolManager()
register_all_tools(tool_manager)

# 4. Instantiate ToolExecutor with the manager and clients
tool_executor = ToolExecutor(tool_manager, weather_client_instance, credential_resolver)
logging.info("ToolExecutor instantiated in tools package.")

# --- Define what's available when importing from llm_cloud.tools ---
__all__ = [
    'Tool',
    'ToolManager',
    'ToolExecutor',
    'tool_manager',
    'tool_executor',
    'credential_resolver',
    'weather_client_instance',
    'get_tool_definitions'
]


def get_tool_definitions() -> list:
    """
    Convenience function to get tool definitions from the global tool_manager.
    """
    if tool_manager:
        return tool_manager.get_definitions()
    return []
