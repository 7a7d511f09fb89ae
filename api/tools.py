"""
api/tools.py (tool LISTING and direct tool CALL endpoints)

Exposes the assistant's capabilities to MCP-style clients that call tools
directly instead of through a chat turn. Two kinds of tools are listed:

  - Model tools from the ToolManager registry (currently `get_weather`), run
    through the same ToolExecutor the orchestrator uses, so argument validation
    and credential resolution are identical on both paths.
  - Chat tools (`chat_with_claude`, `claude_with_tools`) that wrap a full
    orchestrator turn.

Endpoints:
  - GET  /tools:      Tool descriptors with their input schemas.
  - POST /tools/call: Run one tool; answers `{content: [{type, text}], isError}`.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from llm_cloud.tools import get_tool_definitions, tool_executor
from llm_cloud.tools.handlers import WEATHER_TOOL_NAME
from shared.models import CallerContext, ErrorKind, WeatherSnapshot
from .caller import get_caller
from .chat import get_orchestrator

# Get a logger instance for this module
logger = logging.getLogger(__name__)

router = APIRouter()

CHAT_TOOLS = [
    {
        "name": "chat_with_claude",
        "description": "Chat with Claude AI assistant",
        "inputSchema": {
            "type": "object",
            "properties": {
                "message": {"type": "string", "description": "Message to send to Claude"},
                "system_prompt": {"type": "string", "description": "Optional system prompt"},
            },
            "required": ["message"],
        },
    },
    {
        "name": "claude_with_tools",
        "description": "Chat with Claude AI that can use tools like weather",
        "inputSchema": {
            "type": "object",
            "properties": {
                "message": {"type": "string", "description": "Message to send to Claude"},
            },
            "required": ["message"],
        },
    },
]


class ToolCallRequest(BaseModel):
    """
    Request payload for a direct tool call.

    Fields:
        name (str): Tool name as listed by GET /tools.
        arguments (dict): Tool input matching the tool's inputSchema.
    """

    name: str = Field(..., description="Tool name")
    arguments: Dict[str, Any] = Field(default_factory=dict, description="Tool arguments")


def _text_content(text: str, is_error: bool = False) -> Dict[str, Any]:
    return {"content": [{"type": "text", "text": text}], "isError": is_error}


def _bad_request(message: str) -> JSONResponse:
    return JSONResponse(content={"error": message}, status_code=400)


@router.get("/tools")
def list_tools():
    """List model tools from the registry followed by the chat tools."""
    model_tools = [
        {"name": d["name"], "description": d["description"], "inputSchema": d["input_schema"]}
        for d in get_tool_definitions()
    ]
    return {"tools": model_tools + CHAT_TOOLS}


@router.post("/tools/call")
def call_tool(req: ToolCallRequest, caller: CallerContext = Depends(get_caller)):
    """
    Run one tool on behalf of the caller.

    Returns:
        dict | JSONResponse: `{content: [{type: "text", text}], isError}` on success or a
        tool-level failure; HTTP 400 `{error}` for unknown tools and missing arguments.
    """
    logger.info(f"[call_tool] userId={caller.user_id}, tool={req.name}\n")

    if req.name == WEATHER_TOOL_NAME:
        return _call_weather(req.arguments, caller)
    if req.name == "chat_with_claude":
        return _call_chat(req.arguments, caller, use_tools=False)
    if req.name == "claude_with_tools":
        return _call_chat(req.arguments, caller, use_tools=True)
    return _bad_request(f"Unknown tool: {req.name}")


def _call_weather(arguments: Dict[str, Any], caller: CallerContext):
    result = tool_executor.execute(WEATHER_TOOL_NAME, arguments, caller)

    if result.error_kind == ErrorKind.MISSING_PARAMETER:
        return _bad_request("City parameter is required")
    if not result.ok:
        return _text_content(f"Error getting weather data: {result.error}", is_error=True)
    if not isinstance(result.payload, dict):
        city = str(arguments.get("city", "")).strip()
        return _text_content(f"Unable to get weather data for {city}. Please check the city name and try again.")

    snapshot = WeatherSnapshot(**result.payload)
    greeting = caller.name if caller.name != "User" else "there"
    return _text_content(snapshot.report(greeting_name=greeting))


def _call_chat(arguments: Dict[str, Any], caller: CallerContext, use_tools: bool):
    message = arguments.get("message")
    if not isinstance(message, str) or not message.strip():
        return _bad_request("Message parameter is required")
    system_prompt: Optional[str] = arguments.get("system_prompt") or None

    answer = get_orchestrator().respond(message, system_prompt=system_prompt, use_tools=use_tools, caller=caller)
    prefix = "🧠 Claude with tools:" if use_tools else "🤖 Claude says:"
    return _text_content(f"{prefix}\n{answer}")
