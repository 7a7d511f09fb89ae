# llm_cloud/tools/core.py
"""
core.py – Defines the core data structures and classes for tool management and execution.
--------------------------------------------------------------------------------------
This module provides the fundamental building blocks for the tool system:
- Tool: Represents a single capability that the model can call.
- ToolManager: The capability registry (name -> handler + input schema), including
  argument validation against the schema.
- ToolExecutor: Handles the execution of tools based on model requests and turns
  every outcome, including failures, into a typed ToolResult.

Design notes:
1. Dependency Injection:
   - The weather client and the credential resolver are passed to tool handlers
     (not imported directly)
   - ToolManager is passed to ToolExecutor (not hardcoded)
   This makes testing easier and dependencies explicit.

2. Single Responsibility:
   - ToolManager: handles registration, metadata and argument validation
   - ToolExecutor: handles execution and error handling

3. Arguments are validated against the tool's schema before the handler runs, so
   handlers can assume required parameters are present and correctly typed.
"""

import json
import logging
import time
from typing import Any, Callable, Dict, List, Optional

from monitoring.metrics import TOOL_EXECUTION_TIME, record_error
from provider_api import WeatherClient
from shared.models import CallerContext, ErrorKind, ToolCall, ToolResult

logger = logging.getLogger(__name__)

# JSON schema primitive types -> accepted Python types
_JSON_TYPES = {
    "string": (str,),
    "number": (int, float),
    "integer": (int,),
    "boolean": (bool,),
    "object": (dict,),
    "array": (list,),
}

# ---------------------------------------------------------------------------
# Core data-structures
# ---------------------------------------------------------------------------

class Tool:
    """Metadata wrapper around a callable tool. Represents a tool that can be called by the model.

    The Tool class encapsulates:
    1. The function to execute (which receives the caller, a weather client and a credential resolver)
    2. Required parameters, as a JSON schema
    3. Description for the model

    Args:
        name:     Name of the tool. Human-readable identifier, must be unique.
        handler:  Function that performs the work. Signature must accept
                  (args: dict, caller: CallerContext, weather_client, credential_resolver)
                  and return a ToolResult.
        description:  Short text shown to the model.
        parameters:   JSON schema describing *args* for the handler.
    """

    def __init__(self, name, handler, description, parameters):
        self.name = name
        self.handler = handler
        self.description = description
        self.parameters = parameters


class ToolManager:
    """Manages tool registration, metadata retrieval and argument validation."""

    def __init__(self) -> None:
        self._tools: Dict[str, Tool] = {}

    def register(self, tool: Tool) -> None:
        """Add or replace a tool in the registry, keyed by its name."""
        self._tools[tool.name] = tool

    def has_tool(self, tool_name: str) -> bool:
        return tool_name in self._tools

    def get_tool_names(self) -> List[str]:
        return list(self._tools)

    def get_definitions(self) -> List[Dict[str, Any]]:
        """Return the tool list in the shape the Messages API expects.

        This tells the model which tools exist, what they do and which input they
        need: one `{name, description, input_schema}` entry per registered tool.
        """
        return [
            {
                "name": t.name,
                "description": t.description,
                "input_schema": t.parameters,
            }
            for t in self._tools.values()
        ]

    def get_tool(self, tool_name: str) -> Tool:
        """Retrieve a specific tool instance from the manager by its unique name.

        Args:
            tool_name (str): The unique name of the tool to retrieve.

        Returns:
            Tool: The Tool object associated with the provided tool_name.

        Raises:
            KeyError: If no tool with the given tool_name is registered.
                      The caller (e.g., ToolExecutor) is responsible for handling this.
        """
        return self._tools[tool_name]

    def validate_arguments(self, tool_name: str, arguments: Dict[str, Any]) -> Optional[str]:
        """Check `arguments` against the tool's input schema.

        Only the parts of JSON schema the registered tools use are checked: required
        keys must be present and non-empty, and declared primitive types must match.

        Returns:
            Optional[str]: A human-readable problem description, or None when valid.

        Raises:
            KeyError: If the tool is not registered.
        """
        schema = self.get_tool(tool_name).parameters or {}
        properties = schema.get("properties", {})

        for name in schema.get("required", []):
            value = arguments.get(name)
            if value is None or (isinstance(value, str) and not value.strip()):
                return f"Missing required parameter: {name}"

        for name, value in arguments.items():
            expected = properties.get(name, {}).get("type")
            if expected not in _JSON_TYPES:
                continue
            # bool is an int subclass; reject it for numeric fields
            if isinstance(value, bool) and expected in ("number", "integer"):
                return f"Parameter '{name}' must be of type {expected}"
            if not isinstance(value, _JSON_TYPES[expected]):
                return f"Parameter '{name}' must be of type {expected}"
        return None


class ToolExecutor:
    """Handles the execution of tools requested by the model, including validation and error handling.

    The ToolExecutor takes a tool invocation (name plus structured arguments),
    checks the name against the ToolManager registry, validates the arguments
    against the tool's schema and then invokes the handler with the caller and
    the injected dependencies. Every outcome becomes a ToolResult:

    1. Unregistered name          -> error result tagged UnknownTool
    2. Invalid / missing argument -> error result tagged MissingParameter
    3. Handler raised             -> error result tagged ToolExecutionFailure
    4. Otherwise                  -> whatever the handler returned

    No exception ever escapes `execute`.
    """

    def __init__(self, tool_manager: ToolManager, weather_client: WeatherClient, credential_resolver: Any) -> None:
        """Initializes the ToolExecutor with its dependencies.

        Args:
            tool_manager (ToolManager): Registry used to look up tools by name.
            weather_client (WeatherClient): Client passed to handlers for weather lookups.
            credential_resolver (CredentialResolver): Picks the weather key for a caller.
        """
        self.tool_manager = tool_manager
        self.weather_client: WeatherClient = weather_client
        self.credential_resolver = credential_resolver

    def execute(
        self,
        tool_name: str,
        arguments: Any,
        caller: Optional[CallerContext] = None,
        tool_call_id: Optional[str] = None,
    ) -> ToolResult:
        """Execute one tool invocation and return its ToolResult.

        Args:
            tool_name (str): Name of the requested tool.
            arguments (Any): Structured arguments; a JSON object string is also accepted.
            caller (CallerContext, optional): Identity used for credential resolution.
            tool_call_id (str, optional): Id of the tool_use block being answered.

        Returns:
            ToolResult: Success or error result, bound to `tool_call_id`.
        """
        caller = caller or CallerContext()
        logger.info(f"[execute] Attempting to run tool: '{tool_name}' for caller: '{caller.user_id}' with arguments: {arguments}\n")

        start_time = time.time()
        try:
            result = self._execute(tool_name, arguments, caller)
        finally:
            TOOL_EXECUTION_TIME.labels(tool_name=tool_name).observe(time.time() - start_time)

        if not result.ok:
            record_error("tool", tool_name)
        return result.model_copy(update={"tool_call_id": tool_call_id})

    def run_tool(self, tool_call: ToolCall, caller: Optional[CallerContext] = None) -> ToolResult:
        """Execute a ToolCall produced by the model backend."""
        return self.execute(tool_call.name, tool_call.arguments, caller, tool_call_id=tool_call.id)

    def _execute(self, tool_name: str, arguments: Any, caller: CallerContext) -> ToolResult:
        if not self.tool_manager.has_tool(tool_name):
            logger.error(f"[execute] Unknown tool requested: '{tool_name}'. Arguments: {arguments}\n")
            return _error(tool_name, ErrorKind.UNKNOWN_TOOL, f"Unknown tool '{tool_name}'")

        if isinstance(arguments, str):
            try:
                arguments = json.loads(arguments or "{}")
            except json.JSONDecodeError as exc:
                logger.error(f"[execute] Failed to parse JSON arguments for tool '{tool_name}'. Error: {exc}\n")
                return _error(tool_name, ErrorKind.MISSING_PARAMETER,
                              f"Malformed arguments provided for tool '{tool_name}'")
        if arguments is None:
            arguments = {}
        if not isinstance(arguments, dict):
            return _error(tool_name, ErrorKind.MISSING_PARAMETER,
                          f"Arguments for tool '{tool_name}' must be an object")

        problem = self.tool_manager.validate_arguments(tool_name, arguments)
        if problem:
            logger.warning(f"[execute] Invalid arguments for tool '{tool_name}': {problem}\n")
            return _error(tool_name, ErrorKind.MISSING_PARAMETER, problem)

        tool = self.tool_manager.get_tool(tool_name)
        try:
            logger.debug(f"[execute] Executing handler for tool '{tool_name}'\n")
            result = tool.handler(arguments, caller, self.weather_client, self.credential_resolver)
        except Exception as exc:
            logger.exception(f"[execute] Error executing tool '{tool_name}'. Args: {arguments}\n")
            return _error(tool_name, ErrorKind.TOOL_EXECUTION_FAILURE,
                          f"Error executing tool '{tool_name}': {exc}")

        logger.info(f"[execute] Successfully executed tool: '{tool_name}'. Summary: {result.summary}\n")
        return result


def _error(tool_name: str, kind: ErrorKind, message: str) -> ToolResult:
    return ToolResult(tool_name=tool_name, ok=False, error_kind=kind, error=message, summary=message)
