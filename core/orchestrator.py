"""
core/orchestrator.py

Chat orchestrator: the tool-augmented exchange with the model backend.

This module contains the coordination logic that:
1. Answers from the demo responder when no live backend credential is configured
2. Sends a plain exchange (use_tools=False) and returns the backend's text
3. With tools, advertises the tool schemas, executes every tool_use block the
   backend returns through the Tool Executor, and issues exactly one follow-up
   exchange carrying the tool results
4. Turns every failure into a textual answer

Termination: at most two backend exchanges per call, no recursion. An unknown
tool name short-circuits with an explicit answer. When the follow-up exchange
fails or has no text, the answer is built locally from the tool result
summaries and the outcome is tagged `tool_fallback` so the degraded branch
stays observable.
"""

import uuid
from typing import Callable, List, Optional

from config import CONFIG, is_demo_mode
from config.logging_config import get_logger
from llm_cloud.provider import MalformedResponseError, MessagesClient, MessagesClientError, get_client
from monitoring.metrics import CHAT_OUTCOME_COUNT, record_error
from shared.models import (
    CallerContext,
    ChatOutcome,
    ChatPath,
    Conversation,
    ErrorKind,
    ToolResult,
)
from shared.utils import truncate_message_for_logging
from .demo import DemoResponder

logger = get_logger(__name__)

PLAIN_CHAT_PROMPT = (
    "You are a helpful assistant talking to {name}. Always address them by name when "
    "appropriate and be conversational and friendly."
)

TOOL_CHAT_PROMPT = (
    "You are a helpful assistant. You can get weather information for cities using the "
    "get_weather tool. Always use the tool when asked about weather. The user's ID is {user}. "
    "When providing weather information, always address the user by name and include the "
    "temperature in the appropriate unit (Celsius for most countries, Fahrenheit for US). "
    "Be conversational and friendly."
)

NO_RESPONSE_TEXT = "No response from Claude"
NO_TOOL_RESULTS_TEXT = "Tool execution completed but no results returned"


def describe_backend_error(exc: Exception) -> str:
    """Render a backend failure as the text returned to the caller."""
    status = getattr(exc, "status", None)
    if status is not None and not isinstance(exc, MalformedResponseError):
        return f"Claude API Error ({status}): {exc.body}"
    return f"Error: {exc}"


def fallback_text(results: List[ToolResult]) -> str:
    """Join the local tool result summaries; never empty."""
    summaries = [r.summary for r in results if r.summary]
    return "\n".join(summaries) if summaries else NO_TOOL_RESULTS_TEXT


class _BackendTurn:
    """Counts the backend exchanges issued while answering one message."""

    def __init__(self, client: MessagesClient):
        self.client = client
        self.count = 0

    def send(self, conversation: Conversation, system: str, tools=None):
        self.count += 1
        if tools:
            return self.client.create_message(conversation.to_api(), system=system, tools=tools)
        return self.client.create_message(conversation.to_api(), system=system)


class ChatOrchestrator:
    """
    Owns one user turn from message to final text.

    Args:
        client (MessagesClient, optional): Backend client; built lazily with
            `client_factory` on first live use.
        tool_executor (ToolExecutor, optional): Defaults to the shared executor from
            `llm_cloud.tools`.
        demo_responder (DemoResponder, optional): Defaults to one seeded from CONFIG.
        demo_mode (bool, optional): Force demo or live mode; defaults to whether a
            backend key is configured.
        client_factory (Callable): Builds the backend client.
    """

    def __init__(
        self,
        client: Optional[MessagesClient] = None,
        tool_executor=None,
        demo_responder: Optional[DemoResponder] = None,
        demo_mode: Optional[bool] = None,
        client_factory: Callable[[], MessagesClient] = get_client,
    ):
        self.demo_mode = is_demo_mode() if demo_mode is None else demo_mode
        self._client = client
        self._client_factory = client_factory
        if tool_executor is None:
            from llm_cloud.tools import tool_executor as shared_executor
            tool_executor = shared_executor
        self.tool_executor = tool_executor
        if demo_responder is None:
            demo_cfg = CONFIG.get("demo", {})
            demo_responder = DemoResponder(seed=demo_cfg.get("seed"), cities=demo_cfg.get("cities"))
        self.demo_responder = demo_responder

    @property
    def client(self) -> MessagesClient:
        if self._client is None:
            self._client = self._client_factory()
        return self._client

    def respond(
        self,
        message: str,
        system_prompt: Optional[str] = None,
        use_tools: bool = False,
        caller: Optional[CallerContext] = None,
    ) -> str:
        """Answer `message` and return only the final text."""
        return self.respond_detailed(message, system_prompt, use_tools, caller).text

    def respond_detailed(
        self,
        message: str,
        system_prompt: Optional[str] = None,
        use_tools: bool = False,
        caller: Optional[CallerContext] = None,
    ) -> ChatOutcome:
        """
        Answer `message` and report which path produced the answer.

        Args:
            message (str): The user's message.
            system_prompt (str, optional): Caller-supplied system prompt.
            use_tools (bool): Advertise the registered tools to the backend.
            caller (CallerContext, optional): Identity from the authentication layer.

        Returns:
            ChatOutcome: Final text, path, tool results and number of backend exchanges.
        """
        caller = caller or CallerContext()
        log = get_logger(__name__, interaction_id=uuid.uuid4().hex[:12], caller_id=caller.user_id)
        log.info(
            "[respond] use_tools=%s demo=%s message='%s'",
            use_tools, self.demo_mode, truncate_message_for_logging(message),
        )

        turn = None
        try:
            if self.demo_mode:
                outcome = self.demo_responder.respond(message, use_tools, caller)
            else:
                turn = _BackendTurn(self.client)
                if use_tools:
                    outcome = self._chat_with_tools(turn, message, system_prompt, caller, log)
                else:
                    outcome = self._chat(turn, message, system_prompt, caller, log)
        except Exception as exc:
            # every path ends in text for the caller; detail goes to the log
            log.exception("[respond] Unexpected failure: %s", exc)
            record_error("orchestrator", "respond")
            outcome = ChatOutcome(
                text=f"Error: {exc}", path=ChatPath.ERROR, exchanges=turn.count if turn else 0,
            )

        CHAT_OUTCOME_COUNT.labels(path=outcome.path.value).inc()
        log.info("[respond] path=%s exchanges=%d", outcome.path.value, outcome.exchanges)
        return outcome

    # ------------------------------------------------------------------
    # Live paths
    # ------------------------------------------------------------------

    def _chat(
        self, turn: _BackendTurn, message: str, system_prompt: Optional[str], caller: CallerContext, log,
    ) -> ChatOutcome:
        system = system_prompt or PLAIN_CHAT_PROMPT.format(name=caller.name)
        conversation = Conversation(message)
        try:
            response = turn.send(conversation, system)
        except MessagesClientError as exc:
            log.error("[chat] Backend exchange failed: %s", exc)
            return ChatOutcome(text=describe_backend_error(exc), path=ChatPath.ERROR, exchanges=1)

        text = response.first_text()
        return ChatOutcome(text=text if text is not None else NO_RESPONSE_TEXT, path=ChatPath.DIRECT, exchanges=1)

    def _chat_with_tools(
        self, turn: _BackendTurn, message: str, system_prompt: Optional[str], caller: CallerContext, log,
    ) -> ChatOutcome:
        system = TOOL_CHAT_PROMPT.format(user=caller.display())
        if system_prompt:
            system = f"{system}\n\n{system_prompt}"
        tools = self.tool_executor.tool_manager.get_definitions()
        conversation = Conversation(message)

        try:
            response = turn.send(conversation, system, tools=tools)
        except MessagesClientError as exc:
            log.error("[chat_with_tools] Initial exchange failed: %s", exc)
            return ChatOutcome(text=describe_backend_error(exc), path=ChatPath.ERROR, exchanges=1)

        if not response.tool_use_blocks():
            text = response.first_text()
            return ChatOutcome(text=text if text is not None else NO_RESPONSE_TEXT, path=ChatPath.DIRECT, exchanges=1)

        assistant_message = conversation.add_assistant(response.content)
        results: List[ToolResult] = []
        for call in assistant_message.tool_calls():
            log.info("[chat_with_tools] Executing tool '%s' for tool_use_id %s", call.name, call.id)
            result = self.tool_executor.run_tool(call, caller)
            results.append(result)
            if result.error_kind == ErrorKind.UNKNOWN_TOOL:
                log.warning("[chat_with_tools] Backend requested unknown tool '%s'", call.name)
                return ChatOutcome(
                    text=f"Unknown tool '{call.name}': I can only use {', '.join(self.tool_executor.tool_manager.get_tool_names())}.",
                    path=ChatPath.UNKNOWN_TOOL,
                    tool_results=results,
                    exchanges=1,
                )

        conversation.add_tool_results(results)

        final_text = None
        try:
            follow_up = turn.send(conversation, system, tools=tools)
            final_text = follow_up.first_text()
        except MessagesClientError as exc:
            log.warning("[chat_with_tools] Follow-up exchange failed: %s", exc)

        if final_text:
            return ChatOutcome(text=final_text, path=ChatPath.TOOL_ANSWER, tool_results=results, exchanges=2)

        log.warning("[chat_with_tools] No follow-up answer; returning local tool summaries")
        record_error("llm", "follow_up")
        return ChatOutcome(text=fallback_text(results), path=ChatPath.TOOL_FALLBACK, tool_results=results, exchanges=2)
