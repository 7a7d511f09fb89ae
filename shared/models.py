"""
shared/models.py

Common data models and type definitions used across the assistant.

This module holds the shapes that flow between the orchestrator, the tool
executor, the credential resolver and the weather clients:

1. Conversation content is an explicit tagged union. Every content block
   carries a `type` tag ("text", "tool_use", "tool_result") and pydantic picks
   the concrete model from it. An unknown tag is a validation error, never a
   silently ignored block.

2. A `Conversation` is the ordered, append-only message sequence of a single
   orchestration call. Tool results can only be attached as an answer to the
   tool calls of the assistant message directly before them.

3. `ToolResult`, `CredentialDecision` and `WeatherSnapshot` are the typed
   results of the three leaf components.
"""

import json
from dataclasses import dataclass
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ErrorKind(str, Enum):
    """
    Failure taxonomy of the core.

    None of these ever reaches the HTTP caller as an exception; they are used to
    tag ToolResults and to pick the wording of degraded answers.
    """
    UPSTREAM_UNAVAILABLE = "UpstreamUnavailable"
    MALFORMED_RESPONSE = "MalformedResponse"
    UNKNOWN_TOOL = "UnknownTool"
    MISSING_PARAMETER = "MissingParameter"
    TOOL_EXECUTION_FAILURE = "ToolExecutionFailure"


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"
    TOOL_RESULT = "tool_result"


class CredentialSource(str, Enum):
    """Which tier of the credential precedence produced a key."""
    USER_OVERRIDE = "user-override"
    PREMIUM = "premium"
    ROLE_BASED = "role-based"
    DEFAULT = "default"


# ---------------------------------------------------------------------------
# Content blocks (tagged union)
# ---------------------------------------------------------------------------

class TextBlock(BaseModel):
    model_config = ConfigDict(extra="ignore")

    type: Literal["text"] = "text"
    text: str = ""


class ToolUseBlock(BaseModel):
    model_config = ConfigDict(extra="ignore")

    type: Literal["tool_use"] = "tool_use"
    id: str
    name: str
    input: Dict[str, Any] = Field(default_factory=dict)


class ToolResultBlock(BaseModel):
    model_config = ConfigDict(extra="ignore")

    type: Literal["tool_result"] = "tool_result"
    tool_use_id: str
    content: str
    is_error: bool = False


ContentBlock = Annotated[
    Union[TextBlock, ToolUseBlock, ToolResultBlock],
    Field(discriminator="type"),
]


class MessagesResponse(BaseModel):
    """
    Parsed body of a model backend reply.

    Only `content` matters to the orchestrator; the other fields are kept for logging.
    """
    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None
    model: Optional[str] = None
    stop_reason: Optional[str] = None
    content: List[ContentBlock] = Field(default_factory=list)

    @model_validator(mode="after")
    def _tool_use_ids_are_unique(self) -> "MessagesResponse":
        # results are paired with calls by id, so a repeated id cannot be answered
        seen = set()
        for block in self.tool_use_blocks():
            if block.id in seen:
                raise ValueError(f"Duplicate tool_use id '{block.id}' in model response")
            seen.add(block.id)
        return self

    def tool_use_blocks(self) -> List[ToolUseBlock]:
        return [block for block in self.content if isinstance(block, ToolUseBlock)]

    def first_text(self) -> Optional[str]:
        """Return the text of the first text block, or None when the reply has none."""
        for block in self.content:
            if isinstance(block, TextBlock):
                return block.text
        return None


# ---------------------------------------------------------------------------
# Tool calls and results
# ---------------------------------------------------------------------------

class ToolCall(BaseModel):
    """A tool invocation requested by the model backend."""

    id: str
    name: str
    arguments: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_block(cls, block: ToolUseBlock) -> "ToolCall":
        return cls(id=block.id, name=block.name, arguments=dict(block.input))


class ToolResult(BaseModel):
    """
    Outcome of one tool execution.

    `ok` is True for success-shaped results, including "weather data not
    available" for an unknown city. `error_kind` is set only when `ok` is False.
    `summary` is the one-line human rendering used when the follow-up exchange
    cannot produce an answer.
    """

    tool_name: str
    ok: bool
    payload: Any = None
    error_kind: Optional[ErrorKind] = None
    error: Optional[str] = None
    summary: str = ""
    tool_call_id: Optional[str] = None

    def content_text(self) -> str:
        """Render the payload the way it is handed back to the model."""
        if not self.ok:
            return f"{self.error_kind.value if self.error_kind else 'Error'}: {self.error or 'unknown error'}"
        if isinstance(self.payload, (dict, list)):
            return json.dumps(self.payload, ensure_ascii=False)
        return str(self.payload if self.payload is not None else "")

    def to_block(self) -> ToolResultBlock:
        if not self.tool_call_id:
            raise ValueError(f"Tool result for '{self.tool_name}' is not bound to a tool call id")
        return ToolResultBlock(
            tool_use_id=self.tool_call_id,
            content=self.content_text(),
            is_error=not self.ok,
        )


# ---------------------------------------------------------------------------
# Conversation
# ---------------------------------------------------------------------------

class ChatMessage(BaseModel):
    """One turn of a conversation: plain text or an ordered list of content blocks."""

    role: Role
    content: Union[str, List[ContentBlock]]

    def tool_calls(self) -> List[ToolCall]:
        if isinstance(self.content, str):
            return []
        return [ToolCall.from_block(b) for b in self.content if isinstance(b, ToolUseBlock)]

    def to_api_dict(self) -> Dict[str, Any]:
        """
        Render the message for the Messages API.

        The API only knows "user" and "assistant"; tool results travel as a user turn.
        """
        role = "user" if self.role == Role.TOOL_RESULT else self.role.value
        if isinstance(self.content, str):
            return {"role": role, "content": self.content}
        return {"role": role, "content": [block.model_dump() for block in self.content]}

    @classmethod
    def answering(cls, assistant_message: "ChatMessage", results: List[ToolResult]) -> "ChatMessage":
        """
        Build the tool-result message answering `assistant_message`.

        Raises:
            ValueError: if `assistant_message` is not an assistant turn, if a result
                references an id that turn did not emit, if an id is answered twice,
                or if a tool call is left unanswered.
        """
        if assistant_message.role != Role.ASSISTANT:
            raise ValueError("Tool results must answer an assistant message")
        expected = [call.id for call in assistant_message.tool_calls()]
        seen = set()
        for result in results:
            if result.tool_call_id not in expected:
                raise ValueError(
                    f"Tool result references unknown tool call id '{result.tool_call_id}'"
                )
            if result.tool_call_id in seen:
                raise ValueError(f"Tool call id '{result.tool_call_id}' answered more than once")
            seen.add(result.tool_call_id)
        missing = [call_id for call_id in expected if call_id not in seen]
        if missing:
            raise ValueError(f"Tool calls left unanswered: {', '.join(missing)}")
        return cls(role=Role.TOOL_RESULT, content=[r.to_block() for r in results])


class Conversation:
    """
    Append-only message sequence scoped to a single orchestration call.

    There is deliberately no way to remove or rewrite a message.
    """

    def __init__(self, user_message: str):
        self._messages: List[ChatMessage] = [ChatMessage(role=Role.USER, content=user_message)]

    @property
    def messages(self) -> List[ChatMessage]:
        return list(self._messages)

    def __len__(self) -> int:
        return len(self._messages)

    def add_assistant(self, blocks: List[Any]) -> ChatMessage:
        message = ChatMessage(role=Role.ASSISTANT, content=list(blocks))
        self._messages.append(message)
        return message

    def add_tool_results(self, results: List[ToolResult]) -> ChatMessage:
        """Append the answer to the tool calls of the last message, validating the pairing."""
        message = ChatMessage.answering(self._messages[-1], results)
        self._messages.append(message)
        return message

    def to_api(self) -> List[Dict[str, Any]]:
        return [m.to_api_dict() for m in self._messages]


# ---------------------------------------------------------------------------
# Caller, credentials and weather
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CallerContext:
    """
    Identity of the caller as resolved by the (external) authentication layer.

    `user_id` and `roles` take part in credential resolution; `name` is used to
    personalise system prompts.
    """
    user_id: str = "unknown"
    name: str = "User"
    roles: tuple = ()

    def display(self) -> str:
        return f"{self.name} (ID: {self.user_id})"


@dataclass(frozen=True)
class CredentialDecision:
    """The upstream key chosen for a caller and the precedence tier that produced it."""
    key: str
    source: CredentialSource

    def __repr__(self) -> str:
        # keys never end up in logs or tracebacks
        return f"CredentialDecision(source={self.source.value!r}, key='***')"


class WeatherSnapshot(BaseModel):
    """Normalized current weather for one resolved location."""

    city: str
    country: str = ""
    temperature: float
    unit: str = "°C"
    description: str = ""
    humidity: int = 0
    pressure: float = 0.0
    wind_speed: float = 0.0
    cloud_cover: int = 0

    def to_payload(self) -> Dict[str, Any]:
        """Shape sent back to the model as the tool result."""
        return {
            "city": self.city,
            "country": self.country,
            "temperature": self.temperature,
            "unit": self.unit,
            "description": self.description,
            "humidity": self.humidity,
            "pressure": self.pressure,
            "wind_speed": self.wind_speed,
            "cloud_cover": self.cloud_cover,
        }

    def display_temperature(self) -> str:
        """Temperature without a trailing ".0" for whole values (22.0 -> "22")."""
        return f"{self.temperature:g}"

    def summary(self) -> str:
        location = f"{self.city}, {self.country}" if self.country else self.city
        return f"🌤️ Weather in {location}: {self.display_temperature()}{self.unit}, {self.description}"

    def report(self, greeting_name: Optional[str] = None) -> str:
        """Multi-line report used by the direct tool-call endpoint."""
        lines = []
        location = f"{self.city}, {self.country}" if self.country else self.city
        if greeting_name:
            lines.append(f"Hi {greeting_name}! 🌤️ Here's the weather in {location}")
        else:
            lines.append(f"🌤️ Weather in {location}")
        lines.extend([
            f"Temperature: {self.display_temperature()}{self.unit}",
            f"Condition: {self.description}",
            f"Humidity: {self.humidity}%",
            f"Pressure: {self.pressure} hPa",
            f"Wind Speed: {self.wind_speed} m/s",
            f"Cloud Cover: {self.cloud_cover}%",
        ])
        return "\n".join(lines)


# ---------------------------------------------------------------------------
# Orchestration outcome
# ---------------------------------------------------------------------------

class ChatPath(str, Enum):
    """Which branch of the orchestrator produced an answer."""
    DEMO = "demo"
    DIRECT = "direct"
    TOOL_ANSWER = "tool_answer"
    TOOL_FALLBACK = "tool_fallback"
    UNKNOWN_TOOL = "unknown_tool"
    ERROR = "error"


class ChatOutcome(BaseModel):
    """
    Final answer of one orchestration call plus how it was reached.

    `exchanges` counts model backend requests issued (never more than two);
    `tool_results` are the results produced by the tool executor, in source order.
    """

    text: str
    path: ChatPath
    tool_results: List[ToolResult] = Field(default_factory=list)
    exchanges: int = 0
