"""
provider.py – Model backend client. Build and return a configured Anthropic Messages client.
-------------------------------------------------------------------------------------------
In the overall data-flow this file sits at the infrastructure layer.
It is the single place where we talk to the external model backend.

Why a *provider* module?
• Keeps third-party SDK initialisation and error mapping separate from the
  orchestration logic.
• Offers a tiny, easily mockable `get_client()` function instead of a
  global singleton. Tests can patch it, or hand `MessagesClient` a fake SDK
  client, without any network access.
• The orchestrator simply asks for a client; it does not need to know
  about base URLs, API versions or API keys.

The `anthropic` SDK does the transport (headers, API version, timeouts). This
module narrows its exceptions to a small taxonomy so callers can tell the
failure classes apart:

- MessagesClientError: non-success HTTP status or network failure
  (`status` is set when the backend answered).
- MessagesClientTimeoutError: the request exceeded the configured timeout.
- MalformedResponseError: the reply does not match the known tagged block
  shapes ("text", "tool_use", "tool_result"), or repeats a tool_use id.

SDK retries are disabled: a failed exchange is reported once and the
orchestrator decides what to answer.

Validation of the API key happens at client creation time (not import time) so
the module stays importable in demo mode and in tests.
"""

import logging
import os
from typing import Any, Dict, List, Optional, Tuple

import anthropic
from pydantic import ValidationError

from config import CONFIG
from monitoring.metrics import LLM_REQUEST_TIME, track_errors, track_latency
from shared.models import MessagesResponse
from shared.utils import truncate_message_for_logging

logger = logging.getLogger(__name__)


class MessagesClientError(Exception):
    """
    Base exception for model backend failures.

    Raised for non-success HTTP responses and network errors. When the backend did
    answer, `status` holds the HTTP status and `body` the raw response text.
    """

    def __init__(self, message: str, status: Optional[int] = None, body: Optional[str] = None):
        super().__init__(message)
        self.status = status
        self.body = body


class MessagesClientTimeoutError(MessagesClientError):
    """Raised when the backend call exceeds the configured timeout."""


class MalformedResponseError(MessagesClientError):
    """Raised when a successful reply cannot be parsed into the expected message shape."""


def require_any_env(var_names: List[str]) -> Tuple[str, str]:
    """
    Check that at least one of the specified environment variables is present and non-empty.

    Returns the first match as (variable name, value). Only the variable name is
    ever logged, never the secret itself.

    Args:
        var_names (List[str]): Environment variable names to check, in order of preference.

    Returns:
        Tuple[str, str]: (selected_var_name, value).

    Raises:
        RuntimeError: If none of the variables are set.
    """
    for var_name in var_names:
        value = os.getenv(var_name, "")
        if value:
            return var_name, value

    var_list = ", ".join(var_names)
    raise RuntimeError(
        f"Missing required environment variable. Set one of: {var_list}"
    )


class MessagesClient:
    """
    Thin wrapper over `anthropic.Anthropic().messages.create`.

    Args:
        api_key (str): Backend API key.
        base_url (str, optional): API root; the SDK default when omitted.
        model (str): Model id sent with every request.
        max_tokens (int): Completion budget per request.
        timeout_s (float): Timeout per request.
        sdk_client (anthropic.Anthropic, optional): Prebuilt SDK client, used by tests.
    """

    def __init__(
        self,
        api_key: str,
        base_url: Optional[str] = None,
        model: str = "claude-3-sonnet-20240229",
        max_tokens: int = 1000,
        timeout_s: float = 30.0,
        sdk_client: Optional[anthropic.Anthropic] = None,
    ) -> None:
        self.model = model
        self.max_tokens = max_tokens
        self.timeout_s = timeout_s
        self._sdk = sdk_client or anthropic.Anthropic(
            api_key=api_key,
            base_url=base_url or None,
            timeout=timeout_s,
            max_retries=0,
        )

    def build_payload(
        self,
        messages: List[Dict[str, Any]],
        system: Optional[str] = None,
        tools: Optional[List[Dict[str, Any]]] = None,
    ) -> Dict[str, Any]:
        """Assemble the request arguments; `system` and `tools` are omitted when empty."""
        payload: Dict[str, Any] = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "messages": messages,
        }
        if tools:
            payload["tools"] = tools
        if system:
            payload["system"] = system
        return payload

    @track_errors("llm", "messages_client")
    @track_latency(LLM_REQUEST_TIME, labels=lambda self: {"model": self.model})
    def create_message(
        self,
        messages: List[Dict[str, Any]],
        system: Optional[str] = None,
        tools: Optional[List[Dict[str, Any]]] = None,
    ) -> MessagesResponse:
        """
        Send one exchange to the backend and return the parsed response.

        Args:
            messages: Ordered `{role, content}` dictionaries.
            system: Optional system prompt.
            tools: Optional tool definitions (`{name, description, input_schema}`).

        Returns:
            MessagesResponse: Parsed response with typed content blocks.

        Raises:
            MessagesClientTimeoutError: When the request exceeds the timeout.
            MessagesClientError: For non-success responses and network errors.
            MalformedResponseError: For unparsable replies, unknown block tags or repeated tool_use ids.
        """
        payload = self.build_payload(messages, system=system, tools=tools)
        logger.debug("[create_message] model=%s, messages=%d, tools=%d",
                     self.model, len(messages), len(tools or []))

        try:
            reply = self._sdk.messages.create(**payload)
        except anthropic.APITimeoutError as exc:
            raise MessagesClientTimeoutError(f"Request timed out after {self.timeout_s}s") from exc
        except anthropic.APIConnectionError as exc:
            raise MessagesClientError(f"Network error calling model backend: {exc}") from exc
        except anthropic.APIStatusError as exc:
            body = exc.response.text
            logger.error("[create_message] Backend returned HTTP %s: %s", exc.status_code,
                         truncate_message_for_logging(body, 500))
            raise MessagesClientError(f"HTTP {exc.status_code}", status=exc.status_code, body=body) from exc
        except anthropic.APIResponseValidationError as exc:
            raise MalformedResponseError(
                f"Unexpected response from model backend: {exc}", status=exc.status_code,
            ) from exc

        if not hasattr(reply, "model_dump"):
            raise MalformedResponseError(
                "Unexpected response type from model backend",
                body=truncate_message_for_logging(str(reply), 500),
            )

        raw = reply.model_dump()
        logger.debug("[create_message] Raw response: %s", truncate_message_for_logging(str(raw), 500))
        try:
            return MessagesResponse.model_validate(raw)
        except ValidationError as exc:
            raise MalformedResponseError(
                f"Unexpected response shape from model backend: {exc.error_count()} validation error(s)",
                status=200,
            ) from exc


def get_client() -> MessagesClient:
    """
    Build and return a configured MessagesClient.

    Reads connection settings from `CONFIG["llm"]` and the key from
    ANTHROPIC_API_KEY or CLAUDE_API_KEY.

    Returns:
        MessagesClient: A ready-to-use client.

    Raises:
        RuntimeError: If neither key variable is set.
    """
    selected_var, api_key = require_any_env(["ANTHROPIC_API_KEY", "CLAUDE_API_KEY"])
    llm_config = CONFIG.get("llm", {})
    logger.info("Model backend client built | model=%s | key from %s",
                llm_config.get("model"), selected_var)

    return MessagesClient(
        api_key=api_key,
        base_url=llm_config.get("base_url"),
        model=llm_config.get("model", "claude-3-sonnet-20240229"),
        max_tokens=int(llm_config.get("max_tokens", 1000)),
        timeout_s=float(llm_config.get("timeout", 30)),  # seconds – explicit is better than implicit
    )
