"""
api/chat.py (COMPLETIONS, STREAM and MODELS endpoints)

Handles all API endpoints related to chatting with the model backend. The
handlers are thin: they read the caller identity forwarded by the auth layer,
hand the message to the ChatOrchestrator and shape the JSON (or event stream)
returned to the client. The orchestrator never raises for backend or tool
failures, it answers with text, so these endpoints always return 200 for a
well-formed request.

Endpoints:
  - POST /chat/completions: One answer as JSON.
  - POST /chat/stream:      The same answer as server-sent events, word by word.
  - GET  /chat/models:      Models the client may display.
"""

from datetime import datetime, timezone
import logging
from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, Field

from config import CONFIG
from core.orchestrator import ChatOrchestrator
from core.streaming import stream_answer
from shared.models import CallerContext
from shared.utils import truncate_message_for_logging
from .caller import get_caller

# Get a logger instance for this module
logger = logging.getLogger(__name__)

router = APIRouter()

AVAILABLE_MODELS = [
    {"id": "claude-3-sonnet-20240229", "name": "Claude 3 Sonnet"},
    {"id": "claude-3-haiku-20240307", "name": "Claude 3 Haiku"},
    {"id": "claude-with-tools", "name": "Claude with MCP Tools"},
]

_orchestrator: Optional[ChatOrchestrator] = None


def get_orchestrator() -> ChatOrchestrator:
    """Return the process-wide orchestrator, building it on first use."""
    global _orchestrator
    if _orchestrator is None:
        _orchestrator = ChatOrchestrator()
    return _orchestrator


class ChatRequest(BaseModel):
    """
    Request payload for the chat endpoints.

    Fields:
        message (str): The user's message.
        systemPrompt (str, optional): Overrides the default plain-chat system prompt.
        useTools (bool): Let the model call the weather tool. Defaults to False.
    """

    message: str = Field(..., description="User message")
    systemPrompt: Optional[str] = Field(None, description="Optional system prompt")
    useTools: bool = Field(False, description="Advertise tools to the model")


class ChatResponse(BaseModel):
    message: str
    userId: str
    userName: str
    timestamp: datetime
    model: str


@router.post("/chat/completions", response_model=ChatResponse)
def chat_completions(req: ChatRequest, caller: CallerContext = Depends(get_caller)) -> ChatResponse:
    """
    Answer one message and return the text with the caller's identity.

    Args:
        req (ChatRequest): Message, optional system prompt and the tools switch.
        caller (CallerContext): Identity forwarded by the auth layer.

    Returns:
        ChatResponse: `message`, `userId`, `userName`, UTC `timestamp`, and `model`
        ("claude-with-tools" when tools were enabled, otherwise "claude-chat").
    """
    logger.info(f"[chat_completions] userId={caller.user_id}, useTools={req.useTools}, message='{truncate_message_for_logging(req.message)}'\n")

    answer = get_orchestrator().respond(
        req.message,
        system_prompt=req.systemPrompt,
        use_tools=req.useTools,
        caller=caller,
    )
    return ChatResponse(
        message=answer,
        userId=caller.user_id,
        userName=caller.name,
        timestamp=datetime.now(timezone.utc),
        model="claude-with-tools" if req.useTools else "claude-chat",
    )


@router.post("/chat/stream")
async def chat_stream(req: ChatRequest, caller: CallerContext = Depends(get_caller)) -> StreamingResponse:
    """
    Stream the answer as server-sent events.

    The full answer is computed before the first frame is sent; frames are
    `data: <word> \\n\\n`, terminated by `data: [DONE]\\n\\n`. Failures become a
    `data: Error: <message>\\n\\n` frame.
    """
    logger.info(f"[chat_stream] userId={caller.user_id}, useTools={req.useTools}\n")
    orchestrator = get_orchestrator()
    delay_s = float(CONFIG.get("streaming", {}).get("chunk_delay_seconds", 0.05))

    def produce() -> str:
        return orchestrator.respond(
            req.message,
            system_prompt=req.systemPrompt,
            use_tools=req.useTools,
            caller=caller,
        )

    return StreamingResponse(
        stream_answer(produce, delay_s=delay_s),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
    )


@router.get("/chat/models")
def list_models():
    """Return the model descriptors offered to clients."""
    return {"models": AVAILABLE_MODELS}
