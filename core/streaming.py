"""
core/streaming.py

Server-sent events emulation for chat answers.

The answer is computed in full first; only then is it emitted word by word,
one `data: <word> \\n\\n` frame per word with a fixed pause between frames,
followed by the `data: [DONE]\\n\\n` sentinel. This is pacing for the client,
not incremental generation. A failure while computing the answer is sent as a
single `data: Error: <message>\\n\\n` frame instead of breaking the connection.

A raw newline would end the `data:` field early, so line breaks in the answer
travel as their own frame of two empty `data:` fields, which an SSE client
joins into a single "\\n". No word or error frame carries a newline.
"""

import asyncio
import logging
from typing import AsyncIterator, Callable, Iterator

from starlette.concurrency import run_in_threadpool

from monitoring.metrics import record_error

logger = logging.getLogger(__name__)

DONE_FRAME = "data: [DONE]\n\n"
LINE_BREAK_FRAME = "data: \ndata: \n\n"


def word_frame(word: str) -> str:
    return f"data: {word} \n\n"


def error_frame(message: str) -> str:
    return "data: Error: {}\n\n".format(" ".join(message.splitlines()))


def sse_frames(text: str) -> Iterator[str]:
    """Yield one frame per space-separated word and per line break, then the sentinel."""
    for index, line in enumerate(text.splitlines()):
        if index:
            yield LINE_BREAK_FRAME
        if line:
            for word in line.split(" "):
                yield word_frame(word)
    yield DONE_FRAME


async def stream_answer(produce: Callable[[], str], delay_s: float = 0.05) -> AsyncIterator[str]:
    """
    Compute the answer with `produce` and stream it as SSE frames.

    Args:
        produce (Callable[[], str]): Blocking function returning the full answer; it
            runs in the threadpool so the event loop is not blocked.
        delay_s (float): Pause after each word frame.

    Yields:
        str: SSE frames.
    """
    try:
        text = await run_in_threadpool(produce)
    except Exception as exc:
        logger.exception("[stream_answer] Failed to compute answer: %s", exc)
        record_error("stream", "stream_answer")
        yield error_frame(str(exc))
        return

    for frame in sse_frames(text):
        yield frame
        if frame != DONE_FRAME and delay_s > 0:
            await asyncio.sleep(delay_s)
