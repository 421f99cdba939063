"""
Completion adapter.

Wraps a `Provider` call for one conversation: adds the deployment's system
prompt and model id, regroups the provider's raw chunks on word (or line)
boundaries with a short pause between them, and turns any provider failure
into an `UpstreamError` raised from the iterator.
"""
import asyncio
import logging
import re
from typing import AsyncIterator, Dict, List, Optional

from .errors import UpstreamError, error_message
from .providers.base import Provider
from .schemas import ConversationRequest

logger = logging.getLogger(__name__)

CHUNK_PATTERNS = {
    "word": re.compile(r"\S+\s+"),
    "line": re.compile(r"\n+"),
}


async def smooth_stream(
    source: AsyncIterator[str],
    chunking: str = "word",
    delay: float = 0.05,
) -> AsyncIterator[str]:
    """
    Re-emit `source` in word/line sized pieces, sleeping `delay` seconds
    between pieces. `chunking="none"` keeps the provider's own chunks.
    Whatever is still buffered is flushed when `source` ends or raises,
    before the error propagates.
    """
    pattern = CHUNK_PATTERNS.get(chunking)
    buffer = ""
    emitted = False

    async def pause():
        if delay and emitted:
            await asyncio.sleep(delay)

    try:
        async for text in source:
            if pattern is None:
                await pause()
                emitted = True
                yield text
                continue

            buffer += text
            while (match := pattern.search(buffer)) is not None:
                piece, buffer = buffer[: match.end()], buffer[match.end():]
                await pause()
                emitted = True
                yield piece
    except Exception:
        if buffer:
            yield buffer
        raise

    if buffer:
        await pause()
        yield buffer


class CompletionAdapter:
    """Streams one conversation through a provider as text fragments."""

    def __init__(
        self,
        provider: Provider,
        model: str,
        system_prompt: Optional[str] = None,
        chunking: str = "word",
        delay: float = 0.05,
    ):
        self.provider = provider
        self.model = model
        self.system_prompt = system_prompt or None
        self.chunking = chunking
        self.delay = delay

    def build_messages(self, conversation: ConversationRequest) -> List[Dict]:
        messages = conversation.as_dicts()
        if self.system_prompt:
            messages = [{"role": "system", "content": self.system_prompt}, *messages]
        return messages

    async def _provider_fragments(self, messages: List[Dict]) -> AsyncIterator[str]:
        try:
            async for chunk in self.provider.stream_chat(model=self.model, messages=messages):
                yield chunk
        except UpstreamError:
            raise
        except Exception as e:
            raise UpstreamError(error_message(e, type(e).__name__)) from e

    def stream(self, conversation: ConversationRequest) -> AsyncIterator[str]:
        """
        Lazy fragment iterator: `__anext__` yields the next fragment, raises
        `StopAsyncIteration` when the model is done and `UpstreamError` if
        the provider fails.
        """
        messages = self.build_messages(conversation)
        logger.info("Streaming %d messages to model %s", len(messages), self.model)
        return smooth_stream(
            self._provider_fragments(messages),
            chunking=self.chunking,
            delay=self.delay,
        )


async def prime(fragments: AsyncIterator[str]) -> AsyncIterator[str]:
    """
    Pull the first fragment now so provider failures that happen before any
    output can still be answered with an error status. Returns an iterator
    that replays that fragment followed by the rest.
    """
    try:
        first = await fragments.__anext__()
    except StopAsyncIteration:
        first = None

    async def replay() -> AsyncIterator[str]:
        if first is None:
            return
        yield first
        async for fragment in fragments:
            yield fragment

    return replay()
