import asyncio
from typing import AsyncIterator, List, Dict, Optional, Sequence
from .base import Provider

class MockProvider(Provider):
    """
    Local stand-in for a real model.

    Without `fragments` it echoes the last user message one character at a time.
    With `fragments` it replays them verbatim; `fail_after` raises after that many
    fragments have been yielded.
    """
    def __init__(
        self,
        fragments: Optional[Sequence[str]] = None,
        fail_after: Optional[int] = None,
        delay: float = 0.01,
    ):
        self.fragments = list(fragments) if fragments is not None else None
        self.fail_after = fail_after
        self.delay = delay
        self.calls: List[Dict] = []

    async def stream_chat(self, model: str, messages: List[Dict]) -> AsyncIterator[str]:
        self.calls.append({"model": model, "messages": messages})

        if self.fragments is not None:
            chunks = self.fragments
        else:
            user_last = ""
            for m in reversed(messages):
                if m.get("role") == "user":
                    user_last = m.get("content", "")
                    break
            chunks = list(f"(mock stream) model {model}.\nYou said: {user_last}")

        for i, ch in enumerate(chunks):
            if self.fail_after is not None and i >= self.fail_after:
                raise RuntimeError("mock provider failure")
            if self.delay:
                await asyncio.sleep(self.delay)
            yield ch

        if self.fail_after is not None and self.fail_after >= len(chunks):
            raise RuntimeError("mock provider failure")
