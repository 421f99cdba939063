import json
import logging
from typing import AsyncIterator, Dict, Any

from .errors import UpstreamError

logger = logging.getLogger(__name__)

SSE_DONE = "data: [DONE]\n\n"
STREAM_ERROR_MESSAGE = "Stream error occurred"

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
}

MEDIA_TYPES = {
    "sse": "text/event-stream",
    "raw": "text/plain; charset=utf-8",
}


def sse_pack(data: Dict[str, Any]) -> str:
    # SSE: data: ... \n\n
    return f"data: {json.dumps(data, ensure_ascii=False)}\n\n"


async def frame_sse(fragments: AsyncIterator[str]) -> AsyncIterator[str]:
    try:
        async for fragment in fragments:
            yield sse_pack({"content": fragment})
    except UpstreamError as e:
        # the 200 status is already on the wire; report in-band and stop
        logger.error("Stream error: %s", e, exc_info=True)
        yield sse_pack({"error": STREAM_ERROR_MESSAGE})
        return
    yield SSE_DONE


async def frame_raw(fragments: AsyncIterator[str]) -> AsyncIterator[str]:
    """
    Fragments written as-is, completion signalled only by closing the stream.
    A provider failure has no in-band form here: it is re-raised so the
    server drops the connection instead of ending the body cleanly.
    """
    try:
        async for fragment in fragments:
            yield fragment
    except UpstreamError as e:
        logger.error("Stream error, aborting raw response: %s", e)
        raise


FRAMERS = {
    "sse": frame_sse,
    "raw": frame_raw,
}
