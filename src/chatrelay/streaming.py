"""Streaming response handling for the chat relay."""

import codecs
import json
import logging
import re
from typing import AsyncGenerator, AsyncIterable, List, Optional

logger = logging.getLogger(__name__)

DONE_MARKER = "[DONE]"

# SSE lines end in CRLF, LF or a bare CR
LINE_BREAK = re.compile(r"\r\n|\r|\n")


def extract_delta(payload: str) -> Optional[str]:
    """
    Pull the text delta out of a single SSE data payload.

    Returns None for the [DONE] marker, malformed JSON, or events that
    carry no content (role-only, finish_reason-only, empty choices).
    """
    if payload == DONE_MARKER:
        return None

    try:
        event = json.loads(payload)
    except json.JSONDecodeError:
        logger.debug("Skipping unparseable SSE payload: %r", payload)
        return None

    if not isinstance(event, dict):
        return None
    choices = event.get("choices")
    if not isinstance(choices, list) or not choices:
        return None
    first = choices[0]
    if not isinstance(first, dict):
        return None
    delta = first.get("delta")
    if not isinstance(delta, dict):
        return None
    content = delta.get("content")
    if not isinstance(content, str) or not content:
        return None
    return content


class SSEDeltaDecoder:
    """
    Incrementally turns Server-Sent-Events text into content deltas.

    Upstream chunks are not aligned with event boundaries, so a trailing
    partial line is held in the buffer until the rest of it arrives.
    """

    def __init__(self):
        self.buffer = ""

    def _parse_line(self, line: str) -> Optional[str]:
        line = line.strip()
        if not line.startswith("data:"):
            return None
        payload = line[len("data:"):]
        if payload.startswith(" "):
            payload = payload[1:]
        return extract_delta(payload)

    def feed(self, text: str) -> List[str]:
        """
        Add new text and return the deltas found in every complete line.
        """
        self.buffer += text
        *lines, self.buffer = LINE_BREAK.split(self.buffer)

        tokens = []
        for line in lines:
            token = self._parse_line(line)
            if token:
                tokens.append(token)
        return tokens

    def flush(self) -> List[str]:
        """
        Parse whatever is left in the buffer as a final line.
        """
        remaining, self.buffer = self.buffer, ""
        token = self._parse_line(remaining)
        return [token] if token else []


async def relay_tokens(
    chunks: AsyncIterable[bytes],
) -> AsyncGenerator[bytes, None]:
    """
    Re-frame an upstream SSE byte stream as raw token bytes.

    Each yielded chunk is exactly one content delta encoded as UTF-8,
    with no SSE framing around it.
    """
    utf8 = codecs.getincrementaldecoder("utf-8")(errors="replace")
    decoder = SSEDeltaDecoder()

    async for chunk in chunks:
        if not chunk:
            continue
        for token in decoder.feed(utf8.decode(chunk)):
            yield token.encode("utf-8")

    for token in decoder.feed(utf8.decode(b"", final=True)):
        yield token.encode("utf-8")
    for token in decoder.flush():
        yield token.encode("utf-8")
