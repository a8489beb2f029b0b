"""
Newline-delimited JSON stream handling.

``iter_frames`` turns a streaming HTTP body into parsed JSON objects, one per
line, in arrival order. ``StreamAggregate`` folds frames into the running
text and remembers the terminal frame.
"""
import codecs
import json
from dataclasses import dataclass
from typing import Any, AsyncGenerator, Dict, Optional

import aiohttp

from .models import GenerateResult


async def iter_frames(
    response: aiohttp.ClientResponse,
    logger: Any,
) -> AsyncGenerator[Dict[str, Any], None]:
    """Yield each JSON object line of ``response``.

    Blank lines are skipped. Lines that are not JSON objects are logged and
    skipped. A final line without a trailing newline is still delivered.
    """
    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    buffer = ""

    async for chunk in response.content.iter_any():
        buffer += decoder.decode(chunk)

        while '\n' in buffer:
            line, buffer = buffer.split('\n', 1)
            frame = _parse_line(line, logger)
            if frame is not None:
                yield frame

    buffer += decoder.decode(b"", final=True)
    frame = _parse_line(buffer, logger)
    if frame is not None:
        yield frame


def _parse_line(line: str, logger: Any) -> Optional[Dict[str, Any]]:
    line = line.strip()
    if not line:
        return None
    try:
        data = json.loads(line)
    except json.JSONDecodeError as e:
        logger.warning("Failed to parse stream frame", chunk=line[:200], error=str(e))
        return None
    if not isinstance(data, dict):
        logger.warning("Ignoring non-object stream frame", chunk=line[:200])
        return None
    return data


@dataclass
class StreamAggregate:
    """Running result of a streamed generate or chat call."""
    full_text: str = ""
    terminal: Optional[GenerateResult] = None

    def fold(self, frame: GenerateResult) -> None:
        """Append the frame's fragment; capture it if it is the terminal frame."""
        if frame.response:
            self.full_text += frame.response
        if frame.done:
            self.terminal = frame.model_copy(update={"response": self.full_text})

    def result(self, model: str) -> GenerateResult:
        """The terminal frame carrying the full text, or a synthesized one."""
        if self.terminal is not None:
            return self.terminal
        return GenerateResult.synthesized(model, self.full_text)
