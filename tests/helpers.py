"""Test helpers for building fake streaming bodies."""
import json
from typing import Any, Iterable


class FakeContent:
    """Stand-in for ``ClientResponse.content`` yielding fixed chunks."""

    def __init__(self, chunks: Iterable[bytes]):
        self.chunks = list(chunks)

    async def iter_any(self):
        for chunk in self.chunks:
            yield chunk


def ndjson(*frames: Any) -> bytes:
    """Encode frames as newline-delimited JSON."""
    return b"".join(json.dumps(frame).encode() + b"\n" for frame in frames)
