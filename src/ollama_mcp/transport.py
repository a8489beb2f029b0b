"""
HTTP transport primitive shared by the model-server and envelope clients.

A single request either yields the decoded JSON body of a 2xx response or
fails with ``TransportError`` (non-2xx status) or ``NetworkError`` (the
request never produced a status). No retries and no timeouts beyond the
session's own.
"""
import asyncio
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional

import aiohttp

from .exceptions import NetworkError, TransportError


def _is_success(status: int) -> bool:
    return 200 <= status < 300


async def _raise_for_status(response: aiohttp.ClientResponse, url: str) -> None:
    if _is_success(response.status):
        return
    try:
        body = await response.text()
    except aiohttp.ClientError:
        body = ""
    raise TransportError(
        f"HTTP error! status: {response.status}",
        status=response.status,
        url=url,
        context={"body": body[:200]} if body else None,
    )


async def request_json(
    session: aiohttp.ClientSession,
    method: str,
    url: str,
    *,
    headers: Optional[Dict[str, str]] = None,
    payload: Optional[Any] = None,
) -> Any:
    """Perform one HTTP call and return its decoded JSON body."""
    try:
        async with session.request(method, url, headers=headers, json=payload) as response:
            await _raise_for_status(response, url)
            try:
                return await response.json(content_type=None)
            except ValueError as e:
                raise TransportError(
                    "Response body is not valid JSON",
                    status=response.status,
                    url=url,
                    cause=e,
                ) from e
    except aiohttp.ClientError as e:
        raise NetworkError(f"Request to {url} failed: {e}", url=url, cause=e) from e
    except asyncio.TimeoutError as e:
        raise NetworkError(f"Request to {url} timed out", url=url, cause=e) from e


@asynccontextmanager
async def open_stream(
    session: aiohttp.ClientSession,
    url: str,
    payload: Any,
    *,
    headers: Optional[Dict[str, str]] = None,
) -> AsyncIterator[aiohttp.ClientResponse]:
    """POST ``payload`` and hold the streaming response open for the block.

    The response is released exactly once when the block exits, whether it
    finished, broke out early, or raised.
    """
    try:
        async with session.request("POST", url, headers=headers, json=payload) as response:
            await _raise_for_status(response, url)
            yield response
    except aiohttp.ClientError as e:
        raise NetworkError(f"Stream from {url} failed: {e}", url=url, cause=e) from e
    except asyncio.TimeoutError as e:
        raise NetworkError(f"Stream from {url} timed out", url=url, cause=e) from e
