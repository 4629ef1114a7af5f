"""Blocking HTTP helpers built on aiohttp.

Plugins and the installer run synchronously, so each request gets its own
short-lived event loop.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional

import aiohttp

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = aiohttp.ClientTimeout(total=None, sock_connect=30, sock_read=60)
CHUNK_SIZE = 64 * 1024


@dataclass
class HttpResponse:
    status_code: int
    headers: Dict[str, str] = field(default_factory=dict)
    body: str = ""


async def _request(
    method: str,
    url: str,
    headers: Optional[Dict[str, str]],
    proxy: Optional[str],
    with_body: bool,
) -> HttpResponse:
    async with aiohttp.ClientSession(timeout=DEFAULT_TIMEOUT) as session:
        async with session.request(method, url, headers=headers, proxy=proxy) as response:
            body = await response.text() if with_body else ""
            return HttpResponse(
                status_code=response.status,
                headers={k: v for k, v in response.headers.items()},
                body=body,
            )


async def _download(
    url: str,
    dest: Path,
    headers: Optional[Dict[str, str]],
    proxy: Optional[str],
) -> None:
    async with aiohttp.ClientSession(timeout=DEFAULT_TIMEOUT) as session:
        async with session.get(url, headers=headers, proxy=proxy) as response:
            response.raise_for_status()
            with open(dest, "wb") as f:
                async for chunk in response.content.iter_chunked(CHUNK_SIZE):
                    f.write(chunk)


def request(
    method: str,
    url: str,
    headers: Optional[Dict[str, str]] = None,
    proxy: Optional[str] = None,
    with_body: bool = True,
) -> HttpResponse:
    """Send one request and return the response.

    Raises:
        aiohttp.ClientError: On connection or protocol errors
        asyncio.TimeoutError: When the server stops responding
    """
    logger.debug(f"HTTP {method} {url}")
    return asyncio.run(_request(method, url, headers, proxy, with_body))


def download(
    url: str,
    dest: Path,
    headers: Optional[Dict[str, str]] = None,
    proxy: Optional[str] = None,
) -> Path:
    """Stream ``url`` into ``dest``.

    Raises:
        aiohttp.ClientResponseError: On a non-2xx status
        aiohttp.ClientError: On connection or protocol errors
        asyncio.TimeoutError: When the server stops responding
    """
    logger.debug(f"HTTP download {url} -> {dest}")
    asyncio.run(_download(url, dest, headers, proxy))
    return dest
