# icao_verify/clients/http.py
import asyncio
import logging
from typing import Any, Optional, Tuple

import aiohttp

from icao_verify import config
from icao_verify.core.errors import FetchError

log = logging.getLogger(__name__)


async def fetch_bytes(
    url: str,
    timeout: Optional[float] = None,
    max_bytes: Optional[int] = None,
) -> bytes:
    """Download ``url`` and return its body. Any failure raises FetchError.

    ``timeout`` and ``max_bytes`` default to the current config values.
    """
    if timeout is None:
        timeout = config.IMAGE_FETCH_TIMEOUT_S
    if max_bytes is None:
        max_bytes = config.MAX_IMAGE_BYTES
    try:
        async with aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=timeout)) as session:
            async with session.get(url) as resp:
                if resp.status != 200:
                    raise FetchError(f"HTTP {resp.status} when downloading image")
                if resp.content_length is not None and resp.content_length > max_bytes:
                    raise FetchError(f"Image is larger than {max_bytes} bytes")
                chunks, size = [], 0
                async for chunk in resp.content.iter_chunked(64 * 1024):
                    size += len(chunk)
                    if size > max_bytes:
                        raise FetchError(f"Image is larger than {max_bytes} bytes")
                    chunks.append(chunk)
    except asyncio.TimeoutError as e:
        raise FetchError(f"Image request timed out after {timeout:g}s") from e
    except aiohttp.ClientError as e:
        raise FetchError(f"Network error: {e}") from e

    raw = b"".join(chunks)
    if not raw:
        raise FetchError("Image response was empty")
    log.info("image_fetched", extra={"bytes": len(raw)})
    return raw


async def post_form(
    url: str,
    files: dict[str, bytes],
    headers: Optional[dict[str, str]] = None,
    timeout: Optional[float] = None,
) -> Tuple[int, Any]:
    """POST ``files`` as multipart/form-data.

    Returns (status, parsed JSON body); the body is None when it is not JSON.
    aiohttp.ClientError and asyncio.TimeoutError propagate to the caller.
    """
    if timeout is None:
        timeout = config.DETECTION_TIMEOUT_S
    form = aiohttp.FormData()
    for field, data in files.items():
        form.add_field(field, data, filename=field, content_type="application/octet-stream")

    async with aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=timeout)) as session:
        async with session.post(url, data=form, headers=headers or {}) as resp:
            try:
                body = await resp.json(content_type=None)
            except ValueError:
                body = None
            return resp.status, body
