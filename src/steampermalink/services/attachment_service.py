from __future__ import annotations

import asyncio

import aiohttp

MAX_ATTACHMENT_BYTES = 256 * 1024
DOWNLOAD_TIMEOUT_SEC = 30
CHUNK_SIZE = 8192


class AttachmentTooLargeError(Exception):
    def __init__(self, limit: int) -> None:
        super().__init__(f"Attachment exceeds {limit} bytes.")
        self.limit = limit


class AttachmentDownloadError(Exception):
    pass


async def download_text(url: str, max_bytes: int = MAX_ATTACHMENT_BYTES, declared_size: int | None = None) -> str:
    """Fetch ``url`` as UTF-8 text, aborting once more than ``max_bytes`` arrive."""
    if declared_size is not None and declared_size > max_bytes:
        raise AttachmentTooLargeError(max_bytes)
    buffer = bytearray()
    timeout = aiohttp.ClientTimeout(total=DOWNLOAD_TIMEOUT_SEC)
    try:
        async with aiohttp.ClientSession(timeout=timeout) as session:
            async with session.get(url) as response:
                if response.status >= 400:
                    raise AttachmentDownloadError(f"HTTP {response.status}")
                async for chunk in response.content.iter_chunked(CHUNK_SIZE):
                    buffer.extend(chunk)
                    if len(buffer) > max_bytes:
                        raise AttachmentTooLargeError(max_bytes)
    except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
        raise AttachmentDownloadError(str(exc)) from exc
    return buffer.decode("utf-8", errors="replace")
