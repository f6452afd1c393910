from __future__ import annotations

import asyncio

import aiohttp
import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from steampermalink.services.attachment_service import (
    AttachmentDownloadError,
    AttachmentTooLargeError,
    download_text,
)
from steampermalink.services.keepalive_service import KEEPALIVE_TEXT, create_keepalive_app


def _file_app(body: bytes) -> web.Application:
    async def serve(request: web.Request) -> web.Response:
        return web.Response(body=body, content_type="text/plain")

    app = web.Application()
    app.router.add_get("/ids.txt", serve)
    return app


def test_download_text_within_limit() -> None:
    async def scenario() -> str:
        async with TestServer(_file_app(b"76561198000000001\n76561198000000002\n")) as server:
            return await download_text(str(server.make_url("/ids.txt")), max_bytes=1024)

    assert asyncio.run(scenario()).splitlines() == ["76561198000000001", "76561198000000002"]


def test_download_aborts_once_stream_exceeds_cap() -> None:
    async def scenario() -> None:
        async with TestServer(_file_app(b"x" * 50_000)) as server:
            await download_text(str(server.make_url("/ids.txt")), max_bytes=1000)

    with pytest.raises(AttachmentTooLargeError):
        asyncio.run(scenario())


def test_declared_size_over_cap_skips_download() -> None:
    with pytest.raises(AttachmentTooLargeError):
        asyncio.run(download_text("http://127.0.0.1:9/never", max_bytes=10, declared_size=11))


def test_download_http_error_is_wrapped() -> None:
    async def scenario() -> None:
        async with TestServer(_file_app(b"")) as server:
            await download_text(str(server.make_url("/missing.txt")))

    with pytest.raises(AttachmentDownloadError):
        asyncio.run(scenario())


def test_keepalive_answers_any_path_and_method() -> None:
    async def scenario() -> list[tuple[int, str, str]]:
        out: list[tuple[int, str, str]] = []
        async with TestServer(create_keepalive_app()) as server:
            async with aiohttp.ClientSession() as session:
                for method, path in (("GET", "/"), ("GET", "/health/deep"), ("POST", "/ping")):
                    async with session.request(method, server.make_url(path)) as response:
                        out.append((response.status, response.headers["Content-Type"], await response.text()))
        return out

    for status, content_type, body in asyncio.run(scenario()):
        assert status == 200
        assert content_type == "text/plain; charset=utf-8"
        assert body == KEEPALIVE_TEXT
