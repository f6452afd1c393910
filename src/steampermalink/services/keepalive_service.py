from __future__ import annotations

from aiohttp import web

from steampermalink.services.logger_service import LoggerService

KEEPALIVE_TEXT = "I'm alive"


async def _alive(request: web.Request) -> web.Response:
    return web.Response(text=KEEPALIVE_TEXT, content_type="text/plain", charset="utf-8")


def create_keepalive_app() -> web.Application:
    app = web.Application()
    app.router.add_route("*", "/{tail:.*}", _alive)
    return app


class KeepAliveServer:
    """Plain-text liveness endpoint for external uptime monitors."""

    def __init__(self, port: int, logger: LoggerService, host: str = "0.0.0.0") -> None:
        self.host = host
        self.port = int(port)
        self.logger = logger
        self._runner: web.AppRunner | None = None

    async def start(self) -> None:
        self._runner = web.AppRunner(create_keepalive_app())
        await self._runner.setup()
        site = web.TCPSite(self._runner, self.host, self.port)
        await site.start()
        self.logger.log("keepalive.started", host=self.host, port=self.port)

    async def stop(self) -> None:
        if self._runner:
            await self._runner.cleanup()
            self._runner = None
