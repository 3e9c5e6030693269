"""HTTP endpoint serving the balance metrics."""

from __future__ import annotations

import asyncio
import logging
import signal
from pathlib import Path
from typing import Optional

from aiohttp import web

from exporter.metrics import BalanceMetrics

LOGGER = logging.getLogger("mcs_exporter.server")

DEFAULT_INDEX_PATH = Path(__file__).parent / "static" / "index.html"
DEFAULT_SHUTDOWN_TIMEOUT = 5.0


class MetricsServer:
    """Serves ``/metrics`` and a static index page."""

    def __init__(
        self,
        metrics: BalanceMetrics,
        host: str = "0.0.0.0",
        port: int = 9601,
        *,
        index_path: Path | None = None,
        shutdown_timeout: float = DEFAULT_SHUTDOWN_TIMEOUT,
    ) -> None:
        self._metrics = metrics
        self._host = host
        self._port = port
        self._index_path = Path(index_path) if index_path else DEFAULT_INDEX_PATH
        self._shutdown_timeout = shutdown_timeout
        self._app = self.build_app()
        self._runner: Optional[web.AppRunner] = None
        self._site: Optional[web.TCPSite] = None

    @property
    def app(self) -> web.Application:
        return self._app

    def build_app(self) -> web.Application:
        app = web.Application()
        app.add_routes(
            [
                web.get("/metrics", self._handle_metrics),
                web.get("/", self._handle_index),
            ]
        )
        return app

    async def start(self) -> None:
        if self._runner is not None:
            return
        self._runner = web.AppRunner(
            self._app, shutdown_timeout=self._shutdown_timeout, access_log=None
        )
        await self._runner.setup()
        self._site = web.TCPSite(self._runner, self._host, self._port)
        await self._site.start()
        LOGGER.info(
            "MCS balance exporter has been started at address %s:%s",
            self._host,
            self._port,
        )

    async def stop(self) -> None:
        if self._site:
            await self._site.stop()
            self._site = None
        if self._runner:
            await self._runner.cleanup()
            self._runner = None

    async def _handle_metrics(self, request: web.Request) -> web.Response:
        return web.Response(
            body=self._metrics.render(),
            headers={"Content-Type": self._metrics.content_type},
        )

    async def _handle_index(self, request: web.Request) -> web.StreamResponse:
        if not self._index_path.is_file():
            raise web.HTTPNotFound(text="index page is not available")
        return web.FileResponse(self._index_path)


async def serve_until_signalled(server: MetricsServer) -> None:
    """Run the server until SIGINT or SIGTERM, then drain and stop it."""
    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop_event.set)
    await server.start()
    try:
        await stop_event.wait()
    finally:
        LOGGER.info("MCS balance exporter shutdown")
        await server.stop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.remove_signal_handler(sig)
