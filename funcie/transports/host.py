"""An HTTP host that receives bastion messages and dispatches them."""

from __future__ import annotations

import asyncio
import logging

from aiohttp import web

from funcie.message import Message
from funcie.transports.processor import MessageProcessor

logger = logging.getLogger(__name__)


def _split_address(address: str) -> tuple[str | None, int]:
    host, sep, port = address.rpartition(":")
    if not sep:
        raise ValueError(f"address {address}: missing port in address")
    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]
    try:
        port_number = int(port) if port else 80
    except ValueError as exc:
        raise ValueError(f"address {address}: invalid port {port!r}") from exc
    return host or None, port_number


class Host:
    """Serves ``/dispatch`` and ``/health`` on the given address."""

    def __init__(self, address: str, message_processor: MessageProcessor) -> None:
        self.address = address
        self._host, self._port = _split_address(address)
        self._processor = message_processor
        self._runner: web.AppRunner | None = None
        self._stopped: asyncio.Event | None = None

    def build_app(self) -> web.Application:
        """Create the web application with the host's routes."""
        app = web.Application()
        app.router.add_route("*", "/dispatch", self._dispatch)
        app.router.add_route("*", "/health", self._health)
        return app

    async def listen(self) -> None:
        """Serve requests until ``close`` is called."""
        logger.info("listening for incoming requests; address=%s", self.address)
        runner = web.AppRunner(self.build_app())
        await runner.setup()
        stopped = asyncio.Event()
        self._runner = runner
        self._stopped = stopped
        try:
            site = web.TCPSite(runner, self._host, self._port)
            await site.start()
            await stopped.wait()
        finally:
            if self._runner is runner:
                self._runner = None
                await runner.cleanup()

    async def close(self) -> None:
        """Stop the server if it is running."""
        logger.info("closing http server")
        runner, stopped = self._runner, self._stopped
        self._runner = None
        if runner is not None:
            await runner.cleanup()
        if stopped is not None:
            stopped.set()

    async def _health(self, _request: web.Request) -> web.Response:
        return web.Response(status=200)

    async def _dispatch(self, request: web.Request) -> web.Response:
        logger.info("received request method=%s url=%s", request.method, request.url)
        payload = await request.read()

        try:
            message = Message.from_json(payload)
        except ValueError as exc:
            logger.error("error unmarshalling message: %s payload=%r", exc, payload)
            return web.Response(status=400, text=f"invalid request: {exc}")

        logger.debug("received message %s", message)

        try:
            response = await self._processor.process_message(message)
        except Exception as exc:  # noqa: BLE001 - reported to the caller
            logger.error("error processing message: %s message=%s", exc, message)
            return web.Response(status=500, text=f"internal server error: {exc}")

        try:
            body = response.to_json()
        except ValueError as exc:
            logger.error("error formatting response: %s", exc)
            return web.Response(
                status=500, text=f"internal server error formatting response: {exc}"
            )

        logger.debug("sent response %s", body.decode("utf-8", "replace"))
        return web.Response(status=200, body=body, content_type="application/json")