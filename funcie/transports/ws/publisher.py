"""The websocket server side: accepting clients and tracking their subscriptions."""

from __future__ import annotations

import asyncio
import logging
import signal
from typing import Any

import websockets

from funcie.message import Message
from funcie.transports.ws.common import (
    CLIENT_TO_SERVER_RESPONSE,
    CLIENT_TO_SERVER_SUBSCRIBE,
    CLIENT_TO_SERVER_UNSUBSCRIBE,
    SERVER_TO_CLIENT_REQUEST,
    ClientToServerMessage,
    ServerToClientMessage,
)

logger = logging.getLogger(__name__)

SUBPROTOCOL = "funcie"
STATUS_NORMAL_CLOSURE = 1000
STATUS_POLICY_VIOLATION = 1008
STATUS_INTERNAL_ERROR = 1011


class ClientNotFoundError(LookupError):
    """No client is subscribed to the requested application."""

    def __init__(self, message: str = "client not found") -> None:
        super().__init__(message)


class WebsocketClientConnection:
    """One connected client."""

    def __init__(self, websocket: Any) -> None:
        self._websocket = websocket

    async def handle_message(self, message: Message) -> None:
        """Send a request to the client."""
        request = ServerToClientMessage(SERVER_TO_CLIENT_REQUEST, message)
        await self._websocket.send(request.to_json().decode("utf-8"))

    async def close(self) -> None:
        """Close the client's websocket."""
        await self._websocket.close(code=STATUS_NORMAL_CLOSURE, reason="closing")


class WebsocketClientManager:
    """Keeps the connected clients and which application each one serves."""

    def __init__(self) -> None:
        self._routes: dict[str, WebsocketClientConnection] = {}
        self._clients: list[WebsocketClientConnection] = []

    def add_client(self, client: WebsocketClientConnection) -> None:
        self._clients.append(client)

    async def close_all_clients(self) -> None:
        """Close every connected client and forget them."""
        clients, self._clients = self._clients, []
        for client in clients:
            try:
                await client.close()
            except Exception as exc:  # noqa: BLE001 - closing the rest matters more
                logger.debug("error closing client: %s", exc)

    def add_client_routing(self, application_id: str, client: WebsocketClientConnection) -> None:
        logger.info("adding client routing for %s", application_id)
        self._routes[application_id] = client

    def remove_client_routing(self, application_id: str) -> None:
        logger.info("removing client routing for %s", application_id)
        self._routes.pop(application_id, None)

    def get_client_routing(self, application_id: str) -> WebsocketClientConnection:
        """The client serving an application, raising ClientNotFoundError if none."""
        try:
            return self._routes[application_id]
        except KeyError:
            raise ClientNotFoundError() from None

    async def process(self, websocket: Any) -> None:
        """Register a client and apply its messages until the connection ends."""
        client = WebsocketClientConnection(websocket)
        self.add_client(client)
        logger.info("client connected")
        while True:
            try:
                raw = await websocket.recv()
            except Exception as exc:  # noqa: BLE001 - the connection is finished
                logger.info("failed to read message: %s", exc)
                return
            self._apply(raw, client)

    def _apply(self, raw: bytes | str, client: WebsocketClientConnection) -> None:
        try:
            message = ClientToServerMessage.from_json(raw)
        except ValueError as exc:
            logger.info("failed to unmarshal message: %s", exc)
            return

        if message.request_type == CLIENT_TO_SERVER_SUBSCRIBE:
            self.add_client_routing(message.application, client)
        elif message.request_type == CLIENT_TO_SERVER_UNSUBSCRIBE:
            self.remove_client_routing(message.application)
        elif message.request_type == CLIENT_TO_SERVER_RESPONSE:
            logger.debug("received response from client")
        else:
            logger.info("unknown message type: %s", message.request_type)


class WebsocketClientListener:
    """Accepts websocket connections and hands them to a client manager."""

    def __init__(self, client_manager: WebsocketClientManager) -> None:
        self._manager = client_manager

    async def handle(self, websocket: Any) -> None:
        """Serve one connection; clients must speak the funcie subprotocol."""
        try:
            if getattr(websocket, "subprotocol", None) != SUBPROTOCOL:
                await websocket.close(
                    code=STATUS_POLICY_VIOLATION,
                    reason="client must speak the funcie sub-protocol",
                )
                return
            await self._manager.process(websocket)
        finally:
            await websocket.close(code=STATUS_INTERNAL_ERROR, reason="the sky is falling")


async def listen(port: int) -> None:
    """Serve websocket clients on all interfaces until interrupted."""
    listener = WebsocketClientListener(WebsocketClientManager())
    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, stop.set)
        handles_signal = True
    except (NotImplementedError, RuntimeError, ValueError):
        handles_signal = False

    try:
        async with websockets.serve(
            listener.handle, None, port, subprotocols=[SUBPROTOCOL]
        ):
            logger.info("listening on port %s", port)
            await stop.wait()
            logger.info("terminating: interrupt")
    finally:
        if handles_signal:
            loop.remove_signal_handler(signal.SIGINT)