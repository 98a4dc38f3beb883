"""A consumer that receives tunnel messages over a websocket."""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Sequence

import websockets

from funcie.message import Message
from funcie.protocols import Consumer, Handler
from funcie.response import Response
from funcie.transports.router import ClientHandlerRouter
from funcie.transports.ws.common import (
    CLIENT_TO_SERVER_RESPONSE,
    CLIENT_TO_SERVER_SUBSCRIBE,
    CLIENT_TO_SERVER_UNSUBSCRIBE,
    SERVER_TO_CLIENT_REQUEST,
    ClientToServerMessage,
    ServerToClientMessage,
)

logger = logging.getLogger(__name__)

SUBPROTOCOLS = ("funcie",)
STATUS_NORMAL_CLOSURE = 1000

Dialer = Callable[[str, Sequence[str]], Awaitable[Any]]
"""Opens a websocket to a URL offering the given subprotocols."""


class NotConnectedError(ConnectionError):
    """The consumer has no open websocket."""

    def __init__(self, message: str = "not connected") -> None:
        super().__init__(message)


async def _dial_websocket(url: str, subprotocols: Sequence[str]) -> Any:
    return await websockets.connect(url, subprotocols=list(subprotocols))


def parse_server_message(text: bytes | str) -> Message:
    """Extract the request carried by a server message."""
    server_message = ServerToClientMessage.from_json(text)
    if server_message.request_type != SERVER_TO_CLIENT_REQUEST:
        raise ValueError(
            f"unsupported server to client message type: {server_message.request_type}"
        )
    if server_message.message is None:
        raise ValueError("server request carries no message")
    return server_message.message


def format_response(response: Response) -> str:
    """Wrap a response in a client message ready to send."""
    return ClientToServerMessage(
        request_type=CLIENT_TO_SERVER_RESPONSE, response=response
    ).to_json().decode("utf-8")


async def _read_message(websocket: Any) -> Message:
    data = await websocket.recv()
    if not isinstance(data, str):
        raise ValueError("invalid message type: binary")
    return parse_server_message(data)


class WebsocketConsumer(Consumer):
    """Receives requests from a websocket server and answers them."""

    def __init__(
        self,
        url: str,
        dial: Dialer | None = None,
        router: ClientHandlerRouter | None = None,
    ) -> None:
        self.url = url
        self._dial = dial if dial is not None else _dial_websocket
        self._router = router if router is not None else ClientHandlerRouter()
        self._websocket: Any = None
        self._connected = False

    def _require_websocket(self) -> Any:
        if not self._connected or self._websocket is None:
            raise NotConnectedError()
        return self._websocket

    async def connect(self) -> None:
        """Open the websocket, speaking the funcie subprotocol."""
        try:
            self._websocket = await self._dial(self.url, SUBPROTOCOLS)
        except Exception as exc:  # noqa: BLE001 - any dial failure is a connection error
            raise ConnectionError(f"error dialing Websocket: {exc}") from exc
        self._connected = True

    async def close(self) -> None:
        """Close the websocket if one is open."""
        websocket = self._websocket
        self._connected = False
        self._websocket = None
        if websocket is not None:
            await websocket.close(code=STATUS_NORMAL_CLOSURE, reason="exiting consumer")

    async def _write(self, websocket: Any, text: str) -> None:
        try:
            await websocket.send(text)
        except Exception as exc:  # noqa: BLE001 - reported as a connection error
            raise ConnectionError(f"error writing to Websocket: {exc}") from exc

    async def subscribe(self, application: str, handler: Handler) -> None:
        websocket = self._require_websocket()
        request = ClientToServerMessage(CLIENT_TO_SERVER_SUBSCRIBE, application)
        await self._write(websocket, request.to_json().decode("utf-8"))
        self._router.add_client_handler(application, handler)

    async def unsubscribe(self, application: str) -> None:
        websocket = self._require_websocket()
        request = ClientToServerMessage(CLIENT_TO_SERVER_UNSUBSCRIBE, application)
        await self._write(websocket, request.to_json().decode("utf-8"))
        try:
            self._router.remove_client_handler(application)
        except LookupError as exc:
            raise LookupError(f"error removing handler: {exc}") from exc

    async def consume(self) -> None:
        """Read requests, pass them to their handlers and send the responses.

        Runs until reading fails, which is raised, or the task is cancelled.
        """
        websocket = self._require_websocket()
        while True:
            message = await _read_message(websocket)
            try:
                response = await self._router.handle(message)
            except Exception as exc:  # noqa: BLE001 - wrapped with context
                raise RuntimeError(f"error handling message: {exc}") from exc

            try:
                data = format_response(response)
            except ValueError as exc:
                raise ValueError(f"error formatting response: {exc}") from exc

            try:
                await websocket.send(data)
            except Exception as exc:  # noqa: BLE001 - reported as a connection error
                raise ConnectionError(f"error writing message: {exc}") from exc