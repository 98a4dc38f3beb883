"""A consumer that receives tunnel messages over Redis pub/sub."""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any

from redis.exceptions import RedisError

from funcie.message import Message
from funcie.protocols import Consumer, Handler, PubSubChannelClosedError
from funcie.response import Response
from funcie.transports.redisbus.keys import (
    channel_name_for_application,
    is_no_handler_found,
    response_key_for_message,
)
from funcie.transports.router import ClientHandlerRouter

logger = logging.getLogger(__name__)


def _text(value: Any) -> str:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8", "replace")
    return str(value)


class RedisConsumer(Consumer):
    """Consumes messages from channels whose names start with a base name.

    The client is an asynchronous Redis client offering ``pubsub()`` and
    ``rpush``; responses are pushed onto a per-message list.
    """

    def __init__(
        self,
        redis_client: Any,
        base_channel_name: str,
        router: ClientHandlerRouter | None = None,
    ) -> None:
        self._client = redis_client
        self._base = base_channel_name
        self._router = router if router is not None else ClientHandlerRouter()
        self._pubsub: Any = None
        self._tasks: set[asyncio.Task[None]] = set()

    def _require_pubsub(self) -> Any:
        if self._pubsub is None:
            raise RuntimeError("not connected")
        return self._pubsub

    async def connect(self) -> None:
        """Subscribe to the base channel and wait for the confirmation."""
        pubsub = self._client.pubsub()
        await pubsub.subscribe(self._base)
        received = await pubsub.get_message(timeout=None)
        if not received or received.get("type") != "subscribe":
            raise ConnectionError(f"receive from pubsub: unexpected reply {received!r}")
        logger.info(
            "subscribed to base channel channel=%s count=%s",
            _text(received.get("channel")),
            received.get("data"),
        )
        self._pubsub = pubsub

    async def consume(self) -> None:
        """Handle incoming messages until the subscription ends."""
        pubsub = self._require_pubsub()
        logger.info("starting to consume messages baseChannelName=%s", self._base)
        try:
            async for item in pubsub.listen():
                if item.get("type") != "message":
                    continue
                logger.debug("received message channel=%s", _text(item.get("channel")))
                task = asyncio.ensure_future(self._process_logged(item))
                self._tasks.add(task)
                task.add_done_callback(self._tasks.discard)
            logger.debug("pubsub channel closed")
            raise PubSubChannelClosedError()
        except asyncio.CancelledError:
            logger.warning("context cancelled")
            raise
        finally:
            await self._close_pubsub(pubsub)

    async def _close_pubsub(self, pubsub: Any) -> None:
        close = getattr(pubsub, "aclose", None) or getattr(pubsub, "close")
        try:
            result = close()
            if inspect.isawaitable(result):
                await result
        except Exception as exc:  # noqa: BLE001 - failures are reported, not raised
            logger.error("error closing: %s", exc)
        else:
            logger.debug("closed resource pubsub from base channel %s", self._base)

    async def _process_logged(self, item: dict[str, Any]) -> None:
        try:
            await self._process_message(item)
        except Exception as exc:  # noqa: BLE001 - the loop keeps going
            logger.error("error processing message: %s", exc)

    async def _process_message(self, item: dict[str, Any]) -> None:
        payload = item.get("data")
        logger.debug(
            "received message channel=%s payload=%s", _text(item.get("channel")), _text(payload)
        )
        try:
            message = Message.from_json(payload)
        except (ValueError, TypeError) as exc:
            raise ValueError(f"error parsing message: unmarshalling message: {exc}") from exc

        response: Response | None = None
        error: Exception | None = None
        try:
            response = await self._router.handle(message)
        except Exception as exc:  # noqa: BLE001 - examined and re-raised below
            error = exc

        if is_no_handler_found(error, response):
            logger.info("unsubscribing due to no handler found app=%s", message.application)
            try:
                await self.unsubscribe(message.application)
            except Exception as exc:  # noqa: BLE001 - the original error matters more
                logger.error(
                    "error unsubscribing from channel: %s channel=%s",
                    exc,
                    _text(item.get("channel")),
                )

        if error is not None:
            raise RuntimeError(f"error handling message: {error}") from error

        key = response_key_for_message(self._base, message.id)
        try:
            data = response.to_json().decode("utf-8")
        except ValueError as exc:
            raise ValueError(f"error formatting response: {exc}") from exc

        try:
            await self._client.rpush(key, data)
        except RedisError as exc:
            raise RedisError(f"error pushing response to queue: {exc}") from exc

    async def subscribe(self, application_id: str, handler: Handler) -> None:
        pubsub = self._require_pubsub()
        channel = channel_name_for_application(self._base, application_id)
        logger.info("subscribing to channel %s", channel)
        await pubsub.subscribe(channel)
        self._router.add_client_handler(application_id, handler)

    async def unsubscribe(self, application_id: str) -> None:
        pubsub = self._require_pubsub()
        channel = channel_name_for_application(self._base, application_id)
        logger.info("unsubscribing from channel %s", channel)
        self._router.remove_client_handler(application_id)
        await pubsub.unsubscribe(channel)