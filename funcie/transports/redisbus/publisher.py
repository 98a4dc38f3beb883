"""A publisher that sends tunnel messages over Redis pub/sub."""

from __future__ import annotations

import logging
from typing import Any

from redis.exceptions import RedisError

from funcie.message import Message
from funcie.protocols import NoActiveConsumerError, Publisher
from funcie.response import Response
from funcie.transports.redisbus.keys import (
    channel_name_for_application,
    response_key_for_message,
)

logger = logging.getLogger(__name__)

TTL_SECONDS = 300
"""How long to wait for a consumer's response."""


class RedisPublisher(Publisher):
    """Publishes messages on per-application channels and awaits the reply.

    The client is an asynchronous Redis client offering ``publish`` and
    ``brpop``.
    """

    def __init__(self, redis_client: Any, base_channel_name: str, ttl: int = TTL_SECONDS) -> None:
        self._client = redis_client
        self._base = base_channel_name
        self._ttl = ttl

    async def publish(self, message: Message) -> Response:
        channel = channel_name_for_application(self._base, message.application)
        try:
            contents = message.to_json()
        except ValueError as exc:
            raise ValueError(f"failed to marshal message: {exc}") from exc

        logger.info("publishing message to channel channel=%s message=%s", channel, message.id)
        try:
            consumers = await self._client.publish(channel, contents)
        except RedisError as exc:
            raise RedisError(
                f"failed to publish message to channel {message.application}: {exc}"
            ) from exc
        logger.debug("received publish result consumers=%s", consumers)

        if consumers == 0:
            raise NoActiveConsumerError()

        key = response_key_for_message(self._base, message.id)
        try:
            result = await self._client.brpop([key], timeout=self._ttl)
        except RedisError as exc:
            raise RedisError(f"failed to get response from consumer: {exc}") from exc

        if result is None:
            raise TimeoutError("failed to get response from consumer: timed out")
        if len(result) == 0:
            raise NoActiveConsumerError()
        if len(result) != 2:
            raise ValueError(
                f"expected response to be a list of two items, got {len(result)}"
            )

        try:
            return Response.from_json(result[1])
        except ValueError as exc:
            raise ValueError(f"failed to unmarshal response from consumer: {exc}") from exc