"""A message processor that remembers applications without an active consumer."""

from __future__ import annotations

import logging
import time
from typing import Callable

from funcie.message import Message
from funcie.messages import (
    MESSAGE_KIND_DEREGISTER,
    MESSAGE_KIND_FORWARD_REQUEST,
    MESSAGE_KIND_REGISTER,
)
from funcie.protocols import NoActiveConsumerError
from funcie.response import Response
from funcie.transports.processor import MessageProcessor, UnknownMessageKindError

logger = logging.getLogger(__name__)

_NO_CONSUMER_MESSAGE = str(NoActiveConsumerError())


class CachingMessageProcessor(MessageProcessor):
    """Forwards messages to another processor, caching "no consumer" results.

    When a forwarded request finds no active consumer, further requests for
    that application fail at once for ``ttl`` seconds, or until the
    application registers again.
    """

    def __init__(
        self,
        underlying: MessageProcessor,
        ttl: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._underlying = underlying
        self._ttl = ttl
        self._clock = clock
        self._no_consumer: dict[str, float] = {}

    async def process_message(self, message: Message[bytes]) -> Response[bytes]:
        if message.kind == MESSAGE_KIND_FORWARD_REQUEST:
            return await self._forward_request(message)
        if message.kind == MESSAGE_KIND_REGISTER:
            self._no_consumer.pop(message.application, None)
            return await self._underlying.process_message(message)
        if message.kind == MESSAGE_KIND_DEREGISTER:
            return await self._underlying.process_message(message)
        raise UnknownMessageKindError()

    async def _forward_request(self, message: Message[bytes]) -> Response[bytes]:
        app = message.application
        cached_at = self._no_consumer.get(app)
        if cached_at is not None:
            if self._clock() - cached_at < self._ttl:
                logger.debug("no consumer found, cached; application=%s", app)
                raise NoActiveConsumerError()
            logger.debug("no consumer found, cache expired; application=%s", app)
            del self._no_consumer[app]

        try:
            response = await self._underlying.process_message(message)
        except NoActiveConsumerError:
            logger.debug(
                "no consumer found (client bastion unresponsive?), caching; application=%s", app
            )
            self._no_consumer[app] = self._clock()
            raise

        if response.error is not None and str(response.error) == _NO_CONSUMER_MESSAGE:
            logger.debug("no consumer found (negative response), caching; application=%s", app)
            self._no_consumer[app] = self._clock()
        return response