"""Interfaces for the two ends of a tunnel, and their errors."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Awaitable, Callable

from funcie.message import Message
from funcie.registry import Application
from funcie.response import Response

Handler = Callable[[Message], Awaitable[Response]]
"""Handles a message received from a tunnel and produces a response."""


class NoActiveConsumerError(Exception):
    """No consumer is listening on the tunnel."""

    def __init__(self, message: str = "no consumer is active on this tunnel") -> None:
        super().__init__(message)


class PubSubChannelClosedError(Exception):
    """The subscription channel closed while consuming."""

    def __init__(self, message: str = "pubsub channel closed") -> None:
        super().__init__(message)


class Consumer(ABC):
    """Receives messages from a publisher and sends back responses."""

    @abstractmethod
    async def connect(self) -> None:
        """Open the connection to the tunnel."""

    @abstractmethod
    async def consume(self) -> None:
        """Process incoming messages until the tunnel closes or is cancelled."""

    @abstractmethod
    async def subscribe(self, application_id: str, handler: Handler) -> None:
        """Start routing messages for an application to a handler."""

    @abstractmethod
    async def unsubscribe(self, application_id: str) -> None:
        """Stop routing messages for an application."""


class Publisher(ABC):
    """Sends messages to a consumer and waits for the response."""

    @abstractmethod
    async def publish(self, message: Message) -> Response:
        """Publish a message; raise NoActiveConsumerError if nobody listens."""


class Pinger(ABC):
    """Checks whether an application is alive."""

    @abstractmethod
    async def ping(self, app: Application) -> None:
        """Ping the application, raising if it does not answer."""