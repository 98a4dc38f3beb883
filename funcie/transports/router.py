"""Routing of incoming messages to the handler registered for their application."""

from __future__ import annotations

import logging

from funcie.message import Message
from funcie.protocols import Handler
from funcie.response import Response

logger = logging.getLogger(__name__)

NO_HANDLER_FOUND_MESSAGE = "no handler exists for this application"


class NoHandlerFoundError(LookupError):
    """No handler is registered for the message's application."""

    def __init__(self, message: str = NO_HANDLER_FOUND_MESSAGE) -> None:
        super().__init__(message)


class ClientHandlerRouter:
    """Maps application IDs to the handlers that serve them."""

    def __init__(self) -> None:
        self._handlers: dict[str, Handler] = {}

    def add_client_handler(self, application_id: str, handler: Handler) -> None:
        """Register a handler, replacing any existing one for the application."""
        if application_id in self._handlers:
            logger.warning("overwriting handler for application %s", application_id)
        self._handlers[application_id] = handler

    def remove_client_handler(self, application_id: str) -> None:
        """Remove the handler for an application, raising LookupError if absent."""
        if self._handlers.pop(application_id, None) is None:
            raise LookupError(f"no handler exists for application {application_id}")

    async def handle(self, message: Message) -> Response:
        """Pass a message to its application's handler and return the reply."""
        handler = self._handlers.get(message.application)
        if handler is None:
            raise NoHandlerFoundError(
                f"application {message.application} not registered: {NO_HANDLER_FOUND_MESSAGE}"
            )
        return await handler(message)

    def list_handlers(self) -> list[str]:
        """The application IDs that currently have handlers."""
        return list(self._handlers)