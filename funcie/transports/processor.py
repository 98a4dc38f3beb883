"""Dispatch of incoming bastion messages to a typed handler."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable

from funcie.message import Message, unmarshal_message_payload
from funcie.messages import (
    MESSAGE_KIND_DEREGISTER,
    MESSAGE_KIND_FORWARD_REQUEST,
    MESSAGE_KIND_REGISTER,
    DeregistrationMessage,
    DeregistrationRequestPayload,
    DeregistrationResponse,
    ForwardRequestMessage,
    ForwardRequestPayload,
    ForwardRequestResponse,
    RegistrationMessage,
    RegistrationRequestPayload,
    RegistrationResponse,
)
from funcie.response import Response, marshal_response_payload


class UnknownMessageKindError(ValueError):
    """The message's kind is not one this processor handles."""

    def __init__(self, message: str = "unknown message kind") -> None:
        super().__init__(message)


class MessageProcessor(ABC):
    """Turns an incoming message into a response."""

    @abstractmethod
    async def process_message(self, message: Message[bytes]) -> Response[bytes]:
        """Process a message and return the response to send back."""


class MessageHandler(ABC):
    """Handles the valid bastion requests, each with its typed payload."""

    @abstractmethod
    async def register(self, message: RegistrationMessage) -> RegistrationResponse:
        """Register the application described in the message."""

    @abstractmethod
    async def deregister(self, message: DeregistrationMessage) -> DeregistrationResponse:
        """Remove the registration of the named application."""

    @abstractmethod
    async def forward_request(self, message: ForwardRequestMessage) -> ForwardRequestResponse:
        """Forward the request to the application it names."""


class HandlerMessageProcessor(MessageProcessor):
    """Decodes each message by kind and passes it to a MessageHandler."""

    def __init__(self, handler: MessageHandler) -> None:
        self._handler = handler

    async def process_message(self, message: Message[bytes]) -> Response[bytes]:
        routes: dict[str, tuple[type, Callable[[Any], Awaitable[Response[Any]]]]] = {
            MESSAGE_KIND_FORWARD_REQUEST: (ForwardRequestPayload, self._handler.forward_request),
            MESSAGE_KIND_REGISTER: (RegistrationRequestPayload, self._handler.register),
            MESSAGE_KIND_DEREGISTER: (DeregistrationRequestPayload, self._handler.deregister),
        }
        route = routes.get(message.kind)
        if route is None:
            raise UnknownMessageKindError()
        payload_type, handle = route

        try:
            typed = unmarshal_message_payload(message, payload_type)
        except ValueError as exc:
            raise ValueError(f"unmarshal payload {message.payload!r}: {exc}") from exc

        response = await handle(typed)

        try:
            return marshal_response_payload(response)
        except ValueError as exc:
            raise ValueError(f"marshal response {response!r}: {exc}") from exc