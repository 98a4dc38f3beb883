import dataclasses
import uuid

import pytest

from funcie.endpoint import Endpoint
from funcie.message import Message, marshal_message_payload, new_message_with_payload
from funcie.messages import (
    MESSAGE_KIND_DEREGISTER,
    MESSAGE_KIND_FORWARD_REQUEST,
    MESSAGE_KIND_PING,
    MESSAGE_KIND_REGISTER,
    DeregistrationRequestPayload,
    DeregistrationResponsePayload,
    ForwardRequestPayload,
    ForwardRequestResponsePayload,
    RegistrationRequestPayload,
    RegistrationResponsePayload,
)
from funcie.response import marshal_response_payload, new_response_with_payload
from funcie.transports.processor import (
    HandlerMessageProcessor,
    MessageHandler,
    UnknownMessageKindError,
)
from funcie.utils import ZERO_TIME


class RecordingHandler(MessageHandler):
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.received = []

    async def _reply(self, name, message):
        self.received.append((name, message))
        if self.error is not None:
            raise self.error
        return self.response

    async def register(self, message):
        return await self._reply("register", message)

    async def deregister(self, message):
        return await self._reply("deregister", message)

    async def forward_request(self, message):
        return await self._reply("forward_request", message)


def _without_received(response):
    return dataclasses.replace(response, received=ZERO_TIME)


@pytest.mark.asyncio
async def test_registration_message():
    payload = RegistrationRequestPayload("app", Endpoint.from_address("http://localhost:8080"))
    message = new_message_with_payload("app", MESSAGE_KIND_REGISTER, payload)
    response = new_response_with_payload(
        message.id, RegistrationResponsePayload(uuid.uuid4()), None
    )
    handler = RecordingHandler(response)
    processor = HandlerMessageProcessor(handler)

    result = await processor.process_message(marshal_message_payload(message))

    assert handler.received == [("register", message)]
    assert _without_received(result) == _without_received(marshal_response_payload(response))


@pytest.mark.asyncio
async def test_deregistration_message():
    message = new_message_with_payload(
        "app", MESSAGE_KIND_DEREGISTER, DeregistrationRequestPayload("app")
    )
    response = new_response_with_payload(message.id, DeregistrationResponsePayload(), None)
    handler = RecordingHandler(response)
    processor = HandlerMessageProcessor(handler)

    result = await processor.process_message(marshal_message_payload(message))

    assert handler.received == [("deregister", message)]
    assert _without_received(result) == _without_received(marshal_response_payload(response))
    assert result.data == b"{}"


@pytest.mark.asyncio
async def test_forward_request_message():
    message = new_message_with_payload(
        "app", MESSAGE_KIND_FORWARD_REQUEST, ForwardRequestPayload(b'"foo"')
    )
    response = new_response_with_payload(
        message.id, ForwardRequestResponsePayload(b'"bar"'), None
    )
    handler = RecordingHandler(response)
    processor = HandlerMessageProcessor(handler)

    result = await processor.process_message(marshal_message_payload(message))

    assert handler.received == [("forward_request", message)]
    assert _without_received(result) == _without_received(marshal_response_payload(response))
    assert result.data == b'{"body":"bar"}'


@pytest.mark.asyncio
async def test_unknown_kind_raises():
    processor = HandlerMessageProcessor(RecordingHandler())
    with pytest.raises(UnknownMessageKindError, match="unknown message kind"):
        await processor.process_message(Message(kind=MESSAGE_KIND_PING, payload=b"{}"))


@pytest.mark.asyncio
async def test_invalid_payload_raises_value_error():
    handler = RecordingHandler()
    processor = HandlerMessageProcessor(handler)
    message = Message(id="x", kind=MESSAGE_KIND_REGISTER, application="app", payload=b'{"name":1}')
    with pytest.raises(ValueError, match="unmarshal payload"):
        await processor.process_message(message)
    assert handler.received == []


@pytest.mark.asyncio
async def test_handler_error_propagates():
    handler = RecordingHandler(error=RuntimeError("boom"))
    processor = HandlerMessageProcessor(handler)
    message = new_message_with_payload(
        "app", MESSAGE_KIND_DEREGISTER, DeregistrationRequestPayload("app")
    )
    with pytest.raises(RuntimeError, match="boom"):
        await processor.process_message(marshal_message_payload(message))