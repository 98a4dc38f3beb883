import pytest

from funcie.message import new_message
from funcie.response import new_response
from funcie.transports.router import ClientHandlerRouter
from funcie.transports.ws.common import ClientToServerMessage, ServerToClientMessage
from funcie.transports.ws.consumer import (
    NotConnectedError,
    WebsocketConsumer,
    format_response,
    parse_server_message,
)

URL = "ws://localhost:8080"
SUBSCRIBE_JSON = '{"requestType":"s","channel":"channelName","response":null}'
UNSUBSCRIBE_JSON = '{"requestType":"u","channel":"channelName","response":null}'


class FakeWebsocket:
    def __init__(self, incoming=(), fail_send=None):
        self.incoming = list(incoming)
        self.sent = []
        self.closed = []
        self.fail_send = fail_send

    async def send(self, data):
        if self.fail_send is not None:
            raise self.fail_send
        self.sent.append(data)

    async def recv(self):
        if not self.incoming:
            raise EOFError("closed")
        item = self.incoming.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item

    async def close(self, code=1000, reason=""):
        self.closed.append((code, reason))


def make_dialer(websocket):
    calls = []

    async def dial(url, subprotocols):
        calls.append((url, list(subprotocols)))
        if isinstance(websocket, BaseException):
            raise websocket
        return websocket

    return dial, calls


async def nil_handler(_message):
    return None


async def connected_consumer(websocket, router=None):
    dial, _ = make_dialer(websocket)
    consumer = WebsocketConsumer(URL, dial=dial, router=router or ClientHandlerRouter())
    await consumer.connect()
    return consumer


@pytest.mark.asyncio
async def test_subscribe_requires_connection():
    consumer = WebsocketConsumer(URL, dial=make_dialer(FakeWebsocket())[0])
    with pytest.raises(NotConnectedError, match="not connected"):
        await consumer.subscribe("channelName", nil_handler)


@pytest.mark.asyncio
async def test_subscribe_writes_subscribe_message():
    websocket = FakeWebsocket()
    router = ClientHandlerRouter()
    consumer = await connected_consumer(websocket, router)
    await consumer.subscribe("channelName", nil_handler)
    assert websocket.sent == [SUBSCRIBE_JSON]
    assert router.list_handlers() == ["channelName"]


@pytest.mark.asyncio
async def test_subscribe_write_failure_raises():
    consumer = await connected_consumer(FakeWebsocket(fail_send=RuntimeError("error")))
    with pytest.raises(ConnectionError, match="error writing to Websocket"):
        await consumer.subscribe("channelName", nil_handler)


@pytest.mark.asyncio
async def test_unsubscribe_requires_connection():
    consumer = WebsocketConsumer(URL, dial=make_dialer(FakeWebsocket())[0])
    with pytest.raises(NotConnectedError, match="not connected"):
        await consumer.unsubscribe("channelName")


@pytest.mark.asyncio
async def test_unsubscribe_writes_unsubscribe_message_and_removes_handler():
    websocket = FakeWebsocket()
    router = ClientHandlerRouter()
    consumer = await connected_consumer(websocket, router)
    await consumer.subscribe("channelName", nil_handler)
    await consumer.unsubscribe("channelName")
    assert websocket.sent == [SUBSCRIBE_JSON, UNSUBSCRIBE_JSON]
    assert router.list_handlers() == []


@pytest.mark.asyncio
async def test_unsubscribe_unknown_application_raises():
    websocket = FakeWebsocket()
    consumer = await connected_consumer(websocket)
    with pytest.raises(LookupError, match="error removing handler"):
        await consumer.unsubscribe("channelName")
    assert websocket.sent == [UNSUBSCRIBE_JSON]


@pytest.mark.asyncio
async def test_unsubscribe_write_failure_raises():
    consumer = await connected_consumer(FakeWebsocket(fail_send=RuntimeError("error")))
    with pytest.raises(ConnectionError, match="error writing to Websocket"):
        await consumer.unsubscribe("channelName")


@pytest.mark.asyncio
async def test_connect_dials_with_funcie_subprotocol():
    dial, calls = make_dialer(FakeWebsocket())
    consumer = WebsocketConsumer(URL, dial=dial)
    await consumer.connect()
    assert calls == [(URL, ["funcie"])]


@pytest.mark.asyncio
async def test_connect_failure_raises():
    dial, _ = make_dialer(OSError("error"))
    consumer = WebsocketConsumer(URL, dial=dial)
    with pytest.raises(ConnectionError, match="error dialing Websocket"):
        await consumer.connect()


@pytest.mark.asyncio
async def test_close_closes_websocket_and_disconnects():
    websocket = FakeWebsocket()
    consumer = await connected_consumer(websocket)
    await consumer.close()
    assert websocket.closed == [(1000, "exiting consumer")]
    with pytest.raises(NotConnectedError):
        await consumer.subscribe("channelName", nil_handler)


@pytest.mark.asyncio
async def test_consume_responds_to_message():
    message = new_message("app", "FORWARD_REQUEST", b'"DataS2C"')
    server_json = ServerToClientMessage("rq", message).to_json().decode("utf-8")
    response = new_response("C2S", b'"DataC2S"', None)
    received = []

    async def handler(incoming):
        received.append(incoming)
        return response

    websocket = FakeWebsocket([server_json, EOFError("error123")])
    consumer = await connected_consumer(websocket)
    await consumer.subscribe("app", handler)

    with pytest.raises(EOFError, match="error123"):
        await consumer.consume()

    assert received == [message]
    assert websocket.sent[1] == format_response(response)
    assert ClientToServerMessage.from_json(websocket.sent[1]).response == response


@pytest.mark.asyncio
async def test_consume_read_error_raises():
    consumer = await connected_consumer(FakeWebsocket([RuntimeError("error123")]))
    with pytest.raises(RuntimeError, match="error123"):
        await consumer.consume()


@pytest.mark.asyncio
async def test_consume_write_error_raises():
    message = new_message("app", "FORWARD_REQUEST", b'"DataS2C"')
    server_json = ServerToClientMessage("rq", message).to_json().decode("utf-8")

    async def handler(_incoming):
        return new_response("C2S", b'"DataC2S"', None)

    router = ClientHandlerRouter()
    router.add_client_handler("app", handler)
    consumer = await connected_consumer(
        FakeWebsocket([server_json], fail_send=RuntimeError("error123")), router
    )
    with pytest.raises(ConnectionError, match="error123"):
        await consumer.consume()


@pytest.mark.asyncio
async def test_consume_without_handler_raises():
    message = new_message("app", "FORWARD_REQUEST", b'"x"')
    server_json = ServerToClientMessage("rq", message).to_json().decode("utf-8")
    consumer = await connected_consumer(FakeWebsocket([server_json]))
    with pytest.raises(RuntimeError, match="error handling message"):
        await consumer.consume()


@pytest.mark.asyncio
async def test_consume_rejects_binary_message():
    consumer = await connected_consumer(FakeWebsocket([b"binary"]))
    with pytest.raises(ValueError, match="invalid message type"):
        await consumer.consume()


@pytest.mark.asyncio
async def test_consume_requires_connection():
    consumer = WebsocketConsumer(URL, dial=make_dialer(FakeWebsocket())[0])
    with pytest.raises(NotConnectedError):
        await consumer.consume()


def test_parse_server_message_returns_request():
    message = new_message("app", "FORWARD_REQUEST", b'{"a":1}')
    text = ServerToClientMessage("rq", message).to_json()
    assert parse_server_message(text) == message


def test_parse_server_message_rejects_unsupported_type():
    message = new_message("app", "FORWARD_REQUEST", b'{"a":1}')
    text = ServerToClientMessage("zz", message).to_json()
    with pytest.raises(ValueError, match="unsupported server to client message type: zz"):
        parse_server_message(text)


def test_format_response_wraps_response():
    response = new_response("id", None, RuntimeError("failed"))
    decoded = ClientToServerMessage.from_json(format_response(response))
    assert decoded.request_type == "rs"
    assert decoded.application == ""
    assert decoded.response == response