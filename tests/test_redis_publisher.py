import pytest
from redis.exceptions import RedisError

from funcie.message import new_message
from funcie.messages import MESSAGE_KIND_FORWARD_REQUEST
from funcie.protocols import NoActiveConsumerError
from funcie.response import new_response
from funcie.transports.redisbus.keys import (
    channel_name_for_application,
    response_key_for_message,
)
from funcie.transports.redisbus.publisher import RedisPublisher

BASE = "base"
APP = "app"


class FakePublishClient:
    def __init__(self, consumers=1, pop_result=None, fail_publish=False):
        self.consumers = consumers
        self.pop_result = pop_result
        self.fail_publish = fail_publish
        self.published = []
        self.pops = []

    async def publish(self, channel, message):
        if self.fail_publish:
            raise RedisError("down")
        self.published.append((channel, message))
        return self.consumers

    async def brpop(self, keys, timeout=0):
        self.pops.append((keys, timeout))
        return self.pop_result


@pytest.mark.asyncio
async def test_publish_returns_consumer_response():
    message = new_message(APP, MESSAGE_KIND_FORWARD_REQUEST, b'"hello"')
    response = new_response(message.id, b'"hello"', None)
    key = response_key_for_message(BASE, message.id)
    client = FakePublishClient(pop_result=(key.encode(), response.to_json()))
    publisher = RedisPublisher(client, BASE)

    result = await publisher.publish(message)

    assert result == response
    assert client.published == [(channel_name_for_application(BASE, APP), message.to_json())]
    assert client.pops == [([key], 300)]


@pytest.mark.asyncio
async def test_publish_without_consumers_raises():
    message = new_message(APP, MESSAGE_KIND_FORWARD_REQUEST, b'"hello"')
    client = FakePublishClient(consumers=0)
    with pytest.raises(NoActiveConsumerError):
        await RedisPublisher(client, BASE).publish(message)
    assert client.pops == []


@pytest.mark.asyncio
async def test_publish_times_out_without_response():
    message = new_message(APP, MESSAGE_KIND_FORWARD_REQUEST, b'"hello"')
    with pytest.raises(TimeoutError):
        await RedisPublisher(FakePublishClient(pop_result=None), BASE).publish(message)


@pytest.mark.asyncio
async def test_publish_empty_pop_means_no_consumer():
    message = new_message(APP, MESSAGE_KIND_FORWARD_REQUEST, b'"hello"')
    with pytest.raises(NoActiveConsumerError):
        await RedisPublisher(FakePublishClient(pop_result=[]), BASE).publish(message)


@pytest.mark.asyncio
async def test_publish_failure_names_application():
    message = new_message(APP, MESSAGE_KIND_FORWARD_REQUEST, b'"hello"')
    with pytest.raises(RedisError, match="failed to publish message to channel app"):
        await RedisPublisher(FakePublishClient(fail_publish=True), BASE).publish(message)


@pytest.mark.asyncio
async def test_publish_rejects_malformed_response():
    message = new_message(APP, MESSAGE_KIND_FORWARD_REQUEST, b'"hello"')
    client = FakePublishClient(pop_result=(b"key", b"not json"))
    with pytest.raises(ValueError, match="failed to unmarshal response"):
        await RedisPublisher(client, BASE).publish(message)