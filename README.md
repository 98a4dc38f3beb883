# funcie

funcie is a library for forwarding invocations of a serverless function to a
handler that runs on a developer's own machine. You can then step through real
requests in a debugger. It provides the message formats, the registries, the
message processing and the transports, Redis pub/sub and websockets, that carry
requests and responses between the two sides. All network-facing APIs are
`asyncio` coroutines.

## Concepts

- **Message** (`funcie.message.Message`): a request sent through the tunnel.
  It has an id, a kind, an application name, a payload and a creation time.
  An untyped message keeps its payload as raw JSON `bytes`. Build one with
  `new_message` or `new_message_with_payload`. Convert between typed and raw
  payloads with `unmarshal_message_payload` and `marshal_message_payload`.
- **Response** (`funcie.response.Response`): the reply to a message. It holds
  JSON data, a `ProxyError` (`funcie.proxyerror.ProxyError`), or both left
  empty. Build one with `new_response` or `new_response_with_payload`.
- **Endpoint** and **Application** (`funcie.endpoint.Endpoint`,
  `funcie.registry.Application`): where requests for a named application go.
  `Endpoint.from_address` parses addresses such as `https://127.0.0.1:8080`.
- **Registries** (`funcie.registry.ApplicationRegistry`):
  - `funcie.receiver.memory.MemoryApplicationRegistry` keeps registered
    applications in memory.
  - `funcie.receiver.redis_registry.RedisApplicationRegistry` stores them in
    Redis hashes under `funcie:apps:<name>`.
  - Both raise `ApplicationNotFoundError` when a lookup fails.
- **Message kinds and payloads** (`funcie.messages`): registration
  (`REGISTER`), deregistration (`DEREGISTER`), request forwarding
  (`FORWARD_REQUEST`) and ping (`PING`).
- **Interfaces** (`funcie.protocols`): the abstract `Consumer`, `Publisher`
  and `Pinger`, the `Handler` callable type, and the errors
  `NoActiveConsumerError` and `PubSubChannelClosedError`.
- **Processing**:
  - `funcie.transports.processor.HandlerMessageProcessor` decodes each
    message according to its kind and passes it to a `MessageHandler`.
  - `funcie.transports.caching.CachingMessageProcessor` wraps another
    processor. When an application has no active consumer, it remembers this
    for 60 seconds by default, or until the application registers again.
- **Host**: `funcie.transports.host.Host(address, processor)` serves
  `POST /dispatch` and `/health` over HTTP with aiohttp. `await host.listen()`
  serves requests until `await host.close()` is called.
- **Transports**:
  - Redis pub/sub:
    - `funcie.transports.redisbus.publisher.RedisPublisher` publishes on
      `<base>:app:<application>` and waits up to five minutes for the reply on
      `<base>:resp:<message id>`.
    - `funcie.transports.redisbus.consumer.RedisConsumer` handles those
      messages and pushes the replies back.
    - Both take an asynchronous `redis` client.
  - Websockets:
    - `funcie.transports.ws.consumer.WebsocketConsumer` connects with the
      `funcie` subprotocol, subscribes applications and answers requests.
    - `funcie.transports.ws.publisher` provides the server side:
      `WebsocketClientManager`, `WebsocketClientListener`, and the coroutine
      `listen(port)`, which serves on all interfaces until SIGINT.
  - `funcie.transports.router.ClientHandlerRouter` routes incoming messages to
    the handler subscribed for each application.

## Example

```python
from funcie.endpoint import Endpoint
from funcie.message import new_message
from funcie.transports.redisbus.keys import (
    channel_name_for_application,
    response_key_for_message,
)

endpoint = Endpoint.from_address("http://localhost:8080")
print(endpoint)  # http://localhost:8080

message = new_message("my-app", "FORWARD_REQUEST", b'{"name": "Bob"}')
print(channel_name_for_application("funcie", message.application))
# funcie:app:my-app
print(response_key_for_message("funcie", message.id))
# funcie:resp:<message id>
```

## What it does not do

- It has no command-line program. To run a server, call `Host.listen` or
  `funcie.transports.ws.publisher.listen` from your own `asyncio` code.
- It does not wrap a serverless function handler. Nothing here intercepts
  Lambda invocations or falls back to the deployed implementation. Code that
  uses a `Publisher` has to do that itself.
- The websocket server has no `Publisher`. It tracks which client serves each
  application, and `WebsocketClientConnection.handle_message` sends a request
  to a client. Responses that clients send back are only logged; they are not
  returned to any caller.

## Configuration

- `FUNCIE_LOG_LEVEL`: one of `debug`, `info`, `warn` or `error`. The default
  is `info`. `funcie.utils.configure_logging()` applies it and sends logging to
  stdout.
- `AWS_LAMBDA_FUNCTION_NAME`: if it is set and not empty,
  `funcie.utils.is_running_with_lambda()` returns `True`.