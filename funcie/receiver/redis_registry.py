"""An application registry stored in Redis hashes."""

from __future__ import annotations

from typing import Any

from redis.exceptions import RedisError

from funcie.endpoint import Endpoint
from funcie.registry import Application, ApplicationNotFoundError, ApplicationRegistry

APP_KEY_BASE = "funcie:apps"


def key_for_application(application_name: str) -> str:
    """The Redis key that holds the given application's registration."""
    return f"{APP_KEY_BASE}:{application_name}"


def _text(value: Any) -> str:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8")
    return str(value)


class RedisApplicationRegistry(ApplicationRegistry):
    """Stores each application as a hash with its endpoint.

    The client is an asynchronous Redis client offering ``hset``, ``delete``
    and ``hgetall``.
    """

    def __init__(self, redis_client: Any) -> None:
        self._client = redis_client

    async def register(self, application: Application) -> None:
        key = key_for_application(application.name)
        try:
            await self._client.hset(key, "endpoint", str(application.endpoint))
        except RedisError as exc:
            raise RedisError(f"register application: {exc}") from exc

    async def unregister(self, application_name: str) -> None:
        key = key_for_application(application_name)
        try:
            await self._client.delete(key)
        except RedisError as exc:
            raise RedisError(f"unregister application: {exc}") from exc

    async def get_application(self, application_name: str) -> Application:
        key = key_for_application(application_name)
        try:
            raw = await self._client.hgetall(key)
        except RedisError as exc:
            raise RedisError(f"getting application with key {key}: {exc}") from exc

        if not raw:
            raise ApplicationNotFoundError()

        values = {_text(field): _text(value) for field, value in raw.items()}
        address = values.get("endpoint", "")
        try:
            endpoint = Endpoint.from_address(address)
        except ValueError as exc:
            raise ValueError(f"parsing endpoint {address}: {exc}") from exc

        return Application(name=application_name, endpoint=endpoint)