"""Responses to messages sent through a tunnel."""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Generic, Mapping, TypeVar

from funcie.proxyerror import ProxyError
from funcie.utils import (
    ZERO_TIME,
    decode_as,
    format_timestamp,
    jsonable,
    parse_timestamp,
    serialize,
    str_field,
    utc_now,
)

T = TypeVar("T")


@dataclass
class Response(Generic[T]):
    """A reply carrying either data or an error.

    An untyped response holds its data as raw JSON ``bytes``.
    """

    id: str = ""
    data: T | None = None
    error: ProxyError | None = None
    received: datetime = ZERO_TIME

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"id": self.id}
        if self.data is not None:
            result["data"] = jsonable(self.data)
        if self.error is not None:
            result["error"] = self.error.to_dict()
        result["received"] = format_timestamp(self.received)
        return result

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Response[bytes]:
        """Build an untyped response whose data is kept as raw JSON."""
        if not isinstance(data, Mapping):
            raise ValueError("response must be a JSON object")
        raw = data.get("data")
        error = data.get("error")
        received = data.get("received")
        return cls(
            id=str_field(data, "id"),
            data=None if raw is None else serialize(raw),
            error=None if error is None else ProxyError.from_dict(error),
            received=ZERO_TIME if received is None else parse_timestamp(received),
        )

    def to_json(self) -> bytes:
        return serialize(self.to_dict())

    @classmethod
    def from_json(cls, data: bytes | str) -> Response[bytes]:
        return cls.from_dict(json.loads(data))


def new_response(
    id: str, data: bytes | None, error: BaseException | None
) -> Response[bytes]:
    """Create a response with raw JSON data, stamped with the current time."""
    return Response(
        id=id,
        data=bytes(data) if data else None,
        error=ProxyError.from_error(error),
        received=utc_now(),
    )


def new_response_with_payload(
    id: str, payload: T | None, error: BaseException | None
) -> Response[T]:
    """Create a response with typed data, stamped with the current time."""
    return Response(
        id=id,
        data=payload,
        error=ProxyError.from_error(error),
        received=utc_now(),
    )


def unmarshal_response_payload(
    response: Response[bytes], payload_type: type[T]
) -> Response[T]:
    """Decode a raw response's data into ``payload_type``."""
    data = None
    if response.data is not None:
        data = decode_as(json.loads(response.data), payload_type)
    return Response(
        id=response.id, data=data, error=response.error, received=response.received
    )


def marshal_response_payload(response: Response[Any]) -> Response[bytes]:
    """Encode a typed response's data into raw JSON."""
    raw = None
    if response.data is not None:
        try:
            raw = serialize(response.data)
        except ValueError as exc:
            raise ValueError(f"marshalling response data: {exc}") from exc
    return Response(
        id=response.id, data=raw, error=response.error, received=response.received
    )