"""Messages sent through a tunnel."""

from __future__ import annotations

import dataclasses
import json
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Generic, Mapping, TypeVar

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

MessageKind = str


@dataclass
class Message(Generic[T]):
    """A message for an application.

    An untyped message holds its payload as raw JSON ``bytes``; a typed one
    holds a decoded payload object.
    """

    id: str = ""
    kind: MessageKind = ""
    application: str = ""
    payload: T | None = None
    created: datetime = ZERO_TIME

    def __str__(self) -> str:
        try:
            payload = serialize(self.payload).decode("utf-8")
        except ValueError:
            payload = "<error marshaling message>"
        return (
            f"Message{{ID: {self.id}, Kind: {self.kind}, Application: {self.application}, "
            f"Created: {format_timestamp(self.created)}, Payload: {payload}}}"
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "kind": self.kind,
            "application": self.application,
            "payload": jsonable(self.payload),
            "created": format_timestamp(self.created),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Message[bytes]:
        """Build an untyped message whose payload is kept as raw JSON."""
        if not isinstance(data, Mapping):
            raise ValueError("message must be a JSON object")
        created = data.get("created")
        return cls(
            id=str_field(data, "id"),
            kind=str_field(data, "kind"),
            application=str_field(data, "application"),
            payload=serialize(data["payload"]) if "payload" in data else None,
            created=ZERO_TIME if created is None else parse_timestamp(created),
        )

    def to_json(self) -> bytes:
        return serialize(self.to_dict())

    @classmethod
    def from_json(cls, data: bytes | str) -> Message[bytes]:
        return cls.from_dict(json.loads(data))


def new_message(application: str, kind: MessageKind, payload: bytes) -> Message[bytes]:
    """Create a message with a raw JSON payload, a fresh ID and the current time."""
    return Message(
        id=str(uuid.uuid4()),
        kind=kind,
        application=application,
        payload=bytes(payload),
        created=utc_now(),
    )


def new_message_with_payload(application: str, kind: MessageKind, payload: T) -> Message[T]:
    """Create a message with a typed payload, a fresh ID and the current time."""
    return Message(
        id=str(uuid.uuid4()),
        kind=kind,
        application=application,
        payload=payload,
        created=utc_now(),
    )


def unmarshal_message_payload(message: Message[bytes], payload_type: type[T]) -> Message[T]:
    """Decode a raw message's payload into ``payload_type``."""
    try:
        value = json.loads(message.payload) if message.payload else None
        payload = decode_as(value, payload_type)
    except ValueError as exc:
        raise ValueError(f"unmarshal payload: {exc}") from exc
    return dataclasses.replace(message, payload=payload)


def marshal_message_payload(message: Message[Any]) -> Message[bytes]:
    """Encode a typed message's payload into raw JSON."""
    try:
        raw = serialize(message.payload)
    except ValueError as exc:
        raise ValueError(f"marshal payload: {exc}") from exc
    return dataclasses.replace(message, payload=raw)