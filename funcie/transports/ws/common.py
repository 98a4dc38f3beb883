"""Wire messages exchanged between websocket clients and the server."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Mapping

from funcie.message import Message
from funcie.response import Response
from funcie.utils import serialize, str_field

CLIENT_TO_SERVER_SUBSCRIBE = "s"
"""A client asks to receive requests for an application."""

CLIENT_TO_SERVER_UNSUBSCRIBE = "u"
"""A client stops receiving requests for an application."""

CLIENT_TO_SERVER_RESPONSE = "rs"
"""A client answers a request."""

SERVER_TO_CLIENT_REQUEST = "rq"
"""The server sends a request to a client."""


def _load_object(data: bytes | str, what: str) -> Mapping[str, Any]:
    decoded = json.loads(data)
    if not isinstance(decoded, Mapping):
        raise ValueError(f"{what} must be a JSON object")
    return decoded


@dataclass
class ClientToServerMessage:
    """A subscription change or a response sent by a client."""

    request_type: str
    application: str = ""
    response: Response | None = None

    def to_json(self) -> bytes:
        return serialize(
            {
                "requestType": self.request_type,
                "channel": self.application,
                "response": None if self.response is None else self.response.to_dict(),
            }
        )

    @classmethod
    def from_json(cls, data: bytes | str) -> ClientToServerMessage:
        obj = _load_object(data, "client message")
        response = obj.get("response")
        return cls(
            request_type=str_field(obj, "requestType"),
            application=str_field(obj, "channel"),
            response=None if response is None else Response.from_dict(response),
        )


@dataclass
class ServerToClientMessage:
    """A request sent by the server to a client."""

    request_type: str
    message: Message | None = None

    def to_json(self) -> bytes:
        return serialize(
            {
                "requestType": self.request_type,
                "message": None if self.message is None else self.message.to_dict(),
            }
        )

    @classmethod
    def from_json(cls, data: bytes | str) -> ServerToClientMessage:
        obj = _load_object(data, "server message")
        message = obj.get("message")
        return cls(
            request_type=str_field(obj, "requestType"),
            message=None if message is None else Message.from_dict(message),
        )