"""Payloads for the messages exchanged with bastions."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Any, Mapping

from funcie.endpoint import Endpoint
from funcie.message import Message
from funcie.response import Response
from funcie.utils import jsonable, serialize, str_field

MESSAGE_KIND_DEREGISTER = "DEREGISTER"
"""A deregistration request to a server bastion."""

MESSAGE_KIND_FORWARD_REQUEST = "FORWARD_REQUEST"
"""A request forwarded to an application."""

MESSAGE_KIND_PING = "PING"
"""A check of whether a client or bastion is still alive."""

MESSAGE_KIND_REGISTER = "REGISTER"
"""A registration request to a server bastion."""


def _require_object(data: Any, what: str) -> Mapping[str, Any]:
    if data is None:
        return {}
    if not isinstance(data, Mapping):
        raise ValueError(f"{what} must be a JSON object")
    return data


def _raw_field(data: Mapping[str, Any], key: str) -> bytes:
    return serialize(data[key]) if key in data else b""


@dataclass
class DeregistrationRequestPayload:
    """Asks for the application with the given name to be removed."""

    name: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> DeregistrationRequestPayload:
        data = _require_object(data, "deregistration request")
        return cls(name=str_field(data, "name"))


@dataclass
class DeregistrationResponsePayload:
    """Acknowledges a deregistration."""

    def to_dict(self) -> dict[str, Any]:
        return {}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> DeregistrationResponsePayload:
        _require_object(data, "deregistration response")
        return cls()


@dataclass
class ForwardRequestPayload:
    """An application request, its body kept as raw JSON."""

    body: bytes = b""

    def to_dict(self) -> dict[str, Any]:
        return {"body": jsonable(self.body)}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> ForwardRequestPayload:
        data = _require_object(data, "forward request")
        return cls(body=_raw_field(data, "body"))


@dataclass
class ForwardRequestResponsePayload:
    """The reply to a forwarded request, its body kept as raw JSON."""

    body: bytes = b""

    def to_dict(self) -> dict[str, Any]:
        return {"body": jsonable(self.body)}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> ForwardRequestResponsePayload:
        data = _require_object(data, "forward response")
        return cls(body=_raw_field(data, "body"))


@dataclass
class PingRequestPayload:
    """A ping request."""

    def to_dict(self) -> dict[str, Any]:
        return {}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> PingRequestPayload:
        _require_object(data, "ping request")
        return cls()


@dataclass
class PingResponsePayload:
    """A ping reply."""

    def to_dict(self) -> dict[str, Any]:
        return {}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> PingResponsePayload:
        _require_object(data, "ping response")
        return cls()


@dataclass
class RegistrationRequestPayload:
    """Asks for an application to be registered at an endpoint."""

    name: str = ""
    endpoint: Endpoint = field(default_factory=lambda: Endpoint("", "", 0))

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "endpoint": self.endpoint.to_dict()}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> RegistrationRequestPayload:
        data = _require_object(data, "registration request")
        endpoint = data.get("endpoint")
        return cls(
            name=str_field(data, "name"),
            endpoint=Endpoint("", "", 0) if endpoint is None else Endpoint.from_dict(endpoint),
        )


@dataclass
class RegistrationResponsePayload:
    """Acknowledges a registration with an ID that may later deregister it."""

    registration_id: uuid.UUID = field(default_factory=lambda: uuid.UUID(int=0))

    def to_dict(self) -> dict[str, Any]:
        return {"RegistrationId": str(self.registration_id)}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> RegistrationResponsePayload:
        data = _require_object(data, "registration response")
        text = str_field(data, "RegistrationId")
        if not text:
            return cls()
        try:
            return cls(registration_id=uuid.UUID(text))
        except ValueError as exc:
            raise ValueError(f"invalid registration id {text!r}: {exc}") from exc


DeregistrationMessage = Message[DeregistrationRequestPayload]
DeregistrationResponse = Response[DeregistrationResponsePayload]
ForwardRequestMessage = Message[ForwardRequestPayload]
ForwardRequestResponse = Response[ForwardRequestResponsePayload]
PingMessage = Message[PingRequestPayload]
PingResponse = Response[PingResponsePayload]
RegistrationMessage = Message[RegistrationRequestPayload]
RegistrationResponse = Response[RegistrationResponsePayload]