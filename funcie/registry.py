"""Applications that requests can be routed to, and registries of them."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Mapping

from funcie.endpoint import Endpoint
from funcie.utils import str_field


class ApplicationNotFoundError(LookupError):
    """No application is registered under the requested name."""

    def __init__(self, message: str = "application not found") -> None:
        super().__init__(message)


@dataclass
class Application:
    """A registered application and the endpoint its requests go to."""

    name: str
    endpoint: Endpoint

    def __str__(self) -> str:
        return f"{self.name} ({self.endpoint})"

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "endpoint": self.endpoint.to_dict()}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Application:
        if not isinstance(data, Mapping):
            raise ValueError("application must be a JSON object")
        endpoint = data.get("endpoint")
        return cls(
            name=str_field(data, "name"),
            endpoint=Endpoint("", "", 0) if endpoint is None else Endpoint.from_dict(endpoint),
        )


class ApplicationRegistry(ABC):
    """A store of registered applications."""

    @abstractmethod
    async def register(self, application: Application) -> None:
        """Register an application, replacing one of the same name."""

    @abstractmethod
    async def unregister(self, application_name: str) -> None:
        """Remove the application with the given name."""

    @abstractmethod
    async def get_application(self, application_name: str) -> Application:
        """Look up an application, raising ApplicationNotFoundError if absent."""