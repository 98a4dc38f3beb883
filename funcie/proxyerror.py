"""An error that can be carried through a tunnel."""

from __future__ import annotations

import json
from typing import Any, Mapping

from funcie.utils import serialize, str_field


class ProxyError(Exception):
    """An error message sent from the other side of a tunnel."""

    def __init__(self, message: str = "") -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message

    def __repr__(self) -> str:
        return f"ProxyError({self.message!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ProxyError):
            return NotImplemented
        return self.message == other.message

    def __hash__(self) -> int:
        return hash(self.message)

    @classmethod
    def from_error(cls, error: BaseException | None) -> ProxyError | None:
        """Wrap an exception's message, or return None when there is none."""
        if error is None:
            return None
        return cls(str(error))

    def to_dict(self) -> dict[str, Any]:
        return {"message": self.message} if self.message else {}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> ProxyError:
        if data is None:
            return cls()
        if not isinstance(data, Mapping):
            raise ValueError("proxy error must be a JSON object")
        return cls(str_field(data, "message"))

    def to_json(self) -> bytes:
        return serialize(self.to_dict())

    @classmethod
    def from_json(cls, data: bytes | str) -> ProxyError:
        return cls.from_dict(json.loads(data))