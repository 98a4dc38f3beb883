"""Shared helpers: JSON encoding, timestamps, logging set-up and environment checks."""

from __future__ import annotations

import json
import logging
import os
import re
import sys
import uuid
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Mapping, Protocol, runtime_checkable

logger = logging.getLogger(__name__)

ZERO_TIME = datetime(1, 1, 1, tzinfo=timezone.utc)
"""The timestamp used when a document carries none."""

_LOG_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
}

_TIMESTAMP_RE = re.compile(
    r"(\d{4})-(\d{2})-(\d{2})[Tt](\d{2}):(\d{2}):(\d{2})"
    r"(?:\.(\d+))?"
    r"(Z|z|[+-]\d{2}:\d{2})"
)


@runtime_checkable
class Closable(Protocol):
    """Anything holding a resource that can be released with ``close()``."""

    def close(self) -> Any:
        """Release the resource."""


def format_timestamp(moment: datetime) -> str:
    """Format a datetime as RFC 3339 with trailing fractional zeros trimmed."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    text = (
        f"{moment.year:04d}-{moment.month:02d}-{moment.day:02d}"
        f"T{moment.hour:02d}:{moment.minute:02d}:{moment.second:02d}"
    )
    fraction = f"{moment.microsecond:06d}".rstrip("0")
    if fraction:
        text += "." + fraction
    offset = moment.utcoffset() or timedelta(0)
    if moment.tzinfo is timezone.utc or offset == timedelta(0):
        return text + "Z"
    minutes = int(offset.total_seconds()) // 60
    sign = "+" if minutes >= 0 else "-"
    hours, minutes = divmod(abs(minutes), 60)
    return f"{text}{sign}{hours:02d}:{minutes:02d}"


def parse_timestamp(text: str) -> datetime:
    """Parse an RFC 3339 timestamp; fractions beyond microseconds are dropped."""
    if not isinstance(text, str):
        raise ValueError(f"timestamp must be a string, not {type(text).__name__}")
    match = _TIMESTAMP_RE.fullmatch(text)
    if match is None:
        raise ValueError(f"invalid timestamp {text!r}")
    year, month, day, hour, minute, second, fraction, zone = match.groups()
    micros = int((fraction or "")[:6].ljust(6, "0"))
    if zone in ("Z", "z"):
        tz = timezone.utc
    else:
        sign = 1 if zone[0] == "+" else -1
        tz = timezone(sign * timedelta(hours=int(zone[1:3]), minutes=int(zone[4:6])))
    return datetime(
        int(year), int(month), int(day), int(hour), int(minute), int(second), micros, tzinfo=tz
    )


def utc_now() -> datetime:
    """The current UTC time truncated to whole milliseconds."""
    now = datetime.now(timezone.utc)
    return now.replace(microsecond=(now.microsecond // 1000) * 1000)


def jsonable(value: Any) -> Any:
    """Convert a value into plain JSON-compatible data.

    Objects with ``to_dict`` are converted through it; ``bytes`` are treated as
    raw JSON text and parsed, with empty bytes standing for ``null``.
    """
    to_dict = getattr(value, "to_dict", None)
    if callable(to_dict) and not isinstance(value, type):
        return jsonable(to_dict())
    if isinstance(value, (bytes, bytearray, memoryview)):
        raw = bytes(value)
        return json.loads(raw) if raw else None
    if isinstance(value, Enum):
        return jsonable(value.value)
    if isinstance(value, datetime):
        return format_timestamp(value)
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, Mapping):
        return {str(key): jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [jsonable(item) for item in value]
    return value


def serialize(value: Any) -> bytes:
    """Serialize a value to compact UTF-8 JSON, raising ValueError on failure."""
    try:
        return json.dumps(
            jsonable(value), separators=(",", ":"), ensure_ascii=False, allow_nan=False
        ).encode("utf-8")
    except TypeError as exc:
        raise ValueError(f"cannot serialize value: {exc}") from exc


def deserialize(data: bytes | str) -> Any:
    """Parse JSON text, raising ValueError if it is malformed."""
    return json.loads(data)


def decode_as(value: Any, target: Any = None) -> Any:
    """Turn decoded JSON data into an instance of ``target``.

    Types with a ``from_dict`` class method are built through it; ``bytes``
    yields the compact raw JSON; other types must match the decoded value.
    """
    if target is None or target is object:
        return value
    from_dict = getattr(target, "from_dict", None)
    if callable(from_dict):
        try:
            return from_dict(value)
        except (KeyError, TypeError, AttributeError) as exc:
            raise ValueError(f"cannot decode {target.__name__}: {exc}") from exc
    if target is bytes:
        return serialize(value)
    if target is float and isinstance(value, int) and not isinstance(value, bool):
        return float(value)
    if isinstance(value, bool) and target is int:
        raise ValueError("cannot decode bool as int")
    if isinstance(value, target):
        return value
    raise ValueError(f"cannot decode {type(value).__name__} as {target.__name__}")


def str_field(data: Mapping[str, Any], key: str) -> str:
    """Read an optional string member of a JSON object, defaulting to ''."""
    value = data.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"field {key!r} must be a string, not {type(value).__name__}")
    return value


def close_or_log(name: str, closable: Closable) -> None:
    """Close a resource, logging rather than raising any failure."""
    try:
        closable.close()
    except Exception as exc:  # noqa: BLE001 - failures are reported, not raised
        logger.error("error closing: %s", exc)
    else:
        logger.debug("closed resource %s", name)


def is_running_with_lambda() -> bool:
    """Whether this process runs inside AWS Lambda."""
    return os.environ.get("AWS_LAMBDA_FUNCTION_NAME", "") != ""


def log_level_from_env() -> int:
    """The logging level named by FUNCIE_LOG_LEVEL, INFO by default."""
    name = os.environ.get("FUNCIE_LOG_LEVEL", "")
    if not name:
        return logging.INFO
    level = _LOG_LEVELS.get(name.lower())
    if level is None:
        logger.warning("unknown log level %s", name)
        return logging.INFO
    return level


def configure_logging() -> None:
    """Send all logging to stdout at the level from the environment."""
    level = log_level_from_env()
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        logging.Formatter("time=%(asctime)s level=%(levelname)s msg=%(message)s")
    )
    root.addHandler(handler)
    root.setLevel(level)