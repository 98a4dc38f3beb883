"""Redis key and channel names used by the tunnel, and error classification."""

from __future__ import annotations

from funcie.protocols import NoActiveConsumerError
from funcie.response import Response
from funcie.transports.router import NO_HANDLER_FOUND_MESSAGE, NoHandlerFoundError

_NO_CONSUMER_MESSAGE = str(NoActiveConsumerError())


def response_key_for_message(base_channel_name: str, message_id: str) -> str:
    """The Redis list key that the response to a message is pushed to."""
    if not message_id:
        raise ValueError("messageId cannot be empty")
    return f"{base_channel_name}:resp:{message_id}"


def channel_name_for_application(base_channel_name: str, application_id: str) -> str:
    """The Redis channel that messages for an application are published on."""
    if not application_id:
        raise ValueError("applicationId cannot be empty")
    return f"{base_channel_name}:app:{application_id}"


def _caused_by_no_handler(error: BaseException | None) -> bool:
    seen: set[int] = set()
    while error is not None and id(error) not in seen:
        if isinstance(error, NoHandlerFoundError):
            return True
        seen.add(id(error))
        error = error.__cause__
    return False


def is_no_handler_found(error: BaseException | None, response: Response | None) -> bool:
    """Whether an error or a response says no handler serves the application.

    A response whose error reports that no consumer is active counts too.
    """
    if _caused_by_no_handler(error):
        return True
    if error is not None or response is None or response.error is None:
        return False
    return response.error.message in (NO_HANDLER_FOUND_MESSAGE, _NO_CONSUMER_MESSAGE)