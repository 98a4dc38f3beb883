"""An application registry held in memory."""

from __future__ import annotations

import logging

from funcie.registry import Application, ApplicationNotFoundError, ApplicationRegistry

logger = logging.getLogger(__name__)


class MemoryApplicationRegistry(ApplicationRegistry):
    """Keeps registered applications in a dictionary keyed by name."""

    def __init__(self) -> None:
        self._applications: dict[str, Application] = {}

    async def register(self, application: Application) -> None:
        previous = self._applications.get(application.name)
        self._applications[application.name] = application
        if previous is not None:
            logger.warning(
                "application already registered; overwriting application=%s previous=%s new=%s",
                application.name,
                previous.endpoint,
                application.endpoint,
            )

    async def unregister(self, application_name: str) -> None:
        if self._applications.pop(application_name, None) is None:
            raise ApplicationNotFoundError(f"application {application_name} not registered")

    async def get_application(self, application_name: str) -> Application:
        try:
            return self._applications[application_name]
        except KeyError:
            raise ApplicationNotFoundError() from None