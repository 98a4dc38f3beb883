"""Messages, registries and transports for tunnelling serverless invocations to local handlers."""

__version__ = "0.1.0"