"""Websocket consumer, server-side client management and wire messages."""