"""Message routing and processing, the HTTP host, and the Redis and websocket transports."""