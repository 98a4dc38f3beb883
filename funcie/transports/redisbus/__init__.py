"""Redis pub/sub publisher and consumer, and their key names."""