"""Infrastructure adapters: Redis client, feed cache and in-memory stores."""
