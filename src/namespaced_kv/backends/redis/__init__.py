from namespaced_kv.backends.redis.backend import RedisBackend

__all__ = ["RedisBackend"]
