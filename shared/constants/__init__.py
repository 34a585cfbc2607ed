from .redis_keys import RedisKeys

__all__ = ["RedisKeys"]
