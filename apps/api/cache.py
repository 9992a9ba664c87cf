# apps/api/cache.py
import redis
from config import settings

redis_client = redis.Redis.from_url(settings.redis_url, decode_responses=True)


def incr_window(key: str, window_seconds: int) -> int:
    """Fixed-window counter: bump `key` and start its expiry on first hit."""
    count = redis_client.incr(key)
    if count == 1:
        redis_client.expire(key, window_seconds)
    return int(count)


def healthcheck() -> bool:
    return bool(redis_client.ping())
