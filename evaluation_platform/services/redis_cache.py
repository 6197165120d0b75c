import redis
from typing import Optional, TypeVar, Type
from pydantic import BaseModel
from evaluation_platform.config import settings

T = TypeVar("T", bound=BaseModel)


def scoreboard_key(step_id: str) -> str:
    return f"scoreboard:{step_id}"


def rankings_key(event_id: str) -> str:
    return f"rankings:{event_id}"


def version_key(key: str) -> str:
    return f"{key}:version"


class RedisCache:
    def __init__(self, url: Optional[str] = None):
        self.client = redis.from_url(
            url or settings.REDIS_URL,
            decode_responses=True,
            socket_connect_timeout=5,
        )

    def get(self, key: str, model: Type[T]) -> Optional[T]:
        """Get cached item and deserialize to Pydantic model."""
        data = self.client.get(key)
        if data:
            return model.model_validate_json(data)
        return None

    def version(self, key: str) -> str:
        """Invalidation counter for key; "0" until the first bump."""
        return self.client.get(version_key(key)) or "0"

    def bump(self, key: str) -> None:
        self.client.incr(version_key(key))

    def set_if_unchanged(self, key: str, value: BaseModel, ttl_seconds: int, version: str) -> bool:
        """
        Cache value only if key has not been invalidated since version was read.

        WATCH on the version key aborts the write when a concurrent bump lands
        between the check and the SETEX.
        """
        with self.client.pipeline() as pipe:
            try:
                pipe.watch(version_key(key))
                if (pipe.get(version_key(key)) or "0") != version:
                    pipe.unwatch()
                    return False
                pipe.multi()
                pipe.setex(key, ttl_seconds, value.model_dump_json())
                pipe.execute()
                return True
            except redis.WatchError:
                return False

    def delete(self, key: str) -> None:
        """Invalidate single cache entry."""
        self.client.delete(key)
