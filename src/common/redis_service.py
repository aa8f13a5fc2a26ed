import json
import logging
from typing import Any

import redis
from redis.exceptions import ConnectionError, RedisError

from src.configuration.config import settings

logger = logging.getLogger(__name__)


class RedisService:
    """JSON records in Redis with per-key TTL. Errors propagate to the caller."""

    def __init__(self, client: redis.Redis | None = None):
        self.client: redis.Redis | None = client
        if self.client is None:
            self._connect()

    def _connect(self):
        """Open the Redis connection"""
        self.client = redis.Redis(
            host=settings.REDIS_HOST,
            port=settings.REDIS_PORT,
            password=settings.REDIS_PASSWORD if settings.REDIS_PASSWORD else None,
            db=settings.REDIS_DB,
            decode_responses=True,
            socket_connect_timeout=5,
            socket_timeout=5,
        )
        try:
            self.client.ping()
            logger.info("Redis connection established")
        except ConnectionError as e:
            # The next command reconnects; a store that stays down fails loudly there.
            logger.warning(f"Could not connect to Redis: {str(e)}")

    def _ensure_connection(self):
        """Reconnect if the connection dropped"""
        if self.client is None or not self._is_connected():
            self._connect()

    def _is_connected(self) -> bool:
        if self.client is None:
            return False
        try:
            self.client.ping()
            return True
        except (ConnectionError, RedisError):
            return False

    def get(self, key: str) -> dict[str, Any] | None:
        """Read a record, or None if absent"""
        value = self._execute("get", key)
        return self._decode(key, value)

    def set(self, key: str, value: dict[str, Any], ttl: int | None = None) -> None:
        """Write a record, replacing any previous value"""
        json_value = json.dumps(value, ensure_ascii=False)
        ttl = ttl or settings.REDIS_TTL
        self._execute("setex", key, max(int(ttl), 1), json_value)

    def pop(self, key: str) -> dict[str, Any] | None:
        """Atomically read and delete a record"""
        value = self._execute("getdel", key)
        return self._decode(key, value)

    def delete(self, key: str) -> bool:
        """Delete a record; True if it existed"""
        return bool(self._execute("delete", key))

    def _execute(self, command: str, *args):
        try:
            self._ensure_connection()
            return getattr(self.client, command)(*args)
        except RedisError as e:
            logger.error(f"Redis {command} failed (key={args[0]}): {str(e)}")
            raise

    @staticmethod
    def _decode(key: str, value: str | None) -> dict[str, Any] | None:
        if value is None:
            return None
        try:
            return json.loads(value)
        except json.JSONDecodeError as e:
            logger.warning(f"Discarding unreadable record (key={key}): {str(e)}")
            return None

    def close(self):
        """Close the Redis connection"""
        if self.client is not None:
            try:
                self.client.close()
                logger.info("Redis connection closed")
            except RedisError as e:
                logger.error(f"Error closing Redis connection: {str(e)}")


# Global service instance
_redis_service: RedisService | None = None


def get_redis_service() -> RedisService:
    """Return the global Redis service"""
    global _redis_service
    if _redis_service is None:
        _redis_service = RedisService()
    return _redis_service


def set_redis_service(service: RedisService | None) -> None:
    global _redis_service
    _redis_service = service
