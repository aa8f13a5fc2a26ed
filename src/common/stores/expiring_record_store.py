"""
One keyed record per identity (or token), with an expiry.

Pending actions, failed actions, step-up tokens and rate-limit windows are all
namespaces of this store. Writing a key replaces whatever was there, and a
record read after its ``expires_at`` is reported as absent even if Redis has
not evicted it yet.
"""
from datetime import UTC, datetime, timedelta
from typing import Any

from src.common.redis_service import RedisService, get_redis_service


def utcnow() -> datetime:
    return datetime.now(UTC)


class ExpiringRecordStore:
    def __init__(self, namespace: str, ttl_seconds: int, redis_service: RedisService | None = None):
        self.namespace = namespace
        self.ttl_seconds = ttl_seconds
        self.redis_service = redis_service or get_redis_service()

    def _key(self, key: str) -> str:
        return f"{self.namespace}:{key}"

    def put(
        self,
        key: str,
        data: dict[str, Any],
        now: datetime | None = None,
        expires_at: datetime | None = None,
    ) -> datetime:
        now = now or utcnow()
        expires_at = expires_at or now + timedelta(seconds=self.ttl_seconds)
        ttl = int((expires_at - now).total_seconds()) + 1
        self.redis_service.set(
            self._key(key), {"data": data, "expires_at": expires_at.isoformat()}, ttl=ttl
        )
        return expires_at

    def get(self, key: str, now: datetime | None = None) -> dict[str, Any] | None:
        record = self.redis_service.get(self._key(key))
        return self._live(record, now)

    def get_with_expiry(self, key: str, now: datetime | None = None) -> tuple[dict[str, Any], datetime] | None:
        record = self.redis_service.get(self._key(key))
        data = self._live(record, now)
        if data is None:
            return None
        return data, datetime.fromisoformat(record["expires_at"])

    def pop(self, key: str, now: datetime | None = None) -> dict[str, Any] | None:
        record = self.redis_service.pop(self._key(key))
        return self._live(record, now)

    def delete(self, key: str) -> bool:
        return self.redis_service.delete(self._key(key))

    @staticmethod
    def _live(record: dict[str, Any] | None, now: datetime | None) -> dict[str, Any] | None:
        if not record:
            return None
        expires_at = datetime.fromisoformat(record["expires_at"])
        if expires_at <= (now or utcnow()):
            return None
        return record["data"]
