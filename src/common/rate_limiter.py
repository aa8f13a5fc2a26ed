"""Per-identity sliding-window rate limiting.

The window lives in the expiring record store, so limits survive restarts and
are shared by every worker pointing at the same Redis.
"""

import logging
from datetime import datetime

from src.common.stores.expiring_record_store import ExpiringRecordStore, utcnow
from src.configuration.config import settings
from src.modules.identities.services.phone import mask_phone

logger = logging.getLogger(__name__)


class RateLimiter:
    def __init__(
        self,
        store: ExpiringRecordStore | None = None,
        max_requests: int | None = None,
        window_seconds: int | None = None,
    ):
        self.max_requests = max_requests or settings.RATE_LIMIT_MAX_REQUESTS
        self.window_seconds = window_seconds or settings.RATE_LIMIT_WINDOW_SECONDS
        self.store = store or ExpiringRecordStore("rate_limit", self.window_seconds)

    def hit(self, identity: str, now: datetime | None = None) -> bool:
        """Record a request. False if the identity is over its limit; rejected hits are not recorded."""
        now = now or utcnow()
        cutoff = now.timestamp() - self.window_seconds
        record = self.store.get(identity, now) or {}
        timestamps = [t for t in record.get("timestamps", []) if t > cutoff]

        if len(timestamps) >= self.max_requests:
            logger.warning(f"Rate limit hit for {mask_phone(identity)} ({len(timestamps)} in window)")
            return False

        timestamps.append(now.timestamp())
        self.store.put(identity, {"timestamps": timestamps}, now)
        return True
