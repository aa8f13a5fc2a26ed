import logging
from datetime import datetime
from typing import Any

from src.common.enums import ActionKind
from src.common.stores.expiring_record_store import ExpiringRecordStore
from src.configuration.config import settings
from src.modules.actions.dtos import FailedAction, PendingAction
from src.modules.identities.services.phone import mask_phone

logger = logging.getLogger(__name__)


class PendingActionStore:
    """
    At most one pending action per identity. Staging replaces the previous
    record, so a YES can only ever confirm the latest request.
    """

    def __init__(self, store: ExpiringRecordStore | None = None):
        self.store = store or ExpiringRecordStore("pending", settings.PENDING_ACTION_TTL_SECONDS)

    def stage(
        self, phone: str, kind: ActionKind, payload: dict[str, Any], now: datetime | None = None
    ) -> PendingAction:
        expires_at = self.store.put(phone, {"kind": kind.value, "payload": payload}, now)
        logger.info(f"Staged {kind.value} for {mask_phone(phone)} until {expires_at.isoformat()}")
        return PendingAction(kind=kind, payload=payload, expires_at=expires_at)

    def get(self, phone: str, now: datetime | None = None) -> PendingAction | None:
        found = self.store.get_with_expiry(phone, now)
        if found is None:
            return None
        data, expires_at = found
        return PendingAction(kind=data["kind"], payload=data["payload"], expires_at=expires_at)

    def consume(self, phone: str, now: datetime | None = None) -> PendingAction | None:
        """Atomically read and delete. Expired records are deleted and reported as None."""
        data = self.store.pop(phone, now)
        if data is None:
            return None
        return PendingAction(kind=data["kind"], payload=data["payload"])

    def discard(self, phone: str) -> bool:
        return self.store.delete(phone)


class FailedActionStore:
    def __init__(self, store: ExpiringRecordStore | None = None):
        self.store = store or ExpiringRecordStore("failed", settings.FAILED_ACTION_TTL_SECONDS)

    def record(self, phone: str, kind: ActionKind, payload: dict[str, Any], error: str) -> FailedAction:
        self.store.put(phone, {"kind": kind.value, "payload": payload, "error": error})
        logger.info(f"Recorded failed {kind.value} for {mask_phone(phone)}: {error}")
        return FailedAction(kind=kind, payload=payload, error=error)

    def get(self, phone: str) -> FailedAction | None:
        data = self.store.get(phone)
        return FailedAction(**data) if data else None

    def consume(self, phone: str) -> FailedAction | None:
        data = self.store.pop(phone)
        return FailedAction(**data) if data else None

    def discard(self, phone: str) -> bool:
        return self.store.delete(phone)
