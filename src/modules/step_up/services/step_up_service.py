import logging
import secrets
from datetime import datetime
from typing import Any

from sqlalchemy.orm import Session

from src.common.enums import ActionKind, Channel
from src.common.exceptions import ExpiredOrMissingAction, StepUpInvalid
from src.common.stores.expiring_record_store import ExpiringRecordStore, utcnow
from src.configuration.config import settings
from src.modules.identities.repositories import UserRepository
from src.modules.identities.services.phone import mask_phone
from src.modules.identities.services.pin_service import PinService
from src.modules.step_up.dtos import StepUpLink, StepUpResult

logger = logging.getLogger(__name__)


def step_up_store() -> ExpiringRecordStore:
    return ExpiringRecordStore("step_up", settings.STEP_UP_TOKEN_TTL_SECONDS)


class StepUpService:
    """
    Single-use, attempt-limited PIN confirmation links.

    ``validate`` is the only path that consumes a token: a correct PIN pops the
    token before the action runs, so a resubmitted form finds nothing and
    reports the link as expired.
    """

    def __init__(self, db: Session, store: ExpiringRecordStore | None = None):
        self.db = db
        self.store = store or step_up_store()
        self.users = UserRepository(db)
        self.pin_service = PinService(db)

    def create_link(
        self,
        phone: str,
        kind: ActionKind,
        payload: dict[str, Any],
        now: datetime | None = None,
        channel: Channel = Channel.WHATSAPP,
    ) -> StepUpLink:
        token = secrets.token_urlsafe(32)
        self.store.put(
            token,
            {"phone": phone, "kind": kind.value, "payload": payload, "channel": channel.value, "attempts": 0},
            now,
        )
        logger.info(f"Step-up link created for {mask_phone(phone)} ({kind.value})")
        return StepUpLink(token=token, url=f"{settings.BASE_URL.rstrip('/')}/confirm/{token}")

    def validate(self, token: str, pin: str, now: datetime | None = None) -> StepUpResult:
        """
        Check the PIN for a token and consume the token on success.

        Raises:
            ExpiredOrMissingAction: Unknown, expired or already used token.
            StepUpInvalid: Locked identity, wrong or malformed PIN. After
                PIN_MAX_ATTEMPTS wrong PINs the token is gone for good.
        """
        now = now or utcnow()
        found = self.store.get_with_expiry(token, now)
        if found is None:
            raise ExpiredOrMissingAction()
        data, expires_at = found

        user = self.users.get_by_phone(data["phone"])
        if user is None:
            self.store.delete(token)
            raise ExpiredOrMissingAction()

        kind = ActionKind(data["kind"])
        pin = (pin or "").strip()

        if kind == ActionKind.SET_PIN:
            # Setting a PIN needs no previous PIN
            if not self.pin_service.is_valid_format(pin):
                raise StepUpInvalid("PIN must be 4-6 digits.")
            payload = {"pin": pin}
        else:
            locked, minutes_left = self.pin_service.is_locked_out(user, now)
            if locked:
                raise StepUpInvalid(f"Account locked. Try again in {minutes_left} minutes.", attempts_left=0)

            if not self.pin_service.verify_pin(user, pin):
                self._register_wrong_pin(token, data, expires_at, user, now)
            payload = data["payload"]

        if self.store.pop(token, now) is None:
            raise ExpiredOrMissingAction()

        logger.info(f"Step-up confirmed for {mask_phone(user.phone)} ({kind.value})")
        return StepUpResult(phone=user.phone, kind=kind, payload=payload, channel=data.get("channel", "whatsapp"))

    def _register_wrong_pin(self, token: str, data: dict, expires_at: datetime, user, now: datetime) -> None:
        attempts = data.get("attempts", 0) + 1
        max_attempts = settings.PIN_MAX_ATTEMPTS
        identity_locked = self.pin_service.register_failure(user, now)

        if attempts >= max_attempts or identity_locked:
            self.store.delete(token)
            if not identity_locked:
                self.pin_service.lock(user, now)
            logger.warning(f"Step-up link invalidated for {mask_phone(user.phone)} after {attempts} wrong PINs")
            raise StepUpInvalid(
                f"Too many failed attempts. Account locked for {settings.PIN_LOCKOUT_MINUTES} minutes. "
                "Start again from chat.",
                attempts_left=0,
            )

        self.store.put(token, {**data, "attempts": attempts}, now, expires_at=expires_at)
        attempts_left = max_attempts - attempts
        raise StepUpInvalid(f"Wrong PIN. {attempts_left} attempt(s) left.", attempts_left=attempts_left)
