import logging
import math
import re
from datetime import datetime, timedelta
from decimal import Decimal

import bcrypt
from sqlalchemy.orm import Session

from src.common.exceptions import StepUpInvalid
from src.common.stores.expiring_record_store import utcnow
from src.configuration.config import settings
from src.modules.identities.entities import User
from src.modules.identities.repositories import UserRepository
from src.modules.identities.services.phone import mask_phone

logger = logging.getLogger(__name__)

PIN_PATTERN = re.compile(r"^\d{4,6}$")


def get_pin_hash(pin: str) -> str:
    salt = bcrypt.gensalt()
    return bcrypt.hashpw(pin.encode("utf-8"), salt).decode("utf-8")


def check_pin(pin: str, pin_hash: str) -> bool:
    try:
        return bcrypt.checkpw(pin.encode("utf-8"), pin_hash.encode("utf-8"))
    except ValueError:
        return False


class PinService:
    def __init__(self, db: Session):
        self.db = db
        self.repository = UserRepository(db)
        self.max_attempts = settings.PIN_MAX_ATTEMPTS
        self.lockout = timedelta(minutes=settings.PIN_LOCKOUT_MINUTES)

    @staticmethod
    def is_valid_format(pin: str) -> bool:
        return bool(PIN_PATTERN.match(pin or ""))

    @staticmethod
    def has_pin(user: User) -> bool:
        return bool(user.pin_hash)

    def set_pin(self, user: User, pin: str) -> None:
        """Set or replace the PIN and clear any lockout."""
        if not self.is_valid_format(pin):
            raise StepUpInvalid("PIN must be 4-6 digits.")
        self.repository.update(
            user, {"pin_hash": get_pin_hash(pin), "pin_failed_attempts": 0, "pin_locked_until": None}
        )
        self.db.commit()
        logger.info(f"PIN set for {mask_phone(user.phone)}")

    def verify_pin(self, user: User, pin: str) -> bool:
        if not user.pin_hash or not check_pin(pin, user.pin_hash):
            return False
        if user.pin_failed_attempts:
            self.repository.update(user, {"pin_failed_attempts": 0})
            self.db.commit()
        return True

    def is_locked_out(self, user: User, now: datetime | None = None) -> tuple[bool, int]:
        """(locked, minutes_left)"""
        now = now or utcnow()
        if user.pin_locked_until is None or user.pin_locked_until <= now:
            return False, 0
        return True, math.ceil((user.pin_locked_until - now).total_seconds() / 60)

    def register_failure(self, user: User, now: datetime | None = None) -> bool:
        """Count a wrong PIN. Returns True when this failure locked the identity."""
        attempts = (user.pin_failed_attempts or 0) + 1
        if attempts >= self.max_attempts:
            self.lock(user, now)
            return True
        self.repository.update(user, {"pin_failed_attempts": attempts})
        self.db.commit()
        return False

    def lock(self, user: User, now: datetime | None = None) -> None:
        now = now or utcnow()
        self.repository.update(user, {"pin_failed_attempts": 0, "pin_locked_until": now + self.lockout})
        self.db.commit()
        logger.warning(f"PIN locked for {mask_phone(user.phone)} until {user.pin_locked_until.isoformat()}")

    def requires_step_up(self, user: User, amount: Decimal | None) -> bool:
        if not self.has_pin(user) or amount is None:
            return False
        return amount >= settings.STEP_UP_THRESHOLD
