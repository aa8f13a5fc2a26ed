import logging
from datetime import datetime
from decimal import Decimal

from sqlalchemy.orm import Session

from src.common.enums import Frequency
from src.common.stores.expiring_record_store import utcnow
from src.modules.identities.services.phone import looks_like_phone, mask_phone, normalize_phone
from src.modules.recurring.entities import RecurringPayment
from src.modules.recurring.repositories import RecurringPaymentRepository
from src.modules.recurring.services.schedule import add_period

logger = logging.getLogger(__name__)


class RecurringService:
    def __init__(self, db: Session):
        self.db = db
        self.repository = RecurringPaymentRepository(db)

    def create(
        self,
        sender_phone: str,
        recipient_phone: str,
        amount: Decimal,
        token: str,
        frequency: Frequency,
        now: datetime | None = None,
    ) -> RecurringPayment:
        now = now or utcnow()
        payment = self.repository.create(
            RecurringPayment(
                sender_phone=sender_phone,
                recipient_phone=recipient_phone,
                amount=amount,
                token=token,
                frequency=frequency,
                next_run_at=add_period(now, frequency),
                first_run_pending=True,
                active=True,
            )
        )
        self.db.commit()
        logger.info(
            f"Recurring payment {payment.id} created: {amount:f} {token} {frequency.value} "
            f"{mask_phone(sender_phone)} -> {mask_phone(recipient_phone)}"
        )
        return payment

    def list_active(self, sender_phone: str) -> list[RecurringPayment]:
        return self.repository.list_active(sender_phone)

    def cancel(self, sender_phone: str, selector: str | int) -> list[RecurringPayment]:
        """
        Deactivate the sender's recurring payments matching ``selector``: a
        payment id, or a recipient phone number (all payments to it).
        Cancelled payments are kept for the audit trail.
        """
        active = self.repository.list_active(sender_phone)
        selector_text = str(selector).strip().lstrip("#")

        if selector_text.isdigit() and not looks_like_phone(selector_text):
            matches = [p for p in active if p.id == int(selector_text)]
        else:
            recipient = normalize_phone(selector_text)
            matches = [p for p in active if p.recipient_phone == recipient]

        for payment in matches:
            self.repository.update(payment, {"active": False})
        if matches:
            self.db.commit()
            logger.info(f"Cancelled {len(matches)} recurring payment(s) for {mask_phone(sender_phone)}")
        return matches

    def record_run(self, payment: RecurringPayment, now: datetime | None = None) -> None:
        """
        Advance the schedule after a successful occurrence.

        Periods missed while the scheduler was down are skipped, not paid:
        afterwards ``next_run_at`` is always later than ``now``.
        """
        now = now or utcnow()
        next_run_at = payment.next_run_at
        if not payment.first_run_pending:
            next_run_at = add_period(next_run_at, payment.frequency)
        while next_run_at <= now:
            next_run_at = add_period(next_run_at, payment.frequency)

        self.repository.update(payment, {"first_run_pending": False, "next_run_at": next_run_at})
        self.db.commit()
