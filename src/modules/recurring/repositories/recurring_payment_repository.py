from datetime import datetime

from sqlalchemy import or_

from src.common.repositories import BaseRepository
from src.common.resilience import retry_db_operation
from src.modules.recurring.entities import RecurringPayment


class RecurringPaymentRepository(BaseRepository[RecurringPayment]):
    model = RecurringPayment

    @retry_db_operation(max_attempts=3, initial_wait=0.5, max_wait=5.0)
    def get_due(self, now: datetime) -> list[RecurringPayment]:
        return (
            self.session.query(RecurringPayment)
            .filter(RecurringPayment.active.is_(True))
            .filter(
                or_(
                    RecurringPayment.first_run_pending.is_(True),
                    RecurringPayment.next_run_at <= now,
                )
            )
            .order_by(RecurringPayment.id.asc())
            .all()
        )

    @retry_db_operation(max_attempts=3, initial_wait=0.5, max_wait=5.0)
    def list_active(self, sender_phone: str) -> list[RecurringPayment]:
        return (
            self.session.query(RecurringPayment)
            .filter(RecurringPayment.sender_phone == sender_phone)
            .filter(RecurringPayment.active.is_(True))
            .order_by(RecurringPayment.id.asc())
            .all()
        )
