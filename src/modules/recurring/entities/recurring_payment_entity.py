from sqlalchemy import Boolean, Column, Enum, Integer, Numeric, String

from src.common.entities.base import BaseEntity
from src.common.entities.types import UTCDateTime
from src.common.enums.frequency import Frequency


class RecurringPaymentEntity(BaseEntity):
    __tablename__ = "recurring_payments"

    id = Column(Integer, primary_key=True, index=True)
    sender_phone = Column(String(20), nullable=False, index=True)
    recipient_phone = Column(String(20), nullable=False)
    amount = Column(Numeric(20, 9), nullable=False)
    token = Column(String(10), nullable=False)
    frequency = Column(
        Enum(Frequency, name="frequency", values_callable=lambda x: [e.value for e in x]),
        nullable=False,
    )
    next_run_at = Column(UTCDateTime(), nullable=False, index=True)
    # The first occurrence goes out on the next scheduler tick, without moving next_run_at
    first_run_pending = Column(Boolean, nullable=False, default=True)
    active = Column(Boolean, nullable=False, default=True)

    def __repr__(self):
        return (
            f"<RecurringPayment(id={self.id}, {self.amount} {self.token} {self.frequency.value}, "
            f"next_run_at={self.next_run_at}, active={self.active})>"
        )
