from sqlalchemy import Column, Enum, Integer, Numeric, String, Text

from src.common.entities.base import BaseEntity
from src.common.enums.action_kind import ActionKind
from src.common.enums.transfer_status import TransferStatus


class TransferEntity(BaseEntity):
    __tablename__ = "transfers"

    id = Column(Integer, primary_key=True, index=True)
    sender_phone = Column(String(20), nullable=False, index=True)
    recipient_phone = Column(String(20), nullable=True, index=True)
    # Wallet or EVM address for transfers without a recipient identity
    recipient_address = Column(String(128), nullable=True)
    kind = Column(
        Enum(ActionKind, name="actionkind", values_callable=lambda x: [e.value for e in x]),
        nullable=False,
    )
    amount = Column(Numeric(20, 9), nullable=False)
    token = Column(String(10), nullable=False)
    status = Column(
        Enum(TransferStatus, name="transferstatus", values_callable=lambda x: [e.value for e in x]),
        nullable=False,
        default=TransferStatus.PENDING,
    )
    tx_reference = Column(String(255), nullable=True)
    error = Column(Text, nullable=True)

    def __repr__(self):
        return (
            f"<Transfer(id={self.id}, kind='{self.kind.value}', amount={self.amount} {self.token}, "
            f"status='{self.status.value}')>"
        )
