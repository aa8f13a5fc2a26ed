from decimal import Decimal

from sqlalchemy import or_

from src.common.enums import ActionKind, TransferStatus
from src.common.repositories import BaseRepository
from src.common.resilience import retry_db_operation
from src.modules.transfers.entities import Transfer


class TransferRepository(BaseRepository[Transfer]):
    """Transfer records move pending -> confirmed | failed and never back."""

    model = Transfer

    def create_pending(
        self,
        sender_phone: str,
        kind: ActionKind,
        amount: Decimal,
        token: str,
        recipient_phone: str | None = None,
        recipient_address: str | None = None,
    ) -> Transfer:
        db_transfer = Transfer(
            sender_phone=sender_phone,
            recipient_phone=recipient_phone,
            recipient_address=recipient_address,
            kind=kind,
            amount=amount,
            token=token,
            status=TransferStatus.PENDING,
        )
        return super().create(db_transfer)

    def mark_confirmed(self, transfer: Transfer, tx_reference: str | None) -> Transfer:
        self._ensure_pending(transfer)
        return self.update(transfer, {"status": TransferStatus.CONFIRMED, "tx_reference": tx_reference})

    def mark_failed(self, transfer: Transfer, error: str | None) -> Transfer:
        self._ensure_pending(transfer)
        return self.update(transfer, {"status": TransferStatus.FAILED, "error": error})

    @staticmethod
    def _ensure_pending(transfer: Transfer) -> None:
        if transfer.status != TransferStatus.PENDING:
            raise ValueError(f"Transfer {transfer.id} is already {transfer.status.value}")

    @retry_db_operation(max_attempts=3, initial_wait=0.5, max_wait=5.0)
    def get_recent_for_phone(self, phone: str, limit: int = 5) -> list[Transfer]:
        """Most recent transfers sent or received by ``phone``, newest first."""
        return (
            self.session.query(Transfer)
            .filter(or_(Transfer.sender_phone == phone, Transfer.recipient_phone == phone))
            .order_by(Transfer.id.desc())
            .limit(limit)
            .all()
        )
