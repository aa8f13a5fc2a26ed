import logging
from collections.abc import Callable
from decimal import Decimal
from typing import Any

from sqlalchemy.orm import Session

from src.common.providers import Notifier
from src.configuration.config import get_session, settings
from src.modules.identities.repositories import UserRepository
from src.modules.identities.services.phone import mask_phone

logger = logging.getLogger(__name__)

LAMPORTS_PER_SOL = Decimal(1_000_000_000)


class IncomingTransferService:
    """Tells wallet owners about native transfers reported by the balance-change webhook."""

    def __init__(self, notifier: Notifier, session_factory: Callable[[], Session] = get_session):
        self.notifier = notifier
        self.session_factory = session_factory

    async def handle_events(self, events: list[dict[str, Any]] | dict[str, Any]) -> int:
        if isinstance(events, dict):
            events = [events]

        notified = 0
        db = self.session_factory()
        try:
            users = UserRepository(db)
            for event in events:
                if event.get("type") != "TRANSFER":
                    continue
                for transfer in event.get("nativeTransfers") or []:
                    user = users.get_by_wallet(transfer.get("toUserAccount", ""))
                    if user is None:
                        continue
                    amount = Decimal(transfer.get("amount", 0)) / LAMPORTS_PER_SOL
                    try:
                        await self.notifier.send(
                            user.phone,
                            f'💰 You received {amount:.4f} {settings.NATIVE_TOKEN}!\n\nText "balance" to check.',
                        )
                        notified += 1
                    except Exception as e:
                        logger.warning(f"Incoming transfer notice to {mask_phone(user.phone)} failed: {e}")
        finally:
            db.close()
        return notified
