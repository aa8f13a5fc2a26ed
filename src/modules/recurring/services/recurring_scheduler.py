import logging
from collections.abc import Callable
from datetime import datetime

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy.orm import Session

from src.common.enums import ActionKind
from src.common.exceptions import HushPayError
from src.common.locks import IdentityLocks, get_identity_locks
from src.common.providers import Providers, get_providers
from src.common.stores.expiring_record_store import utcnow
from src.configuration.config import get_session, settings
from src.modules.actions.services import ActionExecutor
from src.modules.actions.services.action_executor import fmt_amount, short_tx
from src.modules.alerts.services import PriceAlertMonitor
from src.modules.identities.services.phone import mask_phone
from src.modules.recurring.repositories import RecurringPaymentRepository
from src.modules.recurring.services.recurring_service import RecurringService

logger = logging.getLogger(__name__)


class RecurringScheduler:
    """
    Background tick for recurring payments and price alerts.

    Each due payment runs in its own session under the sender's lock, so a
    tick never interleaves with a chat message from the same sender.
    """

    def __init__(
        self,
        providers: Providers | None = None,
        session_factory: Callable[[], Session] = get_session,
        locks: IdentityLocks | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.providers = providers or get_providers()
        self.session_factory = session_factory
        self.locks = locks or get_identity_locks()
        self.clock = clock
        self.alert_monitor = PriceAlertMonitor(
            self.providers.price_feed, self.providers.notifier, session_factory=session_factory
        )
        self._scheduler: AsyncIOScheduler | None = None

    def _due_ids(self, now: datetime) -> list[int]:
        db = self.session_factory()
        try:
            return [payment.id for payment in RecurringPaymentRepository(db).get_due(now)]
        finally:
            db.close()

    async def run_once(self, now: datetime | None = None) -> int:
        """Send every due payment once; returns how many succeeded."""
        now = now or self.clock()
        sent = 0
        for payment_id in self._due_ids(now):
            if await self._run_payment(payment_id, now):
                sent += 1
        if sent:
            logger.info(f"Recurring tick sent {sent} payment(s)")
        return sent

    async def _run_payment(self, payment_id: int, now: datetime) -> bool:
        db = self.session_factory()
        try:
            repository = RecurringPaymentRepository(db)
            payment = repository.get_by_id(payment_id)
            if payment is None:
                return False

            async with self.locks.hold(payment.sender_phone):
                db.refresh(payment)
                if not payment.active:
                    return False

                executor = ActionExecutor(db, self.providers)
                sender = executor.identity_service.get(payment.sender_phone)
                if sender is None:
                    logger.warning(f"Recurring payment {payment.id} has no sender identity")
                    return False
                recipient, _ = executor.identity_service.get_or_create(payment.recipient_phone)

                try:
                    transfer = await executor.transfer_between_identities(
                        sender, recipient, payment.amount, payment.token, kind=ActionKind.RECURRING_PAYMENT
                    )
                except HushPayError as e:
                    logger.warning(
                        f"Recurring payment {payment.id} for {mask_phone(payment.sender_phone)} failed: "
                        f"{type(e).__name__}"
                    )
                    return False

                amount = f"{fmt_amount(payment.amount)} {payment.token}"
                await executor.notify(
                    payment.sender_phone,
                    f"✓ Recurring payment sent\n{amount} → {payment.recipient_phone}\n"
                    f"Tx: {short_tx(transfer.tx_reference)}",
                )
                await executor.notify(
                    payment.recipient_phone,
                    f"💰 You received {amount} (recurring)\nFrom: {mask_phone(payment.sender_phone)}",
                )
                RecurringService(db).record_run(payment, now)
                return True
        except Exception:
            db.rollback()
            logger.exception(f"Recurring payment {payment_id} crashed")
            return False
        finally:
            db.close()

    async def _tick(self) -> None:
        await self.run_once()
        try:
            await self.alert_monitor.run_once()
        except Exception:
            logger.exception("Price alert tick failed")

    def start(self) -> None:
        if self._scheduler is not None:
            return
        self._scheduler = AsyncIOScheduler(timezone="UTC")
        self._scheduler.add_job(
            self._tick,
            IntervalTrigger(seconds=settings.SCHEDULER_INTERVAL_SECONDS),
            id="hushpay-tick",
            max_instances=1,
            coalesce=True,
        )
        self._scheduler.start()
        logger.info(f"Scheduler started, tick every {settings.SCHEDULER_INTERVAL_SECONDS}s")

    def stop(self) -> None:
        if self._scheduler is None:
            return
        self._scheduler.shutdown(wait=False)
        self._scheduler = None
        logger.info("Scheduler stopped")
