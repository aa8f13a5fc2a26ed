from datetime import UTC, datetime, timedelta
from decimal import Decimal

import pytest

from src.common.enums import ActionKind, Frequency, TransferStatus
from src.common.locks import IdentityLocks
from src.modules.identities.services import IdentityService
from src.modules.recurring.entities import RecurringPayment
from src.modules.recurring.services import RecurringService, add_period
from src.modules.recurring.services.recurring_scheduler import RecurringScheduler
from src.modules.transfers.entities import Transfer
from tests.conftest import ALICE, BOB, CAROL


@pytest.mark.parametrize(
    ("moment", "frequency", "expected"),
    [
        (datetime(2026, 3, 10, 9, tzinfo=UTC), Frequency.DAILY, datetime(2026, 3, 11, 9, tzinfo=UTC)),
        (datetime(2026, 3, 10, 9, tzinfo=UTC), Frequency.WEEKLY, datetime(2026, 3, 17, 9, tzinfo=UTC)),
        (datetime(2026, 1, 31, 9, tzinfo=UTC), Frequency.MONTHLY, datetime(2026, 2, 28, 9, tzinfo=UTC)),
        (datetime(2028, 1, 31, 9, tzinfo=UTC), Frequency.MONTHLY, datetime(2028, 2, 29, 9, tzinfo=UTC)),
        (datetime(2026, 12, 15, 9, tzinfo=UTC), Frequency.MONTHLY, datetime(2027, 1, 15, 9, tzinfo=UTC)),
    ],
)
def test_add_period(moment, frequency, expected):
    assert add_period(moment, frequency) == expected


@pytest.fixture
async def identities(db, providers):
    service = IdentityService(db, providers.wallet_registrar)
    for phone in (ALICE, BOB, CAROL):
        service.get_or_create(phone)
    return service


@pytest.fixture
def scheduler(providers, session_factory, clock):
    return RecurringScheduler(providers=providers, session_factory=session_factory, locks=IdentityLocks(), clock=clock)


def create_payment(db, clock, recipient=BOB, frequency=Frequency.WEEKLY, amount="1"):
    return RecurringService(db).create(ALICE, recipient, Decimal(amount), "SOL", frequency, now=clock())


def reload(session_factory, payment_id):
    session = session_factory()
    try:
        return session.get(RecurringPayment, payment_id)
    finally:
        session.close()


def test_create_schedules_one_period_ahead(db, clock):
    payment = create_payment(db, clock)

    assert payment.first_run_pending is True
    assert payment.next_run_at == clock() + timedelta(days=7)


def test_cancel_by_id_or_recipient(db, clock):
    service = RecurringService(db)
    first = create_payment(db, clock)
    second = create_payment(db, clock, frequency=Frequency.DAILY)
    third = create_payment(db, clock, recipient=CAROL)

    assert [p.id for p in service.cancel(ALICE, f"#{first.id}")] == [first.id]
    assert [p.id for p in service.cancel(ALICE, BOB)] == [second.id]
    assert [p.id for p in service.list_active(ALICE)] == [third.id]
    assert service.cancel(ALICE, "999") == []
    # Other senders cannot cancel
    assert service.cancel(BOB, str(third.id)) == []


async def test_first_run_goes_out_on_next_tick(scheduler, identities, db, clock, providers, session_factory):
    payment = create_payment(db, clock)
    next_run_at = payment.next_run_at

    assert await scheduler.run_once(clock()) == 1

    stored = reload(session_factory, payment.id)
    assert stored.first_run_pending is False
    assert stored.next_run_at == next_run_at
    assert len(providers.transfer.calls) == 1
    assert any(text.startswith("✓ Recurring payment sent") for text in providers.notifier.to(ALICE))
    assert any("(recurring)" in text for text in providers.notifier.to(BOB))

    # Not due again until next_run_at
    assert await scheduler.run_once(clock.advance(days=6)) == 0


async def test_due_run_advances_schedule(scheduler, identities, db, clock, session_factory):
    payment = create_payment(db, clock, frequency=Frequency.DAILY)
    first_due = payment.next_run_at
    await scheduler.run_once(clock())

    due = clock.advance(days=1, seconds=1)
    assert await scheduler.run_once(due) == 1

    stored = reload(session_factory, payment.id)
    assert stored.next_run_at == first_due + timedelta(days=1)


async def test_missed_periods_are_not_backfilled(scheduler, identities, db, clock, providers, session_factory):
    payment = create_payment(db, clock, frequency=Frequency.DAILY)
    due_time = payment.next_run_at.time()
    await scheduler.run_once(clock())

    # Scheduler down for ten days, then ticks every five minutes
    clock.advance(days=10)
    sent = [await scheduler.run_once(clock.advance(minutes=5)) for _ in range(5)]

    assert sent == [1, 0, 0, 0, 0]
    assert len(providers.transfer.calls) == 2
    stored = reload(session_factory, payment.id)
    assert clock() < stored.next_run_at <= clock() + timedelta(days=1)
    assert stored.next_run_at.time() == due_time


async def test_late_first_run_moves_schedule_past_now(scheduler, identities, db, clock, providers, session_factory):
    payment = create_payment(db, clock, frequency=Frequency.DAILY)
    first_due = payment.next_run_at
    providers.transfer.fail_with = "RPC timeout"
    await scheduler.run_once(clock())

    providers.transfer.fail_with = None
    late = clock.advance(days=3, hours=2)
    assert await scheduler.run_once(late) == 1

    stored = reload(session_factory, payment.id)
    assert stored.first_run_pending is False
    assert stored.next_run_at == first_due + timedelta(days=3)
    assert await scheduler.run_once(clock.advance(minutes=5)) == 0


async def test_failed_run_leaves_row_untouched(scheduler, identities, db, clock, providers, session_factory):
    payment = create_payment(db, clock)
    next_run_at = payment.next_run_at
    providers.transfer.fail_with = "RPC timeout"

    assert await scheduler.run_once(clock()) == 0

    stored = reload(session_factory, payment.id)
    assert stored.first_run_pending is True
    assert stored.next_run_at == next_run_at
    assert stored.active is True
    session = session_factory()
    try:
        [transfer] = session.query(Transfer).all()
        assert (transfer.kind, transfer.status) == (ActionKind.RECURRING_PAYMENT, TransferStatus.FAILED)
    finally:
        session.close()

    providers.transfer.fail_with = None
    assert await scheduler.run_once(clock()) == 1


async def test_inactive_payments_are_skipped(scheduler, identities, db, clock, providers):
    payment = create_payment(db, clock)
    RecurringService(db).cancel(ALICE, payment.id)

    assert await scheduler.run_once(clock()) == 0
    assert providers.transfer.calls == []


async def test_one_failing_payment_does_not_block_others(scheduler, identities, db, clock, providers):
    create_payment(db, clock, amount="50")
    create_payment(db, clock, recipient=CAROL)

    # 50 SOL exceeds the balance of 10
    assert await scheduler.run_once(clock()) == 1
    assert len(providers.transfer.calls) == 1


async def test_scheduler_start_and_stop(scheduler):
    scheduler.start()
    job = scheduler._scheduler.get_job("hushpay-tick")
    assert job.max_instances == 1
    assert job.coalesce is True

    scheduler.stop()
    assert scheduler._scheduler is None
