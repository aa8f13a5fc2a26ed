import asyncio
import logging
from datetime import timedelta

from src.common.enums import ActionKind
from src.common.locks import IdentityLocks
from src.common.rate_limiter import RateLimiter
from src.common.stores.expiring_record_store import ExpiringRecordStore
from src.modules.actions.services import FailedActionStore, PendingActionStore
from tests.conftest import ALICE, BOB

PAYLOAD = {"amount": "1", "token": "SOL", "recipient": BOB}


def test_records_expire_by_timestamp(clock):
    store = ExpiringRecordStore("test", 60)
    store.put("key", {"value": 1}, clock())

    assert store.get("key", clock.advance(seconds=59)) == {"value": 1}
    assert store.get("key", clock.advance(seconds=1)) is None


def test_pending_action_is_consumed_once(clock):
    pending = PendingActionStore()
    staged = pending.stage(ALICE, ActionKind.SEND_PAYMENT, PAYLOAD, clock())

    assert staged.expires_at == clock() + timedelta(seconds=300)
    assert pending.get(ALICE, clock()).payload == PAYLOAD
    consumed = pending.consume(ALICE, clock())
    assert consumed.kind == ActionKind.SEND_PAYMENT
    assert pending.consume(ALICE, clock()) is None


def test_staging_replaces_previous_action(clock):
    pending = PendingActionStore()
    pending.stage(ALICE, ActionKind.SEND_PAYMENT, PAYLOAD, clock())
    pending.stage(ALICE, ActionKind.DEPOSIT, {"amount": "2", "token": "SOL"}, clock())

    assert pending.consume(ALICE, clock()).kind == ActionKind.DEPOSIT


def test_expired_pending_action_is_not_consumed(clock):
    pending = PendingActionStore()
    pending.stage(ALICE, ActionKind.SEND_PAYMENT, PAYLOAD, clock())

    assert pending.consume(ALICE, clock.advance(seconds=300)) is None
    assert pending.discard(ALICE) is False


def test_pending_actions_are_per_identity(clock):
    pending = PendingActionStore()
    pending.stage(ALICE, ActionKind.SEND_PAYMENT, PAYLOAD, clock())

    assert pending.consume(BOB, clock()) is None
    assert pending.discard(ALICE) is True


def test_failed_action_keeps_error():
    failed = FailedActionStore()
    failed.record(ALICE, ActionKind.SEND_PAYMENT, PAYLOAD, "RPC timeout")

    record = failed.consume(ALICE)
    assert (record.kind, record.payload, record.error) == (ActionKind.SEND_PAYMENT, PAYLOAD, "RPC timeout")
    assert failed.get(ALICE) is None


def test_rate_limiter_sliding_window(clock):
    limiter = RateLimiter(max_requests=10, window_seconds=60)
    start = clock()

    assert all(limiter.hit(ALICE, start + timedelta(seconds=i)) for i in range(10))
    assert limiter.hit(ALICE, start + timedelta(seconds=30)) is False
    # Rejected hits are not recorded, and other identities have their own window
    assert limiter.hit(BOB, start + timedelta(seconds=30)) is True
    # The first hit has left the window
    assert limiter.hit(ALICE, start + timedelta(seconds=60, milliseconds=1)) is True
    assert limiter.hit(ALICE, start + timedelta(seconds=60, milliseconds=2)) is False


async def test_identity_lock_serializes_same_phone():
    locks = IdentityLocks()
    order = []

    async def worker(name, phone, delay):
        async with locks.hold(phone):
            order.append(f"{name}-start")
            await asyncio.sleep(delay)
            order.append(f"{name}-end")

    await asyncio.gather(worker("a", ALICE, 0.02), worker("b", ALICE, 0), worker("c", BOB, 0))

    assert order.index("a-end") < order.index("b-start")
    assert order.index("c-end") < order.index("a-end")
    assert not locks.is_locked(ALICE)


def test_rate_limit_log_masks_phone(clock, caplog):
    limiter = RateLimiter(max_requests=1, window_seconds=60)
    limiter.hit(ALICE, clock())

    with caplog.at_level(logging.WARNING, logger="src.common.rate_limiter"):
        assert limiter.hit(ALICE, clock()) is False

    assert "Rate limit hit for ...1111" in caplog.text
    assert ALICE not in caplog.text
