from decimal import Decimal

import pytest

from src.common.enums import ActionKind, Channel, Frequency, TransferStatus
from src.modules.actions.services import ActionExecutor, FailedActionStore
from src.modules.actions.services.action_executor import fmt_amount, short_tx, split_share, summarize_action
from src.modules.identities.services import IdentityService
from src.modules.recurring.entities import RecurringPayment
from src.modules.transfers.entities import Transfer
from src.modules.transfers.repositories import TransferRepository
from tests.conftest import ALICE, BOB

EVM = "0x" + "ab" * 20


@pytest.fixture
def executor(db, providers):
    return ActionExecutor(db, providers, FailedActionStore())


@pytest.fixture
async def alice(db, providers):
    user, _ = IdentityService(db, providers.wallet_registrar).get_or_create(ALICE)
    return user


async def test_deposit_reports_new_private_balance(executor, alice, providers, db):
    reply = await executor.execute(alice, ActionKind.DEPOSIT, {"amount": "2", "token": "SOL"}, Channel.SMS)

    assert reply == "✓ Deposited 2 SOL to private pool\nPrivate balance: 7.0000 SOL"
    assert providers.privacy_pool.deposits == [(Decimal("2"), "SOL")]
    [transfer] = db.query(Transfer).all()
    assert (transfer.kind, transfer.status) == (ActionKind.DEPOSIT, TransferStatus.CONFIRMED)


async def test_failed_deposit_is_kept_for_retry(executor, alice, providers):
    providers.privacy_pool.fail_with = "pool paused"

    reply = await executor.execute(alice, ActionKind.DEPOSIT, {"amount": "2", "token": "SOL"}, Channel.SMS)

    assert reply.startswith("Transfer failed: pool paused")
    failed = executor.failed_actions.get(ALICE)
    assert failed.kind == ActionKind.DEPOSIT
    assert failed.payload == {"amount": "2", "token": "SOL"}


async def test_withdraw_checks_private_balance(executor, alice, providers):
    reply = await executor.execute(alice, ActionKind.WITHDRAW, {"amount": "6", "token": "SOL"}, Channel.SMS)

    assert reply.startswith("Insufficient balance. You have 5 SOL but need 6 SOL")
    assert providers.privacy_pool.withdrawals == []


async def test_withdraw_goes_to_own_wallet(executor, alice, providers):
    reply = await executor.execute(alice, ActionKind.WITHDRAW, {"amount": "1", "token": "SOL"}, Channel.SMS)

    assert reply.startswith("✓ Withdrew 1 SOL to public wallet")
    assert providers.privacy_pool.withdrawals == [(Decimal("1"), alice.wallet_address, "SOL")]


async def test_anon_send_pays_from_private_pool(executor, alice, providers, db):
    wallet = "7xKXtg2CW87d97TXJSDpbD5jBkheTqA83TZRuJosgAsU"
    payload = {"amount": "1", "token": "SOL", "recipient_wallet": wallet}

    reply = await executor.execute(alice, ActionKind.ANON_SEND, payload, Channel.SMS)

    assert reply.startswith("✓ Sent 1 SOL anonymously\nSender: [UNTRACEABLE]")
    assert providers.privacy_pool.withdrawals == [(Decimal("1"), wallet, "SOL")]
    [transfer] = db.query(Transfer).all()
    assert transfer.recipient_address == wallet
    assert transfer.recipient_phone is None


async def test_cross_chain_send_requires_address(executor, alice, providers):
    payload = {"amount": "10", "token": "USDC", "destination_chain": "base", "recipient_address": None}

    reply = await executor.execute(alice, ActionKind.CROSS_CHAIN_SEND, payload, Channel.SMS)

    assert reply.startswith("For cross-chain to Base, I need the recipient's address.")
    assert providers.bridge.orders == []


async def test_cross_chain_send_places_order(executor, alice, providers):
    payload = {"amount": "1", "token": "USDC", "destination_chain": "base", "recipient_address": EVM}

    reply = await executor.execute(alice, ActionKind.CROSS_CHAIN_SEND, payload, Channel.SMS)

    assert reply.startswith("✓ Cross-chain send started")
    assert providers.bridge.orders == [(Decimal("1"), "USDC", "base", EVM)]


async def test_recurring_payment_schedules_first_run(executor, alice, db):
    payload = {"amount": "5", "token": "USDC", "recipient": BOB, "frequency": "weekly"}

    reply = await executor.execute(alice, ActionKind.RECURRING_PAYMENT, payload, Channel.SMS)

    assert "First payment will be sent now." in reply
    [payment] = db.query(RecurringPayment).all()
    assert payment.first_run_pending is True
    assert payment.frequency == Frequency.WEEKLY
    assert payment.active is True


async def test_send_to_self_is_rejected(executor, alice, providers):
    payload = {"amount": "1", "token": "SOL", "recipient": ALICE}

    assert await executor.execute(alice, ActionKind.SEND_PAYMENT, payload, Channel.SMS) == (
        "You can't send to yourself."
    )
    assert providers.transfer.calls == []


async def test_recipient_notification_failure_does_not_undo_send(executor, alice, providers, db):
    providers.notifier.fail = True

    reply = await executor.execute(
        alice, ActionKind.SEND_PAYMENT, {"amount": "1", "token": "SOL", "recipient": BOB}, Channel.SMS
    )

    assert reply.startswith("✓ Sent 1 SOL")
    assert db.query(Transfer).one().status == TransferStatus.CONFIRMED


async def test_transfer_records_never_move_backward(db):
    repository = TransferRepository(db)
    transfer = repository.create_pending(ALICE, ActionKind.SEND_PAYMENT, Decimal("1"), "SOL", recipient_phone=BOB)
    repository.mark_confirmed(transfer, "sig")

    with pytest.raises(ValueError):
        repository.mark_failed(transfer, "late failure")
    with pytest.raises(ValueError):
        repository.mark_confirmed(transfer, "sig2")


def test_split_share_rounds_down_to_base_unit():
    assert split_share(Decimal("1"), 3) == Decimal("0.333333333")
    assert split_share(Decimal("3"), 2) == Decimal("1.5")


def test_amount_and_reference_formatting():
    assert fmt_amount(Decimal("1.500000000")) == "1.5"
    assert fmt_amount(Decimal("10")) == "10"
    assert short_tx(None) == "-"
    assert short_tx("a" * 40) == "a" * 16 + "..."


def test_summaries_describe_the_action():
    assert summarize_action(ActionKind.DEPOSIT, {"amount": "2", "token": "SOL"}) == "deposit 2 SOL to the private pool"
    assert summarize_action(
        ActionKind.SPLIT_PAYMENT, {"total_amount": "3", "token": "SOL", "recipients": [ALICE, BOB]}
    ) == "split 3 SOL between 2 people"


async def test_replies_follow_the_user_language(executor, alice, db, providers):
    IdentityService(db, providers.wallet_registrar).set_language(alice, "es")

    recurring = await executor.execute(
        alice,
        ActionKind.RECURRING_PAYMENT,
        {"amount": "5", "token": "USDC", "recipient": BOB, "frequency": "weekly"},
        Channel.SMS,
    )
    cross_chain = await executor.execute(
        alice,
        ActionKind.CROSS_CHAIN_SEND,
        {"amount": "1", "token": "USDC", "destination_chain": "base", "recipient_address": EVM},
        Channel.SMS,
    )
    split = await executor.execute(
        alice, ActionKind.SPLIT_PAYMENT, {"total_amount": "2", "token": "SOL", "recipients": [BOB]}, Channel.SMS
    )
    pin = await executor.execute(alice, ActionKind.SET_PIN, {"pin": "2468"}, Channel.SMS)

    assert recurring.startswith("✓ Pago recurrente #")
    assert "(semanal)" in recurring
    assert cross_chain.startswith("✓ Envío entre cadenas iniciado")
    assert split.startswith("División de 2 SOL: 1/1 enviados, 2 cada uno")
    assert pin.startswith("✓ PIN configurado.")
