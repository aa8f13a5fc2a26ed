import asyncio
from decimal import Decimal

import pytest

from src.common.enums import TransferStatus
from src.modules.conversations.entities import Message
from src.modules.identities.entities import User
from src.modules.transfers.entities import Transfer
from tests.conftest import ALICE, BOB, CAROL

SEND_ONE_SOL = {"action": "send_payment", "amount": 1, "token": "SOL", "recipient": BOB}


def rows(session_factory, model, **filters):
    session = session_factory()
    try:
        return session.query(model).filter_by(**filters).order_by(model.id).all()
    finally:
        session.close()


async def test_first_message_creates_identity_and_welcomes(send, interpreter, session_factory, providers):
    reply = await send(ALICE, "hello")

    assert reply.startswith("Welcome to HushPay!")
    assert interpreter.calls == []
    users = rows(session_factory, User, phone=ALICE)
    assert len(users) == 1
    assert users[0].encrypted_private_key != ""
    # The welcome exchange is not logged
    assert rows(session_factory, Message, phone=ALICE) == []


async def test_identity_is_keyed_by_normalized_phone(send, session_factory):
    await send("whatsapp:+234 801 111 1111", "hi")
    await send("2348011111111", "hi again")

    assert len(rows(session_factory, User)) == 1


async def test_invalid_identifier_is_rejected(send, session_factory):
    reply = await send("12345", "hi")

    assert "Invalid phone number" in reply
    assert rows(session_factory, User) == []


async def test_send_payment_requires_confirmation(send, interpreter, providers, session_factory, onboarded):
    interpreter.will_answer("Send 1 SOL to +2348022222222?\n\nReply YES to confirm.", SEND_ONE_SOL)

    staged = await send(ALICE, "send 1 sol to +2348022222222")
    assert staged.startswith("Send 1 SOL")
    assert providers.transfer.calls == []

    done = await send(ALICE, "YES")
    assert done.startswith("✓ Sent 1 SOL to +2348022222222")
    assert len(providers.transfer.calls) == 1
    _, amount, token = providers.transfer.calls[0]
    assert (amount, token) == (Decimal("1"), "SOL")

    [transfer] = rows(session_factory, Transfer, sender_phone=ALICE)
    assert transfer.status == TransferStatus.CONFIRMED
    assert transfer.tx_reference.startswith("tx0001")
    assert any("You received 1 SOL" in text for text in providers.notifier.to(BOB))


async def test_confirmation_runs_the_action_only_once(send, interpreter, providers, onboarded):
    interpreter.will_answer("", SEND_ONE_SOL)
    await send(ALICE, "send 1 sol to bob")
    await send(ALICE, "yes")

    calls_before = len(interpreter.calls)
    await send(ALICE, "yes")

    assert len(providers.transfer.calls) == 1
    # With nothing pending a YES is an ordinary message
    assert len(interpreter.calls) == calls_before + 1


async def test_cancel_discards_pending_action(send, interpreter, providers, onboarded):
    interpreter.will_answer("", SEND_ONE_SOL)
    await send(ALICE, "send 1 sol to bob")

    assert await send(ALICE, "cancel") == "Cancelled. Nothing was sent."
    assert await send(ALICE, "undo") == "Nothing to cancel."
    await send(ALICE, "yes")
    assert providers.transfer.calls == []


async def test_pending_action_expires(send, interpreter, providers, clock, onboarded):
    interpreter.will_answer("", SEND_ONE_SOL)
    await send(ALICE, "send 1 sol to bob")

    clock.advance(seconds=301)
    await send(ALICE, "yes")

    assert providers.transfer.calls == []


async def test_newer_request_replaces_pending_action(send, interpreter, providers, onboarded):
    interpreter.will_answer("", SEND_ONE_SOL)
    interpreter.will_answer("", {**SEND_ONE_SOL, "amount": 2})
    await send(ALICE, "send 1 sol to bob")
    await send(ALICE, "actually send 2")

    await send(ALICE, "yes")

    assert [amount for _, amount, _ in providers.transfer.calls] == [Decimal("2")]


async def test_staging_reply_falls_back_to_summary(send, interpreter, onboarded):
    interpreter.will_answer("", SEND_ONE_SOL)

    reply = await send(ALICE, "send 1 sol to bob")

    assert reply == f"Send 1 SOL to {BOB}?\n\nReply YES to confirm."


async def test_provider_failure_can_be_retried(send, interpreter, providers, session_factory, onboarded):
    providers.transfer.fail_with = "RPC timeout"
    interpreter.will_answer("", SEND_ONE_SOL)
    await send(ALICE, "send 1 sol to bob")

    failed = await send(ALICE, "yes")
    assert failed == "Transfer failed: RPC timeout\nReply RETRY to try again."
    assert rows(session_factory, Transfer)[0].status == TransferStatus.FAILED

    providers.transfer.fail_with = None
    prompt = await send(ALICE, "retry")
    assert prompt == f"Retry: send 1 SOL to {BOB}?\n\nReply YES to confirm."

    done = await send(ALICE, "yes")
    assert done.startswith("✓ Sent 1 SOL")
    assert [t.status for t in rows(session_factory, Transfer)] == [TransferStatus.FAILED, TransferStatus.CONFIRMED]
    assert await send(ALICE, "retry") == "Nothing to retry."


async def test_insufficient_balance_moves_nothing(send, interpreter, providers, session_factory, onboarded):
    providers.balance.balance = Decimal("0.5")
    interpreter.will_answer("", SEND_ONE_SOL)
    await send(ALICE, "send 1 sol to bob")

    reply = await send(ALICE, "yes")

    assert reply.startswith("Insufficient balance. You have 0.5 SOL but need 1.000005 SOL")
    assert providers.transfer.calls == []
    assert rows(session_factory, Transfer) == []
    assert await send(ALICE, "retry") == "Nothing to retry."


async def test_compliance_block_stops_transfer(send, interpreter, providers, session_factory, onboarded):
    [bob] = rows(session_factory, User, phone=BOB)
    providers.compliance.blocked.add(bob.wallet_address)
    interpreter.will_answer("", SEND_ONE_SOL)
    await send(ALICE, "send 1 sol to bob")

    reply = await send(ALICE, "yes")

    assert reply == "Transfer blocked: Sanctioned address. No funds were moved."
    assert providers.transfer.calls == []
    assert rows(session_factory, Transfer) == []


async def test_sending_to_unknown_contact_asks_for_number(send, interpreter, onboarded):
    interpreter.will_answer("", {**SEND_ONE_SOL, "recipient": "mom"})

    reply = await send(ALICE, "send 1 sol to mom")

    assert 'contact named "mom"' in reply
    assert await send(ALICE, "yes") == "Hi! How can I help?"


async def test_saved_contact_resolves_recipient(send, interpreter, providers, onboarded):
    interpreter.will_answer("", {"action": "save_contact", "name": "Bob", "phone": BOB})
    interpreter.will_answer("", {**SEND_ONE_SOL, "recipient": "bob"})

    assert await send(ALICE, "save bob") == f"✓ Saved Bob: {BOB}"
    assert await send(ALICE, "send 1 sol to bob") == f"Send 1 SOL to {BOB}?\n\nReply YES to confirm."
    await send(ALICE, "yes")

    assert len(providers.transfer.calls) == 1


async def test_amount_below_minimum_is_not_staged(send, interpreter, providers, onboarded):
    interpreter.will_answer("", {**SEND_ONE_SOL, "amount": "0.0001"})

    reply = await send(ALICE, "send 0.0001 sol to bob")

    assert reply.startswith("Amount too small.")
    await send(ALICE, "yes")
    assert providers.transfer.calls == []


async def test_split_payment_reports_each_recipient(send, interpreter, providers, session_factory, onboarded):
    await send(CAROL, "hi")
    [carol] = rows(session_factory, User, phone=CAROL)
    providers.transfer.fail_for.add(carol.wallet_address)
    interpreter.will_answer(
        "", {"action": "split_payment", "totalAmount": 3, "token": "SOL", "recipients": [BOB, CAROL]}
    )
    await send(ALICE, "split 3 sol between bob and carol")

    reply = await send(ALICE, "yes")

    assert reply.splitlines()[0] == "Split 3 SOL: 1/2 sent, 1.5 each"
    assert f"✗ {CAROL}: recipient rejected" in reply
    statuses = sorted(t.status.value for t in rows(session_factory, Transfer, sender_phone=ALICE))
    assert statuses == ["confirmed", "failed"]
    # Split failures are reported per recipient, not kept for RETRY
    assert await send(ALICE, "retry") == "Nothing to retry."


async def test_messages_are_logged_and_passed_as_history(send, interpreter, session_factory, onboarded):
    interpreter.will_answer("Hello Alice!")
    await send(ALICE, "hey there")
    await send(ALICE, "what can you do?")

    logged = [(m.role, m.content) for m in rows(session_factory, Message, phone=ALICE)]
    assert logged[:2] == [("user", "hey there"), ("assistant", "Hello Alice!")]
    assert interpreter.calls[-1]["history"][:2] == [
        {"role": "user", "content": "hey there"},
        {"role": "assistant", "content": "Hello Alice!"},
    ]


async def test_concurrent_confirmations_run_the_action_once(send, interpreter, providers, session_factory, onboarded):
    interpreter.will_answer("", SEND_ONE_SOL)
    await send(ALICE, "send 1 sol to bob")
    providers.transfer.delay = 0.05

    replies = await asyncio.gather(send(ALICE, "yes"), send(ALICE, "YES"))

    assert len(providers.transfer.calls) == 1
    assert sum(reply.startswith("✓ Sent 1 SOL") for reply in replies) == 1
    assert len(rows(session_factory, Transfer, sender_phone=ALICE)) == 1


async def test_rate_limit_rejects_eleventh_message(send, service, interpreter, providers, session_factory, clock,
                                                   onboarded):
    for _ in range(8):
        await send(ALICE, "hello")
    interpreter.will_answer("", SEND_ONE_SOL)
    await send(ALICE, "send 1 sol to bob")

    logged = len(rows(session_factory, Message, phone=ALICE))
    interpreted = len(interpreter.calls)
    assert await send(ALICE, "yes") == "Too many requests. Please wait a minute and try again."

    # The rejected message changed nothing
    assert len(rows(session_factory, Message, phone=ALICE)) == logged
    assert len(interpreter.calls) == interpreted
    assert providers.transfer.calls == []
    assert service.pending_actions.get(ALICE, clock()).payload["recipient"] == BOB

    clock.advance(seconds=61)
    assert (await send(ALICE, "yes")).startswith("✓ Sent 1 SOL")


async def test_language_follows_calling_code(send, session_factory):
    await send("+34600111222", "hola")

    [user] = rows(session_factory, User, phone="+34600111222")
    assert user.preferred_language == "es"


@pytest.mark.parametrize("text", ["check_balance", "get_wallet"])
async def test_read_only_intents_answer_immediately(send, interpreter, session_factory, onboarded, text):
    interpreter.will_answer("", {"action": text})

    reply = await send(ALICE, text)

    [alice] = rows(session_factory, User, phone=ALICE)
    assert alice.wallet_address[:8] in reply


async def test_balance_reports_provider_outage(send, interpreter, providers, onboarded):
    providers.balance.fail_with = "RPC down"
    interpreter.will_answer("", {"action": "check_balance"})

    reply = await send(ALICE, "balance")

    assert reply == "Couldn't fetch your balance right now. Try again in a minute."
