import re

import pytest
from fastapi.testclient import TestClient

from src.main import app
from src.modules.conversations.services.conversation_service import get_conversation_service
from src.modules.identities.entities import User
from tests.conftest import ALICE, BOB


@pytest.fixture
def client(service):
    app.dependency_overrides[get_conversation_service] = lambda: service
    # No context manager: the lifespan (scheduler) does not run
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_health(client):
    assert client.get("/health").json() == {"status": "healthy"}
    assert client.get("/").status_code == 200


def test_sms_reply_is_twiml(client, interpreter):
    client.post("/sms", data={"From": ALICE, "Body": "hi"})
    interpreter.will_answer("Balance <low> & falling")

    response = client.post("/sms", data={"From": ALICE, "Body": "how much?"})

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/xml")
    assert response.text == "<Response><Message>Balance &lt;low&gt; &amp; falling</Message></Response>"


def test_sms_internal_error_gets_generic_reply(client, service, monkeypatch):
    async def boom(*args, **kwargs):
        raise RuntimeError("database is on fire")

    monkeypatch.setattr(service, "handle_inbound_message", boom)

    response = client.post("/sms", data={"From": ALICE, "Body": "hi"})

    assert response.text == "<Response><Message>Something went wrong. Try again.</Message></Response>"


def test_whatsapp_replies_out_of_band(client, providers):
    response = client.post("/whatsapp", data={"From": f"whatsapp:{ALICE}", "Body": "hello"})

    assert response.status_code == 200
    assert response.text == ""
    [(phone, text, channel)] = providers.notifier.sent
    assert phone == ALICE
    assert text.startswith("Welcome to HushPay!")
    assert channel.value == "whatsapp"


def test_step_up_page_flow(client, interpreter, service):
    client.post("/sms", data={"From": ALICE, "Body": "hi"})
    interpreter.will_answer("", {"action": "set_pin"})
    reply = client.post("/sms", data={"From": ALICE, "Body": "set pin"}).text
    token = re.search(r"/confirm/([\w-]+)", reply).group(1)

    form = client.get(f"/confirm/{token}")
    assert form.status_code == 200
    assert 'name="pin"' in form.text

    result = client.post(f"/confirm/{token}", data={"pin": "1234"})
    assert "✓ PIN set." in result.text

    again = client.get(f"/confirm/{token}")
    assert "expired" in again.text


def test_unknown_step_up_token(client):
    response = client.post("/confirm/not-a-token", data={"pin": "1234"})

    assert "Link expired or invalid" in response.text


def test_balance_webhook_notifies_wallet_owner(client, providers, session_factory):
    client.post("/sms", data={"From": ALICE, "Body": "hi"})
    session = session_factory()
    try:
        wallet = session.query(User).filter_by(phone=ALICE).one().wallet_address
    finally:
        session.close()

    events = [
        {"type": "TRANSFER", "nativeTransfers": [{"toUserAccount": wallet, "amount": 1_500_000_000}]},
        {"type": "TRANSFER", "nativeTransfers": [{"toUserAccount": "unknown", "amount": 1}]},
        {"type": "SWAP"},
    ]
    response = client.post("/webhook/helius", json=events)

    assert response.status_code == 200
    assert providers.notifier.to(ALICE) == ['💰 You received 1.5000 SOL!\n\nText "balance" to check.']
    assert providers.notifier.to(BOB) == []


def test_balance_webhook_tolerates_garbage(client):
    response = client.post("/webhook/helius", content=b"not json", headers={"Content-Type": "application/json"})

    assert response.status_code == 200
