import asyncio
import os
from datetime import UTC, datetime, timedelta
from decimal import Decimal

from cryptography.fernet import Fernet

os.environ["ENCRYPTION_KEY"] = Fernet.generate_key().decode()
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["BASE_URL"] = "https://hushpay.test"
os.environ["TOKEN_MINTS"] = "{}"

import fakeredis  # noqa: E402
import pytest  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from src.common.enums import Channel  # noqa: E402
from src.common.exceptions import ProviderError  # noqa: E402
from src.common.locks import IdentityLocks  # noqa: E402
from src.common.providers import Providers, ScreeningResult, TransferResult, set_providers  # noqa: E402
from src.common.redis_service import RedisService, set_redis_service  # noqa: E402
from src.common.resilience.circuit_breaker import reset_breakers  # noqa: E402
from src.configuration.config import Base, set_engine  # noqa: E402
from src.modules.alerts.entities import PriceAlert  # noqa: E402, F401
from src.modules.conversations.agent.interpreter import Interpretation  # noqa: E402
from src.modules.conversations.agent.intents import parse_intent  # noqa: E402
from src.modules.conversations.entities import Message  # noqa: E402, F401
from src.modules.conversations.services.conversation_service import ConversationService  # noqa: E402
from src.modules.identities.entities import Contact, User  # noqa: E402, F401
from src.modules.recurring.entities import RecurringPayment  # noqa: E402, F401
from src.modules.transfers.entities import Transfer  # noqa: E402, F401

ALICE = "+2348011111111"
BOB = "+2348022222222"
CAROL = "+2348033333333"


class Clock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class FakeTransferProvider:
    def __init__(self):
        self.calls = []
        self.fail_with: str | None = None
        self.fail_for: set[str] = set()
        self.delay = 0.0

    async def transfer(self, sender_secret, recipient_address, amount, token):
        if self.delay:
            await asyncio.sleep(self.delay)
        self.calls.append((recipient_address, amount, token))
        if self.fail_with:
            raise ProviderError(self.fail_with, provider="shadowwire")
        if recipient_address in self.fail_for:
            return TransferResult(success=False, error="recipient rejected")
        return TransferResult(success=True, tx_reference=f"tx{len(self.calls):04d}abcdefghijklmnop")


class FakePrivacyPool:
    def __init__(self):
        self.private_balance = Decimal("5")
        self.deposits = []
        self.withdrawals = []
        self.fail_with: str | None = None

    async def deposit(self, owner_secret, amount, token):
        if self.fail_with:
            raise ProviderError(self.fail_with, provider="privacycash")
        self.deposits.append((amount, token))
        self.private_balance += amount
        return TransferResult(success=True, tx_reference="deposit-signature-0001")

    async def withdraw(self, owner_secret, amount, recipient_address, token):
        if self.fail_with:
            raise ProviderError(self.fail_with, provider="privacycash")
        self.withdrawals.append((amount, recipient_address, token))
        self.private_balance -= amount
        return TransferResult(success=True, tx_reference="withdraw-signature-0001")

    async def get_private_balance(self, owner_secret, token):
        return self.private_balance


class FakeBridge:
    def __init__(self):
        self.orders = []

    async def send(self, sender_secret, amount, token, destination_chain, destination_address):
        self.orders.append((amount, token, destination_chain, destination_address))
        return TransferResult(success=True, tx_reference="order-0001")


class FakeCompliance:
    def __init__(self):
        self.blocked: set[str] = set()

    async def screen(self, address):
        if address in self.blocked:
            return ScreeningResult(allowed=False, reason="Sanctioned address")
        return ScreeningResult(allowed=True)


class FakeBalance:
    def __init__(self):
        self.balance = Decimal("10")
        self.fail_with: str | None = None

    async def get_balance(self, address, token):
        if self.fail_with:
            raise ProviderError(self.fail_with, provider="solana-rpc")
        return self.balance


class FakeNotifier:
    def __init__(self):
        self.sent: list[tuple[str, str, Channel]] = []
        self.fail = False

    async def send(self, phone, text, channel=Channel.WHATSAPP):
        if self.fail:
            raise ProviderError("undeliverable", provider="twilio")
        self.sent.append((phone, text, channel))
        return f"SM{len(self.sent)}"

    def to(self, phone: str) -> list[str]:
        return [text for p, text, _ in self.sent if p == phone]


class FakePriceFeed:
    def __init__(self):
        self.prices: dict[str, Decimal] = {}

    async def get_price(self, token):
        return self.prices.get(token)


class FakeRegistrar:
    def __init__(self):
        self.registered: list[str] = []

    async def register(self, address):
        self.registered.append(address)


class ScriptedInterpreter:
    """Answers each message from a queue of (reply, intent dict) pairs."""

    def __init__(self):
        self.queue: list[tuple[str, dict | None]] = []
        self.calls: list[dict] = []

    def will_answer(self, reply: str = "", intent: dict | None = None) -> None:
        self.queue.append((reply, intent))

    async def interpret(self, identity_id, message_text, history, language, contacts):
        self.calls.append(
            {"identity": identity_id, "text": message_text, "history": history, "language": language,
             "contacts": contacts}
        )
        if not self.queue:
            return Interpretation(reply_text="Hi! How can I help?")
        reply, intent = self.queue.pop(0)
        return Interpretation(reply_text=reply, intent=parse_intent(intent) if intent else None)


@pytest.fixture(autouse=True)
def redis_service():
    service = RedisService(client=fakeredis.FakeRedis(decode_responses=True))
    set_redis_service(service)
    reset_breakers()
    yield service
    set_redis_service(None)


@pytest.fixture
def engine():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)
    set_engine(engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, expire_on_commit=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def clock():
    return Clock(datetime.now(UTC).replace(microsecond=0))


@pytest.fixture
def providers():
    providers = Providers(
        transfer=FakeTransferProvider(),
        privacy_pool=FakePrivacyPool(),
        bridge=FakeBridge(),
        compliance=FakeCompliance(),
        balance=FakeBalance(),
        notifier=FakeNotifier(),
        price_feed=FakePriceFeed(),
        wallet_registrar=FakeRegistrar(),
    )
    set_providers(providers)
    yield providers
    set_providers(None)


@pytest.fixture
def interpreter():
    return ScriptedInterpreter()


@pytest.fixture
def service(interpreter, providers, session_factory, clock):
    return ConversationService(
        interpreter=interpreter,
        providers=providers,
        session_factory=session_factory,
        locks=IdentityLocks(),
        clock=clock,
    )


@pytest.fixture
def send(service):
    """Send a chat message as ``phone`` and return the reply."""

    async def _send(phone: str, text: str, channel: Channel = Channel.SMS) -> str:
        return await service.handle_inbound_message(phone, text, channel)

    return _send


@pytest.fixture
async def onboarded(send):
    """Alice and Bob have both messaged once, so they have identities."""
    await send(ALICE, "hi")
    await send(BOB, "hi")
