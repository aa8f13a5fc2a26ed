"""
Contracts for the external collaborators the payment core depends on.

Amounts cross these boundaries as ``Decimal``. Network failures surface as
``ProviderError``; a provider that answers but refuses the operation returns
a result with ``success=False`` and an ``error``.
"""
from decimal import Decimal
from typing import Protocol

from pydantic import BaseModel

from src.common.enums import Channel


class TransferResult(BaseModel):
    success: bool
    tx_reference: str | None = None
    amount_hidden: bool = False
    error: str | None = None


class ScreeningResult(BaseModel):
    allowed: bool
    reason: str | None = None


class TransferProvider(Protocol):
    async def transfer(
        self, sender_secret: str, recipient_address: str, amount: Decimal, token: str
    ) -> TransferResult: ...


class PrivacyPoolProvider(Protocol):
    async def deposit(self, owner_secret: str, amount: Decimal, token: str) -> TransferResult: ...

    async def withdraw(
        self, owner_secret: str, amount: Decimal, recipient_address: str, token: str
    ) -> TransferResult: ...

    async def get_private_balance(self, owner_secret: str, token: str) -> Decimal: ...


class BridgeProvider(Protocol):
    async def send(
        self,
        sender_secret: str,
        amount: Decimal,
        token: str,
        destination_chain: str,
        destination_address: str,
    ) -> TransferResult: ...


class ComplianceScreener(Protocol):
    async def screen(self, address: str) -> ScreeningResult: ...


class BalanceProvider(Protocol):
    async def get_balance(self, address: str, token: str) -> Decimal: ...


class Notifier(Protocol):
    async def send(self, phone: str, text: str, channel: Channel = Channel.WHATSAPP) -> str: ...


class PriceFeed(Protocol):
    async def get_price(self, token: str) -> Decimal | None: ...


class WalletRegistrar(Protocol):
    async def register(self, address: str) -> None: ...
