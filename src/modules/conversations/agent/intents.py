"""
Structured intents produced by the interpreter.

``Intent`` is a closed union discriminated on ``action``; the router has one
handler per member. Fields accept camelCase from the model's JSON as well as
snake_case.
"""
from decimal import Decimal
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator
from pydantic.alias_generators import to_camel

from src.common.enums import ActionKind, Frequency
from src.configuration.config import settings


class IntentBase(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class TokenAmountIntent(IntentBase):
    amount: Decimal = Field(..., gt=0)
    token: str = Field(default_factory=lambda: settings.NATIVE_TOKEN, min_length=1, max_length=10)

    @field_validator("token")
    @classmethod
    def normalize_token(cls, value: str) -> str:
        return value.strip().upper()


class SendPaymentIntent(TokenAmountIntent):
    action: Literal["send_payment"] = "send_payment"
    recipient: str = Field(..., min_length=1, description="Phone number or contact name")


class AnonSendIntent(TokenAmountIntent):
    action: Literal["anon_send"] = "anon_send"
    recipient_wallet: str = Field(..., min_length=1)


class DepositIntent(TokenAmountIntent):
    action: Literal["deposit"] = "deposit"


class WithdrawIntent(TokenAmountIntent):
    action: Literal["withdraw"] = "withdraw"


class CrossChainSendIntent(TokenAmountIntent):
    action: Literal["cross_chain_send"] = "cross_chain_send"
    destination_chain: str = Field(..., min_length=1)
    recipient_address: str | None = None

    @field_validator("destination_chain")
    @classmethod
    def normalize_chain(cls, value: str) -> str:
        return value.strip().lower()


class SplitPaymentIntent(IntentBase):
    action: Literal["split_payment"] = "split_payment"
    total_amount: Decimal = Field(..., gt=0)
    token: str = Field(default_factory=lambda: settings.NATIVE_TOKEN, min_length=1, max_length=10)
    recipients: list[str] = Field(default_factory=list)

    @field_validator("token")
    @classmethod
    def normalize_token(cls, value: str) -> str:
        return value.strip().upper()


class RecurringPaymentIntent(TokenAmountIntent):
    action: Literal["recurring_payment"] = "recurring_payment"
    recipient: str = Field(..., min_length=1)
    frequency: Frequency


class CheckBalanceIntent(IntentBase):
    action: Literal["check_balance"] = "check_balance"


class GetWalletIntent(IntentBase):
    action: Literal["get_wallet"] = "get_wallet"


class GetReceiptsIntent(IntentBase):
    action: Literal["get_receipts"] = "get_receipts"


class ListContactsIntent(IntentBase):
    action: Literal["list_contacts"] = "list_contacts"


class ListRecurringIntent(IntentBase):
    action: Literal["list_recurring"] = "list_recurring"


class SaveContactIntent(IntentBase):
    action: Literal["save_contact"] = "save_contact"
    name: str = Field(..., min_length=1, max_length=100)
    phone: str = Field(..., min_length=1)


class DeleteContactIntent(IntentBase):
    action: Literal["delete_contact"] = "delete_contact"
    name: str = Field(..., min_length=1, max_length=100)


class CancelRecurringIntent(IntentBase):
    action: Literal["cancel_recurring"] = "cancel_recurring"
    target: str = Field(..., min_length=1, description="Recurring payment id, phone number or contact name")


class SetLanguageIntent(IntentBase):
    action: Literal["set_language"] = "set_language"
    language: str = Field(..., min_length=2)


class PriceAlertIntent(IntentBase):
    action: Literal["price_alert"] = "price_alert"
    token: str = Field(..., min_length=1, max_length=10)
    target_price: Decimal = Field(..., gt=0)
    condition: Literal["above", "below"]

    @field_validator("token")
    @classmethod
    def normalize_token(cls, value: str) -> str:
        return value.strip().upper()


class PaymentRequestIntent(TokenAmountIntent):
    action: Literal["payment_request"] = "payment_request"
    payer: str = Field(..., min_length=1, description="Phone number or contact name")


class SetPinIntent(IntentBase):
    action: Literal["set_pin"] = "set_pin"


class HelpIntent(IntentBase):
    action: Literal["help"] = "help"


class ChatIntent(IntentBase):
    action: Literal["chat"] = "chat"


Intent = Annotated[
    Union[
        SendPaymentIntent,
        AnonSendIntent,
        DepositIntent,
        WithdrawIntent,
        CrossChainSendIntent,
        SplitPaymentIntent,
        RecurringPaymentIntent,
        CheckBalanceIntent,
        GetWalletIntent,
        GetReceiptsIntent,
        ListContactsIntent,
        ListRecurringIntent,
        SaveContactIntent,
        DeleteContactIntent,
        CancelRecurringIntent,
        SetLanguageIntent,
        PriceAlertIntent,
        PaymentRequestIntent,
        SetPinIntent,
        HelpIntent,
        ChatIntent,
    ],
    Field(discriminator="action"),
]

INTENT_ADAPTER: TypeAdapter[Intent] = TypeAdapter(Intent)

# Intents that move funds or change standing instructions; never executed from interpretation
STAGED_INTENTS: dict[type[IntentBase], ActionKind] = {
    SendPaymentIntent: ActionKind.SEND_PAYMENT,
    AnonSendIntent: ActionKind.ANON_SEND,
    DepositIntent: ActionKind.DEPOSIT,
    WithdrawIntent: ActionKind.WITHDRAW,
    CrossChainSendIntent: ActionKind.CROSS_CHAIN_SEND,
    SplitPaymentIntent: ActionKind.SPLIT_PAYMENT,
    RecurringPaymentIntent: ActionKind.RECURRING_PAYMENT,
}

# Payload model per staged kind, used to read a payload back from the stores
PAYLOAD_MODELS: dict[ActionKind, type[IntentBase]] = {kind: model for model, kind in STAGED_INTENTS.items()}


def parse_intent(data: dict) -> Intent:
    """Raises pydantic.ValidationError for unknown actions or bad fields."""
    return INTENT_ADAPTER.validate_python(data)


def to_payload(intent: IntentBase) -> dict:
    """JSON-safe payload for the stores (Decimal amounts become strings)."""
    return intent.model_dump(mode="json", exclude={"action"})


def principal_amount(kind: ActionKind, payload: dict) -> Decimal | None:
    """The amount the step-up threshold applies to."""
    if kind == ActionKind.SPLIT_PAYMENT:
        return Decimal(str(payload["total_amount"]))
    if "amount" in payload:
        return Decimal(str(payload["amount"]))
    return None
