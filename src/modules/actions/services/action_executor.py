import logging
from collections.abc import Awaitable
from decimal import ROUND_DOWN, Decimal
from typing import Any

from sqlalchemy.orm import Session

from src.common.enums import ActionKind, Channel
from src.common.exceptions import (
    AmountTooSmall,
    ComplianceBlocked,
    HushPayError,
    InsufficientBalance,
    ProviderError,
    RecipientAddressMissing,
)
from src.common.providers import Providers, TransferResult
from src.configuration.config import settings
from src.modules.actions.services.action_stores import FailedActionStore
from src.modules.conversations.agent.intents import (
    AnonSendIntent,
    CrossChainSendIntent,
    DepositIntent,
    RecurringPaymentIntent,
    SendPaymentIntent,
    SplitPaymentIntent,
    WithdrawIntent,
)
from src.modules.conversations.agent.messages import translate
from src.modules.identities.entities import User
from src.modules.identities.services import IdentityService, PinService
from src.modules.identities.services.phone import mask_phone
from src.modules.recurring.services import RecurringService
from src.modules.transfers.entities import Transfer
from src.modules.transfers.repositories import TransferRepository

logger = logging.getLogger(__name__)

BASE_UNIT = Decimal("0.000000001")

# Kinds whose provider failures can be retried with RETRY
RETRYABLE_KINDS = {
    ActionKind.SEND_PAYMENT,
    ActionKind.ANON_SEND,
    ActionKind.DEPOSIT,
    ActionKind.WITHDRAW,
    ActionKind.CROSS_CHAIN_SEND,
}


def fmt_amount(amount: Decimal) -> str:
    """Plain decimal notation without trailing zeros."""
    text = f"{amount:f}"
    return text.rstrip("0").rstrip(".") if "." in text else text


def short_tx(tx_reference: str | None) -> str:
    if not tx_reference:
        return "-"
    return f"{tx_reference[:16]}..." if len(tx_reference) > 16 else tx_reference


def split_share(total: Decimal, recipients: int) -> Decimal:
    """Equal share rounded down to the base unit; the remainder is not sent."""
    return (total / recipients).quantize(BASE_UNIT, rounding=ROUND_DOWN)


def summarize_action(kind: ActionKind, payload: dict[str, Any]) -> str:
    """One-line description used in retry prompts."""
    if kind == ActionKind.SPLIT_PAYMENT:
        return (
            f"split {payload['total_amount']} {payload['token']} between "
            f"{len(payload.get('recipients', []))} people"
        )
    amount = f"{payload.get('amount')} {payload.get('token')}"
    if kind == ActionKind.SEND_PAYMENT:
        return f"send {amount} to {payload['recipient']}"
    if kind == ActionKind.ANON_SEND:
        return f"send {amount} anonymously to {payload['recipient_wallet'][:8]}..."
    if kind == ActionKind.DEPOSIT:
        return f"deposit {amount} to the private pool"
    if kind == ActionKind.WITHDRAW:
        return f"withdraw {amount} to your public wallet"
    if kind == ActionKind.CROSS_CHAIN_SEND:
        return f"send {amount} to {payload['destination_chain'].title()}"
    if kind == ActionKind.RECURRING_PAYMENT:
        return f"send {amount} to {payload['recipient']} {payload['frequency']}"
    return kind.value


class ActionExecutor:
    """
    Runs confirmed actions against the providers.

    Callers consume the pending action (or step-up token) before calling
    ``execute``, so each staged action runs at most once. Domain failures come
    back as user text; provider failures of single-target kinds are kept as a
    failed action for RETRY.
    """

    def __init__(self, db: Session, providers: Providers, failed_actions: FailedActionStore | None = None):
        self.db = db
        self.providers = providers
        self.failed_actions = failed_actions or FailedActionStore()
        self.identity_service = IdentityService(db, providers.wallet_registrar)
        self.pin_service = PinService(db)
        self.recurring_service = RecurringService(db)
        self.transfer_repository = TransferRepository(db)
        self._handlers = {
            ActionKind.SEND_PAYMENT: self._send_payment,
            ActionKind.ANON_SEND: self._anon_send,
            ActionKind.DEPOSIT: self._deposit,
            ActionKind.WITHDRAW: self._withdraw,
            ActionKind.CROSS_CHAIN_SEND: self._cross_chain_send,
            ActionKind.SPLIT_PAYMENT: self._split_payment,
            ActionKind.RECURRING_PAYMENT: self._recurring_payment,
            ActionKind.SET_PIN: self._set_pin,
        }

    async def execute(self, user: User, kind: ActionKind, payload: dict[str, Any], channel: Channel) -> str:
        handler = self._handlers[kind]
        try:
            return await handler(user, payload, channel)
        except ProviderError as e:
            logger.warning(f"{kind.value} for {mask_phone(user.phone)} failed at {e.provider}: {e.error}")
            if kind in RETRYABLE_KINDS:
                self.failed_actions.record(user.phone, kind, payload, e.error)
                return e.user_message
            return f"Transfer failed: {e.error}"
        except HushPayError as e:
            logger.info(f"{kind.value} for {mask_phone(user.phone)} rejected: {type(e).__name__}")
            return e.user_message

    async def transfer_between_identities(
        self,
        sender: User,
        recipient: User,
        amount: Decimal,
        token: str,
        kind: ActionKind = ActionKind.SEND_PAYMENT,
    ) -> Transfer:
        """
        Screen both wallets, check the balance, then move funds with a
        transfer record that ends confirmed or failed.

        Raises:
            ComplianceBlocked, InsufficientBalance: Before any record is created.
            ProviderError: The provider failed; the record is marked failed.
        """
        await self._screen(sender.wallet_address, recipient.wallet_address)
        await self._ensure_public_balance(sender, amount, token)

        transfer = self.transfer_repository.create_pending(
            sender_phone=sender.phone,
            recipient_phone=recipient.phone,
            kind=kind,
            amount=amount,
            token=token,
        )
        self.db.commit()

        secret = self.identity_service.decrypt_private_key(sender)
        return await self._settle(
            transfer, self.providers.transfer.transfer(secret, recipient.wallet_address, amount, token)
        )

    async def notify(self, phone: str, text: str, channel: Channel = Channel.WHATSAPP) -> bool:
        """Best effort: failures are logged and never undo the action."""
        try:
            await self.providers.notifier.send(phone, text, channel)
            return True
        except Exception as e:
            logger.warning(f"Notification to {mask_phone(phone)} failed: {e}")
            return False

    async def _settle(self, transfer: Transfer, operation: Awaitable[TransferResult]) -> Transfer:
        try:
            result = await operation
        except ProviderError as e:
            self.transfer_repository.mark_failed(transfer, e.error)
            self.db.commit()
            raise

        if not result.success:
            self.transfer_repository.mark_failed(transfer, result.error)
            self.db.commit()
            raise ProviderError(result.error or "Transfer failed")

        self.transfer_repository.mark_confirmed(transfer, result.tx_reference)
        self.db.commit()
        logger.info(
            f"Transfer {transfer.id} ({transfer.kind.value}) confirmed for {mask_phone(transfer.sender_phone)}"
        )
        return transfer

    async def _screen(self, *addresses: str) -> None:
        for address in addresses:
            screening = await self.providers.compliance.screen(address)
            if not screening.allowed:
                raise ComplianceBlocked(screening.reason)

    async def _ensure_public_balance(self, user: User, amount: Decimal, token: str) -> None:
        required = amount + settings.NETWORK_FEE_ESTIMATE if token == settings.NATIVE_TOKEN else amount
        available = await self.providers.balance.get_balance(user.wallet_address, token)
        if available < required:
            raise InsufficientBalance(token, available, required)

    async def _ensure_private_balance(self, secret: str, amount: Decimal, token: str) -> None:
        available = await self.providers.privacy_pool.get_private_balance(secret, token)
        if available < amount:
            raise InsufficientBalance(token, available, amount)

    async def _send_payment(self, user: User, payload: dict[str, Any], channel: Channel) -> str:
        intent = SendPaymentIntent.model_validate(payload)
        recipient, _ = self.identity_service.get_or_create(intent.recipient)
        if recipient.phone == user.phone:
            raise HushPayError("You can't send to yourself.")

        transfer = await self.transfer_between_identities(user, recipient, intent.amount, intent.token)

        await self.notify(
            recipient.phone,
            translate(
                "received",
                recipient.preferred_language,
                amount=fmt_amount(intent.amount),
                token=intent.token,
                sender=user.phone[-4:],
            ),
            channel,
        )
        return translate(
            "send_success",
            user.preferred_language,
            amount=fmt_amount(intent.amount),
            token=intent.token,
            recipient=recipient.phone,
            tx=short_tx(transfer.tx_reference),
        )

    async def _anon_send(self, user: User, payload: dict[str, Any], channel: Channel) -> str:
        intent = AnonSendIntent.model_validate(payload)
        await self._screen(user.wallet_address, intent.recipient_wallet)
        secret = self.identity_service.decrypt_private_key(user)
        await self._ensure_private_balance(secret, intent.amount, intent.token)

        transfer = self.transfer_repository.create_pending(
            sender_phone=user.phone,
            recipient_address=intent.recipient_wallet,
            kind=ActionKind.ANON_SEND,
            amount=intent.amount,
            token=intent.token,
        )
        self.db.commit()
        transfer = await self._settle(
            transfer,
            self.providers.privacy_pool.withdraw(secret, intent.amount, intent.recipient_wallet, intent.token),
        )
        return translate(
            "anon_send_success",
            user.preferred_language,
            amount=fmt_amount(intent.amount),
            token=intent.token,
            tx=short_tx(transfer.tx_reference),
        )

    async def _deposit(self, user: User, payload: dict[str, Any], channel: Channel) -> str:
        intent = DepositIntent.model_validate(payload)
        await self._ensure_public_balance(user, intent.amount, intent.token)
        secret = self.identity_service.decrypt_private_key(user)

        transfer = self.transfer_repository.create_pending(
            sender_phone=user.phone,
            recipient_phone=user.phone,
            kind=ActionKind.DEPOSIT,
            amount=intent.amount,
            token=intent.token,
        )
        self.db.commit()
        await self._settle(transfer, self.providers.privacy_pool.deposit(secret, intent.amount, intent.token))

        try:
            balance = await self.providers.privacy_pool.get_private_balance(secret, intent.token)
        except ProviderError as e:
            logger.warning(f"Private balance unavailable after deposit {transfer.id}: {e.error}")
            return translate(
                "deposit_done", user.preferred_language, amount=fmt_amount(intent.amount), token=intent.token
            )
        return translate(
            "deposit_success",
            user.preferred_language,
            amount=fmt_amount(intent.amount),
            token=intent.token,
            balance=f"{balance:.4f}",
        )

    async def _withdraw(self, user: User, payload: dict[str, Any], channel: Channel) -> str:
        intent = WithdrawIntent.model_validate(payload)
        secret = self.identity_service.decrypt_private_key(user)
        await self._ensure_private_balance(secret, intent.amount, intent.token)

        transfer = self.transfer_repository.create_pending(
            sender_phone=user.phone,
            recipient_phone=user.phone,
            recipient_address=user.wallet_address,
            kind=ActionKind.WITHDRAW,
            amount=intent.amount,
            token=intent.token,
        )
        self.db.commit()
        transfer = await self._settle(
            transfer,
            self.providers.privacy_pool.withdraw(secret, intent.amount, user.wallet_address, intent.token),
        )
        return translate(
            "withdraw_success",
            user.preferred_language,
            amount=fmt_amount(intent.amount),
            token=intent.token,
            tx=short_tx(transfer.tx_reference),
        )

    async def _cross_chain_send(self, user: User, payload: dict[str, Any], channel: Channel) -> str:
        intent = CrossChainSendIntent.model_validate(payload)
        if not intent.recipient_address:
            raise RecipientAddressMissing(intent.destination_chain)

        await self._screen(user.wallet_address)
        await self._ensure_public_balance(user, intent.amount, intent.token)
        secret = self.identity_service.decrypt_private_key(user)

        transfer = self.transfer_repository.create_pending(
            sender_phone=user.phone,
            recipient_address=intent.recipient_address,
            kind=ActionKind.CROSS_CHAIN_SEND,
            amount=intent.amount,
            token=intent.token,
        )
        self.db.commit()
        transfer = await self._settle(
            transfer,
            self.providers.bridge.send(
                secret, intent.amount, intent.token, intent.destination_chain, intent.recipient_address
            ),
        )
        return translate(
            "cross_chain_started",
            user.preferred_language,
            amount=fmt_amount(intent.amount),
            token=intent.token,
            chain=intent.destination_chain.title(),
            address=f"{intent.recipient_address[:6]}...{intent.recipient_address[-4:]}",
            order=short_tx(transfer.tx_reference),
        )

    async def _split_payment(self, user: User, payload: dict[str, Any], channel: Channel) -> str:
        intent = SplitPaymentIntent.model_validate(payload)
        if not intent.recipients:
            raise HushPayError("Who should I split with? Send the phone numbers or contact names.")

        share = split_share(intent.total_amount, len(intent.recipients))
        if share < settings.MIN_TRANSFER_AMOUNT:
            raise AmountTooSmall(share, settings.MIN_TRANSFER_AMOUNT, intent.token)

        lines = []
        succeeded = 0
        for recipient_phone in intent.recipients:
            # One recipient failing must not stop the others
            try:
                recipient, _ = self.identity_service.get_or_create(recipient_phone)
                transfer = await self.transfer_between_identities(
                    user, recipient, share, intent.token, kind=ActionKind.SPLIT_PAYMENT
                )
            except HushPayError as e:
                error = e.error if isinstance(e, ProviderError) else e.user_message.splitlines()[0]
                lines.append(f"✗ {recipient_phone}: {error}")
                continue

            succeeded += 1
            lines.append(f"✓ {recipient.phone}: {fmt_amount(share)} {intent.token} ({short_tx(transfer.tx_reference)})")
            await self.notify(
                recipient.phone,
                translate(
                    "received",
                    recipient.preferred_language,
                    amount=fmt_amount(share),
                    token=intent.token,
                    sender=user.phone[-4:],
                ),
                channel,
            )

        header = translate(
            "split_summary",
            user.preferred_language,
            total=fmt_amount(intent.total_amount),
            token=intent.token,
            succeeded=succeeded,
            count=len(intent.recipients),
            share=fmt_amount(share),
        )
        return "\n".join([header, *lines])

    async def _recurring_payment(self, user: User, payload: dict[str, Any], channel: Channel) -> str:
        intent = RecurringPaymentIntent.model_validate(payload)
        payment = self.recurring_service.create(
            sender_phone=user.phone,
            recipient_phone=intent.recipient,
            amount=intent.amount,
            token=intent.token,
            frequency=intent.frequency,
        )
        language = user.preferred_language
        return translate(
            "recurring_created",
            language,
            id=payment.id,
            amount=fmt_amount(intent.amount),
            token=intent.token,
            recipient=intent.recipient,
            frequency=translate(intent.frequency.value, language),
            next_run=f"{payment.next_run_at:%Y-%m-%d}",
        )

    async def _set_pin(self, user: User, payload: dict[str, Any], channel: Channel) -> str:
        self.pin_service.set_pin(user, payload["pin"])
        return translate(
            "pin_set",
            user.preferred_language,
            threshold=fmt_amount(settings.STEP_UP_THRESHOLD),
            token=settings.NATIVE_TOKEN,
        )
