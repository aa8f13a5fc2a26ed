import logging
import re
from collections.abc import Awaitable, Callable
from decimal import Decimal

from src.common.enums import ActionKind, ConversationStatus
from src.common.exceptions import AmountTooSmall, HushPayError, ProviderError, RecipientAddressMissing
from src.common.wallet import is_valid_address
from src.configuration.config import settings
from src.modules.actions.services.action_executor import fmt_amount, split_share, summarize_action
from src.modules.conversations.agent.context import MessageContext
from src.modules.conversations.agent.intents import (
    STAGED_INTENTS,
    AnonSendIntent,
    CancelRecurringIntent,
    ChatIntent,
    CheckBalanceIntent,
    CrossChainSendIntent,
    DeleteContactIntent,
    DepositIntent,
    GetReceiptsIntent,
    GetWalletIntent,
    HelpIntent,
    IntentBase,
    ListContactsIntent,
    ListRecurringIntent,
    PaymentRequestIntent,
    PriceAlertIntent,
    RecurringPaymentIntent,
    SaveContactIntent,
    SendPaymentIntent,
    SetLanguageIntent,
    SetPinIntent,
    SplitPaymentIntent,
    WithdrawIntent,
    to_payload,
)
from src.modules.conversations.agent.messages import translate
from src.modules.identities.services.phone import looks_like_phone

logger = logging.getLogger(__name__)

EVM_ADDRESS = re.compile(r"^0x[a-fA-F0-9]{40}$")

HandlerResult = tuple[str, ConversationStatus]
Handler = Callable[[IntentBase, str, MessageContext], Awaitable[HandlerResult]]


class IntentRouter:
    """
    One handler per intent type. Fund-moving intents are validated and staged
    as the pending action; everything else answers right away.
    """

    def __init__(self):
        self._handlers: dict[type[IntentBase], Handler] = {
            SendPaymentIntent: self._stage_send_payment,
            AnonSendIntent: self._stage_anon_send,
            DepositIntent: self._stage_amount_only,
            WithdrawIntent: self._stage_amount_only,
            CrossChainSendIntent: self._stage_cross_chain_send,
            SplitPaymentIntent: self._stage_split_payment,
            RecurringPaymentIntent: self._stage_recurring_payment,
            CheckBalanceIntent: self._check_balance,
            GetWalletIntent: self._get_wallet,
            GetReceiptsIntent: self._get_receipts,
            ListContactsIntent: self._list_contacts,
            ListRecurringIntent: self._list_recurring,
            SaveContactIntent: self._save_contact,
            DeleteContactIntent: self._delete_contact,
            CancelRecurringIntent: self._cancel_recurring,
            SetLanguageIntent: self._set_language,
            PriceAlertIntent: self._price_alert,
            PaymentRequestIntent: self._payment_request,
            SetPinIntent: self._set_pin,
            HelpIntent: self._help,
            ChatIntent: self._chat,
        }

    @property
    def handled_types(self) -> set[type[IntentBase]]:
        return set(self._handlers)

    async def route(self, intent: IntentBase | None, reply_text: str, ctx: MessageContext) -> HandlerResult:
        if intent is None:
            return await self._chat(ChatIntent(), reply_text, ctx)
        handler = self._handlers[type(intent)]
        try:
            return await handler(intent, reply_text, ctx)
        except HushPayError as e:
            return e.user_message, ConversationStatus.IDLE

    # Staging

    def _stage(self, intent: IntentBase, reply_text: str, ctx: MessageContext) -> HandlerResult:
        kind = STAGED_INTENTS[type(intent)]
        payload = to_payload(intent)
        ctx.pending_actions.stage(ctx.user.phone, kind, payload, ctx.now)
        summary = summarize_action(kind, payload)
        reply = reply_text or f"{summary[:1].upper()}{summary[1:]}?\n\nReply YES to confirm."
        return reply, ConversationStatus.AWAITING_CONFIRMATION

    @staticmethod
    def _check_minimum(amount: Decimal, token: str) -> None:
        if amount < settings.MIN_TRANSFER_AMOUNT:
            raise AmountTooSmall(amount, settings.MIN_TRANSFER_AMOUNT, token)

    @staticmethod
    def _resolve_recipient(ctx: MessageContext, name_or_phone: str) -> str:
        phone = ctx.contacts.resolve(ctx.user.phone, name_or_phone)
        if phone is None:
            raise HushPayError(
                f'I don\'t have a contact named "{name_or_phone}". '
                "Send their phone number (e.g. +2348012345678) or save them first."
            )
        if phone == ctx.user.phone:
            raise HushPayError("You can't send to yourself.")
        return phone

    async def _stage_send_payment(self, intent: SendPaymentIntent, reply_text: str, ctx: MessageContext):
        self._check_minimum(intent.amount, intent.token)
        recipient = self._resolve_recipient(ctx, intent.recipient)
        return self._stage(intent.model_copy(update={"recipient": recipient}), reply_text, ctx)

    async def _stage_anon_send(self, intent: AnonSendIntent, reply_text: str, ctx: MessageContext):
        self._check_minimum(intent.amount, intent.token)
        if not is_valid_address(intent.recipient_wallet):
            raise HushPayError("That doesn't look like a Solana wallet address. Check it and try again.")
        return self._stage(intent, reply_text, ctx)

    async def _stage_amount_only(self, intent: DepositIntent | WithdrawIntent, reply_text: str, ctx: MessageContext):
        self._check_minimum(intent.amount, intent.token)
        return self._stage(intent, reply_text, ctx)

    async def _stage_cross_chain_send(self, intent: CrossChainSendIntent, reply_text: str, ctx: MessageContext):
        self._check_minimum(intent.amount, intent.token)
        if not intent.recipient_address or not EVM_ADDRESS.match(intent.recipient_address.strip()):
            raise RecipientAddressMissing(intent.destination_chain)
        address = intent.recipient_address.strip()
        return self._stage(intent.model_copy(update={"recipient_address": address}), reply_text, ctx)

    async def _stage_split_payment(self, intent: SplitPaymentIntent, reply_text: str, ctx: MessageContext):
        if not intent.recipients:
            raise HushPayError("Who should I split with? Send the phone numbers or contact names.")
        recipients = [self._resolve_recipient(ctx, r) for r in intent.recipients]
        self._check_minimum(split_share(intent.total_amount, len(recipients)), intent.token)
        return self._stage(intent.model_copy(update={"recipients": recipients}), reply_text, ctx)

    async def _stage_recurring_payment(self, intent: RecurringPaymentIntent, reply_text: str, ctx: MessageContext):
        self._check_minimum(intent.amount, intent.token)
        recipient = self._resolve_recipient(ctx, intent.recipient)
        return self._stage(intent.model_copy(update={"recipient": recipient}), reply_text, ctx)

    # Immediate answers

    async def _check_balance(self, intent: CheckBalanceIntent, reply_text: str, ctx: MessageContext):
        user = ctx.user
        tokens = [settings.NATIVE_TOKEN, *(t for t in settings.TOKEN_MINTS if t.upper() != settings.NATIVE_TOKEN)]
        try:
            public = {token: await ctx.providers.balance.get_balance(user.wallet_address, token) for token in tokens}
            private = await ctx.providers.privacy_pool.get_private_balance(
                ctx.identities.decrypt_private_key(user), settings.NATIVE_TOKEN
            )
        except ProviderError as e:
            logger.warning(f"Balance lookup failed: {e.error}")
            return "Couldn't fetch your balance right now. Try again in a minute.", ConversationStatus.IDLE

        public_lines = "\n".join(f"• {amount:.4f} {token.upper()}" for token, amount in public.items())
        reply = (
            f"Your balance:\n\n📊 Public:\n{public_lines}\n\n"
            f"🔒 Private Pool:\n• {private:.4f} {settings.NATIVE_TOKEN}\n\n"
            f"Wallet: {user.wallet_address[:8]}..."
        )
        return reply, ConversationStatus.IDLE

    async def _get_wallet(self, intent: GetWalletIntent, reply_text: str, ctx: MessageContext):
        return f"Your wallet address:\n{ctx.user.wallet_address}", ConversationStatus.IDLE

    async def _get_receipts(self, intent: GetReceiptsIntent, reply_text: str, ctx: MessageContext):
        phone = ctx.user.phone
        transfers = ctx.executor.transfer_repository.get_recent_for_phone(phone, limit=5)
        if not transfers:
            return "No payments yet. Send your first one!", ConversationStatus.IDLE

        lines = []
        for t in transfers:
            outgoing = t.sender_phone == phone
            other = (t.recipient_phone or t.recipient_address or "") if outgoing else t.sender_phone
            lines.append(
                f"{'→' if outgoing else '←'} {fmt_amount(t.amount)} {t.token} {other[-4:]} ({t.status.value})"
            )
        return "Recent payments:\n" + "\n".join(lines), ConversationStatus.IDLE

    async def _list_contacts(self, intent: ListContactsIntent, reply_text: str, ctx: MessageContext):
        contacts = ctx.contacts.list(ctx.user.phone)
        if not contacts:
            return 'No contacts yet. Try "save mom +2348012345678".', ConversationStatus.IDLE
        lines = [f"• {c.display_name}: {c.target_phone}" for c in contacts]
        return "Your contacts:\n" + "\n".join(lines), ConversationStatus.IDLE

    async def _list_recurring(self, intent: ListRecurringIntent, reply_text: str, ctx: MessageContext):
        payments = ctx.recurring.list_active(ctx.user.phone)
        if not payments:
            return "No recurring payments.", ConversationStatus.IDLE
        lines = [
            f"#{p.id} {fmt_amount(p.amount)} {p.token} → {p.recipient_phone} {p.frequency.value} "
            f"(next {p.next_run_at:%Y-%m-%d})"
            for p in payments
        ]
        return "Recurring payments:\n" + "\n".join(lines), ConversationStatus.IDLE

    async def _save_contact(self, intent: SaveContactIntent, reply_text: str, ctx: MessageContext):
        contact = ctx.contacts.save(ctx.user.phone, intent.name, intent.phone)
        return f"✓ Saved {contact.display_name}: {contact.target_phone}", ConversationStatus.IDLE

    async def _delete_contact(self, intent: DeleteContactIntent, reply_text: str, ctx: MessageContext):
        if ctx.contacts.delete(ctx.user.phone, intent.name):
            return f"✓ Deleted {intent.name}", ConversationStatus.IDLE
        return f'No contact named "{intent.name}".', ConversationStatus.IDLE

    async def _cancel_recurring(self, intent: CancelRecurringIntent, reply_text: str, ctx: MessageContext):
        target = intent.target.strip()
        if not target.lstrip("#").isdigit() and not looks_like_phone(target):
            target = self._resolve_recipient(ctx, target)
        cancelled = ctx.recurring.cancel(ctx.user.phone, target)
        if not cancelled:
            return "No matching recurring payment.", ConversationStatus.IDLE
        ids = ", ".join(f"#{p.id}" for p in cancelled)
        return f"✓ Cancelled recurring payment {ids}", ConversationStatus.IDLE

    async def _set_language(self, intent: SetLanguageIntent, reply_text: str, ctx: MessageContext):
        code = ctx.identities.set_language(ctx.user, intent.language)
        return translate("language_set", code), ConversationStatus.IDLE

    async def _price_alert(self, intent: PriceAlertIntent, reply_text: str, ctx: MessageContext):
        alert = ctx.alerts.set_alert(ctx.user.phone, intent.token, intent.target_price, intent.condition)
        return (
            f"🔔 Alert set: I'll message you when {alert.token} goes {alert.condition} "
            f"${fmt_amount(intent.target_price)}.",
            ConversationStatus.IDLE,
        )

    async def _payment_request(self, intent: PaymentRequestIntent, reply_text: str, ctx: MessageContext):
        payer = self._resolve_recipient(ctx, intent.payer)
        amount = fmt_amount(intent.amount)
        requester = ctx.user.phone
        sent = await ctx.executor.notify(
            payer,
            f"💸 {requester} is requesting {amount} {intent.token}.\n\n"
            f"Reply: send {amount} {intent.token} to {requester}",
            ctx.channel,
        )
        if not sent:
            return f"Couldn't reach {payer} right now. Try again later.", ConversationStatus.IDLE
        return f"✓ Request for {amount} {intent.token} sent to {payer}", ConversationStatus.IDLE

    async def _set_pin(self, intent: SetPinIntent, reply_text: str, ctx: MessageContext):
        link = ctx.step_up.create_link(ctx.user.phone, ActionKind.SET_PIN, {}, ctx.now, ctx.channel)
        return translate("set_pin_link", ctx.language, url=link.url), ConversationStatus.IDLE

    async def _help(self, intent: HelpIntent, reply_text: str, ctx: MessageContext):
        return translate("help", ctx.language), ConversationStatus.IDLE

    async def _chat(self, intent: ChatIntent, reply_text: str, ctx: MessageContext):
        return reply_text or translate("help", ctx.language), ConversationStatus.IDLE
