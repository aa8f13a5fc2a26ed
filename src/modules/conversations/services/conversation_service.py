import logging
from collections.abc import Callable
from datetime import datetime

from sqlalchemy.orm import Session

from src.common.enums import Channel
from src.common.exceptions import ExpiredOrMissingAction, HushPayError, InvalidIdentifier
from src.common.locks import IdentityLocks, get_identity_locks
from src.common.providers import Providers, get_providers
from src.common.rate_limiter import RateLimiter
from src.common.stores.expiring_record_store import ExpiringRecordStore, utcnow
from src.configuration.config import get_session
from src.modules.actions.services import ActionExecutor, FailedActionStore, PendingActionStore
from src.modules.alerts.services import PriceAlertService
from src.modules.conversations.agent.context import MessageContext
from src.modules.conversations.agent.conversation_agent import ConversationAgent
from src.modules.conversations.agent.interpreter import IntentInterpreter, LLMIntentInterpreter
from src.modules.conversations.agent.messages import translate
from src.modules.conversations.repositories.message_repository import MessageRepository
from src.modules.identities.entities import User
from src.modules.identities.services import ContactService, IdentityService, normalize_phone
from src.modules.identities.services.phone import mask_phone
from src.modules.step_up.services import StepUpService, step_up_store

logger = logging.getLogger(__name__)


class ConversationService:
    """
    Entry points of the conversation core.

    ``handle_inbound_message`` resumes an identity's conversation from a chat
    message; ``handle_step_up`` resumes it from a PIN form submission. Both
    run under the identity's lock and end in the same action executor.
    """

    def __init__(
        self,
        interpreter: IntentInterpreter | None = None,
        providers: Providers | None = None,
        session_factory: Callable[[], Session] = get_session,
        pending_actions: PendingActionStore | None = None,
        failed_actions: FailedActionStore | None = None,
        step_up_tokens: ExpiringRecordStore | None = None,
        rate_limiter: RateLimiter | None = None,
        locks: IdentityLocks | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.providers = providers or get_providers()
        self.agent = ConversationAgent(interpreter or LLMIntentInterpreter())
        self.session_factory = session_factory
        self.pending_actions = pending_actions or PendingActionStore()
        self.failed_actions = failed_actions or FailedActionStore()
        self.step_up_tokens = step_up_tokens or step_up_store()
        self.rate_limiter = rate_limiter or RateLimiter()
        self.locks = locks or get_identity_locks()
        self.clock = clock

    def _build_context(self, db: Session, user: User, channel: Channel, now: datetime) -> MessageContext:
        executor = ActionExecutor(db, self.providers, self.failed_actions)
        return MessageContext(
            db=db,
            user=user,
            channel=channel,
            now=now,
            providers=self.providers,
            pending_actions=self.pending_actions,
            failed_actions=self.failed_actions,
            step_up=StepUpService(db, self.step_up_tokens),
            executor=executor,
            identities=executor.identity_service,
            pins=executor.pin_service,
            contacts=ContactService(db),
            recurring=executor.recurring_service,
            alerts=PriceAlertService(db),
            messages=MessageRepository(db),
        )

    async def handle_inbound_message(self, identifier: str, text: str, channel: Channel = Channel.SMS) -> str:
        """
        Handle one chat message and return the reply text.

        Rate-limited messages touch nothing but the limiter. A first message
        creates the identity and gets the welcome text instead of being
        interpreted.
        """
        try:
            phone = normalize_phone(identifier)
        except InvalidIdentifier as e:
            return e.user_message

        now = self.clock()
        if not self.rate_limiter.hit(phone, now):
            return translate("rate_limited")

        text = (text or "").strip()
        async with self.locks.hold(phone):
            db = self.session_factory()
            try:
                identities = IdentityService(db, self.providers.wallet_registrar)
                user, is_new = identities.get_or_create(phone)
                if is_new:
                    return translate("welcome", user.preferred_language)

                ctx = self._build_context(db, user, channel, now)
                final_state = await self.agent.run(text, ctx)
                reply = final_state.get("reply") or translate("help", ctx.language)

                ctx.messages.create_message(phone, "user", text)
                ctx.messages.create_message(phone, "assistant", reply)
                db.commit()
                logger.debug(f"{mask_phone(phone)} -> {final_state.get('status')}")
                return reply
            except Exception:
                db.rollback()
                raise
            finally:
                db.close()

    async def handle_step_up(self, token: str, pin: str) -> str:
        """Validate a PIN submission for a step-up token and run the held action."""
        record = self.step_up_tokens.get(token, self.clock())
        if record is None:
            return ExpiredOrMissingAction().user_message

        phone = record["phone"]
        async with self.locks.hold(phone):
            db = self.session_factory()
            try:
                now = self.clock()
                step_up = StepUpService(db, self.step_up_tokens)
                try:
                    result = step_up.validate(token, pin, now)
                except HushPayError as e:
                    return e.user_message

                user = IdentityService(db, self.providers.wallet_registrar).get(result.phone)
                ctx = self._build_context(db, user, result.channel, now)
                reply = await ctx.executor.execute(user, result.kind, result.payload, result.channel)

                ctx.messages.create_message(phone, "assistant", reply)
                db.commit()
                return reply
            except Exception:
                db.rollback()
                raise
            finally:
                db.close()

    def peek_step_up(self, token: str) -> dict | None:
        """The live step-up record behind a confirmation link, or None."""
        return self.step_up_tokens.get(token, self.clock())


_conversation_service: ConversationService | None = None


def get_conversation_service() -> ConversationService:
    global _conversation_service
    if _conversation_service is None:
        _conversation_service = ConversationService()
    return _conversation_service
