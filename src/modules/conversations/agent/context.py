from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.orm import Session

from src.common.enums import Channel
from src.common.providers import Providers
from src.modules.actions.services import ActionExecutor, FailedActionStore, PendingActionStore
from src.modules.alerts.services import PriceAlertService
from src.modules.conversations.repositories.message_repository import MessageRepository
from src.modules.identities.entities import User
from src.modules.identities.services import ContactService, IdentityService, PinService
from src.modules.recurring.services import RecurringService
from src.modules.step_up.services import StepUpService


@dataclass
class MessageContext:
    """Everything one inbound message is handled with; bound to that message's DB session."""

    db: Session
    user: User
    channel: Channel
    now: datetime
    providers: Providers
    pending_actions: PendingActionStore
    failed_actions: FailedActionStore
    step_up: StepUpService
    executor: ActionExecutor
    identities: IdentityService
    pins: PinService
    contacts: ContactService
    recurring: RecurringService
    alerts: PriceAlertService
    messages: MessageRepository

    @property
    def language(self) -> str:
        return self.user.preferred_language or "en"
