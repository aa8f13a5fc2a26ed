from typing import Any, TypedDict

from src.common.enums.conversation_status import ConversationStatus


class ConversationState(TypedDict, total=False):
    phone: str
    text: str
    channel: str
    language: str
    command: str | None  # cancel | retry | confirm | None
    status: ConversationStatus
    reply: str | None
    intent: Any | None
    interpreter_reply: str
