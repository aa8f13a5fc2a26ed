from typing import Any

from pydantic import BaseModel, Field

from src.common.enums import ActionKind, Channel


class StepUpResult(BaseModel):
    """A validated, already consumed step-up token: the action may now run."""

    phone: str
    kind: ActionKind
    payload: dict[str, Any] = Field(default_factory=dict)
    channel: Channel = Channel.WHATSAPP


class StepUpLink(BaseModel):
    token: str
    url: str
