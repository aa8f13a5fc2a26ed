from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from src.common.enums import ActionKind


class PendingAction(BaseModel):
    """A staged action awaiting the user's YES. At most one per identity."""

    kind: ActionKind
    payload: dict[str, Any] = Field(default_factory=dict)
    expires_at: datetime | None = None


class FailedAction(BaseModel):
    """The last confirmed action whose execution failed; consumed by RETRY."""

    kind: ActionKind
    payload: dict[str, Any] = Field(default_factory=dict)
    error: str
