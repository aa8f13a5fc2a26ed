import enum


class ConversationStatus(str, enum.Enum):
    IDLE = "idle"
    AWAITING_CONFIRMATION = "awaiting_confirmation"
    AWAITING_STEP_UP = "awaiting_step_up"
