from src.common.enums.action_kind import ActionKind
from src.common.enums.channel import Channel
from src.common.enums.conversation_status import ConversationStatus
from src.common.enums.frequency import Frequency
from src.common.enums.transfer_status import TransferStatus

__all__ = ["ActionKind", "Channel", "ConversationStatus", "Frequency", "TransferStatus"]
