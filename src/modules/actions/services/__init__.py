from src.modules.actions.services.action_executor import ActionExecutor, summarize_action
from src.modules.actions.services.action_stores import FailedActionStore, PendingActionStore

__all__ = ["ActionExecutor", "FailedActionStore", "PendingActionStore", "summarize_action"]
