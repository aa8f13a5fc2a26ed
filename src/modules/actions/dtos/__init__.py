from src.modules.actions.dtos.actions import FailedAction, PendingAction

__all__ = ["FailedAction", "PendingAction"]
