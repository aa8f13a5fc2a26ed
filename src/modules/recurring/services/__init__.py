from src.modules.recurring.services.recurring_service import RecurringService
from src.modules.recurring.services.schedule import add_period

__all__ = ["RecurringService", "add_period"]
