from src.modules.recurring.repositories.recurring_payment_repository import RecurringPaymentRepository

__all__ = ["RecurringPaymentRepository"]
