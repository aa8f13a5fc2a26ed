from src.modules.recurring.entities.recurring_payment_entity import RecurringPaymentEntity

RecurringPayment = RecurringPaymentEntity

__all__ = ["RecurringPayment", "RecurringPaymentEntity"]
