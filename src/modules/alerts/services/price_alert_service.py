import logging
from decimal import Decimal

from sqlalchemy.orm import Session

from src.modules.alerts.entities import PriceAlert
from src.modules.alerts.repositories import PriceAlertRepository

logger = logging.getLogger(__name__)

CONDITIONS = ("above", "below")


class PriceAlertService:
    def __init__(self, db: Session):
        self.db = db
        self.repository = PriceAlertRepository(db)

    def set_alert(self, phone: str, token: str, target_price: Decimal, condition: str) -> PriceAlert:
        """Store an alert, replacing any existing alert for the same phone and token."""
        if condition not in CONDITIONS:
            raise ValueError(f"condition must be one of {CONDITIONS}")
        token = token.upper()
        existing = self.repository.get_for(phone, token)
        if existing:
            alert = self.repository.update(existing, {"target_price": target_price, "condition": condition})
        else:
            alert = self.repository.create(
                PriceAlert(phone=phone, token=token, target_price=target_price, condition=condition)
            )
        self.db.commit()
        return alert
