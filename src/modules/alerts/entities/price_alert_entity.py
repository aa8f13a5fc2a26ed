from sqlalchemy import Column, Integer, Numeric, String, UniqueConstraint

from src.common.entities.base import BaseEntity


class PriceAlertEntity(BaseEntity):
    __tablename__ = "price_alerts"
    __table_args__ = (UniqueConstraint("phone", "token", name="uq_price_alerts_phone_token"),)

    id = Column(Integer, primary_key=True, index=True)
    phone = Column(String(20), nullable=False, index=True)
    token = Column(String(10), nullable=False)
    target_price = Column(Numeric(20, 8), nullable=False)
    condition = Column(String(5), nullable=False)  # above | below

    def is_triggered(self, price) -> bool:
        if self.condition == "above":
            return price >= self.target_price
        return price <= self.target_price

    def __repr__(self):
        return f"<PriceAlert(id={self.id}, {self.token} {self.condition} {self.target_price})>"
