from src.modules.alerts.repositories.price_alert_repository import PriceAlertRepository

__all__ = ["PriceAlertRepository"]
