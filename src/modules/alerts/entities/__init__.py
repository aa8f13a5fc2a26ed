from src.modules.alerts.entities.price_alert_entity import PriceAlertEntity

PriceAlert = PriceAlertEntity

__all__ = ["PriceAlert", "PriceAlertEntity"]
