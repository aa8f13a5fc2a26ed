from src.modules.alerts.services.price_alert_monitor import PriceAlertMonitor
from src.modules.alerts.services.price_alert_service import PriceAlertService

__all__ = ["PriceAlertMonitor", "PriceAlertService"]
