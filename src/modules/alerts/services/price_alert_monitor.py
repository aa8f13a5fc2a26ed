import logging
from collections.abc import Callable

from sqlalchemy.orm import Session

from src.common.providers import Notifier, PriceFeed
from src.configuration.config import get_session
from src.modules.alerts.entities import PriceAlert
from src.modules.alerts.repositories import PriceAlertRepository

logger = logging.getLogger(__name__)


class PriceAlertMonitor:
    """Checks each watched token once per tick; triggered alerts are notified and removed."""

    def __init__(
        self,
        price_feed: PriceFeed,
        notifier: Notifier,
        session_factory: Callable[[], Session] = get_session,
    ):
        self.price_feed = price_feed
        self.notifier = notifier
        self.session_factory = session_factory

    async def run_once(self) -> list[PriceAlert]:
        triggered: list[PriceAlert] = []
        db = self.session_factory()
        try:
            repository = PriceAlertRepository(db)
            for token, alerts in repository.list_by_token().items():
                price = await self.price_feed.get_price(token)
                if price is None:
                    continue

                for alert in alerts:
                    if not alert.is_triggered(price):
                        continue
                    triggered.append(alert)
                    try:
                        await self.notifier.send(
                            alert.phone,
                            f"🔔 Price Alert!\n\n{token} is now ${price:.2f}\n"
                            f"(Target: {alert.condition} ${alert.target_price:f})",
                        )
                    except Exception as e:
                        logger.warning(f"Price alert notification failed for alert {alert.id}: {e}")
                    repository.delete(alert)
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

        if triggered:
            logger.info(f"{len(triggered)} price alert(s) triggered")
        return triggered
