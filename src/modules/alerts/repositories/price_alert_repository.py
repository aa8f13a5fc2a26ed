from src.common.repositories import BaseRepository
from src.common.resilience import retry_db_operation
from src.modules.alerts.entities import PriceAlert


class PriceAlertRepository(BaseRepository[PriceAlert]):
    model = PriceAlert

    @retry_db_operation(max_attempts=3, initial_wait=0.5, max_wait=5.0)
    def get_for(self, phone: str, token: str) -> PriceAlert | None:
        return (
            self.session.query(PriceAlert)
            .filter(PriceAlert.phone == phone, PriceAlert.token == token)
            .first()
        )

    @retry_db_operation(max_attempts=3, initial_wait=0.5, max_wait=5.0)
    def list_by_token(self) -> dict[str, list[PriceAlert]]:
        grouped: dict[str, list[PriceAlert]] = {}
        for alert in self.session.query(PriceAlert).order_by(PriceAlert.id.asc()).all():
            grouped.setdefault(alert.token, []).append(alert)
        return grouped
