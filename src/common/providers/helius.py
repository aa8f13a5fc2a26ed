import logging

from src.common.providers.http_client import HttpProvider
from src.configuration.config import settings

logger = logging.getLogger(__name__)


class HeliusWalletRegistrar(HttpProvider):
    """Subscribes wallets to balance-change webhooks (POST /webhook/helius)."""

    name = "helius"

    def __init__(self, base_url: str | None = None, api_key: str | None = None):
        super().__init__(base_url or settings.HELIUS_API_URL, api_key or settings.HELIUS_API_KEY)
        self.webhook_id: str | None = None
        self.addresses: list[str] = []

    def _get_headers(self) -> dict[str, str]:
        # Helius authenticates through the api-key query parameter
        return {"Content-Type": "application/json"}

    async def register(self, address: str) -> None:
        if not self.configured:
            return

        self.addresses.append(address)
        params = {"api-key": self.api_key}
        if self.webhook_id is None:
            data = await self._request(
                "POST",
                "/webhooks",
                params=params,
                json={
                    "webhookURL": f"{settings.BASE_URL.rstrip('/')}/webhook/helius",
                    "transactionTypes": ["TRANSFER"],
                    "accountAddresses": self.addresses,
                    "webhookType": "enhanced",
                },
            )
            self.webhook_id = data.get("webhookID")
            logger.info(f"Balance webhook created: {self.webhook_id}")
        else:
            await self._request(
                "PUT", f"/webhooks/{self.webhook_id}", params=params, json={"accountAddresses": self.addresses}
            )
