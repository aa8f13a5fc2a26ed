import logging
from decimal import Decimal

from src.common.exceptions import ProviderError
from src.common.providers.http_client import HttpProvider
from src.configuration.config import settings

logger = logging.getLogger(__name__)

COIN_IDS = {
    "SOL": "solana",
    "USDC": "usd-coin",
    "USDT": "tether",
    "USD1": "usd1-wlfi",
}


class CoinGeckoPriceFeed(HttpProvider):
    name = "coingecko"

    def __init__(self, base_url: str | None = None):
        super().__init__(base_url or settings.PRICE_API_URL)

    async def get_price(self, token: str) -> Decimal | None:
        """USD price, or None for unknown tokens and feed outages."""
        coin_id = COIN_IDS.get(token.upper())
        if coin_id is None:
            return None

        try:
            data = await self._request("GET", "/simple/price", params={"ids": coin_id, "vs_currencies": "usd"})
        except ProviderError as e:
            logger.warning(f"Price feed unavailable for {token}: {e.error}")
            return None

        price = data.get(coin_id, {}).get("usd")
        return Decimal(str(price)) if price is not None else None
