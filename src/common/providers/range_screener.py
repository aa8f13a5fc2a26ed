import logging

from src.common.exceptions import ProviderError
from src.common.providers.base import ScreeningResult
from src.common.providers.http_client import HttpProvider
from src.configuration.config import settings

logger = logging.getLogger(__name__)

BLOCKING_RISK_LEVELS = {"high", "severe"}


class RangeComplianceScreener(HttpProvider):
    """Address risk screening. Skipped when no API key is configured."""

    name = "range"

    def __init__(self, base_url: str | None = None, api_key: str | None = None):
        super().__init__(base_url or settings.RANGE_API_URL, api_key or settings.RANGE_API_KEY)

    async def screen(self, address: str) -> ScreeningResult:
        if not self.configured:
            return ScreeningResult(allowed=True)

        try:
            data = await self._request("POST", "/screen", json={"address": address})
        except ProviderError as e:
            # Fails open.
            logger.warning(f"Compliance screening unavailable, allowing {address[:8]}...: {e.error}")
            return ScreeningResult(allowed=True)

        risk = str(data.get("risk") or "low").lower()
        if risk in BLOCKING_RISK_LEVELS:
            logger.info(f"Address {address[:8]}... flagged with risk={risk}")
            return ScreeningResult(allowed=False, reason="Address flagged for compliance")
        return ScreeningResult(allowed=True)
